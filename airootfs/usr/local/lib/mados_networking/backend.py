"""madOS Networking - Connection manager using iwd (iwctl) and nmcli.

WiFi scanning, association, stored credentials and access-point
tethering go through iwctl; the cellular APN and roaming flags are
applied to NetworkManager's modem connection with nmcli.  sshd and the
GitHub key block are handled by the helpers in ``ssh``.

Every command runs in a background thread to keep the GTK main loop
responsive.  Results and signals are marshalled back via GLib.idle_add,
so listeners always run on the main thread.
"""

import dataclasses
import logging
import os
import re
import subprocess
import threading
import time
from typing import Callable, Dict, List, Optional, Set, Tuple

import gi
gi.require_version('Gtk', '3.0')
from gi.repository import GLib

from .config import (
    CELLULAR_CONNECTION,
    DEFAULT_TETHERING_PASSWORD,
    KEY_TETHERING_PASSWORD,
    SCAN_INTERVAL_SECONDS,
    SCAN_WAIT_SECONDS,
    TETHERING_SSID,
)
from .interfaces import (
    ConnectedType,
    ConnectionManagerInterface,
    NetworkEntry,
    SecurityType,
)
from .ssh import (
    SSH_WRITE_FAILED,
    SshKeysError,
    fetch_github_keys,
    install_authorized_keys,
    is_sshd_active,
    read_installed_user,
    remove_authorized_keys,
    set_sshd_enabled,
)

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Signal strength mapping from iwctl stars to percentage
SIGNAL_STRENGTH_MAP = {
    4: 85,  # **** - Excellent
    3: 70,  # ***  - Good
    2: 50,  # **   - Fair
    1: 30,  # *    - Weak
    0: 10,  # No stars - Very weak
}

# iwctl security column -> SecurityType
SECURITY_MAP = {
    'open': SecurityType.OPEN,
    'psk': SecurityType.WPA,
}

_ANSI_ESCAPE = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')
_SEPARATOR = re.compile(r'^\s*-+\s*$')

# Table rows are matched from the right; the network name is the rest
_NETWORK_ROW = re.compile(r'^(?P<name>.*\S)\s{2,}(?P<security>\S+)\s{2,}(?P<signal>\*+)$')
_NETWORK_ROW_NO_SIGNAL = re.compile(r'^(?P<name>.*\S)\s{2,}(?P<security>\S+)$')
_KNOWN_ROW = re.compile(r'^(?P<name>.*\S)\s{2,}(?:open|psk|8021x|wep|owe)(?:\s{2,}.*)?$')


# ---------------------------------------------------------------------------
# Helper: run commands
# ---------------------------------------------------------------------------

def _run_command(cmd: List[str], timeout: int = 30) -> subprocess.CompletedProcess:
    """Execute a command and return the CompletedProcess result.

    Output is decoded with surrogateescape so SSIDs that are not valid
    UTF-8 survive the round trip through ``os.fsencode``.

    Raises:
        FileNotFoundError: If the command is not installed.
        subprocess.TimeoutExpired: If the command times out.
    """
    return subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        errors='surrogateescape',
        timeout=timeout,
    )


def _run_iwctl(args: List[str], timeout: int = 30) -> subprocess.CompletedProcess:
    """Execute an iwctl command and return the CompletedProcess result."""
    return _run_command(['iwctl'] + args, timeout=timeout)


def _run_iwctl_check(args: List[str], timeout: int = 30) -> str:
    """Run iwctl, raise on failure, and return stdout.

    Raises:
        RuntimeError: If iwctl returns a non-zero exit code.
    """
    result = _run_iwctl(args, timeout=timeout)
    if result.returncode != 0:
        raise RuntimeError(result.stderr.strip() or f'iwctl exited with code {result.returncode}')
    return result.stdout.strip()


def _strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    return _ANSI_ESCAPE.sub('', text)


def _parse_iwctl_table(output: str) -> List[Tuple[str, bool]]:
    """Split iwctl's columnar table output into data rows.

    Everything up to and including the column header line is skipped,
    as are separator lines made only of dashes.  A row whose first
    non-blank character is '>' marks the currently connected network.

    Returns:
        List of tuples: (row_text, is_connected), with the marker and the
        surrounding whitespace removed.
    """
    rows = []
    in_data = False
    for line in output.splitlines():
        if _SEPARATOR.match(line):
            continue
        if not in_data:
            if 'Network name' in line or 'Name' in line:
                in_data = True
            continue
        if not line.strip():
            continue

        stripped = line.strip()
        is_connected = stripped.startswith('>')
        if is_connected:
            stripped = stripped[1:].strip()
        if stripped:
            rows.append((stripped, is_connected))
    return rows


def _ssid_arg(ssid: bytes) -> str:
    """Convert SSID bytes into a command-line argument."""
    return os.fsdecode(ssid)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _split_network_row(row: str) -> Optional[Tuple[str, str, str]]:
    """Split a get-networks row into (name, security, signal).

    Columns are matched from the right, so runs of spaces inside the
    network name are kept.
    """
    match = _NETWORK_ROW.match(row) or _NETWORK_ROW_NO_SIGNAL.match(row)
    if not match:
        return None
    return match.group('name'), match.group('security'), match.groupdict().get('signal') or ''


def parse_networks(output: str, connecting: Optional[bytes] = None) -> Dict[bytes, NetworkEntry]:
    """Build a scan snapshot from ``iwctl station <dev> get-networks`` output.

    Args:
        output: Raw iwctl output.
        connecting: SSID of an in-flight connection attempt, reported as
            CONNECTING until the table marks it connected.

    Returns:
        Mapping of SSID bytes to NetworkEntry, in table order.
    """
    networks: Dict[bytes, NetworkEntry] = {}
    for row, is_connected in _parse_iwctl_table(_strip_ansi(output)):
        columns = _split_network_row(row)
        if columns is None:
            continue
        name, security, signal_str = columns

        ssid = os.fsencode(name)
        if is_connected:
            state = ConnectedType.CONNECTED
        elif ssid == connecting:
            state = ConnectedType.CONNECTING
        else:
            state = ConnectedType.DISCONNECTED

        if ssid in networks:
            continue
        networks[ssid] = NetworkEntry(
            ssid=ssid,
            strength=SIGNAL_STRENGTH_MAP.get(signal_str.count('*'), 10),
            security_type=SECURITY_MAP.get(security.lower(), SecurityType.UNSUPPORTED),
            connected=state,
        )
    return networks


def parse_known_networks(output: str) -> Set[bytes]:
    """Return the SSIDs listed by ``iwctl known-networks list``."""
    known = set()
    for row, _ in _parse_iwctl_table(_strip_ansi(output)):
        match = _KNOWN_ROW.match(row)
        name = match.group('name') if match else re.split(r'\s{2,}', row)[0]
        known.add(os.fsencode(name))
    return known


def parse_ipv4_address(output: str) -> str:
    """Extract the first IPv4 address from ``ip -4 addr show`` output."""
    for line in output.splitlines():
        line = line.strip()
        if line.startswith('inet '):
            parts = line.split()
            if len(parts) >= 2:
                return parts[1].split('/', 1)[0]
    return ''


def parse_device_mode(output: str) -> str:
    """Extract the Mode property from ``iwctl device <dev> show`` output."""
    for line in _strip_ansi(output).splitlines():
        match = re.search(r'\bMode\s{2,}(\S+)', line)
        if match:
            return match.group(1).lower()
    return ''


# ---------------------------------------------------------------------------
# Public API -- synchronous (call from threads)
# ---------------------------------------------------------------------------

def get_wifi_device() -> Optional[str]:
    """Return the first WiFi device name, or None."""
    try:
        result = _run_command(['iw', 'dev'], timeout=10)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    for line in result.stdout.splitlines():
        line = line.strip()
        if line.startswith('Interface '):
            parts = line.split()
            if len(parts) >= 2:
                return parts[1]
    return None


def scan_networks(device: str, connecting: Optional[bytes] = None) -> Dict[bytes, NetworkEntry]:
    """Trigger a scan on ``device`` and return the resulting snapshot."""
    try:
        _run_iwctl(['station', device, 'scan'], timeout=10)
        time.sleep(SCAN_WAIT_SECONDS)
        output = _run_iwctl_check(['station', device, 'get-networks'], timeout=10)
    except (RuntimeError, FileNotFoundError, subprocess.TimeoutExpired) as e:
        log.warning("Scan on %s failed: %s", device, e)
        return {}
    return parse_networks(output, connecting)


def get_known_networks() -> Set[bytes]:
    """Return SSIDs with stored credentials."""
    try:
        output = _run_iwctl_check(['known-networks', 'list'])
    except (RuntimeError, FileNotFoundError, subprocess.TimeoutExpired) as e:
        log.warning("Could not list known networks: %s", e)
        return set()
    return parse_known_networks(output)


def get_ipv4_address(device: str) -> str:
    """Return the IPv4 address assigned to ``device``."""
    try:
        result = _run_command(['ip', '-4', 'addr', 'show', device], timeout=10)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return ''
    if result.returncode != 0:
        return ''
    return parse_ipv4_address(result.stdout)


def get_device_mode(device: str) -> str:
    """Return 'station', 'ap' or '' for ``device``."""
    try:
        return parse_device_mode(_run_iwctl_check(['device', device, 'show'], timeout=10))
    except (RuntimeError, FileNotFoundError, subprocess.TimeoutExpired):
        return ''


def connect_to_network(device: str, ssid: bytes, password: Optional[str] = None) -> str:
    """Attempt to connect to a WiFi network.

    Without a password iwd uses stored credentials, or joins an open network.

    Returns:
        A status string: 'connected', 'wrong_password', or an error message.
    """
    name = _ssid_arg(ssid)
    if password:
        args = ['--passphrase', password, 'station', device, 'connect', name]
    else:
        args = ['station', device, 'connect', name]

    try:
        result = _run_iwctl(args, timeout=45)
    except FileNotFoundError:
        return 'iwctl not found'
    except subprocess.TimeoutExpired:
        return 'Connection timed out'

    if result.returncode == 0:
        return 'connected'

    stderr = result.stderr.strip().lower()
    if 'passphrase' in stderr or 'authentication' in stderr or 'psk' in stderr:
        return 'wrong_password'
    if 'not found' in stderr:
        return 'Network not found'
    return result.stderr.strip() or 'Connection failed'


def forget_network(ssid: bytes) -> bool:
    """Remove a known network profile."""
    try:
        _run_iwctl_check(['known-networks', _ssid_arg(ssid), 'forget'])
        return True
    except (RuntimeError, FileNotFoundError, subprocess.TimeoutExpired) as e:
        log.warning("Could not forget %r: %s", ssid, e)
        return False


def start_access_point(device: str, ssid: str, password: str) -> bool:
    """Switch ``device`` to AP mode and start a WPA2 access point."""
    try:
        _run_iwctl_check(['device', device, 'set-property', 'Mode', 'ap'])
        _run_iwctl_check(['ap', device, 'start', ssid, password])
        return True
    except (RuntimeError, FileNotFoundError, subprocess.TimeoutExpired) as e:
        log.warning("Could not start access point on %s: %s", device, e)
        return False


def stop_access_point(device: str) -> bool:
    """Stop the access point and return ``device`` to station mode."""
    try:
        _run_iwctl_check(['ap', device, 'stop'])
        _run_iwctl_check(['device', device, 'set-property', 'Mode', 'station'])
        return True
    except (RuntimeError, FileNotFoundError, subprocess.TimeoutExpired) as e:
        log.warning("Could not stop access point on %s: %s", device, e)
        return False


def apply_cellular_settings(roaming_enabled: bool, apn: str,
                            connection: str = CELLULAR_CONNECTION) -> bool:
    """Write APN and roaming flags to the NetworkManager modem connection."""
    cmd = [
        'nmcli', 'connection', 'modify', connection,
        'gsm.apn', apn,
        'gsm.home-only', 'no' if roaming_enabled else 'yes',
    ]
    try:
        result = _run_command(cmd, timeout=15)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        log.warning("Could not update cellular settings: %s", e)
        return False
    if result.returncode != 0:
        log.warning("nmcli failed to update %s: %s", connection, result.stderr.strip())
        return False
    return True


def _in_thread(worker: Callable[[], None]) -> None:
    thread = threading.Thread(target=worker, daemon=True)
    thread.start()


# ---------------------------------------------------------------------------
# Connection manager
# ---------------------------------------------------------------------------

class IwdConnectionManager(ConnectionManagerInterface):
    """Connection manager backed by iwd, with cellular settings via nmcli."""

    def __init__(self, store=None, device: Optional[str] = None):
        self._store = store
        self._device = device or get_wifi_device()
        self._seen: Dict[bytes, NetworkEntry] = {}
        self._known: Set[bytes] = set()
        self._ipv4 = ''
        self._refresh_listeners: List[Callable[[], None]] = []
        self._wrong_password_listeners: List[Callable[[bytes], None]] = []
        self._scan_source_id = None
        self._scan_in_flight = False
        self._connecting: Optional[bytes] = None
        self._tethering = bool(self._device) and get_device_mode(self._device) == 'ap'
        self._tethering_pending: Optional[bool] = None
        self._ssh_enabled = is_sshd_active()
        self._ssh_pending: Optional[bool] = None
        self._ssh_keys_user = read_installed_user()
        self._ssh_keys_error = ''

        password = store.get(KEY_TETHERING_PASSWORD) if store is not None else ''
        self._tethering_password = password or DEFAULT_TETHERING_PASSWORD

        if not self._device:
            log.warning("No WiFi device found; network list will stay empty")

    # -- Signals -----------------------------------------------------------

    def add_refresh_listener(self, callback):
        self._refresh_listeners.append(callback)

    def add_wrong_password_listener(self, callback):
        self._wrong_password_listeners.append(callback)

    def _emit_refresh(self):
        for callback in list(self._refresh_listeners):
            callback()

    def _emit_wrong_password(self, ssid):
        for callback in list(self._wrong_password_listeners):
            callback(ssid)

    # -- Queries -----------------------------------------------------------

    @property
    def seen_networks(self):
        return self._seen

    @property
    def ipv4_address(self):
        return self._ipv4

    def is_known_connection(self, ssid):
        return ssid in self._known

    # -- Scanning ----------------------------------------------------------

    def start(self):
        if self._scan_source_id is not None:
            return
        self._request_scan()
        self._scan_source_id = GLib.timeout_add_seconds(SCAN_INTERVAL_SECONDS, self._on_scan_timer)

    def stop(self):
        if self._scan_source_id is not None:
            GLib.source_remove(self._scan_source_id)
            self._scan_source_id = None

    def _on_scan_timer(self):
        self._request_scan()
        return True  # Continue the timer

    def _request_scan(self):
        if self._scan_in_flight or not self._device:
            return
        self._scan_in_flight = True
        device = self._device
        connecting = self._connecting
        tethering = self._tethering

        def _worker():
            # Station scans are unavailable while the device runs an AP
            networks = {} if tethering else scan_networks(device, connecting)
            known = get_known_networks()
            address = get_ipv4_address(device)
            GLib.idle_add(self._on_scan_complete, networks, known, address)

        _in_thread(_worker)

    def _on_scan_complete(self, networks, known, address):
        self._scan_in_flight = False
        if self._connecting is not None:
            current = networks.get(self._connecting)
            if current is not None and current.connected == ConnectedType.DISCONNECTED:
                networks[self._connecting] = dataclasses.replace(
                    current, connected=ConnectedType.CONNECTING)
        self._seen = networks
        self._known = known
        self._ipv4 = address
        self._emit_refresh()
        return False

    # -- Connections -------------------------------------------------------

    def _mark_connecting(self, ssid):
        self._connecting = ssid
        entry = self._seen.get(ssid)
        if entry is not None:
            seen = dict(self._seen)
            seen[ssid] = dataclasses.replace(entry, connected=ConnectedType.CONNECTING)
            self._seen = seen
        self._emit_refresh()

    def _start_connect(self, ssid, passphrase):
        if not self._device:
            log.warning("Cannot connect to %r: no WiFi device", ssid)
            return
        self._mark_connecting(ssid)
        device = self._device

        def _worker():
            status = connect_to_network(device, ssid, passphrase)
            GLib.idle_add(self._on_connect_complete, ssid, status)

        _in_thread(_worker)

    def _on_connect_complete(self, ssid, status):
        if self._connecting == ssid:
            self._connecting = None
        if status == 'wrong_password':
            self._emit_wrong_password(ssid)
        elif status != 'connected':
            log.warning("Connecting to %r failed: %s", ssid, status)
        self._request_scan()
        return False

    def activate_known_connection(self, ssid):
        self._start_connect(ssid, None)

    def connect(self, entry, passphrase=None):
        self._start_connect(entry.ssid, passphrase)

    def forget_connection(self, ssid):
        self._known.discard(ssid)

        def _worker():
            forget_network(ssid)
            GLib.idle_add(self._on_forget_complete)

        _in_thread(_worker)

    def _on_forget_complete(self):
        self._request_scan()
        return False

    # -- Tethering ---------------------------------------------------------

    def is_tethering_enabled(self):
        if self._tethering_pending is not None:
            return self._tethering_pending
        return self._tethering

    def set_tethering_enabled(self, enabled):
        if not self._device:
            GLib.idle_add(self._on_tethering_complete, self._tethering)
            return
        self._tethering_pending = enabled
        device = self._device
        password = self._tethering_password

        def _worker():
            if enabled:
                ok = start_access_point(device, TETHERING_SSID, password)
            else:
                ok = stop_access_point(device)
            GLib.idle_add(self._on_tethering_complete, enabled if ok else not enabled)

        _in_thread(_worker)

    def _on_tethering_complete(self, enabled):
        self._tethering_pending = None
        self._tethering = enabled
        self._emit_refresh()
        return False

    def get_tethering_password(self):
        return self._tethering_password

    def change_tethering_password(self, password):
        self._tethering_password = password
        if self._store is not None:
            self._store.put(KEY_TETHERING_PASSWORD, password)
        if self._tethering and self._device:
            device = self._device

            def _worker():
                if stop_access_point(device):
                    start_access_point(device, TETHERING_SSID, password)

            _in_thread(_worker)

    # -- Cellular ----------------------------------------------------------

    def update_cellular_settings(self, roaming_enabled, apn):
        _in_thread(lambda: apply_cellular_settings(roaming_enabled, apn))

    # -- SSH ---------------------------------------------------------------

    def is_ssh_enabled(self):
        if self._ssh_pending is not None:
            return self._ssh_pending
        return self._ssh_enabled

    def set_ssh_enabled(self, enabled):
        self._ssh_pending = enabled

        def _worker():
            ok = set_sshd_enabled(enabled)
            GLib.idle_add(self._on_ssh_complete, enabled if ok else not enabled)

        _in_thread(_worker)

    def _on_ssh_complete(self, enabled):
        self._ssh_pending = None
        self._ssh_enabled = enabled
        self._emit_refresh()
        return False

    def get_ssh_keys_user(self):
        return self._ssh_keys_user

    @property
    def ssh_keys_error(self):
        return self._ssh_keys_error

    def install_ssh_keys(self, username):
        self._ssh_keys_error = ''

        def _worker():
            try:
                install_authorized_keys(username, fetch_github_keys(username))
            except SshKeysError as e:
                log.warning("Could not fetch SSH keys for %s: %s", username, e)
                GLib.idle_add(self._on_ssh_keys_complete, None, e.reason)
                return
            except OSError as e:
                log.warning("Could not write authorized keys: %s", e)
                GLib.idle_add(self._on_ssh_keys_complete, None, SSH_WRITE_FAILED)
                return
            GLib.idle_add(self._on_ssh_keys_complete, username, '')

        _in_thread(_worker)

    def _on_ssh_keys_complete(self, username, error):
        if username is not None:
            self._ssh_keys_user = username
        self._ssh_keys_error = error
        self._emit_refresh()
        return False

    def remove_ssh_keys(self):
        try:
            remove_authorized_keys()
        except OSError as e:
            log.warning("Could not remove authorized keys: %s", e)
            self._ssh_keys_error = SSH_WRITE_FAILED
        else:
            self._ssh_keys_user = ''
            self._ssh_keys_error = ''
        self._emit_refresh()
