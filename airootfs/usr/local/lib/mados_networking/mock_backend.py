"""madOS Networking - Mock connection manager for testing.

Simulates scanning, association, stored credentials, tethering,
cellular settings and SSH in memory.  Signals fire synchronously on
the calling thread, which is the GTK main thread in test mode.
"""

import dataclasses
import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .config import DEFAULT_TETHERING_PASSWORD
from .interfaces import (
    ConnectedType,
    ConnectionManagerInterface,
    NetworkEntry,
    SecurityType,
)
from .ssh import SSH_NO_KEYS, SSH_USER_NOT_FOUND

log = logging.getLogger(__name__)

DEMO_NETWORKS = (
    NetworkEntry(b"madOS-Lab", 92, SecurityType.WPA),
    NetworkEntry(b"CoffeeShop", 61, SecurityType.OPEN),
    NetworkEntry(b"Corp-Enterprise", 48, SecurityType.UNSUPPORTED),
    NetworkEntry(b"Neighbour 5G", 12, SecurityType.WPA),
)

DEMO_GITHUB_KEYS = {
    "mados-demo": ["ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIDemoKeyForTestModeOnly mados-demo"],
}


class MockConnectionManager(ConnectionManagerInterface):
    """In-memory connection manager.

    Args:
        networks: Initial scan snapshot, in broadcast order.
        known: SSIDs with stored credentials.
        passwords: Expected passphrase per SSID; a connect attempt with a
            different passphrase fires the wrong-password signal.
        github_keys: Public keys per GitHub user; an unknown user fails
            the key install.
    """

    def __init__(self, networks: Iterable[NetworkEntry] = (),
                 known: Iterable[bytes] = (),
                 passwords: Optional[Dict[bytes, str]] = None,
                 github_keys: Optional[Dict[str, List[str]]] = None):
        self._seen: Dict[bytes, NetworkEntry] = {n.ssid: n for n in networks}
        self._known = set(known)
        self._passwords = dict(passwords or {})
        self._refresh_listeners: List[Callable[[], None]] = []
        self._wrong_password_listeners: List[Callable[[bytes], None]] = []
        self.scanning = False
        self.tethering = False
        self.tethering_password = DEFAULT_TETHERING_PASSWORD
        self.cellular_settings: Optional[Tuple[bool, str]] = None
        self.ipv4 = "192.168.43.10"
        self.ssh_enabled = False
        self.ssh_keys_user = ''
        self._ssh_keys_error = ''
        self._github_keys = dict(github_keys or {})

    # -- Signals -----------------------------------------------------------

    def add_refresh_listener(self, callback):
        self._refresh_listeners.append(callback)

    def add_wrong_password_listener(self, callback):
        self._wrong_password_listeners.append(callback)

    def emit_refresh(self):
        """Simulate a completed scan."""
        for callback in list(self._refresh_listeners):
            callback()

    def emit_wrong_password(self, ssid: bytes):
        """Simulate an authentication failure."""
        for callback in list(self._wrong_password_listeners):
            callback(ssid)

    def set_networks(self, networks: Iterable[NetworkEntry]):
        """Replace the scan snapshot and notify listeners."""
        self._seen = {n.ssid: n for n in networks}
        self.emit_refresh()

    # -- Queries -----------------------------------------------------------

    @property
    def seen_networks(self):
        return self._seen

    @property
    def ipv4_address(self):
        return self.ipv4 if self._connected_ssid() is not None else ""

    def is_known_connection(self, ssid):
        return ssid in self._known

    def _connected_ssid(self):
        for ssid, entry in self._seen.items():
            if entry.connected == ConnectedType.CONNECTED:
                return ssid
        return None

    # -- Scanning ----------------------------------------------------------

    def start(self):
        self.scanning = True
        self.emit_refresh()

    def stop(self):
        self.scanning = False

    # -- Connections -------------------------------------------------------

    def _set_connected(self, ssid):
        seen = {}
        for key, entry in self._seen.items():
            state = ConnectedType.CONNECTED if key == ssid else ConnectedType.DISCONNECTED
            seen[key] = dataclasses.replace(entry, connected=state)
        self._seen = seen

    def activate_known_connection(self, ssid):
        if ssid not in self._known or ssid not in self._seen:
            log.debug("Mock: cannot activate %r", ssid)
            return
        self._set_connected(ssid)
        self.emit_refresh()

    def connect(self, entry, passphrase=None):
        expected = self._passwords.get(entry.ssid)
        if entry.security_type == SecurityType.WPA and expected is not None and passphrase != expected:
            self.emit_wrong_password(entry.ssid)
            return
        if entry.ssid not in self._seen:
            return
        self._known.add(entry.ssid)
        self._set_connected(entry.ssid)
        self.emit_refresh()

    def forget_connection(self, ssid):
        self._known.discard(ssid)
        entry = self._seen.get(ssid)
        if entry is not None and entry.connected != ConnectedType.DISCONNECTED:
            self._seen = dict(self._seen)
            self._seen[ssid] = dataclasses.replace(entry, connected=ConnectedType.DISCONNECTED)

    # -- Tethering ---------------------------------------------------------

    def is_tethering_enabled(self):
        return self.tethering

    def set_tethering_enabled(self, enabled):
        self.tethering = enabled
        self.emit_refresh()

    def get_tethering_password(self):
        return self.tethering_password

    def change_tethering_password(self, password):
        self.tethering_password = password

    # -- Cellular ----------------------------------------------------------

    def update_cellular_settings(self, roaming_enabled, apn):
        self.cellular_settings = (roaming_enabled, apn)

    # -- SSH ---------------------------------------------------------------

    def is_ssh_enabled(self):
        return self.ssh_enabled

    def set_ssh_enabled(self, enabled):
        self.ssh_enabled = enabled
        self.emit_refresh()

    def get_ssh_keys_user(self):
        return self.ssh_keys_user

    @property
    def ssh_keys_error(self):
        return self._ssh_keys_error

    def install_ssh_keys(self, username):
        keys = self._github_keys.get(username)
        if keys is None:
            self._ssh_keys_error = SSH_USER_NOT_FOUND
        elif not keys:
            self._ssh_keys_error = SSH_NO_KEYS
        else:
            self.ssh_keys_user = username
            self._ssh_keys_error = ''
        self.emit_refresh()

    def remove_ssh_keys(self):
        self.ssh_keys_user = ''
        self._ssh_keys_error = ''
        self.emit_refresh()
