#!/usr/bin/env python3
"""
Tests for the madOS Networking iwd/nmcli connection manager.

Validates the iwctl table parsers and the command wrappers by mocking
subprocess calls, then drives IwdConnectionManager with GLib and the
worker threads replaced by synchronous fakes.  These tests run in CI
without WiFi hardware, iwd or NetworkManager.
"""

import os
import subprocess
import sys
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.dirname(__file__))
from test_helpers import FakePrompts, MemoryStore, install_gtk_mocks

install_gtk_mocks()

from mados_networking.advanced import AdvancedSettingsView
from mados_networking.backend import (
    IwdConnectionManager,
    apply_cellular_settings,
    connect_to_network,
    forget_network,
    get_wifi_device,
    parse_device_mode,
    parse_ipv4_address,
    parse_known_networks,
    parse_networks,
    scan_networks,
    start_access_point,
)
from mados_networking.config import KEY_TETHERING_PASSWORD
from mados_networking.interfaces import ConnectedType, NetworkEntry, SecurityType
from mados_networking.ssh import SSH_USER_NOT_FOUND, SSH_WRITE_FAILED, SshKeysError

GET_NETWORKS = (
    "                           Available networks\n"
    "--------------------------------------------------------\n"
    "    Network name                    Security  Signal\n"
    "--------------------------------------------------------\n"
    "    HomeNet                          psk       ****\n"
    "\x1b[0m>   Office Guest                     open      ***\x1b[0m\n"
    "    Corp                             8021x     **\n"
    "    VeryWeak                         psk       \n"
    "    HomeNet                          psk       *\n"
)

KNOWN_NETWORKS = (
    "                           Known Networks\n"
    "--------------------------------------------------------\n"
    "    Name                Security  Hidden  Last connected\n"
    "--------------------------------------------------------\n"
    "    HomeNet             psk               Jan 10, 10:00 AM\n"
    "    Office Guest        open              Jan  9,  9:00 AM\n"
)


# ═══════════════════════════════════════════════════════════════════════════
# Parsers
# ═══════════════════════════════════════════════════════════════════════════
class TestParseNetworks(unittest.TestCase):
    """Verify parse_networks() builds a snapshot keyed by SSID bytes."""

    def setUp(self):
        self.networks = parse_networks(GET_NETWORKS)

    def test_table_order_and_dedupe(self):
        self.assertEqual(list(self.networks), [b"HomeNet", b"Office Guest", b"Corp", b"VeryWeak"])

    def test_first_duplicate_wins(self):
        self.assertEqual(self.networks[b"HomeNet"].strength, 85)

    def test_signal_strength_mapping(self):
        strengths = {ssid: net.strength for ssid, net in self.networks.items()}
        self.assertEqual(strengths, {b"HomeNet": 85, b"Office Guest": 70, b"Corp": 50, b"VeryWeak": 10})

    def test_security_mapping(self):
        self.assertEqual(self.networks[b"HomeNet"].security_type, SecurityType.WPA)
        self.assertEqual(self.networks[b"Office Guest"].security_type, SecurityType.OPEN)
        self.assertEqual(self.networks[b"Corp"].security_type, SecurityType.UNSUPPORTED)

    def test_connected_marker(self):
        self.assertEqual(self.networks[b"Office Guest"].connected, ConnectedType.CONNECTED)
        self.assertEqual(self.networks[b"HomeNet"].connected, ConnectedType.DISCONNECTED)

    def test_connecting_ssid(self):
        networks = parse_networks(GET_NETWORKS, connecting=b"HomeNet")
        self.assertEqual(networks[b"HomeNet"].connected, ConnectedType.CONNECTING)

    def test_connected_beats_connecting(self):
        networks = parse_networks(GET_NETWORKS, connecting=b"Office Guest")
        self.assertEqual(networks[b"Office Guest"].connected, ConnectedType.CONNECTED)

    def test_non_utf8_ssid_round_trips(self):
        raw = b"caf\xe9"
        name = os.fsdecode(raw)
        output = (
            "    Network name                    Security  Signal\n"
            "    %s                             psk       **\n" % name
        )
        self.assertIn(raw, parse_networks(output))

    def test_empty_output(self):
        self.assertEqual(parse_networks(""), {})

    def test_ssids_resembling_header_or_separator(self):
        output = (
            "    Network name                    Security  Signal\n"
            "--------------------------------------------------------\n"
            "    NameServer                       psk       ***\n"
            "    Cafe---Free                      open      **\n"
        )
        networks = parse_networks(output)
        self.assertEqual(list(networks), [b"NameServer", b"Cafe---Free"])
        self.assertEqual(networks[b"Cafe---Free"].security_type, SecurityType.OPEN)

    def test_repeated_spaces_inside_ssid_are_kept(self):
        output = (
            "    Network name                    Security  Signal\n"
            "    My  Net                          psk       ****\n"
            ">   Two   Gaps                       open      *\n"
        )
        networks = parse_networks(output)
        self.assertEqual(list(networks), [b"My  Net", b"Two   Gaps"])
        self.assertEqual(networks[b"My  Net"].strength, 85)
        self.assertEqual(networks[b"Two   Gaps"].connected, ConnectedType.CONNECTED)


class TestParseHelpers(unittest.TestCase):
    """Known networks, IPv4 address and device mode parsing."""

    def test_known_networks(self):
        self.assertEqual(parse_known_networks(KNOWN_NETWORKS), {b"HomeNet", b"Office Guest"})

    def test_known_networks_with_header_words_in_name(self):
        output = (
            "    Name                Security  Hidden  Last connected\n"
            "--------------------------------------------------------\n"
            "    Name  Of---Net      psk               Jan 10, 10:00 AM\n"
            "    NameServer          open              Jan  9,  9:00 AM\n"
        )
        self.assertEqual(parse_known_networks(output), {b"Name  Of---Net", b"NameServer"})

    def test_ipv4_address(self):
        output = (
            "3: wlan0: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500\n"
            "    inet 192.168.1.42/24 brd 192.168.1.255 scope global dynamic wlan0\n"
        )
        self.assertEqual(parse_ipv4_address(output), "192.168.1.42")

    def test_ipv4_address_missing(self):
        self.assertEqual(parse_ipv4_address("3: wlan0: <NO-CARRIER>\n"), "")

    def test_device_mode(self):
        output = (
            "                                 Device: wlan0\n"
            "--------------------------------------------------------\n"
            "  Settable  Property              Value\n"
            "--------------------------------------------------------\n"
            "            Name                  wlan0\n"
            "         *  Mode                  ap\n"
            "         *  Powered               on\n"
        )
        self.assertEqual(parse_device_mode(output), "ap")

    def test_device_mode_missing(self):
        self.assertEqual(parse_device_mode(""), "")


# ═══════════════════════════════════════════════════════════════════════════
# Command wrappers
# ═══════════════════════════════════════════════════════════════════════════
class TestGetWifiDevice(unittest.TestCase):

    @patch('mados_networking.backend._run_command')
    def test_device_found(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="phy#0\n\tInterface wlan0\n")
        self.assertEqual(get_wifi_device(), 'wlan0')

    @patch('mados_networking.backend._run_command', side_effect=FileNotFoundError)
    def test_iw_missing(self, mock_run):
        self.assertIsNone(get_wifi_device())


class TestScanNetworks(unittest.TestCase):

    @patch('mados_networking.backend._run_iwctl')
    @patch('mados_networking.backend._run_iwctl_check', return_value=GET_NETWORKS)
    @patch('mados_networking.backend.time.sleep')
    def test_scan(self, mock_sleep, mock_check, mock_run):
        networks = scan_networks('wlan0')
        mock_run.assert_called_once_with(['station', 'wlan0', 'scan'], timeout=10)
        self.assertEqual(len(networks), 4)

    @patch('mados_networking.backend._run_iwctl')
    @patch('mados_networking.backend._run_iwctl_check', side_effect=RuntimeError('scan failed'))
    @patch('mados_networking.backend.time.sleep')
    def test_scan_failure(self, mock_sleep, mock_check, mock_run):
        self.assertEqual(scan_networks('wlan0'), {})


class TestConnectToNetwork(unittest.TestCase):
    """Verify connect_to_network() maps iwctl outcomes to statuses."""

    @patch('mados_networking.backend._run_iwctl')
    def test_successful_connection(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stderr='')
        self.assertEqual(connect_to_network('wlan0', b"TestNet", 'password123'), 'connected')
        args = mock_run.call_args[0][0]
        self.assertEqual(args, ['--passphrase', 'password123', 'station', 'wlan0', 'connect', 'TestNet'])

    @patch('mados_networking.backend._run_iwctl')
    def test_without_passphrase(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stderr='')
        connect_to_network('wlan0', b"OpenNet")
        self.assertNotIn('--passphrase', mock_run.call_args[0][0])

    @patch('mados_networking.backend._run_iwctl')
    def test_wrong_password(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stderr='Invalid passphrase')
        self.assertEqual(connect_to_network('wlan0', b"TestNet", 'wrong-pass'), 'wrong_password')

    @patch('mados_networking.backend._run_iwctl')
    def test_not_found(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stderr='Network not found')
        self.assertEqual(connect_to_network('wlan0', b"Gone"), 'Network not found')

    @patch('mados_networking.backend._run_iwctl')
    def test_generic_failure(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stderr='Operation failed.')
        self.assertEqual(connect_to_network('wlan0', b"TestNet"), 'Operation failed.')

    @patch('mados_networking.backend._run_iwctl', side_effect=FileNotFoundError)
    def test_iwctl_not_found(self, mock_run):
        self.assertEqual(connect_to_network('wlan0', b"TestNet"), 'iwctl not found')

    @patch('mados_networking.backend._run_iwctl',
           side_effect=subprocess.TimeoutExpired(cmd='iwctl', timeout=45))
    def test_timeout(self, mock_run):
        self.assertEqual(connect_to_network('wlan0', b"TestNet"), 'Connection timed out')


class TestOtherCommands(unittest.TestCase):

    @patch('mados_networking.backend._run_iwctl_check', return_value='')
    def test_forget(self, mock_check):
        self.assertTrue(forget_network(b"HomeNet"))
        mock_check.assert_called_once_with(['known-networks', 'HomeNet', 'forget'])

    @patch('mados_networking.backend._run_iwctl_check', side_effect=RuntimeError('no such network'))
    def test_forget_failure(self, mock_check):
        self.assertFalse(forget_network(b"HomeNet"))

    @patch('mados_networking.backend._run_iwctl_check', return_value='')
    def test_start_access_point(self, mock_check):
        self.assertTrue(start_access_point('wlan0', 'madOS-hotspot', 'secret-pass'))
        self.assertEqual(mock_check.call_args_list[0][0][0],
                         ['device', 'wlan0', 'set-property', 'Mode', 'ap'])
        self.assertEqual(mock_check.call_args_list[1][0][0],
                         ['ap', 'wlan0', 'start', 'madOS-hotspot', 'secret-pass'])

    @patch('mados_networking.backend._run_command')
    def test_cellular_settings(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stderr='')
        self.assertTrue(apply_cellular_settings(True, 'internet'))
        self.assertEqual(mock_run.call_args[0][0], [
            'nmcli', 'connection', 'modify', 'lte',
            'gsm.apn', 'internet', 'gsm.home-only', 'no',
        ])

    @patch('mados_networking.backend._run_command')
    def test_cellular_home_only_without_roaming(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stderr='')
        apply_cellular_settings(False, '')
        self.assertEqual(mock_run.call_args[0][0][-2:], ['gsm.home-only', 'yes'])

    @patch('mados_networking.backend._run_command')
    def test_cellular_failure(self, mock_run):
        mock_run.return_value = MagicMock(returncode=10, stderr='unknown connection')
        self.assertFalse(apply_cellular_settings(False, ''))


# ═══════════════════════════════════════════════════════════════════════════
# IwdConnectionManager
# ═══════════════════════════════════════════════════════════════════════════
def _run_now(worker):
    worker()


class _ImmediateGLib:
    """GLib replacement that runs idle callbacks immediately."""

    def __init__(self):
        self.timeouts = []
        self.removed = []

    def idle_add(self, func, *args):
        func(*args)
        return 0

    def timeout_add_seconds(self, interval, func):
        self.timeouts.append((interval, func))
        return len(self.timeouts)

    def source_remove(self, source_id):
        self.removed.append(source_id)


class TestIwdConnectionManager(unittest.TestCase):
    """Drive the manager with synchronous threads and idle callbacks."""

    def setUp(self):
        self.glib = _ImmediateGLib()
        patches = [
            patch('mados_networking.backend.GLib', self.glib),
            patch('mados_networking.backend._in_thread', _run_now),
            patch('mados_networking.backend.get_device_mode', return_value='station'),
            patch('mados_networking.backend.scan_networks',
                  side_effect=lambda device, connecting=None: parse_networks(GET_NETWORKS, connecting)),
            patch('mados_networking.backend.get_known_networks', return_value={b"HomeNet"}),
            patch('mados_networking.backend.get_ipv4_address', return_value='192.168.1.42'),
            patch('mados_networking.backend.is_sshd_active', return_value=False),
            patch('mados_networking.backend.read_installed_user', return_value=''),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)

        self.store = MemoryStore()
        self.manager = IwdConnectionManager(store=self.store, device='wlan0')
        self.refreshes = []
        self.wrong_passwords = []
        self.manager.add_refresh_listener(lambda: self.refreshes.append(True))
        self.manager.add_wrong_password_listener(self.wrong_passwords.append)

    def test_start_scans_and_schedules_timer(self):
        self.manager.start()
        self.assertEqual(len(self.refreshes), 1)
        self.assertEqual(len(self.manager.seen_networks), 4)
        self.assertTrue(self.manager.is_known_connection(b"HomeNet"))
        self.assertEqual(self.manager.ipv4_address, '192.168.1.42')
        self.assertEqual(self.glib.timeouts[0][0], 10)

    def test_start_twice_keeps_one_timer(self):
        self.manager.start()
        self.manager.start()
        self.assertEqual(len(self.glib.timeouts), 1)

    def test_stop_removes_timer(self):
        self.manager.start()
        self.manager.stop()
        self.assertEqual(self.glib.removed, [1])

    def test_connect_success(self):
        with patch('mados_networking.backend.connect_to_network', return_value='connected') as conn:
            self.manager.connect(NetworkEntry(b"HomeNet", 85, SecurityType.WPA), 'password123')
        conn.assert_called_once_with('wlan0', b"HomeNet", 'password123')
        self.assertEqual(self.wrong_passwords, [])
        # CONNECTING refresh plus the follow-up scan
        self.assertEqual(len(self.refreshes), 2)

    def test_connect_marks_connecting_until_done(self):
        self.manager.start()
        states = []
        self.manager.add_refresh_listener(
            lambda: states.append(self.manager.seen_networks[b"HomeNet"].connected))
        with patch('mados_networking.backend._in_thread'):
            self.manager.connect(self.manager.seen_networks[b"HomeNet"], 'password123')
        self.assertEqual(states, [ConnectedType.CONNECTING])

    def test_wrong_password_signal(self):
        with patch('mados_networking.backend.connect_to_network', return_value='wrong_password'):
            self.manager.connect(NetworkEntry(b"HomeNet", 85, SecurityType.WPA), 'bad-password')
        self.assertEqual(self.wrong_passwords, [b"HomeNet"])

    def test_activate_known_uses_stored_credentials(self):
        with patch('mados_networking.backend.connect_to_network', return_value='connected') as conn:
            self.manager.activate_known_connection(b"HomeNet")
        conn.assert_called_once_with('wlan0', b"HomeNet", None)

    def test_forget_drops_known_immediately(self):
        self.manager.start()
        with patch('mados_networking.backend._in_thread'):
            self.manager.forget_connection(b"HomeNet")
        self.assertFalse(self.manager.is_known_connection(b"HomeNet"))

    def test_tethering_enable(self):
        with patch('mados_networking.backend.start_access_point', return_value=True) as ap:
            self.manager.set_tethering_enabled(True)
        ap.assert_called_once_with('wlan0', 'madOS-hotspot', 'madospass')
        self.assertTrue(self.manager.is_tethering_enabled())
        self.assertEqual(len(self.refreshes), 1)

    def test_tethering_failure_reverts(self):
        with patch('mados_networking.backend.start_access_point', return_value=False):
            self.manager.set_tethering_enabled(True)
        self.assertFalse(self.manager.is_tethering_enabled())
        self.assertEqual(len(self.refreshes), 1)

    def test_tethering_reports_requested_state_while_in_flight(self):
        with patch('mados_networking.backend._in_thread') as in_thread:
            self.manager.set_tethering_enabled(True)
        self.assertTrue(self.manager.is_tethering_enabled())
        self.assertEqual(self.refreshes, [])

        worker = in_thread.call_args[0][0]
        with patch('mados_networking.backend.start_access_point', return_value=False):
            worker()
        self.assertFalse(self.manager.is_tethering_enabled())
        self.assertEqual(len(self.refreshes), 1)

    def test_scan_refresh_keeps_advanced_toggle_while_in_flight(self):
        with patch('mados_networking.backend.apply_cellular_settings'):
            view = AdvancedSettingsView(self.manager, MemoryStore(), FakePrompts(), lambda: None)
        self.manager.add_refresh_listener(view.refresh)
        with patch('mados_networking.backend._in_thread') as in_thread:
            view.set_tethering(True)
        self.manager.start()
        self.assertTrue(view.tethering_active)

        worker = in_thread.call_args[0][0]
        with patch('mados_networking.backend.start_access_point', return_value=True):
            worker()
        self.assertTrue(view.tethering_active)
        self.assertTrue(view.tethering_sensitive)

    def test_tethering_password_persisted(self):
        self.manager.change_tethering_password('new-secret-1')
        self.assertEqual(self.manager.get_tethering_password(), 'new-secret-1')
        self.assertEqual(self.store.get(KEY_TETHERING_PASSWORD), 'new-secret-1')

    def test_tethering_password_loaded_from_store(self):
        store = MemoryStore({KEY_TETHERING_PASSWORD: 'stored-secret'})
        manager = IwdConnectionManager(store=store, device='wlan0')
        self.assertEqual(manager.get_tethering_password(), 'stored-secret')

    def test_cellular_settings_applied(self):
        with patch('mados_networking.backend.apply_cellular_settings') as apply:
            self.manager.update_cellular_settings(True, 'internet')
        apply.assert_called_once_with(True, 'internet')

    def test_ssh_enable(self):
        with patch('mados_networking.backend.set_sshd_enabled', return_value=True) as sshd:
            self.manager.set_ssh_enabled(True)
        sshd.assert_called_once_with(True)
        self.assertTrue(self.manager.is_ssh_enabled())
        self.assertEqual(len(self.refreshes), 1)

    def test_ssh_failure_reverts(self):
        with patch('mados_networking.backend.set_sshd_enabled', return_value=False):
            self.manager.set_ssh_enabled(True)
        self.assertFalse(self.manager.is_ssh_enabled())
        self.assertEqual(len(self.refreshes), 1)

    def test_ssh_reports_requested_state_while_in_flight(self):
        with patch('mados_networking.backend._in_thread'):
            self.manager.set_ssh_enabled(True)
        self.assertTrue(self.manager.is_ssh_enabled())
        self.assertEqual(self.refreshes, [])

    def test_install_ssh_keys(self):
        keys = ['ssh-ed25519 AAAAC3Nza octocat@laptop']
        with patch('mados_networking.backend.fetch_github_keys', return_value=keys) as fetch, \
                patch('mados_networking.backend.install_authorized_keys') as install:
            self.manager.install_ssh_keys('octocat')
        fetch.assert_called_once_with('octocat')
        install.assert_called_once_with('octocat', keys)
        self.assertEqual(self.manager.get_ssh_keys_user(), 'octocat')
        self.assertEqual(self.manager.ssh_keys_error, '')
        self.assertEqual(len(self.refreshes), 1)

    def test_install_ssh_keys_unknown_user(self):
        with patch('mados_networking.backend.fetch_github_keys',
                   side_effect=SshKeysError(SSH_USER_NOT_FOUND)), \
                patch('mados_networking.backend.install_authorized_keys') as install:
            self.manager.install_ssh_keys('nobody-here')
        install.assert_not_called()
        self.assertEqual(self.manager.get_ssh_keys_user(), '')
        self.assertEqual(self.manager.ssh_keys_error, SSH_USER_NOT_FOUND)
        self.assertEqual(len(self.refreshes), 1)

    def test_install_ssh_keys_write_failure(self):
        with patch('mados_networking.backend.fetch_github_keys', return_value=['ssh-rsa AAAA']), \
                patch('mados_networking.backend.install_authorized_keys',
                      side_effect=PermissionError('read-only')):
            self.manager.install_ssh_keys('octocat')
        self.assertEqual(self.manager.get_ssh_keys_user(), '')
        self.assertEqual(self.manager.ssh_keys_error, SSH_WRITE_FAILED)

    def test_remove_ssh_keys(self):
        with patch('mados_networking.backend.fetch_github_keys', return_value=['ssh-rsa AAAA']), \
                patch('mados_networking.backend.install_authorized_keys'):
            self.manager.install_ssh_keys('octocat')
        with patch('mados_networking.backend.remove_authorized_keys') as remove:
            self.manager.remove_ssh_keys()
        remove.assert_called_once_with()
        self.assertEqual(self.manager.get_ssh_keys_user(), '')
        self.assertEqual(len(self.refreshes), 2)

    def test_remove_ssh_keys_failure_keeps_user(self):
        with patch('mados_networking.backend.fetch_github_keys', return_value=['ssh-rsa AAAA']), \
                patch('mados_networking.backend.install_authorized_keys'):
            self.manager.install_ssh_keys('octocat')
        with patch('mados_networking.backend.remove_authorized_keys',
                   side_effect=PermissionError('read-only')):
            self.manager.remove_ssh_keys()
        self.assertEqual(self.manager.get_ssh_keys_user(), 'octocat')
        self.assertEqual(self.manager.ssh_keys_error, SSH_WRITE_FAILED)


if __name__ == "__main__":
    unittest.main()
