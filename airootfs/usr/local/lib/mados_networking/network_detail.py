"""madOS Networking - Network detail screen."""

from typing import Optional

import gi
gi.require_version('Gtk', '3.0')
from gi.repository import Gtk, Pango

from .interfaces import ConnectedType, NetworkEntry, SecurityType
from .network_list import strength_bucket
from .translations import get_text

_STATE_KEYS = {
    ConnectedType.DISCONNECTED: 'disconnected',
    ConnectedType.CONNECTING: 'connecting',
    ConnectedType.CONNECTED: 'connected',
}

_SIGNAL_KEYS = ('signal_none', 'signal_weak', 'signal_ok', 'signal_excellent')

_SECURITY_KEYS = {
    SecurityType.OPEN: 'security_open',
    SecurityType.WPA: 'security_wpa',
    SecurityType.UNSUPPORTED: 'security_unsupported',
}


class NetworkDetailView(Gtk.Box):
    """Details and connect/forget controls for one selected network.

    The view keeps its own copy of the entry; the controller hands it the
    latest snapshot entry on each refresh.
    """

    def __init__(self, manager, on_connect, on_forget, on_back, lang='English'):
        super().__init__(orientation=Gtk.Orientation.VERTICAL, spacing=16)
        self._manager = manager
        self._on_connect = on_connect
        self._on_forget = on_forget
        self._on_back = on_back
        self._lang = lang

        self.network: Optional[NetworkEntry] = None
        self.state_text = ''
        self.signal_text = ''
        self.security_text = ''
        self.connect_enabled = False
        self.forget_enabled = False

        self.set_margin_start(24)
        self.set_margin_end(24)
        self.set_margin_top(16)
        self._build_ui()

    def t(self, key, **kwargs):
        """Return translated text for the current language."""
        return get_text(key, self._lang, **kwargs)

    def _build_ui(self):
        back_btn = Gtk.Button(label=self.t('back'))
        back_btn.get_style_context().add_class('nav-button')
        back_btn.set_halign(Gtk.Align.START)
        back_btn.connect('clicked', lambda _btn: self._on_back())
        self.pack_start(back_btn, False, False, 0)

        # Header: SSID and connection state
        self._ssid_label = Gtk.Label()
        self._ssid_label.set_halign(Gtk.Align.START)
        self._ssid_label.set_ellipsize(Pango.EllipsizeMode.END)
        self._ssid_label.get_style_context().add_class('detail-ssid')
        self.pack_start(self._ssid_label, False, False, 0)

        self._state_label = Gtk.Label()
        self._state_label.set_halign(Gtk.Align.START)
        self.pack_start(self._state_label, False, False, 0)

        controls = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=12)
        self._connect_btn = Gtk.Button(label=self.t('connect'))
        self._connect_btn.get_style_context().add_class('control-button')
        self._connect_btn.connect('clicked', self._on_connect_clicked)
        controls.pack_start(self._connect_btn, False, False, 0)

        self._forget_btn = Gtk.Button(label=self.t('forget'))
        self._forget_btn.get_style_context().add_class('control-button')
        self._forget_btn.connect('clicked', self._on_forget_clicked)
        controls.pack_start(self._forget_btn, False, False, 0)
        self.pack_start(controls, False, False, 0)

        grid = Gtk.Grid()
        grid.set_column_spacing(24)
        grid.set_row_spacing(8)
        self._signal_label = self._attach_row(grid, 0, self.t('signal_strength'))
        self._security_label = self._attach_row(grid, 1, self.t('security'))
        self.pack_start(grid, False, False, 0)

    def _attach_row(self, grid, row_idx, title):
        key = Gtk.Label(label=title)
        key.set_halign(Gtk.Align.START)
        key.get_style_context().add_class('detail-key')
        value = Gtk.Label()
        value.set_halign(Gtk.Align.START)
        value.get_style_context().add_class('detail-value')
        grid.attach(key, 0, row_idx, 1, 1)
        grid.attach(value, 1, row_idx, 1, 1)
        return value

    # -- Refresh -----------------------------------------------------------

    def view(self, network: NetworkEntry):
        """Show ``network``."""
        self.network = network
        self.refresh()

    def refresh(self, network: Optional[NetworkEntry] = None):
        """Redraw the fields, optionally replacing the entry first."""
        if network is not None:
            self.network = network
        if self.network is None:
            return

        net = self.network
        self.state_text = self.t(_STATE_KEYS[net.connected])
        self.signal_text = self.t(_SIGNAL_KEYS[strength_bucket(net.strength)])
        self.security_text = self.t(_SECURITY_KEYS[net.security_type])
        self.connect_enabled = net.connected == ConnectedType.DISCONNECTED
        self.forget_enabled = self._manager.is_known_connection(net.ssid)

        self._ssid_label.set_text(net.display_name)
        self._state_label.set_text(self.state_text)
        self._signal_label.set_text(self.signal_text)
        self._security_label.set_text(self.security_text)
        self._connect_btn.set_sensitive(self.connect_enabled)
        self._forget_btn.set_sensitive(self.forget_enabled)

    # -- Event Handlers ----------------------------------------------------

    def _on_connect_clicked(self, button):
        if self.network is None or not self.connect_enabled:
            return
        self._on_connect(self.network)
        self._on_back()

    def _on_forget_clicked(self, button):
        if self.network is None or not self._manager.is_known_connection(self.network.ssid):
            return
        self._on_forget(self.network)
        self._on_back()
