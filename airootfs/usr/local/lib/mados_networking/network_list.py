"""madOS Networking - Network list screen.

Renders the scan snapshot as a list sorted by signal strength.  The list
is thrown away and rebuilt on every refresh; snapshots are small, and a
stable sort keeps rows from jumping around between scans.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

import gi
gi.require_version('Gtk', '3.0')
from gi.repository import Gtk, Pango

from .config import STRENGTH_BUCKET_MAX, STRENGTH_BUCKET_WIDTH
from .interfaces import ConnectedType, NetworkEntry, SecurityType
from .translations import get_text

# Status icons, in priority order
ICON_CHECKMARK = 'checkmark'
ICON_BLOCKED = 'blocked'
ICON_LOCK = 'lock'

_STATUS_GLYPHS = {
    ICON_CHECKMARK: '\u2714',  # Heavy check mark
    ICON_BLOCKED: '\u2298',  # Circled slash
    ICON_LOCK: '\U0001F512',  # Lock
}

_STATUS_CLASSES = {
    ICON_CHECKMARK: 'status-connected',
    ICON_BLOCKED: 'status-blocked',
    ICON_LOCK: 'status-lock',
}

STRENGTH_NAMES = ('low', 'medium', 'high', 'full')


def strength_bucket(strength: int) -> int:
    """Map a 0-100 signal strength to one of four icon buckets.

    ``clamp(round(strength / 33.0), 0, 3)``; integer strengths never land
    on a .5 boundary, so Python's rounding agrees with round-half-up.
    """
    return max(0, min(STRENGTH_BUCKET_MAX, int(round(strength / STRENGTH_BUCKET_WIDTH))))


def strength_bars(bucket: int) -> str:
    """Return a Unicode bar representation of a strength bucket."""
    return '\u2588' * (bucket + 1) + '\u2591' * (STRENGTH_BUCKET_MAX - bucket)


def sort_networks(networks: Iterable[NetworkEntry]) -> List[NetworkEntry]:
    """Sort strongest first; equal strengths keep snapshot order."""
    return sorted(networks, key=lambda n: n.strength, reverse=True)


def status_icon(network: NetworkEntry) -> Optional[str]:
    """Return the trailing status icon name for a network, or None."""
    if network.connected == ConnectedType.CONNECTED:
        return ICON_CHECKMARK
    if network.security_type == SecurityType.UNSUPPORTED:
        return ICON_BLOCKED
    if network.security_type == SecurityType.WPA:
        return ICON_LOCK
    return None


@dataclass
class NetworkRow:
    """Presentation of a single list row."""

    network: NetworkEntry
    label: str
    clickable: bool
    sensitive: bool
    connecting: bool
    editable: bool
    status_icon: Optional[str]
    strength_bucket: int


def build_rows(networks: Dict[bytes, NetworkEntry],
               is_known: Callable[[bytes], bool]) -> List[NetworkRow]:
    """Build the ordered row models for a scan snapshot."""
    rows = []
    for network in sort_networks(networks.values()):
        supported = network.security_type != SecurityType.UNSUPPORTED
        rows.append(NetworkRow(
            network=network,
            label=network.display_name,
            clickable=supported and network.connected == ConnectedType.DISCONNECTED,
            sensitive=supported,
            connecting=network.connected == ConnectedType.CONNECTING,
            editable=is_known(network.ssid),
            status_icon=status_icon(network),
            strength_bucket=strength_bucket(network.strength),
        ))
    return rows


class NetworkListView(Gtk.Box):
    """Scrollable list of seen networks.

    Emits intents through ``on_connect(entry)`` and ``on_view(entry)``.
    """

    def __init__(self, manager, on_connect, on_view, lang='English'):
        super().__init__(orientation=Gtk.Orientation.VERTICAL, spacing=0)
        self._manager = manager
        self._on_connect = on_connect
        self._on_view = on_view
        self._lang = lang
        self._row_widgets = []
        self.rows: List[NetworkRow] = []
        self.scanning = True

        self._build_ui()

    def t(self, key, **kwargs):
        """Return translated text for the current language."""
        return get_text(key, self._lang, **kwargs)

    def _build_ui(self):
        self._scanning_label = Gtk.Label(label=self.t('scanning'))
        self._scanning_label.get_style_context().add_class('scanning-label')
        self._scanning_label.set_margin_top(40)
        self.pack_start(self._scanning_label, True, True, 0)

        self._list_box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=0)
        self.pack_start(self._list_box, False, False, 0)

    # -- Refresh -----------------------------------------------------------

    def refresh(self):
        """Discard all rows and rebuild them from the current snapshot."""
        for widget in self._row_widgets:
            self._list_box.remove(widget)
        self._row_widgets = []

        snapshot = self._manager.seen_networks
        self.scanning = not snapshot
        self._scanning_label.set_visible(self.scanning)
        self._list_box.set_visible(not self.scanning)
        if self.scanning:
            self.rows = []
            return

        self.rows = build_rows(snapshot, self._manager.is_known_connection)
        for row in self.rows:
            widget = self._create_row(row)
            self._list_box.pack_start(widget, False, False, 0)
            self._row_widgets.append(widget)
        self._list_box.show_all()

    def _create_row(self, row):
        """Create the widgets for one network row."""
        hbox = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=16)
        hbox.get_style_context().add_class('network-row')

        # SSID label, clickable only while disconnected
        ssid_btn = Gtk.Button(label=row.label)
        ssid_btn.set_relief(Gtk.ReliefStyle.NONE)
        ssid_btn.get_child().set_ellipsize(Pango.EllipsizeMode.END)
        ssid_btn.get_child().set_xalign(0.0)
        style = ssid_btn.get_style_context()
        style.add_class('ssid-label')
        if row.network.connected != ConnectedType.DISCONNECTED:
            style.add_class('network-active')
        ssid_btn.set_sensitive(row.sensitive)
        if row.clickable:
            ssid_btn.connect('clicked', self._on_ssid_clicked, row.network)
        hbox.pack_start(ssid_btn, not row.connecting, True, 0)

        if row.connecting:
            badge = Gtk.Label(label=self.t('connecting_badge'))
            badge.get_style_context().add_class('connecting-badge')
            hbox.pack_start(badge, True, False, 0)

        if row.editable:
            edit_btn = Gtk.Button(label=self.t('edit'))
            edit_btn.get_style_context().add_class('edit-button')
            edit_btn.connect('clicked', self._on_edit_clicked, row.network)
            hbox.pack_start(edit_btn, False, False, 0)

        # Status icon; open networks keep an empty slot of the same width
        icon = Gtk.Label(label=_STATUS_GLYPHS.get(row.status_icon, ''))
        icon.set_width_chars(2)
        if row.status_icon:
            icon.get_style_context().add_class(_STATUS_CLASSES[row.status_icon])
        hbox.pack_start(icon, False, False, 0)

        strength = Gtk.Label(label=strength_bars(row.strength_bucket))
        strength.set_tooltip_text(STRENGTH_NAMES[row.strength_bucket])
        strength.get_style_context().add_class('strength-icon')
        hbox.pack_start(strength, False, False, 0)

        return hbox

    # -- Event Handlers ----------------------------------------------------

    def _on_ssid_clicked(self, button, network):
        self._on_connect(network)

    def _on_edit_clicked(self, button, network):
        self._on_view(network)
