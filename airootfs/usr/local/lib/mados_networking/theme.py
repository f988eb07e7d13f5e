"""madOS Networking - Nord theme CSS for GTK3.

Styles the panel's screens: the network rows, the connecting badge,
the edit and control buttons, and the settings rows.
"""

import gi
gi.require_version('Gtk', '3.0')
from gi.repository import Gtk, Gdk

NORD = {
    'nord0': '#2E3440',
    'nord1': '#3B4252',
    'nord2': '#434C5E',
    'nord3': '#4C566A',
    'nord4': '#D8DEE9',
    'nord6': '#ECEFF4',
    'nord8': '#88C0D0',
    'nord9': '#81A1C1',
    'nord10': '#5E81AC',
    'nord11': '#BF616A',
    'nord14': '#A3BE8C',
}

THEME_CSS = """
window, .background {
    background-color: """ + NORD['nord0'] + """;
    color: """ + NORD['nord4'] + """;
}

button {
    background: """ + NORD['nord2'] + """;
    color: """ + NORD['nord6'] + """;
    border: 1px solid """ + NORD['nord3'] + """;
    border-radius: 6px;
    padding: 6px 14px;
}

button:hover {
    background: """ + NORD['nord3'] + """;
}

button:disabled {
    color: """ + NORD['nord3'] + """;
}

.nav-button {
    font-weight: bold;
    padding: 10px 24px;
}

.network-row {
    padding: 10px 14px;
    border-bottom: 1px solid """ + NORD['nord1'] + """;
}

.ssid-label {
    font-size: 15pt;
    font-weight: 300;
    background: none;
    border: none;
}

.ssid-label.network-active {
    font-weight: 600;
}

.ssid-label:disabled {
    color: """ + NORD['nord3'] + """;
}

.connecting-badge {
    background-color: #000000;
    color: """ + NORD['nord6'] + """;
    font-weight: 600;
    padding: 6px 18px;
}

.edit-button, .control-button {
    background: """ + NORD['nord4'] + """;
    color: """ + NORD['nord0'] + """;
    font-weight: 600;
}

.status-connected {
    color: """ + NORD['nord14'] + """;
}

.status-blocked {
    color: """ + NORD['nord11'] + """;
}

.strength-icon {
    color: """ + NORD['nord8'] + """;
}

.scanning-label {
    font-size: 18pt;
    color: """ + NORD['nord9'] + """;
}

.detail-ssid {
    font-size: 20pt;
    font-weight: bold;
}

.detail-key {
    color: """ + NORD['nord9'] + """;
}

.detail-value {
    color: """ + NORD['nord6'] + """;
}

.caption {
    color: """ + NORD['nord3'] + """;
    font-size: 11px;
}

.ssh-status {
    color: """ + NORD['nord11'] + """;
    font-size: 11px;
}

.settings-row {
    padding: 8px 0;
    border-bottom: 1px solid """ + NORD['nord1'] + """;
}
"""


def apply_theme():
    """Apply the Nord GTK3 CSS theme to the default screen."""
    css_provider = Gtk.CssProvider()
    css_provider.load_from_data(THEME_CSS.encode('utf-8'))

    screen = Gdk.Screen.get_default()
    if screen is not None:
        style_context = Gtk.StyleContext()
        style_context.add_provider_for_screen(
            screen,
            css_provider,
            Gtk.STYLE_PROVIDER_PRIORITY_APPLICATION + 100
        )
