"""madOS Networking - Main application window.

Hosts the networking panel.  Scanning runs only while the window is
mapped: showing the window activates the controller, hiding it stops
the scan loop.
"""

import gi
gi.require_version('Gtk', '3.0')
from gi.repository import Gtk

from .controller import NetworkingController
from .dialogs import GtkPrompts
from .theme import apply_theme
from .translations import get_text, detect_system_language


class NetworkingApp(Gtk.Window):
    """Main networking settings window."""

    def __init__(self, manager, store, lang=None, show_advanced=True):
        lang = lang or detect_system_language()
        super().__init__(title=get_text('title', lang))
        self._lang = lang
        self.set_wmclass("mados-networking", "mados-networking")
        self.set_default_size(720, 560)
        self.set_position(Gtk.WindowPosition.CENTER)

        self._manager = manager
        self.controller = NetworkingController(
            manager, store, GtkPrompts(self, self._lang),
            lang=self._lang, show_advanced=show_advanced,
        )

        apply_theme()
        self.add(self.controller.stack)

        self.connect("map", self._on_map)
        self.connect("unmap", self._on_unmap)
        self.connect("destroy", self._on_destroy)
        self.show_all()

    def _on_map(self, widget):
        self.controller.activate()

    def _on_unmap(self, widget):
        self.controller.deactivate()

    def _on_destroy(self, widget):
        """Stop scanning and quit."""
        self.controller.deactivate()
        Gtk.main_quit()
