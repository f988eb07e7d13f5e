"""madOS Networking - Navigation and connection-flow controller.

The controller owns the screen state and the connection manager handle.
Views only emit intents (connect, view, forget, back); the controller
turns them into connection manager calls, possibly after a modal prompt,
and fans connection manager signals back out to the views.

Modal prompts run a nested GTK main loop, so scan refreshes and
wrong-password signals can arrive while one is open.  Those are held
back and replayed from an idle callback once the prompt has closed.
"""

import enum
import logging
from typing import List, Optional

import gi
gi.require_version('Gtk', '3.0')
from gi.repository import Gtk, GLib

from .advanced import AdvancedSettingsView
from .config import PASSWORD_MIN_LENGTH
from .interfaces import NetworkEntry, PromptInterface, SecurityType
from .network_detail import NetworkDetailView
from .network_list import NetworkListView
from .translations import get_text

log = logging.getLogger(__name__)


class Screen(enum.Enum):
    NETWORK_LIST = 'list'
    NETWORK_DETAIL = 'detail'
    ADVANCED = 'advanced'


class _PromptGate(PromptInterface):
    """Forwards to the real prompts and records whether one is open."""

    def __init__(self, prompts, on_closed):
        self._prompts = prompts
        self._on_closed = on_closed
        self.active = False

    def get_text(self, title, subtitle='', masked=False, min_length=-1, seed=''):
        return self._run(self._prompts.get_text, title, subtitle,
                         masked=masked, min_length=min_length, seed=seed)

    def confirm(self, message):
        return self._run(self._prompts.confirm, message)

    def _run(self, func, *args, **kwargs):
        self.active = True
        try:
            return func(*args, **kwargs)
        finally:
            self.active = False
            self._on_closed()


class NetworkingController:
    """Screen state machine for the networking panel.

    Args:
        manager: ConnectionManagerInterface implementation.
        store: SettingsStoreInterface for the advanced screen.
        prompts: PromptInterface for passwords and confirmations.
        lang: Translation language.
        show_advanced: Whether the list screen offers the Advanced button.
    """

    def __init__(self, manager, store, prompts, lang='English', show_advanced=True):
        self._manager = manager
        self._lang = lang
        self._show_advanced = show_advanced
        self._prompts = _PromptGate(prompts, self._on_prompt_closed)
        self._pending_refresh = False
        self._pending_wrong_password: List[bytes] = []
        self._flush_scheduled = False

        self.screen = Screen.NETWORK_LIST

        self.list_view = NetworkListView(
            manager, self.request_connect, self.request_view, lang=lang)
        self.detail_view = NetworkDetailView(
            manager, self.request_connect, self.request_forget, self.go_back, lang=lang)
        self.advanced_view = AdvancedSettingsView(
            manager, store, self._prompts, self.go_back, lang=lang)

        self.stack = Gtk.Stack()
        self.stack.set_transition_type(Gtk.StackTransitionType.CROSSFADE)
        self.stack.add_named(self._build_list_screen(), Screen.NETWORK_LIST.value)
        self.stack.add_named(self.detail_view, Screen.NETWORK_DETAIL.value)
        self.stack.add_named(self.advanced_view, Screen.ADVANCED.value)
        self.stack.set_visible_child_name(Screen.NETWORK_LIST.value)

        manager.add_refresh_listener(self.refresh)
        manager.add_wrong_password_listener(self.on_wrong_password)

    def t(self, key, **kwargs):
        """Return translated text for the current language."""
        return get_text(key, self._lang, **kwargs)

    def _build_list_screen(self):
        screen = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=10)
        screen.set_margin_start(20)
        screen.set_margin_end(20)
        screen.set_margin_top(20)
        screen.set_margin_bottom(20)

        if self._show_advanced:
            advanced_btn = Gtk.Button(label=self.t('advanced'))
            advanced_btn.get_style_context().add_class('nav-button')
            advanced_btn.set_halign(Gtk.Align.END)
            advanced_btn.connect('clicked', lambda _btn: self.show_advanced())
            screen.pack_start(advanced_btn, False, False, 0)

        scroll = Gtk.ScrolledWindow()
        scroll.set_policy(Gtk.PolicyType.NEVER, Gtk.PolicyType.AUTOMATIC)
        scroll.add(self.list_view)
        screen.pack_start(scroll, True, True, 0)
        return screen

    # -- Lifecycle ---------------------------------------------------------

    def activate(self):
        """Panel shown: start scanning and render the last known snapshot."""
        self._set_screen(Screen.NETWORK_LIST)
        self.refresh()
        self._manager.start()

    def deactivate(self):
        """Panel hidden: stop scanning."""
        self._manager.stop()

    # -- Navigation --------------------------------------------------------

    def _set_screen(self, screen):
        if screen != self.screen:
            log.debug("Screen %s -> %s", self.screen.name, screen.name)
        self.screen = screen
        self.stack.set_visible_child_name(screen.value)

    def go_back(self):
        self._set_screen(Screen.NETWORK_LIST)

    def show_advanced(self):
        if not self._show_advanced:
            return
        self._set_screen(Screen.ADVANCED)

    @property
    def selected(self) -> Optional[NetworkEntry]:
        """The entry shown on the detail screen, if any."""
        return self.detail_view.network

    # -- Refresh -----------------------------------------------------------

    def refresh(self):
        """Push the current snapshot into every view."""
        if self._prompts.active:
            self._pending_refresh = True
            return

        self.list_view.refresh()
        selected = self.detail_view.network
        if selected is not None:
            self.detail_view.refresh(self._manager.seen_networks.get(selected.ssid))
        self.advanced_view.refresh()

    # -- Intents -----------------------------------------------------------

    def request_connect(self, entry: NetworkEntry):
        """Connect to ``entry``, prompting for a passphrase when needed."""
        if self._manager.is_known_connection(entry.ssid):
            log.debug("Activating known connection %r", entry.ssid)
            self._manager.activate_known_connection(entry.ssid)
            self.list_view.refresh()
        elif entry.security_type == SecurityType.OPEN:
            log.debug("Connecting to open network %r", entry.ssid)
            self._manager.connect(entry)
        elif entry.security_type == SecurityType.WPA:
            self._prompt_and_connect(entry, self.t('enter_password'))
        else:
            log.debug("Ignoring connect request for unsupported network %r", entry.ssid)

    def request_view(self, entry: NetworkEntry):
        self.detail_view.view(entry)
        self._set_screen(Screen.NETWORK_DETAIL)

    def request_forget(self, entry: NetworkEntry):
        """Forget ``entry`` after confirmation."""
        message = self.t('confirm_forget', ssid=entry.display_name)
        if not self._prompts.confirm(message):
            return
        log.debug("Forgetting %r", entry.ssid)
        self._manager.forget_connection(entry.ssid)
        self._set_screen(Screen.NETWORK_LIST)
        self.refresh()

    def on_wrong_password(self, ssid: bytes):
        """Re-prompt after a failed authentication, if the network is still seen."""
        if self._prompts.active:
            if ssid not in self._pending_wrong_password:
                self._pending_wrong_password.append(ssid)
            return

        entry = self._manager.seen_networks.get(ssid)
        if entry is None:
            log.debug("Dropping wrong-password signal for vanished network %r", ssid)
            return
        self._prompt_and_connect(entry, self.t('wrong_password'))

    def _prompt_and_connect(self, entry, title):
        passphrase = self._prompts.get_text(
            title, self.t('for_network', ssid=entry.display_name),
            masked=True, min_length=PASSWORD_MIN_LENGTH,
        )
        if not passphrase:
            return
        self._manager.connect(entry, passphrase)

    # -- Deferred signals --------------------------------------------------

    def _on_prompt_closed(self):
        if self._flush_scheduled:
            return
        if self._pending_refresh or self._pending_wrong_password:
            self._flush_scheduled = True
            GLib.idle_add(self._flush_pending)

    def _flush_pending(self):
        """Replay signals that arrived while a prompt was open."""
        self._flush_scheduled = False
        if self._prompts.active:
            return False
        if self._pending_refresh:
            self._pending_refresh = False
            self.refresh()
        while self._pending_wrong_password and not self._prompts.active:
            self.on_wrong_password(self._pending_wrong_password.pop(0))
        return False
