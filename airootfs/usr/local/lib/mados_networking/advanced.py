"""madOS Networking - Advanced settings screen.

Tethering, cellular roaming, APN and SSH controls.  Roaming and APN are
kept in the injected settings store and pushed to the connection manager
whenever either one changes.  The SSH keys row installs or removes the
public keys of one GitHub user.
"""

import logging

import gi
gi.require_version('Gtk', '3.0')
from gi.repository import Gtk

from .config import KEY_GSM_APN, KEY_GSM_ROAMING, PASSWORD_MIN_LENGTH
from .translations import get_text

log = logging.getLogger(__name__)


class AdvancedSettingsView(Gtk.Box):
    """Advanced networking settings.

    Args:
        manager: ConnectionManagerInterface implementation.
        store: SettingsStoreInterface holding GsmRoaming and GsmApn.
        prompts: PromptInterface used for the password and APN editors.
        on_back: Called when the back button is pressed.
        lang: Translation language.
    """

    def __init__(self, manager, store, prompts, on_back, lang='English'):
        super().__init__(orientation=Gtk.Orientation.VERTICAL, spacing=12)
        self._manager = manager
        self._store = store
        self._prompts = prompts
        self._on_back = on_back
        self._lang = lang
        self._syncing = False

        self.tethering_active = manager.is_tethering_enabled()
        self.tethering_sensitive = True
        self.ssh_active = manager.is_ssh_enabled()
        self.ssh_sensitive = True
        self.ssh_keys_user = manager.get_ssh_keys_user()
        self.ssh_keys_sensitive = True
        self.ssh_status_text = ''

        self.set_margin_start(24)
        self.set_margin_end(24)
        self.set_margin_top(16)
        self._build_ui()

        # Establish the initial cellular configuration
        self._push_cellular_settings(self.roaming_enabled, self.apn)

    def t(self, key, **kwargs):
        """Return translated text for the current language."""
        return get_text(key, self._lang, **kwargs)

    @property
    def roaming_enabled(self):
        return self._store.get_bool(KEY_GSM_ROAMING)

    @property
    def apn(self):
        return self._store.get(KEY_GSM_APN)

    # -- UI Construction ---------------------------------------------------

    def _build_ui(self):
        back_btn = Gtk.Button(label=self.t('back'))
        back_btn.get_style_context().add_class('nav-button')
        back_btn.set_halign(Gtk.Align.START)
        back_btn.connect('clicked', lambda _btn: self._on_back())
        self.pack_start(back_btn, False, False, 0)

        self._tethering_switch = Gtk.Switch()
        self._tethering_switch.set_active(self.tethering_active)
        self._tethering_switch.connect('notify::active', self._on_tethering_toggled)
        self._add_row(self.t('enable_tethering'), self._tethering_switch)

        password_btn = Gtk.Button(label=self.t('edit'))
        password_btn.get_style_context().add_class('edit-button')
        password_btn.connect('clicked', self._on_edit_tethering_password)
        self._add_row(self.t('tethering_password'), password_btn)

        self._ip_label = Gtk.Label(label=self._manager.ipv4_address)
        self._ip_label.set_selectable(True)
        self._add_row(self.t('ip_address'), self._ip_label)

        self._roaming_switch = Gtk.Switch()
        self._roaming_switch.set_active(self.roaming_enabled)
        self._roaming_switch.connect('notify::active', self._on_roaming_toggled)
        self._add_row(self.t('enable_roaming'), self._roaming_switch)

        apn_btn = Gtk.Button(label=self.t('edit'))
        apn_btn.get_style_context().add_class('edit-button')
        apn_btn.connect('clicked', self._on_edit_apn)
        self._add_row(self.t('apn_setting'), apn_btn)

        self._ssh_switch = Gtk.Switch()
        self._ssh_switch.set_active(self.ssh_active)
        self._ssh_switch.connect('notify::active', self._on_ssh_toggled)
        self._add_row(self.t('enable_ssh'), self._ssh_switch)

        keys_box = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=8)
        self._ssh_user_label = Gtk.Label(label=self._ssh_user_text())
        self._ssh_user_label.get_style_context().add_class('detail-value')
        keys_box.pack_start(self._ssh_user_label, False, False, 0)
        self._ssh_keys_btn = Gtk.Button(label=self._ssh_keys_button_text())
        self._ssh_keys_btn.get_style_context().add_class('edit-button')
        self._ssh_keys_btn.connect('clicked', self._on_edit_ssh_keys)
        keys_box.pack_start(self._ssh_keys_btn, False, False, 0)
        self._add_row(self.t('ssh_keys'), keys_box)

        self._ssh_status_label = Gtk.Label(label='')
        self._ssh_status_label.set_halign(Gtk.Align.END)
        self._ssh_status_label.get_style_context().add_class('ssh-status')
        self.pack_start(self._ssh_status_label, False, False, 0)

    def _add_row(self, title, control):
        row = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=12)
        row.get_style_context().add_class('settings-row')
        label = Gtk.Label(label=title)
        label.set_halign(Gtk.Align.START)
        row.pack_start(label, True, True, 0)
        control.set_valign(Gtk.Align.CENTER)
        row.pack_end(control, False, False, 0)
        self.pack_start(row, False, False, 0)

    # -- Refresh -----------------------------------------------------------

    def refresh(self):
        """Re-enable the locked toggles and update IP address and SSH keys."""
        self._ip_label.set_text(self._manager.ipv4_address)
        self.tethering_active = self._manager.is_tethering_enabled()
        self.ssh_active = self._manager.is_ssh_enabled()
        self._syncing = True
        try:
            self._tethering_switch.set_active(self.tethering_active)
            self._ssh_switch.set_active(self.ssh_active)
        finally:
            self._syncing = False
        self.tethering_sensitive = True
        self._tethering_switch.set_sensitive(True)
        self.ssh_sensitive = True
        self._ssh_switch.set_sensitive(True)

        self.ssh_keys_user = self._manager.get_ssh_keys_user()
        error = self._manager.ssh_keys_error
        self.ssh_status_text = self.t(error) if error else ''
        self._ssh_user_label.set_text(self._ssh_user_text())
        self._ssh_keys_btn.set_label(self._ssh_keys_button_text())
        self._ssh_status_label.set_text(self.ssh_status_text)
        self.ssh_keys_sensitive = True
        self._ssh_keys_btn.set_sensitive(True)

    # -- Tethering ---------------------------------------------------------

    def _on_tethering_toggled(self, switch, gparam):
        if self._syncing:
            return
        self.set_tethering(switch.get_active())

    def set_tethering(self, enabled):
        """Request a tethering change; the toggle stays locked until refresh."""
        self.tethering_sensitive = False
        self._tethering_switch.set_sensitive(False)
        self.tethering_active = enabled
        log.debug("Tethering -> %s", enabled)
        self._manager.set_tethering_enabled(enabled)

    def _on_edit_tethering_password(self, button):
        self.edit_tethering_password()

    def edit_tethering_password(self):
        password = self._prompts.get_text(
            self.t('enter_tethering_password'), '', masked=True,
            min_length=PASSWORD_MIN_LENGTH,
            seed=self._manager.get_tethering_password(),
        )
        if password:
            self._manager.change_tethering_password(password)

    # -- Cellular ----------------------------------------------------------

    def _on_roaming_toggled(self, switch, gparam):
        self.set_roaming(switch.get_active())

    def set_roaming(self, enabled):
        """Persist the roaming flag and apply it with the stored APN."""
        self._store.put_bool(KEY_GSM_ROAMING, enabled)
        self._push_cellular_settings(enabled, self.apn)

    def _on_edit_apn(self, button):
        self.edit_apn()

    def edit_apn(self):
        """Prompt for an APN; a blank entry selects automatic configuration."""
        result = self._prompts.get_text(
            self.t('enter_apn'), self.t('apn_hint'), masked=False,
            min_length=-1, seed=self.apn,
        )
        if result is None:
            return

        apn = result.strip()
        if apn:
            self._store.put(KEY_GSM_APN, apn)
        else:
            self._store.remove(KEY_GSM_APN)
        self._push_cellular_settings(self.roaming_enabled, apn)

    def _push_cellular_settings(self, roaming_enabled, apn):
        log.debug("Cellular settings: roaming=%s apn=%r", roaming_enabled, apn)
        self._manager.update_cellular_settings(roaming_enabled, apn)

    # -- SSH ---------------------------------------------------------------

    def _on_ssh_toggled(self, switch, gparam):
        if self._syncing:
            return
        self.set_ssh(switch.get_active())

    def set_ssh(self, enabled):
        """Request sshd to start or stop; the toggle stays locked until refresh."""
        self.ssh_sensitive = False
        self._ssh_switch.set_sensitive(False)
        self.ssh_active = enabled
        log.debug("SSH -> %s", enabled)
        self._manager.set_ssh_enabled(enabled)

    def _ssh_user_text(self):
        return self.ssh_keys_user or self.t('ssh_keys_none')

    def _ssh_keys_button_text(self):
        return self.t('remove') if self.ssh_keys_user else self.t('add')

    def _on_edit_ssh_keys(self, button):
        self.edit_ssh_keys()

    def edit_ssh_keys(self):
        """Remove the installed keys, or prompt for a GitHub user to add."""
        if self.ssh_keys_user:
            self._manager.remove_ssh_keys()
            return

        username = self._prompts.get_text(
            self.t('enter_github_username'), self.t('github_hint'),
            masked=False, min_length=-1, seed='',
        )
        if not username or not username.strip():
            return

        self.ssh_keys_sensitive = False
        self._ssh_keys_btn.set_sensitive(False)
        self.ssh_status_text = ''
        self._ssh_status_label.set_text('')
        self._manager.install_ssh_keys(username.strip())
