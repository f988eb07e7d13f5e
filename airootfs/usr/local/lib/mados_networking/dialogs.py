"""madOS Networking - Modal text and confirmation prompts."""

import gi
gi.require_version('Gtk', '3.0')
from gi.repository import Gtk, GLib

from .interfaces import PromptInterface
from .translations import get_text


class GtkPrompts(PromptInterface):
    """Blocking GTK dialogs parented to the panel window."""

    def __init__(self, parent=None, lang='English'):
        self._parent = parent
        self._lang = lang

    def t(self, key, **kwargs):
        """Return translated text for the current language."""
        return get_text(key, self._lang, **kwargs)

    def get_text(self, title, subtitle='', masked=False, min_length=-1, seed=''):
        """Show a text entry dialog.

        Returns:
            The entered text on OK, or None if the dialog was cancelled.
        """
        dialog = Gtk.Dialog(
            title=title,
            parent=self._parent,
            modal=True,
            destroy_with_parent=True,
        )
        dialog.add_button(self.t('cancel'), Gtk.ResponseType.CANCEL)
        ok_btn = dialog.add_button(self.t('ok'), Gtk.ResponseType.OK)

        content = dialog.get_content_area()
        content.set_spacing(12)
        content.set_margin_start(20)
        content.set_margin_end(20)
        content.set_margin_top(12)
        content.set_margin_bottom(12)

        heading = Gtk.Label()
        heading.set_markup(f'<b>{GLib.markup_escape_text(title)}</b>')
        heading.set_halign(Gtk.Align.START)
        content.pack_start(heading, False, False, 0)

        if subtitle:
            sub = Gtk.Label(label=subtitle)
            sub.set_halign(Gtk.Align.START)
            content.pack_start(sub, False, False, 0)

        entry = Gtk.Entry()
        entry.set_text(seed or '')
        entry.set_activates_default(True)
        if masked:
            entry.set_visibility(False)
            entry.set_invisible_char('\u2022')
        content.pack_start(entry, False, False, 0)

        if masked:
            show_pwd = Gtk.CheckButton(label=self.t('show_password'))
            show_pwd.connect('toggled', lambda cb: entry.set_visibility(cb.get_active()))
            content.pack_start(show_pwd, False, False, 0)

        if min_length > 0:
            hint = Gtk.Label(label=self.t('min_length', count=min_length))
            hint.set_halign(Gtk.Align.START)
            hint.get_style_context().add_class('caption')
            content.pack_start(hint, False, False, 0)

            def on_changed(widget):
                ok_btn.set_sensitive(len(widget.get_text()) >= min_length)

            entry.connect('changed', on_changed)
            on_changed(entry)

        dialog.set_default_response(Gtk.ResponseType.OK)
        dialog.show_all()

        response = dialog.run()
        text = entry.get_text()
        dialog.destroy()

        if response != Gtk.ResponseType.OK:
            return None
        if min_length > 0 and len(text) < min_length:
            return None
        return text

    def confirm(self, message):
        """Show a yes/no question; return True on yes."""
        dialog = Gtk.MessageDialog(
            parent=self._parent,
            modal=True,
            message_type=Gtk.MessageType.QUESTION,
            buttons=Gtk.ButtonsType.YES_NO,
            text=message,
        )
        response = dialog.run()
        dialog.destroy()
        return response == Gtk.ResponseType.YES
