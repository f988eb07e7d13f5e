#!/usr/bin/env python3
"""madOS Networking - Entry point."""

import logging
import os

import gi
gi.require_version('Gtk', '3.0')
from gi.repository import Gtk

from .app import NetworkingApp
from .config import LOG_LEVEL_ENV
from .factory import create_backend
from .settings import JsonSettingsStore


def main():
    """Launch the madOS Networking application."""
    level = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="[mados-networking] %(levelname)s %(name)s: %(message)s",
    )

    store = JsonSettingsStore()
    manager = create_backend(store)
    NetworkingApp(manager, store)
    Gtk.main()


if __name__ == '__main__':
    main()
