"""madOS Networking - JSON-backed settings store.

Persists the handful of panel settings (cellular roaming, APN, tethering
passphrase) to a small JSON file under ``~/.config/mados-networking``.
"""

import json
import logging
import os
from typing import Optional

from .config import SETTINGS_ENV, SETTINGS_FILE
from .interfaces import SettingsStoreInterface

log = logging.getLogger(__name__)


class JsonSettingsStore(SettingsStoreInterface):
    """Key/value store written through to a JSON file on every change."""

    def __init__(self, path: Optional[str] = None):
        self._path = path or os.environ.get(SETTINGS_ENV) or SETTINGS_FILE
        self._values = {}
        self._load()

    @property
    def path(self) -> str:
        return self._path

    def _load(self):
        """Load values from disk; a missing or corrupt file means empty."""
        if not os.path.isfile(self._path):
            return
        try:
            with open(self._path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            log.warning("Could not read settings from %s: %s", self._path, e)
            return
        if isinstance(data, dict):
            self._values = data
        else:
            log.warning("Ignoring malformed settings file %s", self._path)

    def _save(self):
        try:
            directory = os.path.dirname(self._path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self._path, "w") as f:
                json.dump(self._values, f, indent=2, sort_keys=True)
        except OSError as e:
            log.warning("Failed to save settings to %s: %s", self._path, e)

    def get_bool(self, key):
        value = self._values.get(key, False)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    def put_bool(self, key, value):
        self._values[key] = bool(value)
        self._save()

    def get(self, key):
        value = self._values.get(key)
        if value is None:
            return ""
        return str(value)

    def put(self, key, value):
        self._values[key] = str(value)
        self._save()

    def remove(self, key):
        if key in self._values:
            del self._values[key]
            self._save()
