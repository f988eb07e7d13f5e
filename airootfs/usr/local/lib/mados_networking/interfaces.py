"""madOS Networking - Data model and abstract interfaces.

Defines the network value type and the contracts for the connection
manager, the settings store and the modal prompts, so the panel can be
driven by dependency injection and tested without hardware or GTK.
"""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional


class SecurityType(enum.Enum):
    """Authentication class required to join a network."""

    OPEN = "open"
    WPA = "wpa"
    UNSUPPORTED = "unsupported"


class ConnectedType(enum.Enum):
    """Association state of a network."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class NetworkEntry:
    """One network from a scan snapshot.

    ``ssid`` is kept as raw bytes; it is only decoded for display.
    """

    ssid: bytes
    strength: int = 0
    security_type: SecurityType = SecurityType.OPEN
    connected: ConnectedType = ConnectedType.DISCONNECTED

    @property
    def display_name(self) -> str:
        """Return the SSID decoded for display."""
        return self.ssid.decode("utf-8", errors="replace")


class ConnectionManagerInterface(ABC):
    """Abstract interface for the network connection manager.

    Listeners registered here are always invoked on the GTK main thread.
    """

    @abstractmethod
    def add_refresh_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback fired when a new scan snapshot is available."""

    @abstractmethod
    def add_wrong_password_listener(self, callback: Callable[[bytes], None]) -> None:
        """Register a callback fired when a connection fails authentication."""

    @property
    @abstractmethod
    def seen_networks(self) -> Dict[bytes, NetworkEntry]:
        """Networks present in the most recent scan, keyed by SSID."""

    @property
    def ipv4_address(self) -> str:
        """IPv4 address of the wireless interface, or empty string."""
        return ""

    @abstractmethod
    def is_known_connection(self, ssid: bytes) -> bool:
        """Return True if credentials for ``ssid`` are stored."""

    @abstractmethod
    def activate_known_connection(self, ssid: bytes) -> None:
        """Connect using the stored credentials for ``ssid``."""

    @abstractmethod
    def connect(self, entry: NetworkEntry, passphrase: Optional[str] = None) -> None:
        """Connect to a network, optionally with a passphrase."""

    @abstractmethod
    def forget_connection(self, ssid: bytes) -> None:
        """Drop stored credentials for ``ssid``."""

    @abstractmethod
    def is_tethering_enabled(self) -> bool:
        """Return True if the access point is active.

        While a change is in flight this reports the requested state.
        """

    @abstractmethod
    def set_tethering_enabled(self, enabled: bool) -> None:
        """Start or stop the access point."""

    @abstractmethod
    def get_tethering_password(self) -> str:
        """Return the access point passphrase."""

    @abstractmethod
    def change_tethering_password(self, password: str) -> None:
        """Set a new access point passphrase."""

    @abstractmethod
    def update_cellular_settings(self, roaming_enabled: bool, apn: str) -> None:
        """Apply roaming and APN to the cellular connection (empty APN = automatic)."""

    @abstractmethod
    def is_ssh_enabled(self) -> bool:
        """Return True if the SSH daemon is enabled (or being enabled)."""

    @abstractmethod
    def set_ssh_enabled(self, enabled: bool) -> None:
        """Start or stop the SSH daemon; listeners are refreshed when done."""

    @abstractmethod
    def get_ssh_keys_user(self) -> str:
        """Return the GitHub user whose keys are authorized, or ''."""

    @property
    def ssh_keys_error(self) -> str:
        """Failure reason of the last key install, or ''."""
        return ""

    @abstractmethod
    def install_ssh_keys(self, username: str) -> None:
        """Authorize the public keys of a GitHub user; refreshes when done."""

    @abstractmethod
    def remove_ssh_keys(self) -> None:
        """Remove the keys installed by ``install_ssh_keys``."""

    @abstractmethod
    def start(self) -> None:
        """Start periodic scanning."""

    @abstractmethod
    def stop(self) -> None:
        """Stop periodic scanning."""


class SettingsStoreInterface(ABC):
    """Abstract persisted key/value store."""

    @abstractmethod
    def get_bool(self, key: str) -> bool:
        """Return the boolean stored at ``key`` (False if missing)."""

    @abstractmethod
    def put_bool(self, key: str, value: bool) -> None:
        """Store a boolean."""

    @abstractmethod
    def get(self, key: str) -> str:
        """Return the string stored at ``key`` (empty if missing)."""

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Store a string."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key`` if present."""


class PromptInterface(ABC):
    """Abstract modal prompts. Both calls block until the user answers."""

    @abstractmethod
    def get_text(self, title: str, subtitle: str = "", masked: bool = False,
                 min_length: int = -1, seed: str = "") -> Optional[str]:
        """Ask for a line of text; return None or '' when cancelled."""

    @abstractmethod
    def confirm(self, message: str) -> bool:
        """Ask a yes/no question."""
