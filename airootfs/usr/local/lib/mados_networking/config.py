"""Configuration constants for madOS Networking."""

import os

# --- Environment ---
MODE_ENV = "MADOS_NETWORKING_MODE"             # 'production' (default) or 'test'
LOG_LEVEL_ENV = "MADOS_NETWORKING_LOG_LEVEL"   # logging level name
SETTINGS_ENV = "MADOS_NETWORKING_SETTINGS"     # settings file override

# --- Settings persistence ---
CONFIG_DIR = os.path.expanduser("~/.config/mados-networking")
SETTINGS_FILE = os.path.join(CONFIG_DIR, "settings.json")

# --- Settings keys ---
KEY_GSM_ROAMING = "GsmRoaming"
KEY_GSM_APN = "GsmApn"
KEY_TETHERING_PASSWORD = "TetheringPassword"

# --- Scanning ---
SCAN_INTERVAL_SECONDS = 10   # Rescan period while the panel is visible
SCAN_WAIT_SECONDS = 3        # Delay between triggering a scan and reading it

# --- Credentials ---
PASSWORD_MIN_LENGTH = 8      # WPA2 passphrases are 8..63 characters

# --- Tethering ---
TETHERING_SSID = "madOS-hotspot"
DEFAULT_TETHERING_PASSWORD = "madospass"

# --- Cellular ---
CELLULAR_CONNECTION = "lte"  # NetworkManager connection holding gsm.* settings

# --- Signal buckets ---
STRENGTH_BUCKET_WIDTH = 33.0
STRENGTH_BUCKET_MAX = 3

# --- SSH ---
SSH_SERVICE = "sshd.service"
AUTHORIZED_KEYS_FILE = os.path.expanduser("~/.ssh/authorized_keys")
GITHUB_KEYS_URL = "https://github.com/{user}.keys"
HTTP_TIMEOUT = 15
USER_AGENT = "mados-networking"
