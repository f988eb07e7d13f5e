"""madOS Networking Settings Panel.

A GTK3 panel for madOS to pick and manage WiFi networks and to configure
tethering, cellular roaming and the APN.  Scanning and association are
delegated to a connection manager (iwd/nmcli in production, an in-memory
mock in test mode).

Usage:
    from mados_networking.interfaces import NetworkEntry, SecurityType
    from mados_networking.network_list import sort_networks, strength_bucket
"""

__version__ = "1.0.0"
__app_id__ = "mados-networking"
