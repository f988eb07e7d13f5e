"""madOS Networking - Backend factory.

Factory pattern to create connection manager instances.
Enables dependency injection for testing.
"""

import logging
import os

from .config import MODE_ENV

log = logging.getLogger(__name__)


def create_backend(store=None):
    """Create a connection manager based on environment mode.

    Environment:
        MADOS_NETWORKING_MODE: 'production' (default) or 'test'

    Args:
        store: Settings store the backend may persist its own values in.

    Returns:
        Instance implementing ConnectionManagerInterface.
    """
    mode = os.environ.get(MODE_ENV, "production")

    if mode == "test":
        from .mock_backend import MockConnectionManager, DEMO_GITHUB_KEYS, DEMO_NETWORKS

        log.info("Using mock connection manager")
        return MockConnectionManager(
            networks=DEMO_NETWORKS,
            known=[DEMO_NETWORKS[0].ssid],
            github_keys=DEMO_GITHUB_KEYS,
        )

    from .backend import IwdConnectionManager

    return IwdConnectionManager(store=store)
