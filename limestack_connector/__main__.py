"""
LimeStack Connector - Host Entry Point
======================================

Starts the WebSocket bridge and the status endpoint, then runs until
interrupted.

Run: python -m limestack_connector
"""

import logging
import signal
import sys
import threading

from . import __version__
from .app import start_status_server
from .config import ConnectorConfig, LOG_LEVEL
from .providers import create_provider
from .server import start, stop


def main() -> int:
    """Run the connector."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format='%(asctime)s %(levelname)-7s %(name)s: %(message)s',
    )

    config = ConnectorConfig.from_env()

    print("=" * 60)
    print("  LimeStack Connector")
    print("=" * 60)
    print(f"  Version: {__version__}")
    print(f"  WebSocket: {config.websocket_url}")
    if config.status_port:
        print(f"  Status: http://{config.host}:{config.status_port}/health")
    print("  Allowed origins:")
    for origin in config.allowed_origins:
        print(f"    {origin}")
    print("=" * 60)

    try:
        provider = create_provider()
    except RuntimeError as e:
        print(f"  [ERROR] {e}")
        return 1

    handle = start(config, provider)
    if not handle.is_running:
        print(f"  [WARN] WebSocket bridge disabled: {handle.error}")

    status_server = start_status_server(config)

    if not handle.is_running and status_server is None:
        return 1

    stopped = threading.Event()
    signal.signal(signal.SIGTERM, lambda signum, frame: stopped.set())

    try:
        while not stopped.wait(1):
            pass
    except KeyboardInterrupt:
        pass

    print("  Shutting down...")
    if status_server is not None:
        status_server.shutdown()
    stop(handle)
    return 0


if __name__ == '__main__':
    sys.exit(main())
