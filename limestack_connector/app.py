"""
LimeStack Connector - Status Endpoint
=====================================

Small HTTP app next to the WebSocket bridge, so the web app (and support)
can check that the connector is installed and which version runs.

It never exposes printers or accepts jobs; those stay behind the WebSocket
handshake.
"""

import logging
import platform
import socket
import sys
import threading
from datetime import datetime
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.serving import BaseWSGIServer, make_server

from . import __version__
from .config import ConnectorConfig
from .models import Hello, GetPrinters, Print, ReadScale

logger = logging.getLogger(__name__)


# =============================================================================
# Application Setup
# =============================================================================

def create_app(config: ConnectorConfig) -> Flask:
    """Create the status app for a listener configuration."""
    app = Flask(__name__)
    CORS(app, origins=list(config.allowed_origins))

    @app.route('/health', methods=['GET'])
    def health():
        """Health check with system info."""
        return jsonify({
            'status': 'online',
            'version': config.connector_version,
            'hostname': socket.gethostname(),
            'platform': platform.system(),
            'python': sys.version.split()[0],
            'websocket': config.websocket_url,
            'capabilities': list(config.capabilities),
            'timestamp': datetime.now().isoformat(),
        })

    @app.route('/api', methods=['GET'])
    def api_info():
        """API info (JSON)."""
        return jsonify({
            'service': 'LimeStack Connector',
            'version': __version__,
            'status': 'running',
            'websocket': config.websocket_url,
            'messages': [Hello.TYPE, GetPrinters.TYPE, Print.TYPE, ReadScale.TYPE],
        })

    return app


# =============================================================================
# Server
# =============================================================================

def start_status_server(config: ConnectorConfig) -> Optional[BaseWSGIServer]:
    """Serve the status app on a background thread (None if disabled or the port is taken)."""
    if not config.status_port:
        return None

    try:
        server = make_server(config.host, config.status_port, create_app(config), threaded=True)
    except OSError as e:
        logger.error("Failed to bind status endpoint to port %s: %s", config.status_port, e)
        return None

    thread = threading.Thread(target=server.serve_forever, name='limestack-status', daemon=True)
    thread.start()
    logger.info("Status endpoint listening on http://%s:%s/health", config.host, server.server_port)
    return server
