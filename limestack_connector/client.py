"""
LimeStack Connector Client
==========================

Python client for the connector's WebSocket protocol, for diagnostics and
scripted printing.

Usage:
    from limestack_connector.client import ConnectorClient

    with ConnectorClient(origin='https://app.limestack.io') as client:
        welcome = client.hello()

        # List printers
        printers = client.get_printers()

        # Print label
        result = client.print_file(printers[0]['id'], 'label.pdf', copies=2)
"""

import base64
import json
import uuid
from contextlib import ExitStack
from pathlib import Path
from typing import Dict, Any, Optional, List

import requests
from websockets.sync.client import ClientConnection, connect

from . import __version__


class ConnectorClient:
    """Client for a running LimeStack Connector."""

    def __init__(self, url: str = 'ws://127.0.0.1:9632',
                 origin: str = 'https://app.limestack.io',
                 status_url: str = 'http://127.0.0.1:9633',
                 timeout: float = 30):
        """
        Initialize client.

        Args:
            url: WebSocket URL of the connector
            origin: Origin sent in the HTTP upgrade and the hello message
            status_url: Base URL of the HTTP status endpoint
            timeout: Seconds to wait for each response
        """
        self.url = url
        self.origin = origin
        self.status_url = status_url.rstrip('/')
        self.timeout = timeout
        self._ws: Optional[ClientConnection] = None
        self._stack: Optional[ExitStack] = None

    # =========================================================================
    # Connection
    # =========================================================================

    def connect(self) -> 'ConnectorClient':
        """Open the WebSocket connection."""
        if self._ws is None:
            stack = ExitStack()
            self._ws = stack.enter_context(connect(
                self.url, origin=self.origin, open_timeout=self.timeout, max_size=None,
            ))
            self._stack = stack
        return self

    def close(self):
        """Close the WebSocket connection."""
        if self._stack is not None:
            self._stack.close()
        self._stack = None
        self._ws = None

    def __enter__(self) -> 'ConnectorClient':
        return self.connect()

    def __exit__(self, *exc_info):
        self.close()

    def send_raw(self, frame: str) -> Dict[str, Any]:
        """Send a raw text frame and return the decoded response."""
        self.connect()
        self._ws.send(frame)
        return json.loads(self._ws.recv(timeout=self.timeout))

    def _request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.send_raw(json.dumps(payload))

    # =========================================================================
    # Health
    # =========================================================================

    def health(self) -> Dict[str, Any]:
        """Check connector health over HTTP."""
        try:
            response = requests.get(f'{self.status_url}/health', timeout=self.timeout)
            return response.json()
        except requests.exceptions.Timeout:
            return {'status': 'offline', 'error': 'Request timeout'}
        except requests.exceptions.ConnectionError:
            return {'status': 'offline', 'error': f'Cannot connect to {self.status_url}'}
        except ValueError as e:
            return {'status': 'unknown', 'error': f'Invalid response: {e}'}

    def is_online(self) -> bool:
        """Check if the connector is running."""
        return self.health().get('status') == 'online'

    # =========================================================================
    # Protocol
    # =========================================================================

    def hello(self, version: str = __version__, origin: Optional[str] = None) -> Dict[str, Any]:
        """Authenticate; returns the welcome (or error) message."""
        return self._request({
            'type': 'hello',
            'version': version,
            'origin': origin if origin is not None else self.origin,
        })

    def get_printers(self) -> List[Dict[str, Any]]:
        """List printers (empty if the request was rejected)."""
        result = self._request({'type': 'get_printers'})
        return result.get('printers', [])

    def print_data(self, printer_id: str, data: bytes, format: str = 'pdf',
                   copies: Optional[int] = None, paper_size: Optional[str] = None,
                   request_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Print raw label bytes.

        Args:
            printer_id: Printer id from get_printers()
            data: PDF/PNG/JPEG bytes
            format: Payload format (pdf, png, jpg)
            copies: Number of copies (connector default: 1)
            paper_size: Paper size hint
            request_id: Correlation id (generated if omitted)
        """
        options = {}
        if copies is not None:
            options['copies'] = copies
        if paper_size is not None:
            options['paperSize'] = paper_size

        return self._request({
            'type': 'print',
            'requestId': request_id or str(uuid.uuid4()),
            'printer': printer_id,
            'format': format,
            'data': base64.b64encode(data).decode('ascii'),
            'options': options,
        })

    def print_file(self, printer_id: str, file_path: str, format: Optional[str] = None,
                   **options) -> Dict[str, Any]:
        """Print a label file; the format defaults to the file extension."""
        path = Path(file_path)
        fmt = format or path.suffix.lstrip('.').lower() or 'pdf'
        return self.print_data(printer_id, path.read_bytes(), format=fmt, **options)

    def read_scale(self) -> Dict[str, Any]:
        """Request a scale reading."""
        return self._request({'type': 'read_scale'})
