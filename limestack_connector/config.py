"""
LimeStack Connector Configuration
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from . import __version__

# =============================================================================
# Server Configuration
# =============================================================================

PORT = int(os.environ.get('LIMESTACK_CONNECTOR_PORT', 9632))
HOST = os.environ.get('LIMESTACK_CONNECTOR_HOST', '127.0.0.1')
DEBUG = os.environ.get('LIMESTACK_CONNECTOR_DEBUG', 'false').lower() == 'true'

# HTTP status endpoint (0 disables it)
STATUS_PORT = int(os.environ.get('LIMESTACK_STATUS_PORT', 9633))

LOG_LEVEL = os.environ.get('LIMESTACK_LOG_LEVEL', 'DEBUG' if DEBUG else 'INFO').upper()

# Largest accepted WebSocket frame; labels arrive base64 encoded
MAX_MESSAGE_BYTES = int(os.environ.get('LIMESTACK_MAX_MESSAGE_MB', 16)) * 1024 * 1024

# =============================================================================
# Access Control
# =============================================================================

# Matched by prefix against the origin sent in the hello message
ALLOWED_ORIGINS = (
    'https://app.limestack.io',
    'https://limestack.io',
    'http://localhost:5173',  # Local dev
    'http://localhost:4173',  # Local preview
)

# Feature flags advertised in the welcome message
CAPABILITIES = ('print',)

# =============================================================================
# Printing
# =============================================================================

PRINT_TIMEOUT = float(os.environ.get('LIMESTACK_PRINT_TIMEOUT', 60))  # seconds
PRINT_WORKERS = int(os.environ.get('LIMESTACK_PRINT_WORKERS', 4))

# Printer enumeration and lookup run on their own pool, apart from print jobs
LOOKUP_WORKERS = int(os.environ.get('LIMESTACK_LOOKUP_WORKERS', 2))

# Printer enumeration (lpstat) timeout
LIST_TIMEOUT = 10  # seconds

# Printer names containing any of these are reported as thermal
THERMAL_KEYWORDS = (
    'rollo', 'dymo', 'zebra', 'brother ql', 'thermal',
    'label', '4x6', 'shipping', 'stamps.com',
)

# Payload format -> temp file extension (unknown formats print as PDF)
FORMAT_EXTENSIONS = {
    'png': 'png',
    'pdf': 'pdf',
    'jpg': 'jpg',
    'jpeg': 'jpg',
}

TEMP_FILE_PREFIX = 'limestack_label_'

# Windows silent PDF printing
SUMATRA_PATHS = (
    r'C:\Program Files\SumatraPDF\SumatraPDF.exe',
    r'C:\Program Files (x86)\SumatraPDF\SumatraPDF.exe',
)

# =============================================================================
# Listener Context
# =============================================================================


@dataclass(frozen=True)
class ConnectorConfig:
    """Read-only settings shared by every connection of one listener."""

    host: str = HOST
    port: int = PORT
    allowed_origins: Tuple[str, ...] = ALLOWED_ORIGINS
    capabilities: Tuple[str, ...] = CAPABILITIES
    connector_version: str = __version__
    print_timeout: Optional[float] = PRINT_TIMEOUT
    print_workers: int = PRINT_WORKERS
    lookup_workers: int = LOOKUP_WORKERS
    max_message_bytes: int = MAX_MESSAGE_BYTES
    status_port: int = STATUS_PORT

    @classmethod
    def from_env(cls) -> 'ConnectorConfig':
        """Build a config from the module-level (environment derived) settings."""
        return cls(
            host=HOST,
            port=PORT,
            print_timeout=PRINT_TIMEOUT,
            print_workers=PRINT_WORKERS,
            lookup_workers=LOOKUP_WORKERS,
            max_message_bytes=MAX_MESSAGE_BYTES,
            status_port=STATUS_PORT,
        )

    def is_origin_allowed(self, origin: str) -> bool:
        """Check an origin string against the allow-list (prefix match)."""
        return any(origin.startswith(allowed) for allowed in self.allowed_origins)

    @property
    def websocket_url(self) -> str:
        return f'ws://{self.host}:{self.port}'
