"""
Protocol Messages
=================

Typed messages exchanged with the browser over the WebSocket.

Every frame is one JSON object whose ``type`` field names the message in
snake_case. Protocol fields use camelCase on the wire.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

from .printer import PrinterInfo


# =============================================================================
# Browser -> Connector
# =============================================================================

class ClientMessage:
    """Base class for messages sent by the browser."""

    TYPE = ''

    # Only hello may be processed before the session is authenticated
    requires_auth = True


@dataclass
class Hello(ClientMessage):
    """Handshake: identifies the page the browser is running."""

    TYPE = 'hello'
    requires_auth = False

    version: str
    origin: str


@dataclass
class GetPrinters(ClientMessage):
    TYPE = 'get_printers'


@dataclass
class PrintOptions:
    copies: Optional[int] = None
    paper_size: Optional[str] = None


@dataclass
class Print(ClientMessage):
    """Print job. ``data`` is the base64 payload, left undecoded."""

    TYPE = 'print'

    request_id: str
    printer: str
    format: str
    data: str
    options: PrintOptions = field(default_factory=PrintOptions)

    @property
    def copies(self) -> int:
        if self.options.copies is None:
            return 1
        return self.options.copies


@dataclass
class ReadScale(ClientMessage):
    TYPE = 'read_scale'


# =============================================================================
# Connector -> Browser
# =============================================================================

class ServerMessage:
    """Base class for messages sent to the browser."""

    TYPE = ''

    def _payload(self) -> Dict[str, Any]:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation."""
        data = {'type': self.TYPE}
        data.update(self._payload())
        return data


@dataclass
class Welcome(ServerMessage):
    TYPE = 'welcome'

    connector_version: str
    capabilities: List[str]
    printers: List[PrinterInfo]

    def _payload(self) -> Dict[str, Any]:
        return {
            'connectorVersion': self.connector_version,
            'capabilities': list(self.capabilities),
            'printers': [p.to_dict() for p in self.printers],
        }


@dataclass
class Printers(ServerMessage):
    TYPE = 'printers'

    printers: List[PrinterInfo]

    def _payload(self) -> Dict[str, Any]:
        return {'printers': [p.to_dict() for p in self.printers]}


@dataclass
class PrintResult(ServerMessage):
    """Outcome of a print job, correlated by the client's request id.

    ``message`` is only set on success and ``error`` only on failure; use
    :meth:`ok` and :meth:`failed` to build one.
    """

    TYPE = 'print_result'

    request_id: str
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, request_id: str, message: str) -> 'PrintResult':
        return cls(request_id=request_id, success=True, message=message)

    @classmethod
    def failed(cls, request_id: str, error: str) -> 'PrintResult':
        return cls(request_id=request_id, success=False, error=error)

    def _payload(self) -> Dict[str, Any]:
        data = {'requestId': self.request_id, 'success': self.success}
        if self.success and self.message is not None:
            data['message'] = self.message
        if not self.success and self.error is not None:
            data['error'] = self.error
        return data


@dataclass
class ScaleReading(ServerMessage):
    TYPE = 'scale_reading'

    weight: float
    unit: str
    stable: bool

    def _payload(self) -> Dict[str, Any]:
        return {'weight': self.weight, 'unit': self.unit, 'stable': self.stable}


@dataclass
class Error(ServerMessage):
    TYPE = 'error'

    message: str

    def _payload(self) -> Dict[str, Any]:
        return {'message': self.message}
