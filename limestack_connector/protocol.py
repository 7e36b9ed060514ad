"""
Message Codec
=============

Converts WebSocket text frames to typed messages and back.

Decoding either returns a fully populated :class:`ClientMessage` or raises
:class:`DecodeError`. The print payload stays base64 text here; printers
decode it when the job runs.
"""

import json
from typing import Any, Callable, Dict, Optional

from .models import (
    ClientMessage, Hello, GetPrinters, Print, PrintOptions, ReadScale,
    ServerMessage,
)

# copies is an unsigned 32-bit count on the wire
MAX_COPIES = 2 ** 32 - 1


class DecodeError(ValueError):
    """Frame is not a valid client message."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


# =============================================================================
# Field Helpers
# =============================================================================

def _require(data: Dict[str, Any], key: str) -> Any:
    if key not in data:
        raise DecodeError(f'missing field `{key}`')
    return data[key]


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = _require(data, key)
    if not isinstance(value, str):
        raise DecodeError(f'invalid type for `{key}`: expected a string')
    return value


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise DecodeError(f'invalid type for `{key}`: expected a string')
    return value


def _optional_count(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    # bool is an int subclass but never a valid count
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f'invalid type for `{key}`: expected an unsigned integer')
    if value < 0 or value > MAX_COPIES:
        raise DecodeError(f'invalid value for `{key}`: {value} is out of range')
    return value


# =============================================================================
# Variant Decoders
# =============================================================================

def _decode_hello(data: Dict[str, Any]) -> Hello:
    return Hello(
        version=_require_str(data, 'version'),
        origin=_require_str(data, 'origin'),
    )


def _decode_get_printers(data: Dict[str, Any]) -> GetPrinters:
    return GetPrinters()


def _decode_print(data: Dict[str, Any]) -> Print:
    options = _require(data, 'options')
    if not isinstance(options, dict):
        raise DecodeError('invalid type for `options`: expected an object')

    return Print(
        request_id=_require_str(data, 'requestId'),
        printer=_require_str(data, 'printer'),
        format=_require_str(data, 'format'),
        data=_require_str(data, 'data'),
        options=PrintOptions(
            copies=_optional_count(options, 'copies'),
            paper_size=_optional_str(options, 'paperSize'),
        ),
    )


def _decode_read_scale(data: Dict[str, Any]) -> ReadScale:
    return ReadScale()


DECODERS: Dict[str, Callable[[Dict[str, Any]], ClientMessage]] = {
    Hello.TYPE: _decode_hello,
    GetPrinters.TYPE: _decode_get_printers,
    Print.TYPE: _decode_print,
    ReadScale.TYPE: _decode_read_scale,
}


# =============================================================================
# Public API
# =============================================================================

def decode(raw: str) -> ClientMessage:
    """
    Parse a text frame into a client message.

    Args:
        raw: Frame text (one JSON object)

    Returns:
        The decoded message

    Raises:
        DecodeError: Invalid JSON, unknown/missing ``type``, or a missing or
            mistyped field
    """
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise DecodeError(str(e)) from e

    if not isinstance(data, dict):
        raise DecodeError('expected a JSON object')

    msg_type = _require(data, 'type')
    if not isinstance(msg_type, str):
        raise DecodeError('invalid type for `type`: expected a string')

    decoder = DECODERS.get(msg_type)
    if decoder is None:
        expected = ', '.join(f'`{name}`' for name in DECODERS)
        raise DecodeError(f'unknown variant `{msg_type}`, expected one of {expected}')

    return decoder(data)


def encode(message: ServerMessage) -> str:
    """Serialize a server message to a text frame."""
    return json.dumps(message.to_dict(), separators=(',', ':'), allow_nan=False)
