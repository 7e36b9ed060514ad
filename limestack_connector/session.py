"""
Session & Dispatcher
====================

Per-connection authentication state and the routing of client messages.

A session starts unauthenticated. A ``hello`` whose origin matches the
allow-list authenticates it for the rest of the connection; there is no
way back short of closing the socket. Everything except ``hello`` is
rejected with "Not authenticated" until then, without closing the
connection.

Every inbound message produces exactly one response.
"""

import asyncio
import functools
import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from .config import ConnectorConfig
from .models import (
    ClientMessage, Hello, GetPrinters, Print, ReadScale,
    ServerMessage, Welcome, Printers, PrintResult, Error, PrinterInfo,
)
from .providers import PrinterProvider

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = 'Not authenticated'
ORIGIN_NOT_ALLOWED = 'Origin not allowed'
SCALE_NOT_IMPLEMENTED = 'Scale reading not yet implemented'


@dataclass
class ConnectorSession:
    """Authentication state of one WebSocket connection."""

    authenticated: bool = False
    origin: Optional[str] = None

    def authenticate(self, origin: str):
        """Mark the session authenticated for an allowed origin."""
        self.authenticated = True
        self.origin = origin


class Dispatcher:
    """Routes client messages to the provider and builds the responses.

    Provider calls block (they shell out to the OS), so they run on thread
    pools and are awaited with ``config.print_timeout``. Print jobs use
    ``executor``; printer enumeration and lookup use ``lookup_executor``, so
    a full print pool never delays another connection's ``hello`` or
    ``get_printers``. The dispatcher holds no per-connection state; one
    instance serves every connection of a listener.
    """

    def __init__(self, config: ConnectorConfig, provider: PrinterProvider,
                 executor: Optional[Executor] = None,
                 lookup_executor: Optional[Executor] = None):
        self.config = config
        self.provider = provider
        self.executor = executor
        self.lookup_executor = lookup_executor

        self._handlers = {
            Hello: self._handle_hello,
            GetPrinters: self._handle_get_printers,
            Print: self._handle_print,
            ReadScale: self._handle_read_scale,
        }

    async def dispatch(self, session: ConnectorSession, message: ClientMessage) -> ServerMessage:
        """Evaluate a message against the session and return the response."""
        if message.requires_auth and not session.authenticated:
            logger.debug("Rejected %s before handshake", message.TYPE)
            return Error(NOT_AUTHENTICATED)

        handler = self._handlers.get(type(message))
        if handler is None:
            return Error(f'Unsupported message: {message.TYPE}')
        return await handler(session, message)

    # =========================================================================
    # Provider Calls
    # =========================================================================

    async def _call(self, executor: Optional[Executor], func: Callable[..., Any], *args) -> Any:
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(executor, functools.partial(func, *args))
        return await asyncio.wait_for(future, self.config.print_timeout)

    async def _list_printers(self) -> List[PrinterInfo]:
        try:
            return await self._call(self.lookup_executor, self.provider.list_printers)
        except asyncio.TimeoutError:
            logger.error("Printer enumeration timed out after %ss", self.config.print_timeout)
        except Exception:
            logger.exception("Printer enumeration failed")
        return []

    # =========================================================================
    # Handlers
    # =========================================================================

    async def _handle_hello(self, session: ConnectorSession, message: Hello) -> ServerMessage:
        if not self.config.is_origin_allowed(message.origin):
            logger.warning("Rejected connection from origin: %s", message.origin)
            return Error(ORIGIN_NOT_ALLOWED)

        session.authenticate(message.origin)
        logger.info("Client authenticated from origin: %s (client version %s)",
                    message.origin, message.version)

        return Welcome(
            connector_version=self.config.connector_version,
            capabilities=list(self.config.capabilities),
            printers=await self._list_printers(),
        )

    async def _handle_get_printers(self, session: ConnectorSession,
                                   message: GetPrinters) -> ServerMessage:
        return Printers(printers=await self._list_printers())

    async def _handle_print(self, session: ConnectorSession, message: Print) -> ServerMessage:
        request_id = message.request_id
        logger.info("Print request for printer: %s (format: %s)", message.printer, message.format)

        try:
            printer_name = await self._call(
                self.lookup_executor, self.provider.resolve_printer, message.printer)
        except asyncio.TimeoutError:
            return PrintResult.failed(request_id, f'Printer lookup timed out: {message.printer}')
        except Exception as e:
            logger.exception("Printer lookup failed")
            return PrintResult.failed(request_id, f'Printer lookup failed: {e}')

        if printer_name is None:
            return PrintResult.failed(request_id, f'Printer not found: {message.printer}')

        try:
            result = await self._call(
                self.executor, self.provider.print_label,
                printer_name, message.data, message.format, message.copies,
            )
        except asyncio.TimeoutError:
            logger.error("Print to %s timed out", printer_name)
            return PrintResult.failed(
                request_id, f'Print timed out after {self.config.print_timeout}s')
        except Exception as e:
            logger.exception("Print failed")
            return PrintResult.failed(request_id, str(e) or e.__class__.__name__)

        if result.get('success'):
            logger.info("Print job sent successfully to %s", printer_name)
            return PrintResult.ok(request_id, f'Label sent to {printer_name}')

        error = result.get('error') or 'Print failed'
        logger.error("Print failed: %s", error)
        return PrintResult.failed(request_id, error)

    async def _handle_read_scale(self, session: ConnectorSession,
                                 message: ReadScale) -> ServerMessage:
        return Error(SCALE_NOT_IMPLEMENTED)
