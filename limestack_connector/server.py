"""
WebSocket Listener
==================

Accepts browser connections on the loopback port and runs one session
loop per connection.

The listener runs its own asyncio event loop on a background thread so the
host (tray app, CLI) keeps its main thread:

    handle = start(ConnectorConfig.from_env(), create_provider())
    ...
    stop(handle)

A bind failure is logged and recorded on the handle; it never raises into
the host.
"""

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from .config import ConnectorConfig
from .models import Error
from .protocol import DecodeError, decode, encode
from .providers import PrinterProvider
from .session import ConnectorSession, Dispatcher

logger = logging.getLogger(__name__)

# How long start() waits for the socket to be bound
STARTUP_TIMEOUT = 10  # seconds

# How long stop() lets in-flight requests finish before cancelling them
SHUTDOWN_GRACE = 2  # seconds


class ConnectionHandler:
    """Runs the read -> decode -> dispatch -> respond loop for each connection."""

    def __init__(self, dispatcher: Dispatcher):
        self.dispatcher = dispatcher

    async def respond(self, session: ConnectorSession, frame: str) -> Optional[str]:
        """Build the response frame for one inbound text frame."""
        try:
            message = decode(frame)
        except DecodeError as e:
            logger.warning("Invalid message: %s", e.reason)
            response = Error(f'Invalid message format: {e.reason}')
        else:
            response = await self.dispatcher.dispatch(session, message)

        try:
            return encode(response)
        except (TypeError, ValueError):
            logger.exception("Failed to encode %s response", response.TYPE)
            return None

    async def __call__(self, websocket: ServerConnection):
        peer = '%s:%s' % websocket.remote_address[:2]
        logger.info("New connection from: %s", peer)
        logger.debug("Origin header from %s: %s", peer, websocket.request.headers.get('Origin'))

        session = ConnectorSession()

        try:
            async for frame in websocket:
                if not isinstance(frame, str):
                    logger.debug("Ignoring binary frame from %s", peer)
                    continue

                response = await self.respond(session, frame)
                if response is None:
                    continue

                try:
                    await websocket.send(response)
                except ConnectionClosedOK:
                    logger.info("Client %s closed before the response was sent", peer)
                    break
                except ConnectionClosed as e:
                    logger.error("Failed to send response to %s: %s", peer, e)
                    break
        except ConnectionClosedOK:
            pass
        except ConnectionClosed as e:
            logger.error("WebSocket error from %s: %s", peer, e)
            return

        logger.info("Client disconnected: %s", peer)


class ConnectorHandle:
    """A started listener, returned by :func:`start`."""

    def __init__(self, config: ConnectorConfig):
        self.config = config
        self.port: Optional[int] = None
        self.error: Optional[BaseException] = None

        self._ready = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and self.port is not None
            and self.error is None
        )

    @property
    def url(self) -> Optional[str]:
        if self.port is None:
            return None
        return f'ws://{self.config.host}:{self.port}'

    def join(self, timeout: Optional[float] = None):
        """Block until the listener thread exits."""
        if self._thread is not None:
            self._thread.join(timeout)


async def _serve(handle: ConnectorHandle, provider: PrinterProvider):
    config = handle.config
    executor = ThreadPoolExecutor(
        max_workers=config.print_workers,
        thread_name_prefix='limestack-print',
    )
    lookup_executor = ThreadPoolExecutor(
        max_workers=config.lookup_workers,
        thread_name_prefix='limestack-lookup',
    )
    handler = ConnectionHandler(Dispatcher(config, provider, executor, lookup_executor))

    try:
        try:
            server = await serve(
                handler,
                config.host,
                config.port,
                max_size=config.max_message_bytes,
            )
        except OSError as e:
            logger.error("Failed to bind to port %s: %s", config.port, e)
            handle.error = e
            return

        handle.port = server.sockets[0].getsockname()[1]
        handle._loop = asyncio.get_running_loop()
        handle._stop_event = asyncio.Event()
        logger.info("WebSocket server listening on ws://%s:%s", config.host, handle.port)
        handle._ready.set()

        await handle._stop_event.wait()

        server.close()
        try:
            await asyncio.wait_for(server.wait_closed(), SHUTDOWN_GRACE)
        except asyncio.TimeoutError:
            # asyncio.run() cancels the remaining connection handlers
            logger.warning("Cancelling requests still running after %ss", SHUTDOWN_GRACE)
        logger.info("WebSocket server stopped")
    finally:
        handle._ready.set()
        executor.shutdown(wait=False, cancel_futures=True)
        lookup_executor.shutdown(wait=False, cancel_futures=True)


def start(config: ConnectorConfig, provider: PrinterProvider) -> ConnectorHandle:
    """
    Start the listener on a background thread.

    Args:
        config: Listener settings (host, port, allowed origins, ...)
        provider: Printer provider shared by all connections

    Returns:
        Handle for :func:`stop`. Check ``handle.is_running`` / ``handle.error``
        to see whether the port was bound.
    """
    handle = ConnectorHandle(config)
    handle._thread = threading.Thread(
        target=asyncio.run,
        args=(_serve(handle, provider),),
        name='limestack-listener',
        daemon=True,
    )
    handle._thread.start()

    if not handle._ready.wait(STARTUP_TIMEOUT):
        logger.error("WebSocket server did not start within %ss", STARTUP_TIMEOUT)
    return handle


def stop(handle: ConnectorHandle, timeout: Optional[float] = 5):
    """
    Close the listener and every open connection.

    Requests still running after ``SHUTDOWN_GRACE`` seconds are cancelled and
    get no response. A provider call already inside the OS keeps its worker
    thread until the command returns; it is not killed.
    """
    loop, stop_event = handle._loop, handle._stop_event
    if loop is not None and stop_event is not None and not loop.is_closed():
        try:
            loop.call_soon_threadsafe(stop_event.set)
        except RuntimeError:
            # Loop already shut down
            pass
    handle.join(timeout)
