"""
Shared fixtures for LimeStack Connector tests.
"""

import pytest

from limestack_connector.client import ConnectorClient
from limestack_connector.config import ConnectorConfig
from limestack_connector.server import start, stop
from limestack_connector.session import ConnectorSession, Dispatcher

from tests.helpers import ALLOWED_ORIGIN, StubProvider, make_printers


@pytest.fixture
def config():
    return ConnectorConfig(host='127.0.0.1', port=0, status_port=0,
                           print_timeout=5, print_workers=2)


@pytest.fixture
def provider():
    return StubProvider(make_printers())


@pytest.fixture
def dispatcher(config, provider):
    return Dispatcher(config, provider)


@pytest.fixture
def session():
    return ConnectorSession()


@pytest.fixture
def authenticated(session):
    session.authenticate(ALLOWED_ORIGIN)
    return session


@pytest.fixture
def server(config, provider):
    handle = start(config, provider)
    assert handle.is_running, handle.error
    yield handle
    stop(handle)


@pytest.fixture
def connect(server):
    """Factory for clients connected to the running server."""
    clients = []

    def _connect(**kwargs):
        client = ConnectorClient(url=server.url, timeout=5, **kwargs).connect()
        clients.append(client)
        return client

    yield _connect

    for client in clients:
        client.close()
