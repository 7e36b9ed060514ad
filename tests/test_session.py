"""
Unit tests for limestack_connector/session.py - authentication state machine
and message dispatch.

Run:
    pytest tests/test_session.py -v
"""

import pytest

from limestack_connector.config import ConnectorConfig
from limestack_connector.models import (
    Hello, GetPrinters, Print, PrintOptions, ReadScale,
    Welcome, Printers, PrintResult, Error, PrinterInfo,
)
from limestack_connector.session import ConnectorSession, Dispatcher

from tests.helpers import ALLOWED_ORIGIN, PDF_BASE64, PDF_BYTES, StubProvider, run


def _print(request_id='r1', printer='Zebra_ZD420', data=PDF_BASE64, fmt='pdf', copies=None):
    return Print(request_id=request_id, printer=printer, format=fmt, data=data,
                 options=PrintOptions(copies=copies))


class TestUnauthenticated:
    @pytest.mark.parametrize('message', [GetPrinters(), _print(), ReadScale()])
    def test_rejected_before_hello(self, dispatcher, session, provider, message):
        response = run(dispatcher.dispatch(session, message))
        assert response == Error('Not authenticated')
        assert session == ConnectorSession()
        assert provider.jobs == []

    def test_rejection_does_not_block_later_hello(self, dispatcher, session):
        run(dispatcher.dispatch(session, GetPrinters()))
        response = run(dispatcher.dispatch(session, Hello('1.0', ALLOWED_ORIGIN)))
        assert isinstance(response, Welcome)
        assert session.authenticated


class TestHandshake:
    @pytest.mark.parametrize('origin', [
        'https://app.limestack.io',
        'https://app.limestack.io/x',
        'https://limestack.io/settings',
        'http://localhost:5173',
        'http://localhost:4173/preview',
    ])
    def test_allowed_origins(self, dispatcher, session, origin):
        response = run(dispatcher.dispatch(session, Hello('1.0', origin)))
        assert isinstance(response, Welcome)
        assert session.authenticated
        assert session.origin == origin

    @pytest.mark.parametrize('origin', [
        'https://evil.example',
        'http://app.limestack.io',
        'http://localhost:3000',
        '',
    ])
    def test_disallowed_origins(self, dispatcher, session, origin):
        response = run(dispatcher.dispatch(session, Hello('1.0', origin)))
        assert response == Error('Origin not allowed')
        assert not session.authenticated
        assert session.origin is None

    def test_welcome_contents(self, dispatcher, session, provider, config):
        response = run(dispatcher.dispatch(session, Hello('1.0', ALLOWED_ORIGIN)))
        assert response.connector_version == config.connector_version
        assert 'print' in response.capabilities
        assert response.printers == provider.printers

    def test_welcome_with_no_printers(self, config, session):
        dispatcher = Dispatcher(config, StubProvider([]))
        response = run(dispatcher.dispatch(session, Hello('1.0', ALLOWED_ORIGIN)))
        assert response.printers == []

    def test_hello_again_refreshes_printers(self, dispatcher, authenticated, provider):
        provider.printers.append(PrinterInfo(id='New_Printer', name='New Printer'))
        response = run(dispatcher.dispatch(authenticated, Hello('1.0', ALLOWED_ORIGIN)))
        assert isinstance(response, Welcome)
        assert [p.id for p in response.printers][-1] == 'New_Printer'

    def test_hello_again_rechecks_origin(self, dispatcher, authenticated):
        response = run(dispatcher.dispatch(authenticated, Hello('1.0', 'https://evil.example')))
        assert response == Error('Origin not allowed')
        # Authentication is never revoked within a connection
        assert authenticated.authenticated
        assert authenticated.origin == ALLOWED_ORIGIN

    def test_custom_allow_list(self, provider, session):
        config = ConnectorConfig(allowed_origins=('https://labels.example',))
        dispatcher = Dispatcher(config, provider)
        assert isinstance(run(dispatcher.dispatch(session, Hello('1', 'https://labels.example/a'))), Welcome)


class TestGetPrinters:
    def test_returns_snapshot(self, dispatcher, authenticated, provider):
        response = run(dispatcher.dispatch(authenticated, GetPrinters()))
        assert response == Printers(printers=provider.printers)

    def test_not_cached(self, dispatcher, authenticated, provider):
        run(dispatcher.dispatch(authenticated, GetPrinters()))
        provider.printers.pop()
        response = run(dispatcher.dispatch(authenticated, GetPrinters()))
        assert len(response.printers) == 1
        assert provider.list_calls == 2

    def test_enumeration_failure_is_empty_list(self, config, authenticated):
        class BrokenProvider(StubProvider):
            def list_printers(self):
                raise RuntimeError('spooler down')

        dispatcher = Dispatcher(config, BrokenProvider())
        response = run(dispatcher.dispatch(authenticated, GetPrinters()))
        assert response == Printers(printers=[])


class TestPrint:
    def test_success(self, dispatcher, authenticated, provider):
        response = run(dispatcher.dispatch(authenticated, _print(request_id='r1')))
        assert isinstance(response, PrintResult)
        assert response.request_id == 'r1'
        assert response.success
        assert response.message == 'Label sent to Zebra_ZD420'
        assert response.error is None

        job = provider.jobs[0]
        assert job['printer'] == 'Zebra_ZD420'
        assert job['data'] == PDF_BYTES
        assert job['copies'] == 1

    def test_printer_not_found(self, dispatcher, authenticated, provider):
        response = run(dispatcher.dispatch(authenticated, _print(request_id='abc', printer='nonexistent')))
        assert response == PrintResult(request_id='abc', success=False,
                                       error='Printer not found: nonexistent')
        assert response.message is None
        assert provider.jobs == []

    def test_copies_omitted_same_as_one(self, dispatcher, authenticated, provider):
        first = run(dispatcher.dispatch(authenticated, _print(copies=None)))
        second = run(dispatcher.dispatch(authenticated, _print(copies=1)))
        assert first == second
        assert [job['copies'] for job in provider.jobs] == [1, 1]

    def test_copies_passed_through(self, dispatcher, authenticated, provider):
        run(dispatcher.dispatch(authenticated, _print(copies=3)))
        assert provider.jobs[0]['copies'] == 3

    def test_provider_failure(self, config, authenticated, provider):
        provider.error = 'lp failed: printer is offline'
        dispatcher = Dispatcher(config, provider)
        response = run(dispatcher.dispatch(authenticated, _print(request_id='r9')))
        assert response == PrintResult(request_id='r9', success=False,
                                       error='lp failed: printer is offline')

    def test_invalid_base64_is_print_error(self, dispatcher, authenticated, provider):
        response = run(dispatcher.dispatch(authenticated, _print(data='***', fmt='png')))
        assert not response.success
        assert response.error.startswith('Failed to decode png:')
        assert provider.jobs == []

    def test_temp_file_removed(self, dispatcher, authenticated, provider):
        run(dispatcher.dispatch(authenticated, _print()))
        assert not provider.jobs[0]['path'].exists()

    def test_temp_file_removed_on_failure(self, dispatcher, authenticated, provider):
        provider.error = 'boom'
        run(dispatcher.dispatch(authenticated, _print()))
        assert not provider.jobs[0]['path'].exists()

    @pytest.mark.parametrize('fmt,suffix', [
        ('pdf', '.pdf'), ('PNG', '.png'), ('jpeg', '.jpg'), ('jpg', '.jpg'), ('zpl', '.pdf'),
    ])
    def test_format_extension(self, dispatcher, authenticated, provider, fmt, suffix):
        run(dispatcher.dispatch(authenticated, _print(fmt=fmt)))
        assert provider.jobs[0]['path'].suffix == suffix

    def test_provider_exception(self, config, authenticated, provider):
        def explode(*args):
            raise RuntimeError('driver crashed')

        provider.print_label = explode
        dispatcher = Dispatcher(config, provider)
        response = run(dispatcher.dispatch(authenticated, _print(request_id='r2')))
        assert response == PrintResult(request_id='r2', success=False, error='driver crashed')

    def test_timeout(self, authenticated):
        config = ConnectorConfig(print_timeout=0.2)
        provider = StubProvider([PrinterInfo(id='Slow', name='Slow')], delay=1)
        dispatcher = Dispatcher(config, provider)
        response = run(dispatcher.dispatch(authenticated, _print(request_id='r3', printer='Slow')))
        assert response.request_id == 'r3'
        assert not response.success
        assert 'timed out' in response.error


class TestReadScale:
    def test_not_implemented(self, dispatcher, authenticated):
        response = run(dispatcher.dispatch(authenticated, ReadScale()))
        assert response == Error('Scale reading not yet implemented')


class TestIsolation:
    def test_sessions_independent(self, dispatcher):
        first, second = ConnectorSession(), ConnectorSession()
        run(dispatcher.dispatch(first, Hello('1.0', ALLOWED_ORIGIN)))
        assert first.authenticated
        assert not second.authenticated
        assert run(dispatcher.dispatch(second, GetPrinters())) == Error('Not authenticated')
