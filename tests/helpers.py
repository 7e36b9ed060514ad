"""
Test helpers: stub provider, sample printers and payloads.
"""

import asyncio
import base64
import socket
import threading
import time

from limestack_connector.models import PrinterInfo
from limestack_connector.providers import PrinterProvider

ALLOWED_ORIGIN = 'https://app.limestack.io'
PDF_BYTES = b'%PDF-1.4\n%test label\n'
PDF_BASE64 = base64.b64encode(PDF_BYTES).decode('ascii')


class StubProvider(PrinterProvider):
    """In-memory provider that records print jobs instead of printing."""

    def __init__(self, printers=None, error=None, delay=0):
        self.printers = list(printers or [])
        self.error = error
        self.delay = delay
        self.jobs = []
        self.list_calls = 0
        self.started = threading.Event()
        self._lock = threading.Lock()

    def list_printers(self):
        with self._lock:
            self.list_calls += 1
        return list(self.printers)

    def print_file(self, path, printer_name, copies):
        self.started.set()
        if self.delay:
            time.sleep(self.delay)
        with self._lock:
            self.jobs.append({
                'printer': printer_name,
                'copies': copies,
                'data': path.read_bytes(),
                'path': path,
            })
        if self.error:
            return {'success': False, 'error': self.error}
        return {'success': True}


def make_printers():
    return [
        PrinterInfo(id='Zebra_ZD420', name='Zebra ZD420', printer_type='thermal',
                    status='ready', is_default=True),
        PrinterInfo(id='Office_Laser', name='Office Laser', printer_type='standard',
                    status='ready', is_default=False),
    ]


def run(coro):
    return asyncio.run(coro)


def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]
