"""
LimeStack Connector Models
"""

from .printer import PrinterInfo
from .messages import (
    ClientMessage, Hello, GetPrinters, Print, PrintOptions, ReadScale,
    ServerMessage, Welcome, Printers, PrintResult, ScaleReading, Error,
)

__all__ = [
    'PrinterInfo',
    'ClientMessage', 'Hello', 'GetPrinters', 'Print', 'PrintOptions', 'ReadScale',
    'ServerMessage', 'Welcome', 'Printers', 'PrintResult', 'ScaleReading', 'Error',
]
