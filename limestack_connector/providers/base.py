"""
Base Provider
=============

Abstract base class for printer providers.

A provider is the only part of the connector that talks to the operating
system: it lists printers, resolves the id the browser sends back, and runs
print jobs. Providers are shared by all connections and must be safe to call
from several worker threads at once.
"""

import base64
import binascii
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Dict, Any, List

from ..config import FORMAT_EXTENSIONS, TEMP_FILE_PREFIX
from ..models import PrinterInfo

logger = logging.getLogger(__name__)


class PrinterProvider(ABC):
    """Abstract base class for printer providers."""

    @abstractmethod
    def list_printers(self) -> List[PrinterInfo]:
        """
        Enumerate system printers.

        Returns:
            List of printers (empty when none are installed or the
            enumeration fails)
        """
        pass

    @abstractmethod
    def print_file(self, path: Path, printer_name: str, copies: int) -> Dict[str, Any]:
        """
        Send a file to a printer.

        Args:
            path: File to print (PDF, PNG or JPEG)
            printer_name: Native printer name from :meth:`resolve_printer`
            copies: Number of copies

        Returns:
            Dict with success status, and ``error`` on failure
        """
        pass

    def resolve_printer(self, printer_id: str) -> Optional[str]:
        """Map a printer id to its native name, or None if it is not installed."""
        logger.debug("Looking for printer with id: %s", printer_id)
        for printer in self.list_printers():
            if printer.id == printer_id:
                logger.debug("Found printer: id='%s', name='%s'", printer.id, printer.name)
                return printer.id
        return None

    def print_label(self, printer_name: str, data_base64: str, format: str,
                    copies: int = 1) -> Dict[str, Any]:
        """
        Decode a base64 label and print it.

        The payload is written to a temp file that is removed once the print
        attempt finishes, whatever its outcome.

        Args:
            printer_name: Native printer name
            data_base64: Base64 encoded PDF/PNG/JPEG
            format: Payload format (pdf, png, jpg, jpeg)
            copies: Number of copies

        Returns:
            Dict with success status, and ``error`` on failure
        """
        logger.info("Printing %s to '%s' (%d copies)", format, printer_name, copies)

        if copies < 1:
            return {'success': False, 'error': f'Invalid copies: {copies} (must be at least 1)'}

        try:
            data = base64.b64decode(data_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            return {'success': False, 'error': f'Failed to decode {format}: {e}'}

        logger.debug("Decoded %s: %d bytes", format, len(data))

        extension = FORMAT_EXTENSIONS.get(format.lower(), 'pdf')

        try:
            fd, temp_name = tempfile.mkstemp(prefix=TEMP_FILE_PREFIX, suffix=f'.{extension}')
        except OSError as e:
            return {'success': False, 'error': f'Failed to create temp file: {e}'}

        temp_path = Path(temp_name)
        try:
            try:
                with os.fdopen(fd, 'wb') as f:
                    f.write(data)
            except OSError as e:
                return {'success': False, 'error': f'Failed to write label: {e}'}

            logger.debug("Wrote temp file: %s", temp_path)
            return self.print_file(temp_path, printer_name, copies)
        finally:
            try:
                temp_path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("Failed to remove temp file %s: %s", temp_path, e)
