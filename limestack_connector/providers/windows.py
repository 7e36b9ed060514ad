"""
Windows Provider
================

Printer provider for Windows, via pywin32.

PDFs are printed silently with SumatraPDF when it is installed; otherwise
the file is handed to its registered application with the ``printto`` verb.
"""

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Optional, Dict, Any, List, Sequence

from .base import PrinterProvider
from ..config import PRINT_TIMEOUT, SUMATRA_PATHS
from ..models import PrinterInfo

logger = logging.getLogger(__name__)

# win32print.PRINTER_STATUS_OFFLINE / PRINTER_STATUS_PRINTING
_STATUS_OFFLINE = 0x00000080
_STATUS_PRINTING = 0x00000400


class WindowsProvider(PrinterProvider):
    """Provider for printers installed in Windows."""

    def __init__(self, sumatra_paths: Sequence[str] = SUMATRA_PATHS,
                 timeout: Optional[float] = PRINT_TIMEOUT):
        self._check_dependencies()
        self.sumatra_paths = list(sumatra_paths)
        self.timeout = timeout

    def _check_dependencies(self):
        """Check if required modules are available."""
        if sys.platform != 'win32':
            raise RuntimeError("Windows provider requires Windows")

    def _printer_status(self, name: str) -> str:
        import win32print

        try:
            handle = win32print.OpenPrinter(name)
            try:
                status = win32print.GetPrinter(handle, 2)['Status']
            finally:
                win32print.ClosePrinter(handle)
        except Exception as e:
            logger.debug("Could not read status of '%s': %s", name, e)
            return 'ready'

        if status & _STATUS_OFFLINE:
            return 'offline'
        if status & _STATUS_PRINTING:
            return 'printing'
        return 'ready'

    def list_printers(self) -> List[PrinterInfo]:
        import win32print

        try:
            printers = win32print.EnumPrinters(
                win32print.PRINTER_ENUM_LOCAL | win32print.PRINTER_ENUM_CONNECTIONS
            )
        except Exception as e:
            logger.warning("Failed to enumerate printers: %s", e)
            return []

        try:
            default = win32print.GetDefaultPrinter()
        except Exception:
            default = None

        result = []
        for p in printers:
            name = p[2]
            result.append(PrinterInfo(
                id=name,
                name=name,
                printer_type=PrinterInfo.detect_type(name),
                status=self._printer_status(name),
                is_default=(name == default),
            ))
            logger.debug("Found printer: name='%s', is_default=%s", name, name == default)
        return result

    def _print_sumatra(self, exe: str, path: Path, printer_name: str,
                       copies: int) -> Optional[Dict[str, Any]]:
        cmd = [exe, '-print-to', printer_name, '-print-settings', f'{copies}x',
               '-silent', str(path)]
        logger.info("Running: %s", ' '.join(cmd))

        try:
            result = subprocess.run(cmd, capture_output=True, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            return {'success': False, 'error': f'SumatraPDF timed out after {self.timeout}s'}
        except OSError as e:
            return {'success': False, 'error': f'Failed to execute SumatraPDF: {e}'}

        if result.returncode == 0:
            return {'success': True, 'method': 'sumatra'}

        logger.warning("SumatraPDF exited with %d, trying next method", result.returncode)
        return None

    def _print_shell(self, path: Path, printer_name: str, copies: int) -> Dict[str, Any]:
        """Print through the file's registered application (once per copy)."""
        try:
            import win32event
            from win32com.shell import shell, shellcon
        except ImportError as e:
            return {'success': False, 'error': f'Missing module: {e}. Install: pip install pywin32'}

        wait_ms = win32event.INFINITE if self.timeout is None else int(self.timeout * 1000)

        for _ in range(copies):
            try:
                info = shell.ShellExecuteEx(
                    fMask=shellcon.SEE_MASK_NOCLOSEPROCESS,
                    lpVerb='printto',
                    lpFile=str(path),
                    lpParameters=f'"{printer_name}"',
                    nShow=0,
                )
            except Exception as e:
                return {'success': False, 'error': f'Failed to print: {e}'}

            # Keep the temp file alive until the handler has read it
            process = info.get('hProcess')
            if process:
                if win32event.WaitForSingleObject(process, wait_ms) == win32event.WAIT_TIMEOUT:
                    return {'success': False, 'error': f'Print handler timed out after {self.timeout}s'}

        return {'success': True, 'method': 'shell'}

    def print_file(self, path: Path, printer_name: str, copies: int) -> Dict[str, Any]:
        for exe in self.sumatra_paths:
            if os.path.exists(exe):
                result = self._print_sumatra(exe, path, printer_name, copies)
                if result is not None:
                    return result

        return self._print_shell(path, printer_name, copies)
