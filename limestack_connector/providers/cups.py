"""
CUPS Providers
==============

Printer providers for Linux and macOS.

Printers are enumerated with ``lpstat``; jobs are submitted with ``lp`` on
Linux and ``lpr`` on macOS. The printer id is the CUPS destination name.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional, Dict, Any, List

from .base import PrinterProvider
from ..config import PRINT_TIMEOUT, LIST_TIMEOUT
from ..models import PrinterInfo

logger = logging.getLogger(__name__)


def _run(cmd: List[str], timeout: Optional[float]) -> subprocess.CompletedProcess:
    """Run a CUPS command with untranslated output."""
    env = dict(os.environ, LC_ALL='C', LANG='C')
    return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout, env=env)


def parse_lpstat_printers(output: str, default: Optional[str] = None) -> List[PrinterInfo]:
    """
    Parse ``lpstat -l -p`` output.

    Example:
        printer Zebra_ZD420 is idle.  enabled since Mon 01 Jan 2024
                Description: Zebra ZD420
        printer Office disabled since Mon 01 Jan 2024 -
                reason unknown
    """
    printers = []
    current = None

    for line in output.splitlines():
        if line.startswith('printer '):
            parts = line.split()
            if len(parts) < 2:
                continue
            queue = parts[1]
            state = line.lower()

            if 'disabled' in state:
                status = 'offline'
            elif 'now printing' in state:
                status = 'printing'
            else:
                status = 'ready'

            current = PrinterInfo(
                id=queue,
                name=queue,
                status=status,
                is_default=(queue == default),
            )
            printers.append(current)

        elif current is not None and line.strip().startswith('Description:'):
            description = line.split(':', 1)[1].strip()
            if description:
                current.name = description

    for printer in printers:
        printer.printer_type = PrinterInfo.detect_type(f'{printer.name} {printer.id}')
        logger.debug("Found printer: name='%s', id='%s', is_default=%s",
                     printer.name, printer.id, printer.is_default)

    return printers


def parse_lpstat_default(output: str) -> Optional[str]:
    """Parse ``lpstat -d`` output ("system default destination: NAME")."""
    for line in output.splitlines():
        if line.startswith('system default destination:'):
            name = line.split(':', 1)[1].strip()
            return name or None
    return None


class CupsProvider(PrinterProvider):
    """Enumerates CUPS destinations; subclasses choose the submit command."""

    def __init__(self, lpstat_path: str = 'lpstat', timeout: Optional[float] = PRINT_TIMEOUT):
        self.lpstat_path = lpstat_path
        self.timeout = timeout

    def _default_destination(self) -> Optional[str]:
        try:
            result = _run([self.lpstat_path, '-d'], LIST_TIMEOUT)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning("Failed to query default printer: %s", e)
            return None
        return parse_lpstat_default(result.stdout)

    def list_printers(self) -> List[PrinterInfo]:
        try:
            result = _run([self.lpstat_path, '-l', '-p'], LIST_TIMEOUT)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning("Failed to enumerate printers: %s", e)
            return []

        # lpstat exits non-zero when no destinations are configured
        if result.returncode != 0:
            logger.debug("lpstat returned %d: %s", result.returncode, result.stderr.strip())
            return []

        return parse_lpstat_printers(result.stdout, self._default_destination())

    def _submit(self, cmd: List[str], tool: str) -> Dict[str, Any]:
        logger.info("Running: %s", ' '.join(cmd))

        try:
            result = _run(cmd, self.timeout)
        except subprocess.TimeoutExpired:
            return {'success': False, 'error': f'{tool} timed out after {self.timeout}s'}
        except OSError as e:
            return {'success': False, 'error': f'Failed to execute {tool}: {e}'}

        if result.returncode == 0:
            logger.info("Print job submitted successfully")
            return {'success': True, 'output': result.stdout.strip()}

        stderr = result.stderr.strip()
        logger.error("%s failed: %s", tool, stderr)
        return {'success': False, 'error': f'{tool} failed: {stderr}'}


class LinuxProvider(CupsProvider):
    """Submits jobs with ``lp``."""

    def __init__(self, lp_path: str = 'lp', **kwargs):
        super().__init__(**kwargs)
        self.lp_path = lp_path

    def print_file(self, path: Path, printer_name: str, copies: int) -> Dict[str, Any]:
        cmd = [self.lp_path, '-d', printer_name, '-n', str(copies), str(path)]
        return self._submit(cmd, 'lp')


class MacProvider(CupsProvider):
    """Submits jobs with ``lpr``, scaled to the label size."""

    def __init__(self, lpr_path: str = 'lpr', **kwargs):
        super().__init__(**kwargs)
        self.lpr_path = lpr_path

    def print_file(self, path: Path, printer_name: str, copies: int) -> Dict[str, Any]:
        cmd = [
            self.lpr_path,
            '-P', printer_name,
            '-#', str(copies),
            '-o', 'fit-to-page',
            str(path),
        ]
        return self._submit(cmd, 'lpr')
