"""
LimeStack Connector Providers
=============================

Printer providers for each supported operating system.
"""

import sys
from typing import Optional

from .base import PrinterProvider
from .cups import CupsProvider, LinuxProvider, MacProvider
from .windows import WindowsProvider

__all__ = [
    'PrinterProvider', 'CupsProvider', 'LinuxProvider', 'MacProvider', 'WindowsProvider',
    'get_provider', 'create_provider',
]

# Provider registry (keyed by sys.platform)
PROVIDERS = {
    'linux': LinuxProvider,
    'darwin': MacProvider,
    'win32': WindowsProvider,
}


def get_provider(platform: Optional[str] = None) -> type:
    """Get provider class for a platform (defaults to the running one)."""
    platform = platform or sys.platform
    if platform.startswith('linux'):
        platform = 'linux'
    return PROVIDERS.get(platform)


def create_provider(platform: Optional[str] = None, **kwargs) -> PrinterProvider:
    """Instantiate the provider for a platform."""
    provider_class = get_provider(platform)
    if provider_class is None:
        raise RuntimeError(f"No printer provider for platform '{platform or sys.platform}'")
    return provider_class(**kwargs)
