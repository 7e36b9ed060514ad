"""
LimeStack Connector
===================

Local bridge that lets the LimeStack web app print labels on printers
attached to this machine.

Supports:
- CUPS printers on Linux (lp) and macOS (lpr)
- Windows printers (SumatraPDF silent print, shell print verb fallback)
- PDF, PNG and JPEG label payloads

Usage:
    python -m limestack_connector

WebSocket protocol (ws://127.0.0.1:9632):
    hello         - Authenticate by origin, returns welcome + printers
    get_printers  - List system printers
    print         - Print a base64 label, returns print_result
    read_scale    - Reserved (not implemented)
"""

__version__ = '0.1.0'
__author__ = 'LimeStack'
