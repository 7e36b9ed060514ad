"""
Printer Model
=============

A system printer as reported to the browser.
"""

from dataclasses import dataclass
from typing import Dict, Any

from ..config import THERMAL_KEYWORDS


@dataclass
class PrinterInfo:
    """Printer as listed in welcome and printers messages."""

    # Identification (OS queue name, used to resolve the printer later)
    id: str = ""
    name: str = ""

    printer_type: str = "standard"  # standard, thermal
    status: str = "ready"  # ready, printing, offline
    is_default: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation (camelCase keys)."""
        return {
            'id': self.id,
            'name': self.name,
            'type': self.printer_type,
            'status': self.status,
            'isDefault': self.is_default,
        }

    @staticmethod
    def detect_type(name: str) -> str:
        """Guess whether a printer is a thermal label printer from its name."""
        name_lower = name.lower()
        if any(keyword in name_lower for keyword in THERMAL_KEYWORDS):
            return 'thermal'
        return 'standard'
