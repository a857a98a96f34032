"""Print transport abstraction.

Use get_transport() to get the backend for the attached label printer.
"""

from gbprint.printing.base import PrinterStatus, PrintTransport, TransportError
from gbprint.printing.cups_printer import CupsTransport


def get_transport(printer_name: str | None = None, media: str | None = None) -> PrintTransport:
    """Factory function that returns the print transport.

    Args:
        printer_name: Optional CUPS queue name.
        media: Optional media name (auto-detected when None).

    Returns:
        PrintTransport: Transport instance.
    """
    return CupsTransport(printer_name, media)


__all__ = [
    "CupsTransport",
    "PrintTransport",
    "PrinterStatus",
    "TransportError",
    "get_transport",
]
