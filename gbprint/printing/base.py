"""Abstract print transport interface."""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from gbprint.exceptions import TransportError


@dataclass(frozen=True)
class PrinterStatus:
    """Result of a printer pre-flight check.

    Attributes:
        ready: True if the printer can accept a job right now.
        message: Human-readable diagnostic.
    """

    ready: bool
    message: str = ""


@runtime_checkable
class PrintTransport(Protocol):
    """Protocol defining the print transport interface.

    All printer backends must satisfy this protocol.
    """

    def print_label(self, image_path: Path) -> None:
        """Send one rendered label to the printer.

        Args:
            image_path: Path of the label PNG.

        Raises:
            TransportError: If the job cannot be submitted.
        """
        ...

    def check_status(self) -> PrinterStatus:
        """Check whether the printer is ready.

        Returns:
            PrinterStatus: Readiness and diagnostic message. Never raises.
        """
        ...


__all__ = ["PrintTransport", "PrinterStatus", "TransportError"]
