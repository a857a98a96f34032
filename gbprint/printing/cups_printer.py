"""CUPS print transport for GBPrint."""

import logging
import shlex
import subprocess
from pathlib import Path

from gbprint.exceptions import TransportError
from gbprint.printing.base import PrinterStatus

logger = logging.getLogger(__name__)

# Used when the queue does not report its loaded media
DEFAULT_MEDIA = "62mm"

PRINT_TIMEOUT = 30
QUERY_TIMEOUT = 10


class CupsTransport:
    """Sends label PNGs to a CUPS queue with lpr."""

    def __init__(self, printer_name: str | None = None, media: str | None = None):
        """Initialize the transport.

        Args:
            printer_name: CUPS printer name (None = default printer).
            media: CUPS media name (None = detect before every print).
        """
        self.printer_name = printer_name
        self.media = media

    def _query(self, cmd: list[str]) -> subprocess.CompletedProcess | None:
        """Run a CUPS query command.

        Returns:
            subprocess.CompletedProcess | None: Result, or None if the command
                is missing or timed out.
        """
        try:
            return subprocess.run(cmd, capture_output=True, text=True, timeout=QUERY_TIMEOUT)
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            logger.debug(f"{cmd[0]} failed: {e}")
            return None

    def get_default_printer(self) -> str | None:
        """Get the default printer name.

        Returns:
            str | None: Default printer name or None.
        """
        result = self._query(["lpstat", "-d"])
        if result is None or "system default destination:" not in result.stdout:
            return None
        return result.stdout.split(":")[-1].strip() or None

    def _resolve_printer(self) -> str | None:
        return self.printer_name or self.get_default_printer()

    def detect_media(self, printer_name: str | None = None) -> str:
        """Ask CUPS which media the queue is set up for.

        Args:
            printer_name: Printer name (None = configured or default).

        Returns:
            str: Media name, DEFAULT_MEDIA if it cannot be determined.
        """
        name = printer_name or self._resolve_printer()
        if not name:
            logger.warning(f"No printer detected, using fallback media {DEFAULT_MEDIA}")
            return DEFAULT_MEDIA

        result = self._query(["lpoptions", "-p", name])
        if result is None or result.returncode != 0:
            logger.warning(f"Media detection failed for {name}, using fallback {DEFAULT_MEDIA}")
            return DEFAULT_MEDIA

        try:
            options = dict(
                token.split("=", 1) for token in shlex.split(result.stdout) if "=" in token
            )
        except ValueError as e:
            logger.warning(f"Could not parse lpoptions output: {e}, using fallback")
            return DEFAULT_MEDIA

        media = options.get("media") or options.get("PageSize")
        if media:
            logger.debug(f"Detected media for {name}: {media}")
            return media

        logger.warning(f"Could not detect media for {name}, using fallback {DEFAULT_MEDIA}")
        return DEFAULT_MEDIA

    def print_label(self, image_path: Path) -> None:
        """Print a label PNG.

        Args:
            image_path: Path of the rendered label.

        Raises:
            TransportError: If printing fails.
        """
        name = self._resolve_printer()
        media = self.media or self.detect_media(name)

        cmd = ["lpr"]
        if name:
            cmd.extend(["-P", name])
        cmd.extend(["-o", f"media={media}"])
        # Scale the image to the printable width of the tape
        cmd.extend(["-o", "fit-to-page"])
        cmd.append(str(image_path))

        logger.debug(f"Print command: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=PRINT_TIMEOUT)
        except subprocess.TimeoutExpired as err:
            raise TransportError("Print command timed out") from err
        except FileNotFoundError as err:
            raise TransportError("lpr command not found - is CUPS installed?") from err

        if result.returncode != 0:
            raise TransportError(f"lpr command failed: {result.stderr.strip()}")

        logger.info(f"Print job sent to {name or 'default printer'}: {Path(image_path).name}")

    def check_status(self) -> PrinterStatus:
        """Check the printer queue state.

        Returns:
            PrinterStatus: Readiness and diagnostic message.
        """
        name = self._resolve_printer()
        if not name:
            return PrinterStatus(False, "No printer configured and no CUPS default printer")

        result = self._query(["lpstat", "-p", name])
        if result is None:
            return PrinterStatus(False, "CUPS not available (lpstat missing or not responding)")
        if result.returncode != 0:
            return PrinterStatus(False, f"Printer {name} not found: {result.stderr.strip()}")

        output = result.stdout.strip()
        if "disabled" in output:
            return PrinterStatus(False, f"Printer {name} is disabled")
        if "is idle" in output:
            return PrinterStatus(True, f"Printer {name} is idle")
        if "now printing" in output:
            return PrinterStatus(True, f"Printer {name} is busy")
        return PrinterStatus(False, f"Printer {name} state unknown: {output}")
