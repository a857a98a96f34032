"""Batch printing: render and print N labels, one at a time."""

import logging
import threading
import time
from pathlib import Path
from typing import Protocol

from gbprint.exceptions import BusyError, LabelPrintError, ValidationError
from gbprint.identifiers import IdentifierGenerator, LabelIdentity
from gbprint.printing.base import PrintTransport

logger = logging.getLogger(__name__)

MIN_BATCH_SIZE = 1
MAX_BATCH_SIZE = 500


class Renderer(Protocol):
    """Anything that turns a payload and caption into a printable file."""

    def render(self, payload: str, human_code: str) -> Path: ...


class BatchPrinter:
    """Prints batches of freshly identified labels.

    Only one batch runs at a time. A second request while a batch is running
    is rejected with BusyError rather than queued. The first failing label
    aborts the rest of its batch.
    """

    def __init__(
        self,
        renderer: Renderer,
        transport: PrintTransport,
        identifiers: IdentifierGenerator,
        keep_images: bool = False,
    ):
        """Initialize the batch printer.

        Args:
            renderer: Label renderer.
            transport: Print transport.
            identifiers: Source of label identities.
            keep_images: Keep rendered images after printing.
        """
        self.renderer = renderer
        self.transport = transport
        self.identifiers = identifiers
        self.keep_images = keep_images
        self._lock = threading.Lock()

    @property
    def is_busy(self) -> bool:
        """True while a batch is printing."""
        return self._lock.locked()

    def print_batch(self, count: int) -> list[LabelIdentity]:
        """Print a batch of labels.

        Args:
            count: Number of labels to print (1-500).

        Returns:
            list[LabelIdentity]: Identities printed, in generation order.

        Raises:
            ValidationError: If count is out of range.
            BusyError: If another batch is running.
            LabelPrintError: If a label fails; later labels are not attempted.
        """
        if (
            isinstance(count, bool)
            or not isinstance(count, int)
            or not MIN_BATCH_SIZE <= count <= MAX_BATCH_SIZE
        ):
            raise ValidationError(count, MIN_BATCH_SIZE, MAX_BATCH_SIZE)

        if not self._lock.acquire(blocking=False):
            raise BusyError()

        start_time = time.monotonic()
        printed: list[LabelIdentity] = []
        try:
            logger.info(f"Starting batch print: {count} labels")

            for index in range(1, count + 1):
                printed.append(self._print_label(index, count))

            duration = time.monotonic() - start_time
            logger.info(f"Batch completed: {count} labels in {duration:.2f}s")
            return printed
        except LabelPrintError as e:
            logger.error(f"Batch print failed after {len(printed)}/{count} labels: {e}")
            raise
        finally:
            self._lock.release()

    def _print_label(self, index: int, total: int) -> LabelIdentity:
        """Generate, render and print a single label."""
        identity = self.identifiers.next()
        logger.info(f"Printing label {index}/{total}: {identity.code} ({identity.token})")

        image_path = None
        try:
            image_path = self.renderer.render(identity.uri, identity.code)
            self.transport.print_label(image_path)
        except Exception as e:
            logger.error(f"Failed to print label {index}/{total}: {e}")
            raise LabelPrintError(index, total, e) from e
        finally:
            if image_path is not None and not self.keep_images:
                Path(image_path).unlink(missing_ok=True)

        logger.info(f"Label {index}/{total} printed successfully")
        return identity
