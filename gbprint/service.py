"""GBPrint service - wires the poll loop to the printer and to process signals."""

import logging
import signal
import sys
import threading
import time
from collections.abc import Callable

from gbprint.batch import BatchPrinter, Renderer
from gbprint.config import Settings, get_settings
from gbprint.identifiers import IdentifierGenerator
from gbprint.labels import LabelRenderer
from gbprint.polling import PollLoop, WorkFetcher
from gbprint.printing import PrinterStatus, PrintTransport, get_transport
from gbprint.remote import WorkSource

logger = logging.getLogger(__name__)

# Seconds between checks while waiting for a batch to finish on shutdown
DRAIN_CHECK_INTERVAL = 1.0


class LabelPrinterService:
    """Label printer service.

    The service:
    1. Checks the printer (a missing printer is only a warning)
    2. Starts the poll loop on a background thread
    3. Waits for SIGINT/SIGTERM
    4. Stops polling and gives a running batch time to finish
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: PrintTransport | None = None,
        renderer: Renderer | None = None,
        identifiers: IdentifierGenerator | None = None,
        source: WorkFetcher | None = None,
        sleep: Callable[[float], object] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        """Initialize the service.

        Args:
            settings: Configuration (loads from environment if not provided).
            transport: Print transport (CUPS by default).
            renderer: Label renderer (QR PNGs in settings.image_dir by default).
            identifiers: Identifier generator.
            source: Work source (settings.api_endpoint by default).
            sleep: Sleep function used while draining.
            monotonic: Clock used while draining.

        Raises:
            FatalStartupError: If no entropy source is available.
        """
        self.settings = settings or get_settings()
        self.identifiers = identifiers or IdentifierGenerator()
        self.renderer = renderer or LabelRenderer(self.settings.image_dir)
        self.transport = transport or get_transport(
            self.settings.printer_name, self.settings.label_media
        )
        self.printer = BatchPrinter(
            self.renderer,
            self.transport,
            self.identifiers,
            keep_images=self.settings.keep_images,
        )
        self.source = source or WorkSource(
            self.settings.api_endpoint, timeout=self.settings.request_timeout
        )
        self.loop = PollLoop(
            self.source,
            self.printer.print_batch,
            poll_interval=self.settings.poll_interval,
            retry_delay=self.settings.retry_delay,
            max_retries=self.settings.max_retries,
        )

        self._sleep = sleep
        self._monotonic = monotonic
        self._shutdown_requested = threading.Event()

    def preflight(self) -> PrinterStatus:
        """Check the printer before starting.

        Returns:
            PrinterStatus: Printer readiness.
        """
        logger.info("Checking printer connection...")
        try:
            status = self.transport.check_status()
        except Exception as e:
            status = PrinterStatus(False, f"Printer check failed: {e}")

        if status.ready:
            logger.info(f"Printer check successful: {status.message}")
        else:
            logger.warning(f"Printer check failed: {status.message}")
            logger.warning("Service will start anyway and retry on first print request")
        return status

    def request_shutdown(self, signum=None, frame=None) -> None:
        """Ask the service to stop (signal handler)."""
        name = signal.Signals(signum).name if signum else "shutdown request"
        logger.info(f"Received {name}, shutting down gracefully...")
        self._shutdown_requested.set()

    def install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to request_shutdown()."""
        signal.signal(signal.SIGINT, self.request_shutdown)
        signal.signal(signal.SIGTERM, self.request_shutdown)

    def install_exception_hooks(self) -> None:
        """Log anything that escapes a thread instead of printing a bare traceback."""

        def _log_uncaught(exc_type, exc_value, exc_tb):
            logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_tb))

        def _log_thread_exception(args):
            if args.exc_type is SystemExit:
                return
            name = args.thread.name if args.thread else "unknown"
            logger.critical(
                f"Uncaught exception in thread {name}",
                exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
            )

        sys.excepthook = _log_uncaught
        threading.excepthook = _log_thread_exception

    def drain(self, timeout: float) -> bool:
        """Wait for a running batch to finish.

        A poll still in flight counts as running: the server has already
        reset its counter, so the labels it returns must be printed now.

        Args:
            timeout: Maximum seconds to wait.

        Returns:
            bool: True if no poll or batch is running any more.
        """
        if not self.loop.status().is_busy:
            return True

        logger.info("Waiting for current print job to complete...")
        deadline = self._monotonic() + timeout
        state = self.loop.status()
        while state.is_busy:
            if self._monotonic() >= deadline:
                what = "Print job" if state.is_printing else "Poll"
                logger.warning(f"{what} still running after {timeout:g}s, exiting anyway")
                return False
            self._sleep(DRAIN_CHECK_INTERVAL)
            state = self.loop.status()
        return True

    def shutdown(self) -> bool:
        """Stop polling and drain the current batch.

        Returns:
            bool: True if the service stopped without an unfinished batch.
        """
        self.loop.stop()
        drained = self.drain(self.settings.shutdown_timeout)
        logger.info("Shutdown complete")
        return drained

    def run(self) -> None:
        """Run the service until SIGINT/SIGTERM."""
        logger.info("========================================")
        logger.info("GBPrint label printer service")
        logger.info("========================================")
        logger.info(f"Environment: {self.settings.environment}")
        logger.info(f"API Endpoint: {self.settings.api_endpoint}")
        logger.info(f"Printer: {self.settings.printer_name or 'default'}")

        self.install_signal_handlers()
        self.install_exception_hooks()
        self.preflight()

        self.loop.start()
        logger.info("Service started successfully")

        while not self._shutdown_requested.wait(timeout=1.0):
            pass

        self.shutdown()


def get_service(settings: Settings | None = None) -> LabelPrinterService:
    """Factory function for LabelPrinterService.

    Args:
        settings: Optional configuration.

    Returns:
        LabelPrinterService: Service instance.
    """
    return LabelPrinterService(settings)
