"""Poll loop: asks the server for work and dispatches print batches.

Polling and printing share one control flow. A poll never starts while a
batch is printing, and the next poll is only scheduled once the previous
poll (and any batch it triggered) has finished. After a failed poll the
delay grows exponentially, capped at 32x the retry delay; the first
successful poll restores the normal interval.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

from gbprint.exceptions import BatchError, PollError
from gbprint.remote import WorkCount

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 15000
DEFAULT_RETRY_DELAY = 5000
DEFAULT_MAX_RETRIES = 5

# Backoff multiplier is capped at 2**5 = 32
MAX_BACKOFF_EXPONENT = 5


class LoopPhase(str, Enum):
    """What the poll loop is doing right now."""

    STOPPED = "stopped"
    IDLE = "idle"
    POLLING = "polling"
    DISPATCHING = "dispatching"


class TickOutcome(str, Enum):
    """Result of a single poll tick."""

    SKIPPED = "skipped"
    EMPTY = "empty"
    PRINTED = "printed"
    PRINT_FAILED = "print_failed"
    POLL_FAILED = "poll_failed"


@dataclass
class PollState:
    """Mutable state of the poll loop.

    Attributes:
        is_running: Loop has been started and not stopped.
        is_printing: A batch is being printed.
        consecutive_failures: Failed polls since the last successful one.
        last_poll: When the last poll request was started.
        phase: Current phase of the loop.
    """

    is_running: bool = False
    is_printing: bool = False
    consecutive_failures: int = 0
    last_poll: datetime | None = None
    phase: LoopPhase = LoopPhase.STOPPED

    @property
    def is_busy(self) -> bool:
        """A poll or the batch it triggered has not finished yet."""
        return self.is_printing or self.phase in (LoopPhase.POLLING, LoopPhase.DISPATCHING)


def compute_delay(consecutive_failures: int, poll_interval: int, retry_delay: int) -> int:
    """Delay before the next poll.

    Args:
        consecutive_failures: Failed polls in a row.
        poll_interval: Normal interval in milliseconds.
        retry_delay: Base backoff delay in milliseconds.

    Returns:
        int: Delay in milliseconds.
    """
    if consecutive_failures <= 0:
        return poll_interval
    return retry_delay * 2 ** min(consecutive_failures - 1, MAX_BACKOFF_EXPONENT)


class WorkFetcher(Protocol):
    """Anything with a fetch() returning a WorkCount (see WorkSource)."""

    def fetch(self) -> WorkCount: ...


class PollLoop:
    """Polls for pending labels and hands positive counts to a dispatcher.

    The loop owns its PollState. status() may be called from other threads
    and returns a copy; every read-modify-write of the state holds one lock.
    """

    def __init__(
        self,
        source: WorkFetcher,
        dispatch: Callable[[int], object],
        poll_interval: int = DEFAULT_POLL_INTERVAL,
        retry_delay: int = DEFAULT_RETRY_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
        sleep: Callable[[float], object] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the poll loop.

        Args:
            source: Work source to poll.
            dispatch: Called with the label count; prints the batch.
            poll_interval: Milliseconds between healthy polls.
            retry_delay: Base backoff delay in milliseconds.
            max_retries: Failures in a row before a warning is logged.
            sleep: Waits the given number of seconds (default: an interruptible
                wait that stop() cuts short).
            clock: Returns the current time.
        """
        self.source = source
        self.dispatch = dispatch
        self.poll_interval = poll_interval
        self.retry_delay = retry_delay
        self.max_retries = max_retries
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._state = PollState()
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def status(self) -> PollState:
        """Get a snapshot of the loop state.

        Returns:
            PollState: Copy of the current state.
        """
        with self._lock:
            return replace(self._state)

    def next_delay(self) -> int:
        """Milliseconds to wait before the next poll."""
        with self._lock:
            failures = self._state.consecutive_failures
        return compute_delay(failures, self.poll_interval, self.retry_delay)

    def _rest_phase(self) -> LoopPhase:
        # Caller holds the lock
        return LoopPhase.IDLE if self._state.is_running else LoopPhase.STOPPED

    def tick(self) -> TickOutcome:
        """Run one poll: fetch the count and print it if positive.

        Never raises. Poll failures raise the failure count, print failures
        are logged only.

        Returns:
            TickOutcome: What happened.
        """
        with self._lock:
            if self._state.is_printing:
                logger.info("Skipping poll - currently printing")
                return TickOutcome.SKIPPED
            if self._state.phase is LoopPhase.POLLING:
                logger.info("Skipping poll - previous poll still in flight")
                return TickOutcome.SKIPPED
            self._state.phase = LoopPhase.POLLING
            self._state.last_poll = self._clock()
            poll_time = self._state.last_poll

        logger.debug(f"Polling at {poll_time.isoformat()}")

        try:
            work = self.source.fetch()
        except PollError as e:
            self._record_failure(e)
            return TickOutcome.POLL_FAILED
        except Exception as e:
            logger.exception(f"Unexpected error while polling: {e}")
            self._record_failure(PollError(str(e), reason="unexpected"))
            return TickOutcome.POLL_FAILED

        with self._lock:
            # A successful poll proves connectivity, so reset before printing
            if self._state.consecutive_failures > 0:
                logger.info("Connection restored")
                self._state.consecutive_failures = 0

            if work.count == 0:
                self._state.phase = self._rest_phase()
                logger.debug("No labels to print")
                return TickOutcome.EMPTY

            self._state.is_printing = True
            self._state.phase = LoopPhase.DISPATCHING

        logger.info(f"Print request received: {work.count} labels")
        return self._dispatch(work.count)

    def _dispatch(self, count: int) -> TickOutcome:
        try:
            self.dispatch(count)
            logger.info("Print job completed successfully")
            return TickOutcome.PRINTED
        except BatchError as e:
            # Print errors never count as poll failures
            logger.error(f"Print job failed: {e}")
            return TickOutcome.PRINT_FAILED
        except Exception as e:
            logger.exception(f"Print job failed: {e}")
            return TickOutcome.PRINT_FAILED
        finally:
            with self._lock:
                self._state.is_printing = False
                self._state.phase = self._rest_phase()

    def _record_failure(self, error: PollError) -> None:
        with self._lock:
            self._state.consecutive_failures += 1
            self._state.phase = self._rest_phase()
            failures = self._state.consecutive_failures

        if error.reason == "timeout":
            logger.error("Request timeout")
        elif error.reason == "network":
            logger.error(f"Network unavailable: {error}")
        else:
            logger.error(f"Poll error: {error}")

        if failures >= self.max_retries:
            logger.warning(
                f"Max retries ({self.max_retries}) exceeded. "
                "Will continue retrying with exponential backoff."
            )

    def _begin(self) -> bool:
        thread = self._thread
        if thread is not None and thread.is_alive():
            if not self._stop_event.is_set():
                logger.info("Poll loop already running")
                return False
            if thread is threading.current_thread():
                logger.warning("Cannot restart the poll loop from its own thread")
                return False
            # stop() was called but the old thread is still finishing its tick
            logger.info("Waiting for the previous poll loop to stop...")
            thread.join()
        with self._lock:
            if self._state.is_running:
                logger.info("Poll loop already running")
                return False
            self._stop_event.clear()
            self._state.is_running = True
            self._state.phase = LoopPhase.IDLE
        return True

    def _wait(self, seconds: float) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
        else:
            self._stop_event.wait(seconds)

    def _loop(self) -> None:
        logger.info(
            f"Starting poll loop (interval {self.poll_interval}ms, "
            f"retry delay {self.retry_delay}ms, max retries {self.max_retries})"
        )
        try:
            while not self._stop_event.is_set():
                try:
                    self.tick()
                except Exception as e:
                    logger.exception(f"Error in poll loop: {e}")

                if self._stop_event.is_set():
                    break

                delay = self.next_delay()
                failures = self.status().consecutive_failures
                if failures > 0:
                    logger.info(f"Error backoff: {delay}ms ({failures} errors)")
                self._wait(delay / 1000)
        finally:
            with self._lock:
                self._state.is_running = False
                self._state.phase = LoopPhase.STOPPED
            logger.info("Poll loop stopped")

    def run(self) -> None:
        """Run the loop in the calling thread until stop() is called.

        The first poll happens immediately.
        """
        if self._begin():
            self._loop()

    def start(self) -> None:
        """Run the loop on a background thread.

        If stop() was called while a tick was still running, waits for that
        thread to finish before starting a new one.
        """
        if not self._begin():
            return
        self._thread = threading.Thread(target=self._loop, daemon=True, name="gbprint-poll")
        self._thread.start()

    def stop(self) -> None:
        """Stop polling.

        Cancels the pending wait. A batch already printing runs to completion.
        """
        logger.info("Stopping poll loop...")
        self._stop_event.set()
        with self._lock:
            self._state.is_running = False
            if self._state.phase is LoopPhase.IDLE:
                self._state.phase = LoopPhase.STOPPED

    def join(self, timeout: float | None = None) -> None:
        """Wait for the background thread to exit.

        Args:
            timeout: Seconds to wait (None = forever).
        """
        if self._thread is not None:
            self._thread.join(timeout)
