"""Pytest configuration and fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest

from gbprint.batch import BatchPrinter
from gbprint.exceptions import RenderError, TransportError
from gbprint.identifiers import IdentifierGenerator
from gbprint.printing import PrinterStatus
from gbprint.remote import WorkCount


class FakeRenderer:
    """Renderer that writes a placeholder file and records every call."""

    def __init__(self, output_dir: Path, fail_on: int | None = None):
        self.output_dir = output_dir
        self.fail_on = fail_on
        self.calls: list[tuple[str, str]] = []
        self.on_render: Callable[[], None] | None = None

    def render(self, payload: str, human_code: str) -> Path:
        self.calls.append((payload, human_code))
        if self.on_render is not None:
            self.on_render()
        if self.fail_on == len(self.calls):
            raise RenderError("QR code too large")
        path = self.output_dir / f"label-{len(self.calls)}.png"
        path.write_bytes(b"\x89PNG")
        return path


class FakeTransport:
    """Transport that records printed files instead of printing them."""

    def __init__(self, fail_on: int | None = None, ready: bool = True):
        self.fail_on = fail_on
        self.ready = ready
        self.printed: list[Path] = []

    def print_label(self, image_path: Path) -> None:
        self.printed.append(image_path)
        if self.fail_on == len(self.printed):
            raise TransportError("lpr command failed: printer out of tape")

    def check_status(self) -> PrinterStatus:
        if self.ready:
            return PrinterStatus(True, "Printer QL800 is idle")
        return PrinterStatus(False, "Printer QL800 is disabled")


class FakeSource:
    """Work source returning queued results (WorkCount or exceptions)."""

    def __init__(self, *results):
        self.results = list(results)
        self.fetch_count = 0
        self.on_fetch: Callable[[], None] | None = None

    def fetch(self) -> WorkCount:
        self.fetch_count += 1
        if self.on_fetch is not None:
            self.on_fetch()
        result = self.results.pop(0) if self.results else WorkCount(count=0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeSleep:
    """Records requested waits and stops the loop after a number of them."""

    def __init__(self, stop_after: int, on_stop: Callable[[], None] | None = None):
        self.stop_after = stop_after
        self.on_stop = on_stop
        self.waits: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)
        if len(self.waits) >= self.stop_after and self.on_stop is not None:
            self.on_stop()

    @property
    def waits_ms(self) -> list[int]:
        return [round(s * 1000) for s in self.waits]


@pytest.fixture
def renderer(tmp_path):
    """Fake renderer writing into a temporary directory."""
    return FakeRenderer(tmp_path)


@pytest.fixture
def transport():
    """Fake print transport."""
    return FakeTransport()


@pytest.fixture
def identifiers():
    """Real identifier generator."""
    return IdentifierGenerator()


@pytest.fixture
def batch_printer(renderer, transport, identifiers):
    """BatchPrinter wired to fakes."""
    return BatchPrinter(renderer, transport, identifiers)


@pytest.fixture
def make_source():
    """Factory for fake work sources: make_source(WorkCount(count=2), PollError(...))."""
    return FakeSource


@pytest.fixture
def make_sleep():
    """Factory for fake sleeps: make_sleep(stop_after=3)."""
    return FakeSleep
