"""Exceptions raised by GBPrint."""


class GBPrintError(Exception):
    """Base class for all GBPrint errors."""

    pass


class FatalStartupError(GBPrintError):
    """The agent cannot run at all (e.g. no entropy source, bad settings)."""

    pass


class PollError(GBPrintError):
    """The remote work source could not be read.

    Attributes:
        reason: Failure category used for logging only
            ('timeout', 'network', 'http', 'malformed').
    """

    def __init__(self, message: str, reason: str = "malformed"):
        super().__init__(message)
        self.reason = reason


class RenderError(GBPrintError):
    """A label image could not be produced."""

    pass


class TransportError(GBPrintError):
    """A rendered label could not be sent to the printer."""

    pass


class BatchError(GBPrintError):
    """Base class for batch printing failures."""

    pass


class ValidationError(BatchError):
    """Requested batch size is out of range."""

    def __init__(self, count, minimum: int, maximum: int):
        super().__init__(f"Count must be between {minimum} and {maximum}, got {count!r}")
        self.count = count


class BusyError(BatchError):
    """A batch was requested while another one is still printing."""

    def __init__(self):
        super().__init__("Already printing")


class LabelPrintError(BatchError):
    """One label of a batch failed; the rest of the batch was not attempted.

    Attributes:
        index: 1-based index of the failed label.
        total: Size of the batch.
    """

    def __init__(self, index: int, total: int, cause: Exception):
        if isinstance(cause, TransportError):
            kind = "Printer"
        elif isinstance(cause, RenderError):
            kind = "Render"
        else:
            kind = "Print"
        super().__init__(f"{kind} error on label {index}/{total}: {cause}")
        self.index = index
        self.total = total
