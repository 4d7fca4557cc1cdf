"""Exception types raised by receipt2sheet components."""

from __future__ import annotations


class Receipt2SheetError(Exception):
    """Base class for every failure surfaced to the user."""


class ConfigurationError(Receipt2SheetError):
    """A URL or API key is missing, misplaced or malformed."""


class CaptureError(Receipt2SheetError):
    """The camera could not be opened or did not deliver a frame."""


class ExtractionError(Receipt2SheetError):
    """The model request failed or its reply was empty or non-conforming."""


class ExportError(Receipt2SheetError):
    """The webhook POST failed at the transport level or was refused."""


class InvalidTransition(RuntimeError):
    """A controller operation was called from a state that does not allow it."""

    def __init__(self, operation: str, state: object) -> None:
        super().__init__(f"{operation}() is not allowed in state {state}")
        self.operation = operation
        self.state = state
