"""Engine input errors.

Raised by upfront validation only.  Once a run has started, per-bar
processing never raises — no position, no zone, no milestone are all
normal states.
"""


class EngineInputError(ValueError):
    """Base class for inputs an engine run refuses to process."""


class EmptyInput(EngineInputError):
    """The bar sequence is empty."""

    def __init__(self, message: str = "bar sequence is empty") -> None:
        super().__init__(message)


class InvalidConfig(EngineInputError):
    """A configuration value is unknown, non-finite or out of range."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"invalid config '{field}': {reason}")


class MalformedBar(EngineInputError):
    """A bar's prices are non-finite or inconsistent.

    Args:
        index: Position of the offending bar in the input sequence.
        reason: Human-readable description of the defect.
    """

    def __init__(self, index: int, reason: str) -> None:
        self.index = index
        self.reason = reason
        super().__init__(f"malformed bar at index {index}: {reason}")
