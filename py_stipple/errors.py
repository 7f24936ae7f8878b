"""Error taxonomy for the stippling engine."""


class StippleError(Exception):
    """Base class for all py_stipple errors."""


class ConfigurationError(StippleError, ValueError):
    """Invalid run parameters or a density field that cannot be stippled.

    Raised before any relaxation iteration starts.
    """


class CapabilityError(StippleError, RuntimeError):
    """A requested compute backend is unknown or unavailable."""


class CodecRangeError(StippleError, ValueError):
    """A value cannot be represented by the requested channel layout."""


class RelaxationCancelled(StippleError):
    """The relaxation loop was cancelled at an iteration boundary."""

    def __init__(self, remaining: int):
        super().__init__(f"Relaxation cancelled with {remaining} iterations remaining")
        self.remaining = remaining
