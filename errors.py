# errors.py
# Typed failures raised by the engine. Validation problems are not raised:
# they travel back to the caller as data (see cardiorenal_engine.InputValidationFailure).

from typing import Optional, Sequence


class EngineError(Exception):
    """Base class for every failure the engine raises."""


class NoApplicableModel(EngineError):
    """No cardiac model's preconditions hold for this patient. Terminal for the call."""

    def __init__(self, preference: str, age: Optional[int], tried: Sequence[str]):
        self.preference = preference
        self.age = age
        self.tried = tuple(tried)
        super().__init__(
            f"No applicable cardiac model (preference={preference}, age={age}; "
            f"tried {', '.join(self.tried) or 'nothing'})"
        )


class MissingDerivedInput(EngineError):
    """A value a model needs was neither supplied nor derivable."""

    def __init__(self, field: str, needed_by: str = ""):
        self.field = field
        self.needed_by = needed_by
        msg = f"Missing input '{field}'"
        if needed_by:
            msg += f" (needed by {needed_by})"
        super().__init__(msg)
