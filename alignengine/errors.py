# alignengine/errors.py
from typing import List, Optional


class AlignEngineError(Exception):
    """Base class for engine errors surfaced to callers."""


class ConfigurationRejected(AlignEngineError):
    """A reconfigure request would break hard bounds; nothing was applied."""

    def __init__(self, errors: List[str], partial: Optional[dict] = None):
        self.errors = list(errors)
        self.partial = dict(partial or {})
        super().__init__("; ".join(self.errors) or "configuration rejected")


class ConcurrencyConflict(AlignEngineError):
    """Reconfiguration could not get exclusive access in time."""


# Name used at the reconfigure boundary
ValidationError = ConfigurationRejected
