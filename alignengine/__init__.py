"""Public package interface for the adaptive alignment engine."""

from .api import Engine
from .config import BranchProfile, Configuration, ResponseStyle
from .errors import ConcurrencyConflict, ConfigurationRejected, ValidationError
from .result import Alignment, CognitiveState, Lifecycle, ProcessingResult

__all__ = [
    "Engine",
    "Configuration",
    "BranchProfile",
    "ResponseStyle",
    "ProcessingResult",
    "Alignment",
    "CognitiveState",
    "Lifecycle",
    "ConfigurationRejected",
    "ConcurrencyConflict",
    "ValidationError",
]
