# alignengine/result.py
import json
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from .config import Configuration


class Lifecycle(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    PROCESSING = "processing"
    RECONFIGURING = "reconfiguring"


@dataclass(frozen=True)
class Alignment:
    formula_holds: bool
    primary: float
    margin: float
    secondary: float
    tolerance: float
    margin_rate: float

    @classmethod
    def from_config(cls, config: Configuration) -> "Alignment":
        tolerance = config.effective_tolerance
        return cls(
            formula_holds=config.drift <= tolerance,
            primary=config.primary,
            margin=config.margin,
            secondary=config.secondary,
            tolerance=tolerance,
            margin_rate=config.margin_rate,
        )

    @property
    def formula(self) -> str:
        return f"{self.primary:g} + {self.margin:g} = {self.secondary:g}"


@dataclass(frozen=True)
class CognitiveState:
    """Read-only snapshot of the engine's running counters."""
    stability_count: int = 0
    violation_count: int = 0
    last_sync_time: float = 0.0
    active_branch: Optional[str] = None
    lifecycle: Lifecycle = Lifecycle.UNINITIALIZED
    in_flight: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["lifecycle"] = self.lifecycle.value
        return data


@dataclass
class ProcessingResult:
    """
    Structured outcome of one ``process()`` call.
    Produced for every call, including failures (``success=False``).
    """
    answer: str
    supporting_details: str
    concepts: List[str]
    edges_retained: int
    alignment: Alignment
    branch: str
    success: bool
    timestamp: float = field(default_factory=time.time)
    edges_considered: int = 0
    context: Optional[Dict[str, Any]] = None
    shield: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def to_prompt_block(self) -> str:
        """Dense plain-text rendering for downstream consumers."""
        status = "OK" if self.success else "FALLBACK"
        lines = [
            f"### RESULT [{status}] branch={self.branch} ###",
            self.answer,
            "",
            self.supporting_details,
            "",
            f"Alignment: {self.alignment.formula} "
            f"({'holds' if self.alignment.formula_holds else 'DRIFT'})",
        ]
        return "\n".join(lines)
