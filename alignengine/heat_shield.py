# alignengine/heat_shield.py
"""
Heat Shield: a power-law admission filter over connection edges.

The shield observes a call-local edge set and computes:
- Complexity: bounded [0, 1] heuristic over edge count and strength variance
- Exponent:   min(2.0 + 0.5 * complexity, 3.0)
- Capacity:   secondary ** exponent * margin_rate
- Threshold:  1 - capacity

An edge is retained iff its confidence is strictly above the threshold.
It does NOT mutate edges.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Any, Optional, Sequence

import numpy as np

from .graph import ConnectionEdge

logger = logging.getLogger(__name__)

BASE_EXPONENT = 2.0
EXPONENT_SLOPE = 0.5
MAX_EXPONENT = 3.0

ComplexityFn = Callable[[Sequence[ConnectionEdge]], float]
ConfidenceFn = Callable[[ConnectionEdge], float]


# ---------- COMPLEXITY HEURISTICS ----------

def edge_complexity(edges: Sequence[ConnectionEdge], saturation: float = 16.0) -> float:
    """
    Blend of an edge-count saturation term and the normalised strength variance.
    Strengths live in [0, 1] so their variance is at most 0.25.
    """
    if not edges:
        return 0.0
    strengths = np.array([e.strength for e in edges], dtype=float)
    count_term = 1.0 - float(np.exp(-len(edges) / saturation))
    spread_term = min(float(np.var(strengths)) / 0.25, 1.0)
    return float(np.clip(0.5 * count_term + 0.5 * spread_term, 0.0, 1.0))


def constant_complexity(value: float = 0.5) -> ComplexityFn:
    """Fixed complexity for any non-empty edge set."""
    def _complexity(edges: Sequence[ConnectionEdge]) -> float:
        return value if edges else 0.0
    return _complexity


def strength_confidence(edge: ConnectionEdge) -> float:
    return edge.strength


# ---------- FORMULAS ----------

def shield_exponent(complexity: float) -> float:
    complexity = min(max(complexity, 0.0), 1.0)
    return min(BASE_EXPONENT + EXPONENT_SLOPE * complexity, MAX_EXPONENT)


def shield_capacity(secondary: float, exponent: float, margin_rate: float) -> float:
    return float(secondary ** exponent) * margin_rate


def filter_by_capacity(edges: Sequence[ConnectionEdge], capacity: float,
                       confidence: ConfidenceFn = strength_confidence) -> List[ConnectionEdge]:
    threshold = 1.0 - capacity
    return [e for e in edges if confidence(e) > threshold]


@dataclass
class ShieldReport:
    retained: List[ConnectionEdge]
    rejected_count: int
    complexity: float
    exponent: float
    capacity: float

    @property
    def threshold(self) -> float:
        return 1.0 - self.capacity

    @property
    def considered(self) -> int:
        return len(self.retained) + self.rejected_count

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "retained": len(self.retained),
            "rejected": self.rejected_count,
            "complexity": round(self.complexity, 4),
            "exponent": round(self.exponent, 4),
            "capacity": round(self.capacity, 4),
            "threshold": round(self.threshold, 4),
        }


class CapacityFilter:
    """
    Prunes low-confidence edges.
    Complexity and confidence scoring are pluggable.
    """

    def __init__(
        self,
        complexity: Optional[ComplexityFn] = None,
        confidence: Optional[ConfidenceFn] = None,
    ):
        self.complexity = complexity or edge_complexity
        self.confidence = confidence or strength_confidence

    # ---------- PUBLIC API ----------

    def apply(self, edges: Sequence[ConnectionEdge], secondary: float, margin_rate: float,
              exponent: Optional[float] = None) -> ShieldReport:
        """
        Filter ``edges``. Passing ``exponent`` bypasses the complexity
        heuristic, which is how callers probe the shield at fixed exponents.
        """
        complexity = self.complexity(edges) if exponent is None else float("nan")
        if exponent is None:
            exponent = shield_exponent(complexity)
        capacity = shield_capacity(secondary, exponent, margin_rate)
        retained = filter_by_capacity(edges, capacity, self.confidence)

        report = ShieldReport(
            retained=retained,
            rejected_count=len(edges) - len(retained),
            complexity=complexity,
            exponent=exponent,
            capacity=capacity,
        )
        logger.debug(
            f"[HeatShield] capacity {capacity:.4f} with secondary^{exponent:.3f}; "
            f"retained {len(retained)}/{len(edges)}"
        )
        return report
