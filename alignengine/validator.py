# alignengine/validator.py
"""
Invariant validation for the primary / margin / secondary relationship.

The validator never raises. Drift beyond tolerance is repaired by recomputing
``secondary = primary + margin`` and pulling the dependent processing level
down to ``min(primary, processing_level)``. The margin rate is clamped into
its allowed band on every pass.
"""

import logging
from dataclasses import dataclass, replace
from typing import List

from .config import Configuration

logger = logging.getLogger(__name__)

# Allowed band for the heat shield rate multiplier
RATE_MIN = 0.01
RATE_MAX = 0.1


@dataclass(frozen=True)
class ValidationOutcome:
    config: Configuration
    drift: float
    repaired: bool
    adjustments: tuple = ()


class InvariantValidator:
    """Checks and repairs ``primary + margin ~= secondary``."""

    def holds(self, config: Configuration) -> bool:
        if not config.enforce_invariant:
            return True
        return config.drift <= config.effective_tolerance

    def validate(self, config: Configuration) -> ValidationOutcome:
        drift = config.drift
        updates = {}
        adjustments: List[str] = []

        if config.enforce_invariant and drift > config.effective_tolerance:
            secondary = config.primary + config.margin
            level = min(config.primary, config.processing_level)
            logger.warning(
                f"[Invariant] drift {drift:.6f} exceeds tolerance {config.effective_tolerance:g}; "
                f"secondary {config.secondary:.5f} -> {secondary:.5f}"
            )
            updates["secondary"] = secondary
            updates["processing_level"] = level
            adjustments.append("secondary")
            if level != config.processing_level:
                adjustments.append("processing_level")

        rate = max(RATE_MIN, min(config.margin_rate, RATE_MAX))
        if rate != config.margin_rate:
            logger.warning(f"[Invariant] margin_rate {config.margin_rate} clamped to {rate}")
            updates["margin_rate"] = rate
            adjustments.append("margin_rate")

        if not updates:
            return ValidationOutcome(config=config, drift=drift, repaired=False)

        repaired = "secondary" in updates
        return ValidationOutcome(
            config=replace(config, **updates),
            drift=drift,
            repaired=repaired,
            adjustments=tuple(adjustments),
        )

    def bound_errors(self, config: Configuration) -> List[str]:
        """Hard-bound violations that make a configuration unusable."""
        errors = []
        if config.primary <= 0:
            errors.append(f"primary must be positive (got {config.primary})")
        if config.min_margin < 0:
            errors.append(f"min_margin must be non-negative (got {config.min_margin})")
        if config.margin < config.min_margin:
            errors.append(f"margin {config.margin} is below min_margin {config.min_margin}")
        if config.margin > config.margin_ceiling:
            errors.append(
                f"margin {config.margin} exceeds primary + max_margin_increase ({config.margin_ceiling})"
            )
        if config.tolerance <= 0:
            errors.append("tolerance must be positive")
        if config.max_jump_distance < 1:
            errors.append("max_jump_distance must be >= 1")
        for name, profile in config.branches.items():
            if profile.max_jump_distance is not None and profile.max_jump_distance < 1:
                errors.append(f"branch '{name}' max_jump_distance must be >= 1")
            if profile.margin_override is not None and profile.margin_override < config.min_margin:
                errors.append(f"branch '{name}' margin_override is below min_margin")
        if config.default_branch not in config.branches:
            errors.append(f"default_branch '{config.default_branch}' is not a configured branch")
        if config.min_concept_length < 1:
            errors.append("min_concept_length must be >= 1")
        if config.max_concepts < 1:
            errors.append("max_concepts must be >= 1")
        if config.summary_concepts < 0:
            errors.append("summary_concepts must be >= 0")
        for rate_name in ("growth_rate", "max_increase", "contraction_rate"):
            if getattr(config, rate_name) < 0:
                errors.append(f"{rate_name} must be non-negative")
        if not 0 <= config.max_contraction_per_step < 1:
            errors.append("max_contraction_per_step must be in [0, 1)")
        if not self.holds(config):
            errors.append(f"invariant unrecoverable: drift {config.drift:.6f}")
        return errors
