# alignengine/margin.py
import logging
from dataclasses import replace

from .config import Configuration

logger = logging.getLogger(__name__)


class MarginController:
    """
    Additive-increase / multiplicative-decrease control of the margin.

    Growth is applied when a violation is recorded, contraction once per
    successful violation-free call. Every result is clamped to
    ``[min_margin, primary + max_margin_increase]`` and carries a secondary
    recomputed from the new margin, so the invariant keeps holding.
    """

    def clamp(self, config: Configuration, margin: float) -> float:
        return max(config.min_margin, min(margin, config.margin_ceiling))

    def grow(self, config: Configuration, violation_count: int) -> Configuration:
        step = min(config.growth_rate * max(violation_count, 0), config.max_increase)
        margin = self.clamp(config, config.margin + step)
        logger.debug(f"[Margin] grow {config.margin:.5f} -> {margin:.5f} (violations={violation_count})")
        return self._with_margin(config, margin)

    def contract(self, config: Configuration, stability_count: int) -> Configuration:
        factor = min(config.contraction_rate * max(stability_count, 0), config.max_contraction_per_step)
        margin = self.clamp(config, config.margin * (1.0 - factor))
        logger.debug(f"[Margin] contract {config.margin:.5f} -> {margin:.5f} (stability={stability_count})")
        return self._with_margin(config, margin)

    @staticmethod
    def _with_margin(config: Configuration, margin: float) -> Configuration:
        if margin == config.margin and config.drift <= config.effective_tolerance:
            return config
        return replace(
            config,
            margin=margin,
            secondary=config.primary + margin,
            processing_level=min(config.primary, config.processing_level),
        )
