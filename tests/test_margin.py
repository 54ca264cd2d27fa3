import random

import pytest

from alignengine.config import Configuration
from alignengine.margin import MarginController
from alignengine.validator import InvariantValidator


@pytest.fixture
def controller():
    return MarginController()


class TestRecoveryGrowth:
    def test_single_violation(self, controller, config):
        grown = controller.grow(config, 1)
        assert grown.margin == pytest.approx(0.11)
        assert grown.secondary == pytest.approx(grown.primary + grown.margin)

    def test_step_capped_by_max_increase(self, controller, config):
        grown = controller.grow(config, 10)
        assert grown.margin == pytest.approx(0.15)

    def test_clamped_to_ceiling(self, controller):
        cfg = Configuration(primary=0.2, margin=0.69, secondary=0.89, max_margin_increase=0.5)
        grown = controller.grow(cfg, 5)
        assert grown.margin == pytest.approx(0.7)


class TestContraction:
    def test_contraction_scales_with_stability(self, controller, config):
        assert controller.contract(config, 1).margin == pytest.approx(0.1 * (1 - 0.001))
        assert controller.contract(config, 10).margin == pytest.approx(0.1 * (1 - 0.01))

    def test_step_capped(self, controller, config):
        assert controller.contract(config, 1000).margin == pytest.approx(0.095)

    def test_floor_at_min_margin(self, controller):
        cfg = Configuration(margin=0.05, secondary=2.94)
        assert controller.contract(cfg, 50).margin == pytest.approx(0.05)

    def test_zero_stability_is_noop(self, controller, config):
        assert controller.contract(config, 0) is config


@pytest.mark.parametrize("seed", [1, 7, 42, 1234])
def test_margin_bounds_hold_for_any_event_sequence(controller, seed):
    rng = random.Random(seed)
    cfg = Configuration()
    validator = InvariantValidator()
    stability = violations = 0

    for _ in range(500):
        if rng.random() < 0.3:
            violations += 1
            stability = 0
            cfg = controller.grow(cfg, violations)
        else:
            stability += 1
            cfg = controller.contract(cfg, stability)

        assert cfg.min_margin <= cfg.margin <= cfg.primary + cfg.max_margin_increase
        assert validator.holds(cfg)
