# alignengine/api.py
from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .classifier import ContextClassifier, ContextReport
from .composer import BranchSelector, ResponseComposer
from .config import Configuration
from .errors import ConcurrencyConflict, ConfigurationRejected
from .graph import ConnectionGraphBuilder, Scorer
from .heat_shield import CapacityFilter
from .history import ResultSink
from .margin import MarginController
from .result import CognitiveState, Lifecycle, ProcessingResult
from .text_utils import ConceptExtractor
from .validator import InvariantValidator

logger = logging.getLogger(__name__)


class Engine:
    """
    Adaptive text-processing engine:
    - keeps primary + margin ~= secondary, repairing drift
    - adapts the margin from violation / stability history
    - extracts concepts, builds and shields a connection graph
    - classifies context and composes a branch-styled result

    One instance serves concurrent ``process()`` calls. Configuration is
    copy-on-write: readers hold an immutable snapshot, ``reconfigure()``
    swaps a validated candidate once no call is in flight.
    """

    def __init__(
        self,
        config: Optional[Configuration] = None,
        scorer: Optional[Scorer] = None,
        extractor: Optional[ConceptExtractor] = None,
        classifier: Optional[ContextClassifier] = None,
        capacity_filter: Optional[CapacityFilter] = None,
        composer: Optional[ResponseComposer] = None,
        selector: Optional[BranchSelector] = None,
        validator: Optional[InvariantValidator] = None,
        margin_controller: Optional[MarginController] = None,
        sinks: Optional[Iterable[ResultSink]] = None,
        wait_timeout: float = 5.0,
    ):
        self.validator = validator or InvariantValidator()
        self.margin_controller = margin_controller or MarginController()
        self.extractor = extractor or ConceptExtractor()
        self.builder = ConnectionGraphBuilder(scorer)
        self.shield = capacity_filter or CapacityFilter()
        self.classifier = classifier or ContextClassifier()
        self.selector = selector or BranchSelector()
        self.composer = composer or ResponseComposer()
        self.sinks: List[ResultSink] = list(sinks or [])
        self.wait_timeout = wait_timeout

        outcome = self.validator.validate(config or Configuration())
        errors = self.validator.bound_errors(outcome.config)
        if errors:
            raise ConfigurationRejected(errors)
        self._config = outcome.config

        self._cond = threading.Condition(threading.RLock())
        self._lifecycle = Lifecycle.UNINITIALIZED
        self._in_flight = 0
        self._pending_reconfigure = 0
        self._stability_count = 0
        self._violation_count = 0
        self._last_sync_time = 0.0
        self._active_branch: Optional[str] = None

    # --- Initialization ---
    @classmethod
    def init(cls, overrides: Optional[Dict[str, Any]] = None, **kwargs) -> "Engine":
        """Construct from default configuration plus a partial update, then initialize."""
        config = Configuration().merge(overrides or {})
        engine = cls(config=config, **kwargs)
        engine.initialize()
        return engine

    def initialize(self) -> bool:
        with self._cond:
            if self._lifecycle is not Lifecycle.UNINITIALIZED:
                return True
            self._initialize_locked()
            return True

    def _initialize_locked(self) -> None:
        outcome = self.validator.validate(self._config)
        self._config = outcome.config
        self._last_sync_time = time.time()
        self._lifecycle = Lifecycle.READY
        logger.info(
            f"[Engine] ready: {self._config.primary:g} + {self._config.margin:g} = "
            f"{self._config.secondary:g} (tolerance {self._config.effective_tolerance:g})"
        )

    # --- Processing ---
    def process(self, text: Any, branch_override: Optional[str] = None) -> ProcessingResult:
        """Run one pass over ``text``. Never raises; failures return ``success=False``."""
        try:
            config, drifted = self._begin()
        except Exception as e:
            logger.exception("[Engine] could not start processing")
            with self._cond:
                config = self._config
            result = self.composer.fallback(config, branch_override, f"engine unavailable: {e}")
            self._notify(result, self.get_state())
            return result

        result = None
        violation = drifted
        try:
            result = self._run(config, text, branch_override)
        except Exception as e:
            logger.exception("[Engine] processing error")
            violation = True
            try:
                result = self.composer.fallback(config, branch_override, f"internal error: {type(e).__name__}")
            except Exception:
                logger.exception("[Engine] fallback composition failed")
                result = ResponseComposer().fallback(config, None, "internal error")
        finally:
            state = self._finish(result, violation)

        self._notify(result, state)
        return result

    def _begin(self) -> Tuple[Configuration, bool]:
        deadline = time.monotonic() + self.wait_timeout
        with self._cond:
            if self._lifecycle is Lifecycle.UNINITIALIZED:
                self._initialize_locked()
            while self._lifecycle is Lifecycle.RECONFIGURING or self._pending_reconfigure:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ConcurrencyConflict("timed out waiting for reconfiguration to finish")
                self._cond.wait(remaining)

            drifted = False
            if not self.validator.holds(self._config):
                self._config = self.validator.validate(self._config).config
                drifted = True

            self._in_flight += 1
            self._lifecycle = Lifecycle.PROCESSING
            return self._config, drifted

    def _run(self, config: Configuration, text: Any, branch_override: Optional[str]) -> ProcessingResult:
        if not isinstance(text, str) or not text.strip():
            reason = "empty input" if isinstance(text, str) or text is None else "non-text input"
            return self.composer.fallback(config, branch_override, reason)

        concepts = self.extractor.extract(
            text, min_length=config.min_concept_length, limit=config.max_concepts
        ).to_list()
        context = self.classifier.classify(text, default_branch=config.default_branch)
        profile = self.selector.select(config, context.suggested_branch, branch_override)

        if not concepts:
            return self.composer.fallback(
                config, profile.name, f"no concepts of length >= {config.min_concept_length}", context
            )

        edges = self.builder.build(concepts, max_jump_distance=profile.max_jump_distance or config.max_jump_distance)

        effective_margin = config.margin
        if profile.margin_override is not None:
            effective_margin = max(config.min_margin, min(profile.margin_override, config.margin_ceiling))
        report = self.shield.apply(edges, config.primary + effective_margin, config.margin_rate)

        return self.composer.compose(
            concepts, report, profile, config, context=context, effective_margin=effective_margin
        )

    def _finish(self, result: Optional[ProcessingResult], violation: bool) -> CognitiveState:
        with self._cond:
            self._in_flight -= 1
            if violation:
                self._register_violation_locked("processing")
            elif result is not None and result.success:
                self._stability_count += 1
                self._config = self.margin_controller.contract(self._config, self._stability_count)
            if result is not None:
                self._active_branch = result.branch
            self._last_sync_time = time.time()
            if self._in_flight == 0:
                self._lifecycle = Lifecycle.READY
                self._cond.notify_all()
            return self._snapshot_locked()

    def _notify(self, result: ProcessingResult, state: CognitiveState) -> None:
        for sink in self.sinks:
            try:
                sink.record(result, state)
            except Exception as e:
                logger.error(f"[Engine] result sink {type(sink).__name__} failed: {e}")

    # --- Violations ---
    def record_violation(self, reason: str = "external") -> CognitiveState:
        """External violation signal: resets stability and grows the margin."""
        with self._cond:
            self._register_violation_locked(reason)
            return self._snapshot_locked()

    def _register_violation_locked(self, reason: str) -> None:
        self._violation_count += 1
        self._stability_count = 0
        before = self._config.margin
        grown = self.margin_controller.grow(self._config, self._violation_count)
        self._config = self.validator.validate(grown).config
        logger.warning(
            f"[Engine] violation #{self._violation_count} ({reason}); margin {before:.5f} -> {self._config.margin:.5f}"
        )

    def reset_counters(self) -> CognitiveState:
        with self._cond:
            self._stability_count = 0
            self._violation_count = 0
            return self._snapshot_locked()

    # --- Reconfiguration ---
    def reconfigure(self, partial: Dict[str, Any], timeout: Optional[float] = None) -> bool:
        """
        Apply a partial configuration update.

        The candidate is merged, repaired by the validator and bound-checked
        before it replaces the live configuration. On rejection the previous
        configuration stays untouched and ConfigurationRejected is raised.
        Raises ConcurrencyConflict if in-flight calls do not drain in time.
        """
        timeout = self.wait_timeout if timeout is None else timeout
        with self._cond:
            self._pending_reconfigure += 1
            try:
                drained = self._cond.wait_for(
                    lambda: self._in_flight == 0 and self._lifecycle is not Lifecycle.RECONFIGURING,
                    timeout,
                )
            finally:
                self._pending_reconfigure -= 1
            if not drained:
                self._cond.notify_all()
                raise ConcurrencyConflict(f"{self._in_flight} call(s) still in flight after {timeout}s")
            previous_lifecycle = self._lifecycle
            self._lifecycle = Lifecycle.RECONFIGURING
            current = self._config

        try:
            candidate = current.merge(partial)
            outcome = self.validator.validate(candidate)
            errors = self.validator.bound_errors(outcome.config)
            if errors:
                logger.warning(f"[Engine] reconfigure rejected: {errors}")
                raise ConfigurationRejected(errors, partial)
            with self._cond:
                self._config = outcome.config
            changed = current.diff(outcome.config)
            logger.info(f"[Engine] reconfigured {sorted(changed)}")
            return True
        finally:
            with self._cond:
                self._lifecycle = (
                    Lifecycle.UNINITIALIZED if previous_lifecycle is Lifecycle.UNINITIALIZED else Lifecycle.READY
                )
                self._cond.notify_all()

    # --- Read-only views ---
    def get_state(self) -> CognitiveState:
        with self._cond:
            return self._snapshot_locked()

    def get_configuration(self) -> Configuration:
        with self._cond:
            return replace(self._config, branches=dict(self._config.branches))

    @property
    def lifecycle(self) -> Lifecycle:
        with self._cond:
            return self._lifecycle

    def classify(self, text: Any) -> ContextReport:
        with self._cond:
            default_branch = self._config.default_branch
        return self.classifier.classify(text, default_branch=default_branch)

    def add_sink(self, sink: ResultSink) -> None:
        self.sinks.append(sink)

    def _snapshot_locked(self) -> CognitiveState:
        return CognitiveState(
            stability_count=self._stability_count,
            violation_count=self._violation_count,
            last_sync_time=self._last_sync_time,
            active_branch=self._active_branch,
            lifecycle=self._lifecycle,
            in_flight=self._in_flight,
        )
