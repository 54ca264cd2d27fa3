# alignengine/history.py
import threading
from collections import deque
from typing import Deque, List, Optional, Protocol, Tuple

from .result import CognitiveState, ProcessingResult


class ResultSink(Protocol):
    """Collaborator that observes results. Must not mutate engine state."""

    def record(self, result: ProcessingResult, state: CognitiveState) -> None:
        """Receive a finished result and the state snapshot taken after it."""


class ResultHistory:
    """Bounded, thread-safe in-memory record of recent results."""

    def __init__(self, maxlen: int = 256):
        self._lock = threading.RLock()  # Thread safety
        self._items: Deque[Tuple[ProcessingResult, CognitiveState]] = deque(maxlen=maxlen)

    def record(self, result: ProcessingResult, state: CognitiveState) -> None:
        with self._lock:
            self._items.append((result, state))

    def results(self) -> List[ProcessingResult]:
        with self._lock:
            return [r for r, _ in self._items]

    def last(self) -> Optional[Tuple[ProcessingResult, CognitiveState]]:
        with self._lock:
            return self._items[-1] if self._items else None

    def success_rate(self) -> float:
        with self._lock:
            if not self._items:
                return 0.0
            return sum(1 for r, _ in self._items if r.success) / len(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
