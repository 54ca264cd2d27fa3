# alignengine/graph.py
from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)


# --- Data models ---
@dataclass(frozen=True)
class CandidateEdge:
    """Scorer output before jump scaling and deduplication."""
    target: str
    strength: float
    jump_distance: int = 1


@dataclass(frozen=True)
class ConnectionEdge:
    source: str
    target: str
    strength: float        # in [0, 1]
    jump_distance: int     # >= 1
    timestamp: float = field(default_factory=time.time, compare=False)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.source, self.target)

    def to_dict(self) -> Dict[str, object]:
        return {
            "source": self.source,
            "target": self.target,
            "strength": round(self.strength, 4),
            "jump_distance": self.jump_distance,
        }


CandidateLike = Union[CandidateEdge, Tuple[str, float, int]]


class Scorer(Protocol):
    """Produces candidate edges for one concept given every concept in the call."""

    def score(self, concept: str, context: Sequence[str]) -> Iterable[CandidateLike]:
        """Return zero or more candidate edges leaving ``concept``."""


# --- Utility functions ---
@lru_cache(maxsize=4096)
def hash_embed(text: str, dim: int = 256, seed: int = 13) -> np.ndarray:
    """Deterministic character-trigram embedding, unit normalised."""
    vec = np.zeros(dim, dtype=np.float32)
    padded = f"#{text.lower()}#"
    grams = [padded[i:i + 3] for i in range(max(len(padded) - 2, 1))]
    for gram in grams:
        h = hashlib.blake2b((str(seed) + gram).encode("utf-8", "surrogatepass"), digest_size=8).digest()
        idx = int.from_bytes(h, "little") % dim
        sign = 1 if (int.from_bytes(hashlib.blake2b((gram + "sign").encode("utf-8", "surrogatepass"), digest_size=1).digest(), "little") % 2 == 0) else -1
        vec[idx] += sign
    n = np.linalg.norm(vec) + 1e-8
    vec = vec / n
    vec.setflags(write=False)
    return vec


def cosine(a: np.ndarray, b: np.ndarray) -> float:
    an = np.linalg.norm(a) + 1e-8
    bn = np.linalg.norm(b) + 1e-8
    return float(np.dot(a, b) / (an * bn))


# --- Scorers ---
class HashScorer:
    """
    Deterministic heuristic scorer.

    Links a concept to the concepts that follow it within ``window`` positions.
    Jump distance is the positional gap; strength blends trigram similarity
    with proximity, so nearby related words score highest.
    """

    def __init__(self, window: int = 4, dim: int = 256, seed: int = 13,
                 similarity_weight: float = 0.6):
        self.window = window
        self.dim = dim
        self.seed = seed
        self.similarity_weight = similarity_weight

    def score(self, concept: str, context: Sequence[str]) -> List[CandidateEdge]:
        try:
            pos = context.index(concept)
        except ValueError:
            return []
        base = hash_embed(concept, self.dim, self.seed)
        out = []
        for jump, target in enumerate(context[pos + 1:pos + 1 + self.window], start=1):
            sim = max(0.0, cosine(base, hash_embed(target, self.dim, self.seed)))
            strength = self.similarity_weight * sim + (1.0 - self.similarity_weight) / jump
            out.append(CandidateEdge(target=target, strength=strength, jump_distance=jump))
        return out


class TableScorer:
    """Fixed lookup table of edges; unknown concepts produce no edges."""

    def __init__(self, table: Mapping[str, Iterable[CandidateLike]]):
        self.table = {k: [_as_candidate(c) for c in v] for k, v in table.items()}

    def score(self, concept: str, context: Sequence[str]) -> List[CandidateEdge]:
        return list(self.table.get(concept, []))


def _as_candidate(c: CandidateLike) -> CandidateEdge:
    if isinstance(c, CandidateEdge):
        return c
    target, strength, *rest = c
    return CandidateEdge(target=target, strength=float(strength), jump_distance=int(rest[0]) if rest else 1)


# --- Builder ---
class ConnectionGraphBuilder:
    """
    Builds the call-local edge set from concepts using an injected scorer.

    Edges beyond the jump ceiling are weakened by ``max_jump / jump`` and
    kept; dropping is the heat shield's job. Duplicated (source, target)
    pairs keep the strongest edge. Output order is not meaningful.
    """

    def __init__(self, scorer: Optional[Scorer] = None, max_jump_distance: int = 3):
        self.scorer = scorer or HashScorer()
        self.max_jump_distance = max_jump_distance

    def build(self, concepts: Iterable[str], max_jump_distance: Optional[int] = None,
              timestamp: Optional[float] = None) -> List[ConnectionEdge]:
        ceiling = max(1, max_jump_distance or self.max_jump_distance)
        ts = time.time() if timestamp is None else timestamp
        context = list(concepts)
        best: Dict[Tuple[str, str], ConnectionEdge] = {}

        for concept in context:
            for raw in self.scorer.score(concept, context) or ():
                cand = _as_candidate(raw)
                if cand.target == concept:
                    continue
                jump = max(1, int(cand.jump_distance))
                strength = float(cand.strength)
                if jump > ceiling:
                    strength *= ceiling / jump
                strength = max(0.0, min(strength, 1.0))

                edge = ConnectionEdge(concept, cand.target, strength, jump, ts)
                current = best.get(edge.key)
                if current is None or edge.strength > current.strength:
                    best[edge.key] = edge

        logger.debug(f"[Graph] {len(context)} concepts -> {len(best)} edges (max_jump={ceiling})")
        return list(best.values())
