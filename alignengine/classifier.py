# alignengine/classifier.py
"""Keyword-based context classification."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from .config import BRANCH_FORMAL, BRANCH_PERSONAL, BRANCH_SPECIALIZED

SPECIALIZED_KEYWORDS: Tuple[str, ...] = (
    "neurodiversity", "neurodivergent", "autism", "autistic", "spectrum",
    "adhd", "audhd", "asperger", "sensory processing",
)

FORMAL_KEYWORDS: Tuple[str, ...] = (
    "academic", "scholar", "scholarly", "research", "inquiry", "study", "university",
    "college", "dissertation", "thesis", "paper", "publication", "journal", "conference",
    "psychology", "behavioral", "analysis", "methodology", "hypothesis", "theory",
    "empirical", "peer-review", "institution", "faculty",
)

PERSONAL_KEYWORDS: Tuple[str, ...] = (
    "personal", "sharing", "experience", "feel", "think", "believe", "opinion",
    "story", "family", "friend", "emotional", "feeling", "upset", "happy", "sad",
    " i ", " i'm ", " my ", " me ",
)

# Formal hit count at which a formal context stops counting as casual
FORMAL_ACADEMIC_MIN_HITS = 3

CONTEXT_NEURODIVERSITY = "neurodiversity_scholarly"
CONTEXT_FORMAL = "formal_academic"
CONTEXT_CASUAL_ACADEMIC = "casual_academic"
CONTEXT_PERSONAL = "personal_communication"

VELOCITY = {
    CONTEXT_NEURODIVERSITY: 1.2,
    CONTEXT_FORMAL: 1.5,
    CONTEXT_CASUAL_ACADEMIC: 1.3,
    CONTEXT_PERSONAL: 1.0,
}


@dataclass(frozen=True)
class ContextReport:
    is_formal: bool
    suggested_branch: str
    context_type: str
    confidence: float
    velocity_adjustment: float
    matches: Dict[str, Tuple[str, ...]] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_formal": self.is_formal,
            "suggested_branch": self.suggested_branch,
            "context_type": self.context_type,
            "confidence": round(self.confidence, 4),
            "velocity_adjustment": self.velocity_adjustment,
            "matches": {k: list(v) for k, v in self.matches.items()},
        }


class ContextClassifier:
    """
    Labels input as specialized, formal or personal.

    Specialized markers only take over when formal markers are present too;
    a formal-only input gets the formal branch; anything else gets the
    default branch. Pure and side-effect free.
    """

    def __init__(
        self,
        specialized: Sequence[str] = SPECIALIZED_KEYWORDS,
        formal: Sequence[str] = FORMAL_KEYWORDS,
        personal: Sequence[str] = PERSONAL_KEYWORDS,
        default_branch: str = BRANCH_PERSONAL,
        formal_branch: str = BRANCH_FORMAL,
        specialized_branch: str = BRANCH_SPECIALIZED,
    ):
        self.specialized = tuple(k.lower() for k in specialized)
        self.formal = tuple(k.lower() for k in formal)
        self.personal = tuple(k.lower() for k in personal)
        self.default_branch = default_branch
        self.formal_branch = formal_branch
        self.specialized_branch = specialized_branch

    @staticmethod
    def _hits(content: str, keywords: Sequence[str]) -> Tuple[str, ...]:
        return tuple(k for k in keywords if k in content)

    def classify(self, text: Any, default_branch: Optional[str] = None) -> ContextReport:
        fallback = default_branch or self.default_branch
        content = f" {text.lower()} " if isinstance(text, str) else ""

        specialized = self._hits(content, self.specialized)
        formal = self._hits(content, self.formal)
        personal = self._hits(content, self.personal)

        scholarly = len(formal) + len(specialized)
        is_formal = bool(formal) and scholarly > len(personal)
        confidence = scholarly / (scholarly + len(personal) + 1)

        if is_formal and specialized:
            branch, context_type = self.specialized_branch, CONTEXT_NEURODIVERSITY
        elif is_formal:
            branch = self.formal_branch
            context_type = CONTEXT_FORMAL if len(formal) >= FORMAL_ACADEMIC_MIN_HITS else CONTEXT_CASUAL_ACADEMIC
        else:
            branch, context_type = fallback, CONTEXT_PERSONAL

        return ContextReport(
            is_formal=is_formal,
            suggested_branch=branch,
            context_type=context_type,
            confidence=confidence,
            velocity_adjustment=VELOCITY[context_type],
            matches={"specialized": specialized, "formal": formal, "personal": personal},
        )
