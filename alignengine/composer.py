"""Branch selection and response composition.

* `BranchSelector` resolves the active `BranchProfile` (caller override wins
  over the classifier's suggestion).
* `ResponseComposer` turns the filtered graph into a `ProcessingResult`,
  with wording chosen by the branch's `ResponseStyle`.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Sequence

from .classifier import ContextReport
from .config import BranchProfile, Configuration, ResponseStyle
from .graph import ConnectionEdge
from .heat_shield import ShieldReport
from .result import Alignment, ProcessingResult

logger = logging.getLogger(__name__)


class BranchSelector:
    def select(self, config: Configuration, suggestion: Optional[str],
               override: Optional[str] = None) -> BranchProfile:
        if override is not None:
            profile = config.branch(override)
            if profile is not None:
                return profile
            logger.warning(f"[Branch] unknown override '{override}'; using classifier suggestion")

        profile = config.branch(suggestion)
        if profile is not None:
            return profile
        if suggestion is not None:
            logger.warning(f"[Branch] unknown suggestion '{suggestion}'; using '{config.default_branch}'")
        return config.branches[config.default_branch]


# Per-style wording: (answer template, closing line)
STYLE_TEMPLATES: Dict[ResponseStyle, tuple] = {
    ResponseStyle.DIRECT: (
        "Primary interpretation involving {concepts}.",
        "Direct answer first; details follow.",
    ),
    ResponseStyle.CONVERSATIONAL: (
        "So this is really about {concepts}.",
        "Kept it casual, with the subject called out up front.",
    ),
    ResponseStyle.PROFESSIONAL: (
        "Analysis centres on {concepts}.",
        "Structured with professional anchors and a balanced tone.",
    ),
    ResponseStyle.NEURODIVERSITY_AWARE: (
        "Key concepts, stated explicitly: {concepts}.",
        "Laid out step by step through neurodiversity-aware phrasing.",
    ),
}

FALLBACK_ANSWER = "The input could not be processed into a response."


class ResponseComposer:
    def __init__(self, related_limit: int = 2):
        self.related_limit = related_limit

    @staticmethod
    def summarize(concepts: Sequence[str], limit: int) -> str:
        head = list(concepts[:limit]) if limit > 0 else []
        if not head:
            return "no concepts"
        more = len(concepts) - len(head)
        text = ", ".join(head)
        return f"{text} (+{more} more)" if more > 0 else text

    def compose(
        self,
        concepts: List[str],
        shield: ShieldReport,
        profile: BranchProfile,
        config: Configuration,
        context: Optional[ContextReport] = None,
        effective_margin: Optional[float] = None,
    ) -> ProcessingResult:
        template, closing = STYLE_TEMPLATES[profile.response_style]
        summary = self.summarize(concepts, config.summary_concepts)
        retained = shield.retained
        strongest = sorted(retained, key=lambda e: (-e.strength, e.source, e.target))
        related = [f"{e.source} -> {e.target} ({e.strength:.2f})" for e in strongest[:self.related_limit]]

        details = [
            f"- Concepts: {summary}",
            f"- Retained {len(retained)} of {shield.considered} connections "
            f"(capacity {shield.capacity:.4f}, exponent {shield.exponent:.3f})",
        ]
        if related:
            details.append(f"- Strongest: {'; '.join(related)}")
        if effective_margin is not None and effective_margin != config.margin:
            details.append(f"- Branch margin override: {effective_margin:g}")
        if context is not None:
            details.append(f"- Context: {context.context_type} (confidence {context.confidence:.2f})")
        details.append(f"- Style: {profile.response_style.value}. {closing}")

        return ProcessingResult(
            answer=template.format(concepts=summary),
            supporting_details="\n".join(details),
            concepts=list(concepts),
            edges_retained=len(retained),
            edges_considered=shield.considered,
            alignment=Alignment.from_config(config),
            branch=profile.name,
            success=True,
            timestamp=time.time(),
            context=context.to_dict() if context is not None else None,
            shield=shield.to_dict(),
        )

    def fallback(self, config: Configuration, branch: Optional[str], reason: str,
                 context: Optional[ContextReport] = None) -> ProcessingResult:
        if branch not in config.branches:
            branch = config.default_branch
        return ProcessingResult(
            answer=FALLBACK_ANSWER,
            supporting_details=f"- Reason: {reason}",
            concepts=[],
            edges_retained=0,
            edges_considered=0,
            alignment=Alignment.from_config(config),
            branch=branch,
            success=False,
            timestamp=time.time(),
            context=context.to_dict() if context is not None else None,
        )
