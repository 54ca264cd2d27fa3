import logging
import string
from typing import Any, Iterator, List, Optional

logger = logging.getLogger(__name__)

# Characters trimmed from token edges before length checks
TOKEN_STRIP = string.punctuation + "“”‘’«»"


# --- 1. TextCleaner ---
def clean_text(t: str) -> str:
    if not t:
        return ""
    t = t.strip()
    t = t.replace("—", "-")
    t = t.replace("…", "...")
    t = t.replace("\u00a0", " ")  # non-breaking spaces
    return " ".join(t.split())  # collapse multiple spaces


def iter_tokens(text: str) -> Iterator[str]:
    """Yield whitespace tokens one at a time without materialising a list."""
    start = None
    for i, ch in enumerate(text):
        if ch.isspace():
            if start is not None:
                yield text[start:i]
                start = None
        elif start is None:
            start = i
    if start is not None:
        yield text[start:]


# --- 2. ConceptExtractor ---
class ConceptStream:
    """
    Restartable lazy sequence of concepts.

    Each iteration re-scans the source text from the start, so the stream can
    be consumed any number of times and always yields the same tokens.
    """

    def __init__(self, text: str, min_length: int = 4, limit: Optional[int] = None, unique: bool = True):
        self.text = text
        self.min_length = min_length
        self.limit = limit
        self.unique = unique

    def __iter__(self) -> Iterator[str]:
        if not self.text:
            return
        seen = set()
        emitted = 0
        for raw in iter_tokens(self.text):
            if self.limit is not None and emitted >= self.limit:
                return
            token = raw.strip(TOKEN_STRIP)
            if len(token) < self.min_length:
                continue
            if self.unique:
                key = token.lower()
                if key in seen:
                    continue
                seen.add(key)
            emitted += 1
            yield token

    def to_list(self) -> List[str]:
        return list(self)

    def __bool__(self) -> bool:
        return next(iter(self), None) is not None

    def __repr__(self) -> str:
        return f"ConceptStream(len(text)={len(self.text)}, min_length={self.min_length}, limit={self.limit})"


class ConceptExtractor:
    """
    Heuristic concept extraction: cleaned whitespace tokens of at least
    ``min_length`` characters, deduplicated case-insensitively in order of
    appearance. Non-string input yields an empty stream.
    """

    def __init__(self, min_length: int = 4, max_concepts: Optional[int] = 256, unique: bool = True):
        self.min_length = min_length
        self.max_concepts = max_concepts
        self.unique = unique

    def extract(self, text: Any, min_length: Optional[int] = None, limit: Optional[int] = None) -> ConceptStream:
        if not isinstance(text, str):
            if text is not None:
                logger.warning(f"extract called with non-string input ({type(text).__name__}); no concepts")
            return ConceptStream("", self.min_length)
        return ConceptStream(
            clean_text(text),
            min_length=self.min_length if min_length is None else min_length,
            limit=self.max_concepts if limit is None else limit,
            unique=self.unique,
        )


# Global instance for one-off use
extractor = ConceptExtractor()


def extract_concepts(text: Any) -> List[str]:
    return extractor.extract(text).to_list()
