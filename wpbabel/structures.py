"""Core data structures for the wpbabel page translator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping


ProgressCallback = Callable[[int, str], None]

# Raw JSON values of a page that are forwarded untouched.
PageMetadata = Mapping[str, Any]

# Translated text keyed by placeholder token.
TranslatedMap = Dict[str, str]


@dataclass(frozen=True)
class TextSegment:
    """One translatable run of visible text taken from a document."""

    text: str
    path: str


# Placeholder token -> segment it stands for, in document order.
PlaceholderMap = Dict[str, TextSegment]


@dataclass
class Batch:
    """Segment texts joined for a single remote translation call."""

    batch_id: int
    combined_text: str
    placeholder_tokens: List[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.combined_text)
