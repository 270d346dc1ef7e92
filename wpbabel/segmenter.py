"""Batching of placeholder segments and splitting of batch translations."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List

from .structures import Batch, PlaceholderMap

DEFAULT_BATCH_BUDGET = 500
SEGMENT_DELIMITER = "\n---\n"

# Models tend to reflow the separator line, so any dash-only line counts.
DELIMITER_PATTERN = re.compile(r"\s*\n[ \t]*-{3,}[ \t]*\n\s*")


@dataclass
class SplitResult:
    """Translated parts of one batch mapped back onto its tokens."""

    translations: Dict[str, str] = field(default_factory=dict)
    expected: int = 0
    received: int = 0
    missing: List[str] = field(default_factory=list)

    @property
    def mismatched(self) -> bool:
        return self.expected != self.received


class BatchBuilder:
    """Aggregates placeholder segments into batches within a character budget."""

    def __init__(self, budget: int = DEFAULT_BATCH_BUDGET, delimiter: str = SEGMENT_DELIMITER) -> None:
        self.budget = max(1, budget)
        self.delimiter = delimiter

    def build(self, placeholders: PlaceholderMap) -> List[Batch]:
        batches: List[Batch] = []
        batch_tokens: List[str] = []
        batch_texts: List[str] = []
        running_total = 0
        batch_id = 1

        def close_batch() -> None:
            nonlocal batch_id, batch_tokens, batch_texts, running_total
            batches.append(
                Batch(
                    batch_id=batch_id,
                    combined_text=self.delimiter.join(batch_texts),
                    placeholder_tokens=batch_tokens,
                )
            )
            batch_id += 1
            batch_tokens = []
            batch_texts = []
            running_total = 0

        for token, segment in placeholders.items():
            size = len(segment.text)
            if size > self.budget:
                if batch_tokens:
                    close_batch()
                batch_tokens.append(token)
                batch_texts.append(segment.text)
                close_batch()
                continue

            joined = size + (len(self.delimiter) if batch_tokens else 0)
            if batch_tokens and running_total + joined > self.budget:
                close_batch()
                joined = size

            batch_tokens.append(token)
            batch_texts.append(segment.text)
            running_total += joined

        if batch_tokens:
            close_batch()

        return batches


def split_translation(
    batch: Batch,
    translated_text: str,
    placeholders: PlaceholderMap,
) -> SplitResult:
    """Map a batch's translated text onto its placeholder tokens.

    A single-token batch takes the whole response. Otherwise the response is
    split on the delimiter and parts are assigned positionally; tokens left
    without a usable part get their original text back.
    """

    tokens = batch.placeholder_tokens
    result = SplitResult(expected=len(tokens))
    if not tokens:
        return result

    cleaned = translated_text.strip()
    if len(tokens) == 1:
        parts = [cleaned]
    else:
        parts = [part.strip() for part in DELIMITER_PATTERN.split(cleaned)]
    parts = [part for part in parts if part]
    result.received = len(parts)

    for index, token in enumerate(tokens):
        if index < len(parts):
            result.translations[token] = parts[index]
        else:
            result.translations[token] = placeholders[token].text
            result.missing.append(token)
    return result
