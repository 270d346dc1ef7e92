"""High-level orchestration for page translation."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from .documents import extract_segments
from .errors import (
    ErrorCategory,
    TranslationCancelled,
    TranslationProviderError,
)
from .languages import language_name
from .placeholders import decode_placeholders, encode_placeholders
from .policy import ErrorPolicy
from .providers import TranslationProvider
from .segmenter import DEFAULT_BATCH_BUDGET, SEGMENT_DELIMITER, BatchBuilder, split_translation
from .structures import Batch, ProgressCallback, TextSegment, TranslatedMap
from .wordpress import WordPressClient, WordPressPage, build_translated_page

logger = logging.getLogger(__name__)


class TranslationStage(str, Enum):
    """Named pipeline stages reported through the progress callback."""

    IDLE = "idle"
    ANALYZING = "analyzing"
    TRANSLATING = "translating"
    FINALIZING = "finalizing"
    COMPLETE = "complete"


# Percentage at which each stage starts; translation fills 10-90 per batch.
STAGE_PERCENT = {
    TranslationStage.IDLE: 0,
    TranslationStage.ANALYZING: 10,
    TranslationStage.TRANSLATING: 10,
    TranslationStage.FINALIZING: 90,
    TranslationStage.COMPLETE: 100,
}


@dataclass
class TranslationResult:
    """Report returned after translating one HTML document."""

    html: str
    target_language: str
    model: str | None
    total_segments: int
    total_placeholders: int
    total_batches: int
    elapsed_seconds: float
    dropped_segments: List[TextSegment] = field(default_factory=list)
    error_messages: List[str] = field(default_factory=list)

    @property
    def translated(self) -> bool:
        return self.total_placeholders > 0


@dataclass
class PageTranslationSummary:
    """Report returned after a WordPress page has been copied and translated."""

    source_page: WordPressPage
    created_page: Optional[WordPressPage]
    payload: dict
    result: TranslationResult


class HtmlTranslator:
    """Coordinates extraction, batching, translation, and reinsertion."""

    def __init__(
        self,
        provider: TranslationProvider,
        *,
        batch_budget: int = DEFAULT_BATCH_BUDGET,
        delimiter: str = SEGMENT_DELIMITER,
        max_retries: int = 3,
        retry_backoff: Sequence[float] = (1, 2, 4),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.provider = provider
        self.batch_builder = BatchBuilder(batch_budget, delimiter)
        self.max_retries = max(0, max_retries)
        self.retry_backoff = list(retry_backoff) or [0]
        self._sleep = sleep

    def translate(
        self,
        html: str,
        target_language: str,
        model: str | None = None,
        *,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> TranslationResult:
        """Translate the visible text of ``html`` into ``target_language``.

        Raises TranslationProviderError once a batch has failed all its
        retries, and TranslationCancelled when ``cancel_event`` is set
        between batches. Nothing is written anywhere either way.
        """

        start_time = time.time()
        reporter = _ProgressReporter(progress)
        error_policy = ErrorPolicy()

        reporter.report(STAGE_PERCENT[TranslationStage.ANALYZING], "Analyzing page content...")
        segments = extract_segments(html)
        if not segments:
            logger.info("No translatable text found; returning the original markup")
            reporter.report(STAGE_PERCENT[TranslationStage.COMPLETE], "No translatable text found")
            return TranslationResult(
                html=html,
                target_language=target_language,
                model=model,
                total_segments=0,
                total_placeholders=0,
                total_batches=0,
                elapsed_seconds=time.time() - start_time,
            )

        encoded = encode_placeholders(html, segments)
        for segment in encoded.dropped:
            error_policy.handle_error(
                ErrorCategory.PLACEHOLDER,
                f"Text at {segment.path} could not be located and stays untranslated.",
                details=segment.text[:80],
            )

        batches = self.batch_builder.build(encoded.placeholders)
        logger.info(
            "Prepared %d segments, %d placeholders, %d batches.",
            len(segments),
            len(encoded.placeholders),
            len(batches),
        )

        translated: TranslatedMap = {}
        total = len(batches)
        for index, batch in enumerate(batches):
            if cancel_event is not None and cancel_event.is_set():
                raise TranslationCancelled(
                    f"Translation cancelled after {index} of {total} batches."
                )
            reporter.report(
                _batch_percent(index, total),
                f"Translating batch {index + 1} of {total}...",
            )
            response = self._translate_batch(batch, target_language, model)
            split = split_translation(batch, response, encoded.placeholders)
            if split.mismatched:
                error_policy.handle_error(
                    ErrorCategory.SPLIT_MISMATCH,
                    f"Batch {batch.batch_id} returned {split.received} parts for "
                    f"{split.expected} segments; {len(split.missing)} kept their original text.",
                )
            translated.update(split.translations)

        reporter.report(_batch_percent(total, total), "Translation of all batches finished")
        reporter.report(STAGE_PERCENT[TranslationStage.FINALIZING], "Finalizing translated content...")
        final_html = decode_placeholders(
            encoded.prepared_html,
            translated,
            fallback=encoded.originals(),
        )
        reporter.report(STAGE_PERCENT[TranslationStage.COMPLETE], "Translation complete")

        return TranslationResult(
            html=final_html,
            target_language=target_language,
            model=model,
            total_segments=len(segments),
            total_placeholders=len(encoded.placeholders),
            total_batches=total,
            elapsed_seconds=time.time() - start_time,
            dropped_segments=list(encoded.dropped),
            error_messages=error_policy.messages,
        )

    def _translate_batch(self, batch: Batch, target_language: str, model: str | None) -> str:
        attempt = 0
        while True:
            try:
                return self.provider.translate(
                    batch.combined_text,
                    target_language=target_language,
                    model=model,
                )
            except TranslationProviderError as exc:
                attempt += 1
                if attempt > self.max_retries or not exc.transient:
                    logger.error("Batch %d failed: %s", batch.batch_id, exc)
                    raise
                wait_time = self.retry_backoff[min(attempt - 1, len(self.retry_backoff) - 1)]
                logger.warning(
                    "Could not translate batch %d (attempt %d of %d: %s). Retrying in %ss...",
                    batch.batch_id,
                    attempt,
                    self.max_retries,
                    exc,
                    wait_time,
                )
                self._sleep(wait_time)


def _batch_percent(done: int, total: int) -> int:
    start = STAGE_PERCENT[TranslationStage.TRANSLATING]
    span = STAGE_PERCENT[TranslationStage.FINALIZING] - start
    if total <= 0:
        return start
    return start + (span * done) // total


class _ProgressReporter:
    """Forwards progress to a callback, never letting the percentage go back."""

    def __init__(self, callback: Optional[ProgressCallback]) -> None:
        self.callback = callback
        self.last = 0

    def report(self, percent: int, message: str) -> None:
        percent = max(self.last, min(100, percent))
        self.last = percent
        if self.callback is not None:
            self.callback(percent, message)


def translate_html(
    html: str,
    target_language: str,
    model: str | None,
    provider: TranslationProvider,
    progress: Optional[ProgressCallback] = None,
    **options,
) -> str:
    """Translate an HTML document and return only the final markup."""

    cancel_event = options.pop("cancel_event", None)
    translator = HtmlTranslator(provider, **options)
    return translator.translate(
        html,
        target_language,
        model,
        progress=progress,
        cancel_event=cancel_event,
    ).html


def translate_page(
    client: WordPressClient,
    translator: HtmlTranslator,
    page_id: int,
    language_code: str,
    model: str | None = None,
    *,
    progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
    dry_run: bool = False,
) -> PageTranslationSummary:
    """Fetch a page, translate its content, and create the translated draft.

    The page is only created after the translation has fully succeeded.
    """

    page = client.fetch_page(page_id)
    name = language_name(language_code)
    result = translator.translate(
        page.content,
        name,
        model,
        progress=progress,
        cancel_event=cancel_event,
    )
    payload = build_translated_page(page, result.html, name, language_code)
    if dry_run:
        return PageTranslationSummary(
            source_page=page, created_page=None, payload=payload, result=result
        )
    created = client.create_page(payload)
    return PageTranslationSummary(
        source_page=page, created_page=created, payload=payload, result=result
    )

