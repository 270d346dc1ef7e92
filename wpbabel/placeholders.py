"""Swap extracted text for placeholder tokens and back again."""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from bs4.element import NavigableString

from .documents import TextSite, iter_text_sites, parse_html, preserved_nodes, render_html
from .structures import PlaceholderMap, TextSegment

logger = logging.getLogger(__name__)

TOKEN_TEMPLATE = "__TRANSLATE_PLACEHOLDER_{index}__"
TOKEN_PATTERN = re.compile(r"__TRANSLATE_PLACEHOLDER_\d+__")


def make_token(index: int) -> str:
    return TOKEN_TEMPLATE.format(index=index)


@dataclass
class EncodedDocument:
    """Markup with placeholders in place of text, plus the token mapping."""

    prepared_html: str
    placeholders: PlaceholderMap = field(default_factory=dict)
    dropped: List[TextSegment] = field(default_factory=list)

    def originals(self) -> Dict[str, str]:
        """Original text keyed by token, used as the untranslated fallback."""

        return {token: segment.text for token, segment in self.placeholders.items()}


def _assign_tokens(segments: Sequence[TextSegment]) -> Dict[str, str]:
    # Longest first so the numbering never depends on substring order.
    tokens: Dict[str, str] = {}
    for segment in sorted(segments, key=lambda item: len(item.text), reverse=True):
        if segment.text not in tokens:
            tokens[segment.text] = make_token(len(tokens))
    return tokens


def _replace_site(site: TextSite, token: str) -> None:
    if site.merged:
        # Scripts, styles, hidden elements and comments follow the token.
        kept = [node.extract() for node in preserved_nodes(site.node) or []]
        site.node.clear()
        site.node.append(NavigableString(token))
        for node in kept:
            site.node.append(node)
        return
    original = str(site.node)
    leading = original[: len(original) - len(original.lstrip())]
    trailing = original[len(original.rstrip()):]
    site.node.replace_with(NavigableString(f"{leading}{token}{trailing}"))


def encode_placeholders(html_text: str, segments: Sequence[TextSegment]) -> EncodedDocument:
    """Replace every occurrence of each segment with its placeholder token.

    Substitution happens on the parsed tree rather than on the raw string,
    so a short segment that also occurs inside a longer one never breaks the
    longer one's token. Segments sharing the same text share one token.
    Segments that no longer match any text site are returned in ``dropped``
    and are absent from the placeholder map.
    """

    if not segments:
        return EncodedDocument(prepared_html=html_text)

    soup = parse_html(html_text)
    if soup is None:
        return EncodedDocument(prepared_html=html_text, dropped=list(segments))

    tokens = _assign_tokens(segments)
    replaced = set()
    for site in list(iter_text_sites(soup)):
        token = tokens.get(site.text)
        if token is None:
            continue
        _replace_site(site, token)
        replaced.add(site.text)

    placeholders: PlaceholderMap = {}
    dropped: List[TextSegment] = []
    for segment in segments:
        if segment.text in replaced:
            placeholders.setdefault(tokens[segment.text], segment)
        else:
            dropped.append(segment)

    prepared_html = render_html(soup)
    for token in list(placeholders):
        if token not in prepared_html:
            dropped.append(placeholders.pop(token))

    if dropped:
        logger.warning("%d segments could not be located in the markup", len(dropped))
    return EncodedDocument(
        prepared_html=prepared_html,
        placeholders=placeholders,
        dropped=dropped,
    )


def escape_text(value: str) -> str:
    """Escape translated text so it is safe to splice into markup."""

    return html.escape(value, quote=False).replace("\xa0", "&nbsp;")


def decode_placeholders(
    prepared_html: str,
    translated: Mapping[str, str],
    fallback: Optional[Mapping[str, str]] = None,
) -> str:
    """Replace every placeholder token with its translated text.

    Tokens missing from ``translated`` take their value from ``fallback``;
    tokens unknown to both are left alone.
    """

    fallback = fallback or {}

    def _substitute(match: re.Match) -> str:
        token = match.group(0)
        if token in translated:
            value = translated[token]
        elif token in fallback:
            value = fallback[token]
        else:
            return token
        return escape_text(value)

    return TOKEN_PATTERN.sub(_substitute, prepared_html)
