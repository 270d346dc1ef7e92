"""HTML parsing and translatable text extraction."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Union

from bs4 import BeautifulSoup, ParserRejectedMarkup
from bs4.dammit import EntitySubstitution
from bs4.element import NavigableString, PageElement, PreformattedString, Tag
from bs4.formatter import HTMLFormatter

from .structures import TextSegment

logger = logging.getLogger(__name__)

SKIPPED_TAGS = frozenset({"script", "style"})

# Tags whose text is translated as one unit when they mix text and children.
MIXED_CONTENT_TAGS = frozenset(
    {
        "h1", "h2", "h3", "h4", "h5", "h6",
        "p", "div", "span", "a", "li", "td", "th", "label", "button",
    }
)

# Phrasing markup that may be flattened into the text of a merged element.
INLINE_TAGS = frozenset(
    {
        "b", "i", "em", "strong", "span", "a", "small", "sup", "sub", "u",
        "mark", "code", "abbr", "cite", "q", "s", "del", "ins",
    }
)

# Children that visually separate the text around them.
BREAKING_TAGS = frozenset(
    {
        "br", "p", "div", "li", "ul", "ol", "tr", "td", "th", "table",
        "h1", "h2", "h3", "h4", "h5", "h6", "section", "article",
    }
)

_BREAK = object()

HIDDEN_STYLE_PATTERN = re.compile(
    r"(?:^|;)\s*(?:display\s*:\s*none|visibility\s*:\s*hidden)\s*(?:!important\s*)?(?:;|$)",
    re.IGNORECASE,
)

MIN_SEGMENT_LENGTH = 2
ROOT_PATH = "document"


def _substitute_entities(value: str) -> str:
    return EntitySubstitution.substitute_xml(value).replace("\xa0", "&nbsp;")


# Like bs4's "minimal" formatter, but void elements are written as <br> rather
# than <br/> and non-breaking spaces keep their entity form.
PAGE_FORMATTER = HTMLFormatter(
    entity_substitution=_substitute_entities,
    void_element_close_prefix=None,
)


@dataclass
class TextSite:
    """Location in a parsed tree that holds one translatable text run."""

    node: Union[Tag, NavigableString]
    text: str
    path: str
    merged: bool = False


def parse_html(html: str) -> Optional[BeautifulSoup]:
    """Parse markup into a tree, or return None when the parser gives up."""

    try:
        return BeautifulSoup(html, "html.parser")
    except ParserRejectedMarkup as exc:
        logger.warning("HTML could not be parsed, nothing will be extracted: %s", exc)
        return None


def render_html(soup: BeautifulSoup) -> str:
    """Serialise a parsed tree back to markup."""

    return soup.decode(formatter=PAGE_FORMATTER)


def is_translatable(text: str) -> bool:
    """Whether a trimmed text run is worth sending to the translator."""

    if len(text) < MIN_SEGMENT_LENGTH:
        return False
    return any(char.isalpha() for char in text)


def _is_text(node: object) -> bool:
    # Comments, doctypes, CDATA and processing instructions are preformatted.
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def _is_hidden(tag: Tag) -> bool:
    if tag.has_attr("hidden"):
        return True
    style = tag.get("style")
    if not style:
        return False
    if isinstance(style, list):
        style = " ".join(style)
    return bool(HIDDEN_STYLE_PATTERN.search(style))


def _is_skipped(tag: Tag) -> bool:
    return tag.name in SKIPPED_TAGS or _is_hidden(tag)


def _is_mixed(tag: Tag) -> bool:
    has_text = False
    has_element = False
    for child in tag.children:
        if isinstance(child, Tag):
            if not _is_skipped(child):
                has_element = True
        elif _is_text(child) and child.strip():
            has_text = True
    return has_text and has_element


def preserved_nodes(tag: Tag) -> Optional[List[PageElement]]:
    """Outermost skipped elements and comments below ``tag``, in order.

    They carry no translatable text but must survive when the element's
    content is replaced by a single token. Returns None when a visible
    descendant is anything other than inline markup, in which case the
    element cannot be merged.
    """

    preserved: List[PageElement] = []
    stack = list(reversed(list(tag.children)))
    while stack:
        node = stack.pop()
        if isinstance(node, Tag):
            if _is_skipped(node):
                preserved.append(node)
                continue
            if node.name not in INLINE_TAGS:
                return None
            stack.extend(reversed(list(node.children)))
        elif isinstance(node, PreformattedString):
            preserved.append(node)
    return preserved


def is_mergeable(tag: Tag) -> bool:
    """Whether a mixed element only wraps inline markup around its text."""

    if tag.name not in MIXED_CONTENT_TAGS or not _is_mixed(tag):
        return False
    return preserved_nodes(tag) is not None


def visible_text(tag: Tag) -> str:
    """Concatenated visible text of an element, whitespace collapsed."""

    parts: List[str] = []
    stack: list = list(reversed(list(tag.children)))
    while stack:
        node = stack.pop()
        if node is _BREAK:
            parts.append(" ")
        elif isinstance(node, Tag):
            if _is_skipped(node):
                continue
            if node.name in BREAKING_TAGS:
                parts.append(" ")
                stack.append(_BREAK)
            stack.extend(reversed(list(node.children)))
        elif _is_text(node):
            parts.append(str(node))
    return " ".join("".join(parts).split())


def _format_path(trail: Sequence[str]) -> str:
    return " > ".join(trail) if trail else ROOT_PATH


def iter_text_sites(soup: BeautifulSoup) -> Iterator[TextSite]:
    """Yield every translatable text site of a parsed document in order.

    The walk keeps its own stack, so nesting depth is not bounded by the
    interpreter's recursion limit.
    """

    stack = [(iter(list(soup.children)), ())]
    while stack:
        children, trail = stack[-1]
        child = next(children, None)
        if child is None:
            stack.pop()
            continue
        if isinstance(child, Tag):
            if _is_skipped(child):
                continue
            child_trail = trail + (child.name,)
            if is_mergeable(child):
                text = visible_text(child)
                if is_translatable(text):
                    yield TextSite(
                        node=child,
                        text=text,
                        path=_format_path(child_trail),
                        merged=True,
                    )
                continue
            stack.append((iter(list(child.children)), child_trail))
        elif _is_text(child):
            text = child.strip()
            if is_translatable(text):
                yield TextSite(node=child, text=text, path=_format_path(trail))


def extract_segments(html: str) -> List[TextSegment]:
    """Extract the ordered translatable text segments of an HTML document."""

    if not html or not html.strip():
        return []
    soup = parse_html(html)
    if soup is None:
        return []
    segments = [
        TextSegment(text=site.text, path=site.path)
        for site in iter_text_sites(soup)
    ]
    logger.debug("Extracted %d text segments", len(segments))
    return segments
