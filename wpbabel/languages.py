"""Target languages offered for page translation."""

from __future__ import annotations

from typing import Dict, List, Tuple

LANGUAGES: List[Tuple[str, str]] = [
    ("zh", "Chinese (Simplified)"),
    ("de", "German"),
    ("es", "Spanish"),
    ("fr", "French"),
    ("it", "Italian"),
    ("ja", "Japanese"),
    ("ko", "Korean"),
    ("pt", "Portuguese"),
    ("ru", "Russian"),
    ("ar", "Arabic"),
    ("nl", "Dutch"),
    ("pl", "Polish"),
    ("sv", "Swedish"),
    ("tr", "Turkish"),
    ("hi", "Hindi"),
]

_NAMES: Dict[str, str] = dict(LANGUAGES)


def language_name(code: str) -> str:
    """Display name for a language code, or the input when it is unknown."""

    return _NAMES.get(code.strip().lower(), code)
