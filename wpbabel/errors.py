"""Error definitions for the wpbabel page translator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categorises handled problems so they can be reported together."""

    PLACEHOLDER = auto()
    SPLIT_MISMATCH = auto()


class WpBabelError(Exception):
    """Base exception for all custom errors."""


class TranslationCancelled(WpBabelError):
    """Raised when a caller cancels a translation between batches."""


class TranslationProviderConfigurationError(WpBabelError):
    """Raised when the translation provider is misconfigured."""


class TranslationProviderError(WpBabelError):
    """Raised when the translation backend fails or answers malformed data."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def transient(self) -> bool:
        """Whether retrying the same request could plausibly succeed."""

        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500


class DestinationError(WpBabelError):
    """Raised when the WordPress site rejects a request."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DestinationAuthenticationError(DestinationError):
    """Raised when the WordPress site refuses the supplied credentials."""


@dataclass
class ErrorRecord:
    """Stores context for a handled, non-fatal error."""

    category: ErrorCategory
    message: str
    details: Optional[str] = None
