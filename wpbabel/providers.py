"""Translation provider abstractions."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

import openai
import requests

from .errors import (
    TranslationProviderConfigurationError,
    TranslationProviderError,
)

if TYPE_CHECKING:
    from .configuration import WpBabelConfig

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_TIMEOUT = 60.0


def build_prompt(text: str, target_language: str) -> str:
    """Instruction sent ahead of the text to translate."""

    return (
        f"Translate the following text into {target_language} language. "
        "Preserve the tone, style and formatting of the original text. "
        "Keep every line that consists only of '---' exactly where it is. "
        "Only return the translated text without any explanations or "
        f"additional content:\n\n{text}"
    )


class TranslationProvider(ABC):
    """Abstract adapter for translation backends."""

    name = "provider"

    @abstractmethod
    def translate(
        self,
        text: str,
        *,
        target_language: str,
        model: str | None = None,
    ) -> str:
        """Translate one batch of text and return the translated text."""


class EchoTranslationProvider(TranslationProvider):
    """A provider that returns the original text (useful for testing)."""

    name = "echo"

    def translate(
        self,
        text: str,
        *,
        target_language: str,
        model: str | None = None,
    ) -> str:
        return text


class DebugLoggingMixin:
    """Structured request/response dumps for troubleshooting providers."""

    debug = False

    def _log_debug(self, label: str, payload: Any) -> None:
        if not self.debug:
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        logger.debug("[provider-debug] %s:\n%s", label, message)


class GeminiTranslationProvider(DebugLoggingMixin, TranslationProvider):
    """Translation provider that calls the Gemini generateContent endpoint."""

    name = "gemini"
    DEFAULT_MODEL = DEFAULT_GEMINI_MODEL

    def __init__(
        self,
        *,
        api_key: str,
        api_url: str = DEFAULT_GEMINI_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        debug: bool = False,
    ) -> None:
        if not api_key:
            raise TranslationProviderConfigurationError(
                "Gemini configuration missing. Set GEMINI_API_KEY or choose a "
                "different provider."
            )
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.debug = debug

    def endpoint(self, model: str) -> str:
        return f"{self.api_url}/{model}:generateContent"

    def translate(
        self,
        text: str,
        *,
        target_language: str,
        model: str | None = None,
    ) -> str:
        model = model or self.DEFAULT_MODEL
        payload = {"contents": [{"parts": [{"text": build_prompt(text, target_language)}]}]}
        self._log_debug("provider.request.payload", payload)

        try:
            response = self.session.post(
                self.endpoint(model),
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TranslationProviderError(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc

        data = self._json_body(response)
        self._log_debug("provider.response.raw", data)

        if not response.ok:
            detail = None
            if isinstance(data, dict):
                error = data.get("error")
                if isinstance(error, dict):
                    detail = error.get("message")
            raise TranslationProviderError(
                f"Translation API error: {detail or response.reason or response.status_code}",
                status_code=response.status_code,
            )

        return self._extract_text(data)

    def _json_body(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    def _extract_text(self, data: Any) -> str:
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise TranslationProviderError(
                "Unexpected response format from translation API"
            ) from None
        if not isinstance(text, str):
            raise TranslationProviderError(
                "Unexpected response format from translation API"
            )
        return text.strip()


class OpenAITranslationProvider(DebugLoggingMixin, TranslationProvider):
    """Translation provider that uses OpenAI (or Azure OpenAI) chat models."""

    name = "openai"
    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        *,
        client: Any = None,
        api_key: str | None = None,
        azure_endpoint: str | None = None,
        azure_api_version: str | None = None,
        azure_deployment: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        debug: bool = False,
    ) -> None:
        self.debug = debug
        self._default_model = azure_deployment or self.DEFAULT_MODEL
        if client is not None:
            self._client = client
        elif azure_endpoint:
            self._client = self._build_azure_client(
                api_key=api_key,
                endpoint=azure_endpoint,
                api_version=azure_api_version,
                timeout=timeout,
            )
        else:
            self._client = self._build_openai_client(api_key=api_key, timeout=timeout)

    def _build_openai_client(self, *, api_key: str | None, timeout: float) -> Any:
        if not api_key:
            raise TranslationProviderConfigurationError(
                "OpenAI configuration missing. Set OPENAI_API_KEY or choose a "
                "different provider."
            )
        return openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def _build_azure_client(
        self,
        *,
        api_key: str | None,
        endpoint: str,
        api_version: str | None,
        timeout: float,
    ) -> Any:
        return openai.AzureOpenAI(
            api_key=api_key,
            api_version=api_version,
            azure_endpoint=endpoint,
            timeout=timeout,
            max_retries=0,
        )

    def translate(
        self,
        text: str,
        *,
        target_language: str,
        model: str | None = None,
    ) -> str:
        prompt = build_prompt(text, target_language)
        self._log_debug("provider.request.prompt", prompt)
        try:
            response = self._client.chat.completions.create(
                model=model or self._default_model,
                temperature=0,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.APIStatusError as exc:
            raise TranslationProviderError(
                f"Translation API error: {exc.message}",
                status_code=exc.status_code,
            ) from exc
        except openai.OpenAIError as exc:
            raise TranslationProviderError(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc

        content: str | None = None
        for choice in getattr(response, "choices", None) or []:
            message = getattr(choice, "message", None)
            message_content = getattr(message, "content", None)
            if message_content:
                content = str(message_content)
                break

        self._log_debug("provider.response.content", content)
        if content is None:
            raise TranslationProviderError(
                "Translation provider response empty or unrecognised."
            )
        return content.strip()


def build_provider(
    name: str | None,
    settings: Optional["WpBabelConfig"] = None,
    *,
    debug: bool = False,
) -> TranslationProvider:
    """Factory to create providers by name from validated settings."""

    normalized = (name or (settings.LLM_PROVIDER if settings else None) or "gemini")
    normalized = normalized.strip().lower().replace("-", "_")
    if normalized in {"echo", "noop", "mock"}:
        return EchoTranslationProvider()
    if settings is None:
        raise TranslationProviderConfigurationError(
            f"Provider '{normalized}' requires configuration settings."
        )

    timeout = settings.WPBABEL_REQUEST_TIMEOUT
    if normalized in {"gemini", "google", "default"}:
        return GeminiTranslationProvider(
            api_key=settings.GEMINI_API_KEY or "",
            api_url=settings.GEMINI_API_URL,
            timeout=timeout,
            debug=debug,
        )
    if normalized in {"openai", "gpt"}:
        return OpenAITranslationProvider(
            api_key=settings.OPENAI_API_KEY,
            timeout=timeout,
            debug=debug,
        )
    if normalized in {"azure_openai", "azure"}:
        return OpenAITranslationProvider(
            api_key=settings.AZURE_OPENAI_API_KEY,
            azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
            azure_api_version=settings.AZURE_OPENAI_API_VERSION,
            azure_deployment=settings.AZURE_OPENAI_DEPLOYMENT_NAME,
            timeout=timeout,
            debug=debug,
        )
    raise TranslationProviderConfigurationError(
        f"Unknown translation provider '{name}'."
    )
