from types import SimpleNamespace

import pytest
import requests

from wpbabel.configuration import WpBabelConfig
from wpbabel.errors import TranslationProviderConfigurationError, TranslationProviderError
from wpbabel.providers import (
    EchoTranslationProvider,
    GeminiTranslationProvider,
    OpenAITranslationProvider,
    build_prompt,
    build_provider,
)


class FakeResponse:
    def __init__(self, status_code=200, data=None, reason="OK"):
        self.status_code = status_code
        self._data = data
        self.reason = reason

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._data is None:
            raise ValueError("no json")
        return self._data


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def gemini_answer(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_prompt_names_language_and_carries_text():
    prompt = build_prompt("Hello", "Japanese")
    assert "into Japanese language" in prompt
    assert prompt.endswith("\n\nHello")


def test_gemini_posts_prompt_with_key_as_query_parameter():
    session = FakeSession(FakeResponse(data=gemini_answer("  Hallo  ")))
    provider = GeminiTranslationProvider(api_key="secret", session=session, timeout=5)

    assert provider.translate("Hello", target_language="German") == "Hallo"

    url, kwargs = session.requests[0]
    assert url.endswith("/gemini-2.0-flash:generateContent")
    assert kwargs["params"] == {"key": "secret"}
    assert kwargs["timeout"] == 5
    assert "Hello" in kwargs["json"]["contents"][0]["parts"][0]["text"]


def test_gemini_uses_requested_model():
    session = FakeSession(FakeResponse(data=gemini_answer("ok")))
    provider = GeminiTranslationProvider(api_key="secret", session=session)

    provider.translate("Hello", target_language="German", model="gemini-1.5-pro")

    assert session.requests[0][0].endswith("/gemini-1.5-pro:generateContent")


def test_gemini_error_carries_backend_message():
    response = FakeResponse(
        status_code=429,
        data={"error": {"message": "Resource has been exhausted"}},
        reason="Too Many Requests",
    )
    provider = GeminiTranslationProvider(api_key="secret", session=FakeSession(response))

    with pytest.raises(TranslationProviderError) as excinfo:
        provider.translate("Hello", target_language="German")

    assert "Resource has been exhausted" in str(excinfo.value)
    assert excinfo.value.status_code == 429
    assert excinfo.value.transient


def test_gemini_malformed_payload_is_a_failure():
    provider = GeminiTranslationProvider(
        api_key="secret", session=FakeSession(FakeResponse(data={"candidates": []}))
    )
    with pytest.raises(TranslationProviderError, match="Unexpected response format"):
        provider.translate("Hello", target_language="German")


def test_gemini_network_error_is_a_failure():
    session = FakeSession(error=requests.ConnectionError("connection refused"))
    provider = GeminiTranslationProvider(api_key="secret", session=session)

    with pytest.raises(TranslationProviderError) as excinfo:
        provider.translate("Hello", target_language="German")
    assert excinfo.value.transient


def test_gemini_requires_api_key():
    with pytest.raises(TranslationProviderConfigurationError):
        GeminiTranslationProvider(api_key="")


def test_openai_provider_returns_message_content():
    captured = {}

    def create(**kwargs):
        captured.update(kwargs)
        message = SimpleNamespace(content=" Bonjour ")
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    provider = OpenAITranslationProvider(client=client)

    assert provider.translate("Hello", target_language="French") == "Bonjour"
    assert captured["model"] == OpenAITranslationProvider.DEFAULT_MODEL
    assert "French" in captured["messages"][0]["content"]


def test_openai_provider_rejects_empty_response():
    client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=lambda **kwargs: SimpleNamespace(choices=[])))
    )
    with pytest.raises(TranslationProviderError):
        OpenAITranslationProvider(client=client).translate("Hello", target_language="French")


def test_build_provider_by_name():
    assert isinstance(build_provider("echo"), EchoTranslationProvider)

    settings = WpBabelConfig(GEMINI_API_KEY="secret", WPBABEL_REQUEST_TIMEOUT=12)
    provider = build_provider(None, settings)
    assert isinstance(provider, GeminiTranslationProvider)
    assert provider.timeout == 12


def test_build_provider_rejects_unknown_names():
    with pytest.raises(TranslationProviderConfigurationError):
        build_provider("babelfish", WpBabelConfig())
