import logging

import pytest

from wpbabel.errors import TranslationProviderError
from wpbabel.providers import TranslationProvider


class ScriptedProvider(TranslationProvider):
    """Provider whose answers come from a callable; records every call."""

    name = "scripted"

    def __init__(self, respond=None):
        self.respond = respond or (lambda text: text)
        self.calls = []

    def translate(self, text, *, target_language, model=None):
        self.calls.append({"text": text, "target_language": target_language, "model": model})
        return self.respond(text)


class FailingProvider(TranslationProvider):
    """Provider that raises for the first ``failures`` calls."""

    name = "failing"

    def __init__(self, failures, status_code=None):
        self.failures = failures
        self.status_code = status_code
        self.calls = 0

    def translate(self, text, *, target_language, model=None):
        self.calls += 1
        if self.calls <= self.failures:
            raise TranslationProviderError("backend busy", status_code=self.status_code)
        return text


@pytest.fixture
def scripted_provider():
    return ScriptedProvider


@pytest.fixture
def failing_provider():
    return FailingProvider


@pytest.fixture(autouse=True)
def restore_package_logger():
    logger = logging.getLogger("wpbabel")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate
