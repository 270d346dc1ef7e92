import threading

import pytest

from wpbabel.errors import TranslationCancelled, TranslationProviderError
from wpbabel.providers import EchoTranslationProvider
from wpbabel.segmenter import DELIMITER_PATTERN, SEGMENT_DELIMITER
from wpbabel.translator import HtmlTranslator, translate_html, translate_page
from wpbabel.wordpress import WordPressPage

PAGE_HTML = (
    '<div class="elementor-section" data-id="4f2a">'
    "<h1>Welcome home</h1>\n"
    "<p>Tom &amp; Jerry</p>"
    '<img src="hero.png">'
    '<a href="/contact?from=home&amp;ref=1">Contact us today</a>'
    "</div>"
)

DICTIONARY = {
    "Hello world": "Hola mundo",
    "Welcome home": "Bienvenido a casa",
    "Tom & Jerry": "Tom y Jerry",
    "Contact us today": "Contáctanos hoy",
}


def dictionary_translate(text):
    parts = DELIMITER_PATTERN.split(text)
    return SEGMENT_DELIMITER.join(DICTIONARY.get(part, part) for part in parts)


def no_sleep(seconds):
    pass


def test_echo_translation_round_trips_the_document():
    result = HtmlTranslator(EchoTranslationProvider()).translate(PAGE_HTML, "Spanish")

    assert result.html == PAGE_HTML
    assert result.total_segments == 3
    assert result.error_messages == []


def echo_round_trip(html):
    return HtmlTranslator(EchoTranslationProvider()).translate(html, "Spanish").html


def test_echo_round_trip_keeps_images_forms_and_nested_blocks():
    html = (
        '<div class="hero">Welcome<section><img src="a.png">'
        '<form action="/s"><input name="q"></form><p>Para text</p></section></div>'
    )
    assert echo_round_trip(html) == html


def test_echo_round_trip_keeps_line_breaks():
    html = '<p class="x">It is here<br></p><p>Line one<br>Line two</p>'
    assert echo_round_trip(html) == html


def test_merged_paragraph_keeps_scripts_and_comments():
    html = "<p>Visible words <b>bold</b><script>track()</script><!-- note --></p>"
    assert echo_round_trip(html) == (
        "<p>Visible words bold<script>track()</script><!-- note --></p>"
    )


def test_mixed_content_translation_replaces_the_paragraph_text(scripted_provider):
    provider = scripted_provider(dictionary_translate)
    html = translate_html("<p>Hello <b>world</b></p>", "Spanish", None, provider)

    assert html == "<p>Hola mundo</p>"
    assert provider.calls[0]["text"] == "Hello world"


def test_translated_text_lands_in_place(scripted_provider):
    provider = scripted_provider(dictionary_translate)
    result = HtmlTranslator(provider).translate(PAGE_HTML, "Spanish", "gemini-2.0-flash")

    assert "<h1>Bienvenido a casa</h1>" in result.html
    assert "<p>Tom y Jerry</p>" in result.html
    assert '<a href="/contact?from=home&amp;ref=1">Contáctanos hoy</a>' in result.html
    assert provider.calls[0]["target_language"] == "Spanish"
    assert provider.calls[0]["model"] == "gemini-2.0-flash"


def test_nothing_to_translate_returns_original_without_calls(scripted_provider):
    provider = scripted_provider()
    progress = []
    html = "<script>var x=1;</script><p>5</p>"

    result = HtmlTranslator(provider).translate(
        html, "German", progress=lambda percent, message: progress.append(percent)
    )

    assert result.html == html
    assert provider.calls == []
    assert progress[-1] == 100


def test_split_mismatch_keeps_original_text_for_missing_parts(scripted_provider):
    def drop_last(text):
        parts = DELIMITER_PATTERN.split(text)
        return SEGMENT_DELIMITER.join(part.upper() for part in parts[:-1])

    provider = scripted_provider(drop_last)
    html = "<p>First line</p><p>Second line</p><p>Third line</p>"
    result = HtmlTranslator(provider).translate(html, "French")

    assert result.html == "<p>FIRST LINE</p><p>SECOND LINE</p><p>Third line</p>"
    assert len(result.error_messages) == 1


def test_batches_run_sequentially_with_monotonic_progress(scripted_provider):
    provider = scripted_provider(str.upper)
    progress = []
    html = "".join(f"<p>Paragraph number {word}</p>" for word in ("one", "two", "three", "four"))

    result = HtmlTranslator(provider, batch_budget=30).translate(
        html, "Italian", progress=lambda percent, message: progress.append((percent, message))
    )

    assert result.total_batches == 4
    assert [call["text"] for call in provider.calls] == [
        "Paragraph number one",
        "Paragraph number two",
        "Paragraph number three",
        "Paragraph number four",
    ]
    percents = [percent for percent, _ in progress]
    assert percents == sorted(percents)
    assert percents[0] == 10
    assert 90 in percents
    assert percents[-1] == 100
    assert "PARAGRAPH NUMBER FOUR" in result.html


def test_transient_failures_are_retried_with_backoff(failing_provider):
    provider = failing_provider(failures=2)
    waits = []
    translator = HtmlTranslator(provider, retry_backoff=(1, 2, 4), sleep=waits.append)

    result = translator.translate("<p>Retry me please</p>", "Dutch")

    assert provider.calls == 3
    assert waits == [1, 2]
    assert result.html == "<p>Retry me please</p>"


def test_failure_after_retries_is_terminal(failing_provider):
    provider = failing_provider(failures=10)
    translator = HtmlTranslator(provider, max_retries=2, sleep=no_sleep)

    with pytest.raises(TranslationProviderError):
        translator.translate("<p>Never works</p>", "Dutch")
    assert provider.calls == 3


def test_client_errors_are_not_retried(failing_provider):
    provider = failing_provider(failures=10, status_code=400)
    translator = HtmlTranslator(provider, sleep=no_sleep)

    with pytest.raises(TranslationProviderError):
        translator.translate("<p>Bad request</p>", "Dutch")
    assert provider.calls == 1


def test_cancellation_stops_between_batches(scripted_provider):
    cancel = threading.Event()

    def translate_then_cancel(text):
        cancel.set()
        return text

    provider = scripted_provider(translate_then_cancel)
    translator = HtmlTranslator(provider, batch_budget=20)

    with pytest.raises(TranslationCancelled):
        translator.translate(
            "<p>First paragraph</p><p>Second paragraph</p>",
            "Polish",
            cancel_event=cancel,
        )
    assert len(provider.calls) == 1


class FakeWordPress:
    def __init__(self, page):
        self.page = page
        self.created = []

    def fetch_page(self, page_id):
        assert page_id == self.page.id
        return self.page

    def create_page(self, payload):
        self.created.append(payload)
        return WordPressPage(id=99, title=payload["title"], content=payload["content"], status="draft")


def source_page():
    return WordPressPage(
        id=7,
        title="About",
        content="<p>Hello <b>world</b></p>",
        slug="about",
        status="publish",
        metadata={"template": "elementor_canvas", "_elementor_data": "[{\"id\":\"1\"}]"},
    )


def test_translate_page_creates_draft_copy(scripted_provider):
    client = FakeWordPress(source_page())
    translator = HtmlTranslator(scripted_provider(dictionary_translate))

    summary = translate_page(client, translator, 7, "es")

    (payload,) = client.created
    assert payload["content"] == "<p>Hola mundo</p>"
    assert payload["title"] == "About - Spanish"
    assert payload["status"] == "draft"
    assert payload["_elementor_data"] == "[{\"id\":\"1\"}]"
    assert summary.created_page.id == 99


def test_translate_page_creates_nothing_when_translation_fails(failing_provider):
    client = FakeWordPress(source_page())
    translator = HtmlTranslator(failing_provider(failures=10), max_retries=1, sleep=no_sleep)

    with pytest.raises(TranslationProviderError):
        translate_page(client, translator, 7, "es")
    assert client.created == []


def test_translate_page_dry_run_skips_creation(scripted_provider):
    client = FakeWordPress(source_page())
    translator = HtmlTranslator(scripted_provider())

    summary = translate_page(client, translator, 7, "de", dry_run=True)

    assert client.created == []
    assert summary.created_page is None
    assert summary.payload["slug"] == "about-de"
