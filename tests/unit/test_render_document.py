import pytest

from formdoc.clients.stub import InMemoryDocumentStore
from formdoc.domain.dto import RenderDocumentCommand
from formdoc.domain.errors import AnswersPlaceholderMissingError, TemplateNotFoundError
from formdoc.domain.models import AnswerLayout, LinkSpan, ParagraphHeading
from formdoc.domain.use_cases import render
from formdoc.domain.use_cases.render import duplicate_template, find_url_spans, render_document
from tests.unit.pipeline_fixtures import build_test_config


def _command(handle: str, record: dict[str, list[str]], **overrides: object) -> RenderDocumentCommand:
    config = build_test_config()
    values: dict[str, object] = {
        "handle": handle,
        "doc_title": "Submitted Residency Form",
        "name": "Jane Doe",
        "email": "j@x.com",
        "timestamp": "2024-03-05T10:15:00Z",
        "lor_contact": "A, a@x.com, 555-1234",
        "record": record,
        "policy": config.formatting,
        "layout": AnswerLayout(),
    }
    values.update(overrides)
    return RenderDocumentCommand(**values)  # type: ignore[arg-type]


@pytest.mark.unit
def test_render_component_id_is_stable() -> None:
    assert render.COMPONENT_ID == "domain.render.document"


@pytest.mark.unit
def test_duplicate_unknown_template_raises() -> None:
    store = InMemoryDocumentStore()
    with pytest.raises(TemplateNotFoundError):
        duplicate_template(store, template_id="missing", copy_name="TEMP")
    assert store.live_handles == []


@pytest.mark.unit
def test_scalar_placeholders_are_replaced_everywhere_and_template_untouched() -> None:
    store = InMemoryDocumentStore()
    store.add_template("t", ["{{NAME}} / {{NAME}}", "{{DOC_TITLE}}: {{EMAIL}} {{TIMESTAMP}}", "{{LOR_CONTACT}}", "{{ANSWERS}}"])
    handle = duplicate_template(store, template_id="t", copy_name="TEMP - Jane")

    render_document(store, _command(handle, {}))

    texts = [paragraph.text for paragraph in store.open_document(handle).paragraphs]
    assert texts[:3] == [
        "Jane Doe / Jane Doe",
        "Submitted Residency Form: j@x.com 2024-03-05T10:15:00Z",
        "A, a@x.com, 555-1234",
    ]
    assert store.templates["t"][0].text == "{{NAME}} / {{NAME}}"


@pytest.mark.unit
def test_missing_answers_placeholder_raises() -> None:
    store = InMemoryDocumentStore()
    store.add_template("t", ["{{NAME}}"])
    handle = duplicate_template(store, template_id="t", copy_name="TEMP")

    with pytest.raises(AnswersPlaceholderMissingError):
        render_document(store, _command(handle, {"Q": ["a"]}))


@pytest.mark.unit
def test_answers_are_inserted_after_anchor_in_order_with_styles() -> None:
    store = InMemoryDocumentStore()
    store.add_template("t", ["Header", "Answers: {{ANSWERS}}", "Footer"])
    handle = duplicate_template(store, template_id="t", copy_name="TEMP")
    record = {"Name": ["Jane"], "Q1": ["one"], "Q2": ["x", "y"], "Q3": []}

    result = render_document(store, _command(handle, record))

    paragraphs = store.open_document(handle).paragraphs
    assert [paragraph.text for paragraph in paragraphs] == [
        "Header",
        "Answers: ",
        "Q1",
        "one",
        "Q2",
        "x, y",
        "Q3",
        "(blank)",
        "Footer",
    ]
    assert result.answers_inserted == 3

    question, answer = paragraphs[2], paragraphs[3]
    assert question.style.heading is ParagraphHeading.HEADING_3
    assert (question.style.spacing_before, question.style.spacing_after) == (10, 2)
    assert answer.style.heading is ParagraphHeading.NORMAL
    assert (answer.style.indent_start, answer.style.spacing_before, answer.style.spacing_after) == (18, 0, 10)
    assert store.open_document(handle).saves == 1


@pytest.mark.unit
def test_answer_urls_become_links_without_changing_text() -> None:
    store = InMemoryDocumentStore()
    store.add_template("t", ["{{ANSWERS}}"])
    handle = duplicate_template(store, template_id="t", copy_name="TEMP")
    record = {"Portfolio": ["see https://example.com/x for details"], "Plain": ["no links"]}

    result = render_document(store, _command(handle, record))

    paragraphs = store.open_document(handle).paragraphs
    answer = paragraphs[2]
    assert answer.text == "see https://example.com/x for details"
    assert answer.links == [LinkSpan(start=4, end=24, url="https://example.com/x")]
    assert answer.text[4 : 24 + 1] == "https://example.com/x"
    assert paragraphs[4].links == []
    assert result.links_added == 1


@pytest.mark.unit
def test_find_url_spans_handles_zero_one_and_many() -> None:
    assert find_url_spans("nothing here") == []
    assert find_url_spans("http://a.io") == [LinkSpan(0, 10, "http://a.io")]

    text = "one https://a.example/1 two http://b.example/2?q=1"
    spans = find_url_spans(text)
    assert [span.url for span in spans] == ["https://a.example/1", "http://b.example/2?q=1"]
    for span in spans:
        assert text[span.start : span.end + 1] == span.url
