from __future__ import annotations

import re

from formdoc.domain.answers import format_answers
from formdoc.domain.contracts import DocumentStore
from formdoc.domain.dto import RenderDocumentCommand, RenderDocumentResult
from formdoc.domain.errors import AnswersPlaceholderMissingError
from formdoc.domain.models import (
    AnswerLayout,
    DocumentHandle,
    LinkSpan,
    ParagraphHeading,
    ParagraphStyle,
)
from formdoc.domain.text import safe_text

COMPONENT_ID = "domain.render.document"

ANSWERS_TOKEN = "{{ANSWERS}}"
URL_RE = re.compile(r"https?://\S+")


def duplicate_template(store: DocumentStore, *, template_id: str, copy_name: str) -> DocumentHandle:
    """Copy the template for one run. Raises TemplateNotFoundError for unknown ids."""
    return store.duplicate_template(template_id, copy_name)


def render_document(store: DocumentStore, cmd: RenderDocumentCommand) -> RenderDocumentResult:
    """Fill scalar placeholders and insert the formatted Q&A section.

    The caller owns the handle and disposes it; nothing here deletes the copy.
    """
    body = store.open_document(cmd.handle)

    scalars = {
        "{{DOC_TITLE}}": cmd.doc_title,
        "{{NAME}}": cmd.name,
        "{{EMAIL}}": cmd.email,
        "{{TIMESTAMP}}": cmd.timestamp,
        "{{LOR_CONTACT}}": cmd.lor_contact,
    }
    for token, value in scalars.items():
        body.replace_text(token, safe_text(value))

    anchor = body.find_paragraph(ANSWERS_TOKEN)
    if anchor is None:
        raise AnswersPlaceholderMissingError(f"{ANSWERS_TOKEN} placeholder not found in template")
    body.replace_in_paragraph(anchor, ANSWERS_TOKEN, "")

    question_style, answer_style = answer_styles(cmd.layout)
    cursor = anchor + 1
    pairs = format_answers(cmd.record, cmd.policy)
    links_added = 0
    for pair in pairs:
        body.insert_paragraph(cursor, pair.label, question_style)
        cursor += 1

        body.insert_paragraph(cursor, pair.answer, answer_style)
        for span in find_url_spans(pair.answer):
            body.link_text(cursor, start=span.start, end=span.end, url=span.url)
            links_added += 1
        cursor += 1

    body.save()
    return RenderDocumentResult(handle=cmd.handle, answers_inserted=len(pairs), links_added=links_added)


def answer_styles(layout: AnswerLayout) -> tuple[ParagraphStyle, ParagraphStyle]:
    question = ParagraphStyle(
        heading=ParagraphHeading.HEADING_3,
        spacing_before=layout.question_spacing_before,
        spacing_after=layout.question_spacing_after,
    )
    answer = ParagraphStyle(
        heading=ParagraphHeading.NORMAL,
        indent_start=layout.answer_indent,
        spacing_before=0,
        spacing_after=layout.answer_spacing_after,
    )
    return question, answer


def find_url_spans(text: str) -> list[LinkSpan]:
    return [
        LinkSpan(start=match.start(), end=match.end() - 1, url=match.group(0))
        for match in URL_RE.finditer(text)
    ]
