from __future__ import annotations

from dataclasses import dataclass

from formdoc.domain.models import (
    AnswerLayout,
    DocumentHandle,
    FormattingPolicy,
    SubmissionRecord,
)


@dataclass(frozen=True)
class RenderDocumentCommand:
    handle: DocumentHandle
    doc_title: str
    name: str
    email: str
    timestamp: str
    lor_contact: str
    record: SubmissionRecord
    policy: FormattingPolicy
    layout: AnswerLayout


@dataclass(frozen=True)
class RenderDocumentResult:
    handle: DocumentHandle
    answers_inserted: int
    links_added: int


@dataclass(frozen=True)
class ReplayRowCommand:
    row_number: int | None
