from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

# One structured answer set: label -> ordered raw values. Iteration order is
# the form's question order and is preserved all the way into the document.
SubmissionRecord = Mapping[str, Sequence[str]]

# Opaque identifier issued by a document store for one duplicated template.
DocumentHandle = str

DEFAULT_BLANK_ANSWER_TEXT = "User did not answer this question."


@dataclass(frozen=True)
class KeyFields:
    name: str
    email: str
    lor_contact: str

    def labels(self) -> frozenset[str]:
        return frozenset({self.name, self.email, self.lor_contact})


@dataclass(frozen=True)
class FormattingPolicy:
    excluded_labels: frozenset[str]
    include_blank_answers: bool = True
    blank_answer_text: str = DEFAULT_BLANK_ANSWER_TEXT


def build_formatting_policy(
    *,
    key_fields: KeyFields,
    exclude: Sequence[str] = (),
    include_blank_answers: bool = True,
    blank_answer_text: str = "",
) -> FormattingPolicy:
    # Key fields are rendered through their own placeholders, never twice.
    return FormattingPolicy(
        excluded_labels=frozenset(exclude) | key_fields.labels(),
        include_blank_answers=include_blank_answers,
        blank_answer_text=blank_answer_text or DEFAULT_BLANK_ANSWER_TEXT,
    )


@dataclass(frozen=True)
class AnswerLayout:
    question_spacing_before: float = 10
    question_spacing_after: float = 2
    answer_indent: float = 18
    answer_spacing_after: float = 10


@dataclass(frozen=True)
class AnswerPair:
    label: str
    answer: str


class ParagraphHeading(StrEnum):
    NORMAL = "NORMAL"
    HEADING_3 = "HEADING_3"


@dataclass(frozen=True)
class ParagraphStyle:
    heading: ParagraphHeading = ParagraphHeading.NORMAL
    indent_start: float = 0
    spacing_before: float | None = None
    spacing_after: float | None = None


@dataclass(frozen=True)
class LinkSpan:
    # Character offsets, both ends inclusive.
    start: int
    end: int
    url: str


@dataclass
class Paragraph:
    text: str
    style: ParagraphStyle = field(default_factory=ParagraphStyle)
    links: list[LinkSpan] = field(default_factory=list)


@dataclass(frozen=True)
class ExtractedFields:
    name: str
    email: str
    lor_contact: str
    timestamp: str


@dataclass(frozen=True)
class Artifact:
    file_name: str
    content: bytes
    media_type: str = "application/pdf"


@dataclass(frozen=True)
class RemoteDestination:
    folder: str
    file_name: str

    @property
    def path(self) -> str:
        return f"{self.folder}/{self.file_name}"


@dataclass(frozen=True)
class StorageResponse:
    status_code: int
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
