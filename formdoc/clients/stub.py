from __future__ import annotations

from collections.abc import Iterator
from copy import deepcopy
from dataclasses import dataclass, field
import itertools
import json
from pathlib import PurePosixPath
import threading

from formdoc.domain.errors import TemplateNotFoundError
from formdoc.domain.models import DocumentHandle, LinkSpan, Paragraph, ParagraphStyle, StorageResponse

DEFAULT_TEMPLATE_LINES: tuple[str, ...] = (
    "{{DOC_TITLE}}",
    "Name: {{NAME}}",
    "Email: {{EMAIL}}",
    "Submitted: {{TIMESTAMP}}",
    "Letter of Recommendation Contact: {{LOR_CONTACT}}",
    "Answers",
    "{{ANSWERS}}",
)

# Call logs keep only the most recent entries so a long-running memory-mode
# server stays bounded.
HISTORY_LIMIT = 256


@dataclass
class InMemoryDocumentBody:
    paragraphs: list[Paragraph]
    saves: int = 0

    def replace_text(self, token: str, replacement: str) -> int:
        replaced = 0
        for paragraph in self.paragraphs:
            count = paragraph.text.count(token)
            if count:
                paragraph.text = paragraph.text.replace(token, replacement)
                replaced += count
        return replaced

    def find_paragraph(self, token: str) -> int | None:
        for index, paragraph in enumerate(self.paragraphs):
            if token in paragraph.text:
                return index
        return None

    def paragraph_text(self, index: int) -> str:
        return self.paragraphs[index].text

    def replace_in_paragraph(self, index: int, token: str, replacement: str) -> None:
        paragraph = self.paragraphs[index]
        paragraph.text = paragraph.text.replace(token, replacement)

    def insert_paragraph(self, index: int, text: str, style: ParagraphStyle) -> None:
        self.paragraphs.insert(index, Paragraph(text=text, style=style))

    def link_text(self, index: int, *, start: int, end: int, url: str) -> None:
        paragraph = self.paragraphs[index]
        if not 0 <= start <= end < len(paragraph.text):
            raise ValueError(f"link range {start}..{end} is outside paragraph {index}")
        paragraph.links.append(LinkSpan(start=start, end=end, url=url))

    def save(self) -> None:
        self.saves += 1


@dataclass
class InMemoryDocumentStore:
    templates: dict[str, list[Paragraph]] = field(default_factory=dict)
    documents: dict[str, InMemoryDocumentBody] = field(default_factory=dict)
    copy_names: dict[str, str] = field(default_factory=dict)
    disposed: list[str] = field(default_factory=list)
    _handle_ids: Iterator[int] = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False, compare=False
    )
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def add_template(self, template_id: str, lines: tuple[str, ...] | list[str] = DEFAULT_TEMPLATE_LINES) -> None:
        self.templates[template_id] = [Paragraph(text=line) for line in lines]

    def duplicate_template(self, template_id: str, copy_name: str) -> DocumentHandle:
        template = self.templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        body = InMemoryDocumentBody(paragraphs=deepcopy(template))
        with self._lock:
            handle = f"doc-{next(self._handle_ids)}"
            self.documents[handle] = body
            self.copy_names[handle] = copy_name
        return handle

    def open_document(self, handle: DocumentHandle) -> InMemoryDocumentBody:
        body = self.documents.get(handle)
        if body is None:
            raise KeyError(f"document not found: {handle}")
        return body

    def dispose(self, handle: DocumentHandle) -> None:
        with self._lock:
            self.documents.pop(handle, None)
            self.copy_names.pop(handle, None)
            _record(self.disposed, handle)

    @property
    def live_handles(self) -> list[str]:
        return list(self.documents)


@dataclass
class InMemoryFormatConverter:
    store: InMemoryDocumentStore
    media_type: str = "application/pdf"
    conversions: list[str] = field(default_factory=list)

    def to_portable_artifact(self, handle: DocumentHandle) -> bytes:
        _record(self.conversions, handle)
        body = self.store.open_document(handle)
        blocks = [
            {
                "text": paragraph.text,
                "heading": paragraph.style.heading.value,
                "indent_start": paragraph.style.indent_start,
                "spacing_before": paragraph.style.spacing_before,
                "spacing_after": paragraph.style.spacing_after,
                "links": [[link.start, link.end, link.url] for link in paragraph.links],
            }
            for paragraph in body.paragraphs
        ]
        return b"%PDF-STUB\n" + json.dumps(blocks, sort_keys=True, ensure_ascii=False).encode("utf-8")


@dataclass
class StubStorageBackend:
    folders: set[str] = field(default_factory=set)
    files: dict[str, bytes] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)
    folder_error_status: int | None = None
    upload_error_status: int | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def create_folder(self, *, path: str) -> StorageResponse:
        with self._lock:
            _record(self.calls, ("create_folder", path))
            if self.folder_error_status is not None:
                return StorageResponse(
                    status_code=self.folder_error_status,
                    text=json.dumps({"error_summary": "path/malformed_path/"}),
                )
            if path in self.folders:
                return StorageResponse(
                    status_code=409,
                    text=json.dumps({"error_summary": "path/conflict/folder/"}),
                )
            self.folders.add(path)
        return StorageResponse(status_code=200, text=json.dumps({"metadata": {"path_display": path}}))

    def upload(self, *, path: str, payload: bytes) -> StorageResponse:
        with self._lock:
            _record(self.calls, ("upload", path))
            if self.upload_error_status is not None:
                return StorageResponse(
                    status_code=self.upload_error_status,
                    text=json.dumps({"error_summary": "path/insufficient_space/"}),
                )
            final_path = _autorename(path, existing=self.files)
            self.files[final_path] = payload
        return StorageResponse(status_code=200, text=json.dumps({"path_display": final_path}))

    @property
    def remote_calls(self) -> int:
        return len(self.calls)


def _record(log: list, entry: object) -> None:
    log.append(entry)
    if len(log) > HISTORY_LIMIT:
        del log[:-HISTORY_LIMIT]


def _autorename(path: str, *, existing: dict[str, bytes]) -> str:
    if path not in existing:
        return path
    pure = PurePosixPath(path)
    counter = 1
    while True:
        candidate = str(pure.with_name(f"{pure.stem} ({counter}){pure.suffix}"))
        if candidate not in existing:
            return candidate
        counter += 1


@dataclass
class InMemoryTabularSource:
    rows: list[list[object]] = field(default_factory=list)

    def header_row(self) -> list[object]:
        return list(self.rows[0]) if self.rows else []

    def row(self, row_number: int) -> list[object] | None:
        if row_number < 1 or row_number > len(self.rows):
            return None
        return list(self.rows[row_number - 1])
