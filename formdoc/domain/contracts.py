from __future__ import annotations

from typing import Protocol, runtime_checkable

from formdoc.domain.models import DocumentHandle, ParagraphStyle, StorageResponse


@runtime_checkable
class DocumentBody(Protocol):
    """Editable body of one duplicated document.

    Paragraph indexes are positions in the body's top-level paragraph list.
    """

    def replace_text(self, token: str, replacement: str) -> int: ...

    def find_paragraph(self, token: str) -> int | None: ...

    def paragraph_text(self, index: int) -> str: ...

    def replace_in_paragraph(self, index: int, token: str, replacement: str) -> None: ...

    def insert_paragraph(self, index: int, text: str, style: ParagraphStyle) -> None: ...

    def link_text(self, index: int, *, start: int, end: int, url: str) -> None: ...

    def save(self) -> None: ...


@runtime_checkable
class DocumentStore(Protocol):
    """Template storage with copy-on-use semantics.

    Templates are never edited in place; every run works on its own copy and
    must hand the handle back through dispose().
    """

    def duplicate_template(self, template_id: str, copy_name: str) -> DocumentHandle: ...

    def open_document(self, handle: DocumentHandle) -> DocumentBody: ...

    def dispose(self, handle: DocumentHandle) -> None: ...


@runtime_checkable
class FormatConverter(Protocol):
    media_type: str

    def to_portable_artifact(self, handle: DocumentHandle) -> bytes: ...


@runtime_checkable
class StorageBackend(Protocol):
    """Remote storage contract. Implementations report status, never raise on it."""

    def create_folder(self, *, path: str) -> StorageResponse: ...

    def upload(self, *, path: str, payload: bytes) -> StorageResponse: ...


@runtime_checkable
class TabularSource(Protocol):
    """Sheet-like store. Row numbers are 1-based and row 1 is the header."""

    def header_row(self) -> list[object]: ...

    def row(self, row_number: int) -> list[object] | None: ...
