from __future__ import annotations

from collections.abc import Iterator
from copy import deepcopy
import logging
from pathlib import Path
import shutil
import tempfile
import uuid

from docx import Document
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, RGBColor
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from formdoc.domain.errors import TemplateNotFoundError
from formdoc.domain.models import DocumentHandle, ParagraphHeading, ParagraphStyle
from formdoc.domain.text import sanitize_path_segment

HEADING_STYLE_NAMES: dict[ParagraphHeading, str] = {
    ParagraphHeading.NORMAL: "Normal",
    ParagraphHeading.HEADING_3: "Heading 3",
}
HYPERLINK_COLOR = RGBColor(0x11, 0x55, 0xCC)

logger = logging.getLogger("formdoc.docx")


class DocxDocumentBody:
    def __init__(self, *, document, path: Path) -> None:
        self.document = document
        self.path = path

    def replace_text(self, token: str, replacement: str) -> int:
        replaced = 0
        for paragraph in _iter_container_paragraphs(self.document):
            replaced += _replace_in_paragraph(paragraph, token, replacement)
        return replaced

    def find_paragraph(self, token: str) -> int | None:
        for index, paragraph in enumerate(self.document.paragraphs):
            if token in paragraph.text:
                return index
        return None

    def paragraph_text(self, index: int) -> str:
        return self.document.paragraphs[index].text

    def replace_in_paragraph(self, index: int, token: str, replacement: str) -> None:
        _replace_in_paragraph(self.document.paragraphs[index], token, replacement)

    def insert_paragraph(self, index: int, text: str, style: ParagraphStyle) -> None:
        # Placed right after paragraph index - 1, ahead of any table that follows it.
        paragraphs = self.document.paragraphs
        if not paragraphs:
            paragraph = self.document.add_paragraph()
        else:
            new_p = OxmlElement("w:p")
            if index <= 0:
                paragraphs[0]._p.addprevious(new_p)
            else:
                paragraphs[min(index, len(paragraphs)) - 1]._p.addnext(new_p)
            paragraph = Paragraph(new_p, paragraphs[0]._parent)

        paragraph.add_run(text)
        self._apply_style(paragraph, style)

    def link_text(self, index: int, *, start: int, end: int, url: str) -> None:
        paragraph = self.document.paragraphs[index]
        offset = 0
        for child in list(paragraph._p):
            if child.tag == qn("w:r"):
                run = Run(child, paragraph)
                length = len(run.text)
                if offset <= start and end < offset + length:
                    _split_run_with_link(paragraph, run, start - offset, end - offset, url)
                    return
                offset += length
            elif child.tag == qn("w:hyperlink"):
                offset += len("".join(node.text or "" for node in child.iter(qn("w:t"))))
        raise ValueError(f"link range {start}..{end} does not fall inside a single run of paragraph {index}")

    def save(self) -> None:
        self.document.save(str(self.path))

    def _apply_style(self, paragraph: Paragraph, style: ParagraphStyle) -> None:
        style_name = HEADING_STYLE_NAMES[style.heading]
        try:
            paragraph.style = self.document.styles[style_name]
        except KeyError:
            logger.warning("template has no paragraph style %r", style_name)

        fmt = paragraph.paragraph_format
        if style.indent_start:
            fmt.left_indent = Pt(style.indent_start)
        if style.spacing_before is not None:
            fmt.space_before = Pt(style.spacing_before)
        if style.spacing_after is not None:
            fmt.space_after = Pt(style.spacing_after)


class DocxDocumentStore:
    """Word templates on disk, one ``{template_id}.docx`` per template.

    Each run gets its own copy under ``work_dir``; the handle is the copy's path.
    """

    def __init__(self, *, template_dir: Path, work_dir: Path | None = None) -> None:
        self.template_dir = template_dir
        self.work_dir = work_dir or Path(tempfile.gettempdir()) / "formdoc"
        self._handles: set[str] = set()

    def duplicate_template(self, template_id: str, copy_name: str) -> DocumentHandle:
        template_path = self._template_path(template_id)
        if template_path is None:
            raise TemplateNotFoundError(template_id)

        self.work_dir.mkdir(parents=True, exist_ok=True)
        copy_path = self.work_dir / f"{sanitize_path_segment(copy_name)} - {uuid.uuid4().hex[:8]}.docx"
        shutil.copyfile(template_path, copy_path)
        handle = str(copy_path)
        self._handles.add(handle)
        return handle

    def open_document(self, handle: DocumentHandle) -> DocxDocumentBody:
        if handle not in self._handles:
            raise KeyError(f"document not found: {handle}")
        path = Path(handle)
        return DocxDocumentBody(document=Document(str(path)), path=path)

    def dispose(self, handle: DocumentHandle) -> None:
        Path(handle).unlink(missing_ok=True)
        self._handles.discard(handle)

    def _template_path(self, template_id: str) -> Path | None:
        file_name = template_id if template_id.endswith(".docx") else f"{template_id}.docx"
        if Path(file_name).name != file_name:
            return None
        path = self.template_dir / file_name
        return path if path.is_file() else None


def _iter_container_paragraphs(container) -> Iterator[Paragraph]:
    yield from container.paragraphs
    for table in container.tables:
        for row in table.rows:
            for cell in row.cells:
                yield from _iter_container_paragraphs(cell)


def _replace_in_paragraph(paragraph: Paragraph, token: str, replacement: str) -> int:
    count = paragraph.text.count(token)
    if not count:
        return 0

    # Word often splits a typed token over several runs. Only the runs an
    # occurrence spans are merged, into the first of them; the others keep
    # their text and formatting.
    runs = paragraph.runs
    texts = [run.text for run in runs]
    position = "".join(texts).find(token)
    while position != -1:
        first, last, offset = _runs_covering(texts, position, position + len(token))
        spanned = "".join(texts[first : last + 1])
        local = position - offset
        texts[first] = spanned[:local] + replacement + spanned[local + len(token) :]
        runs[first].text = texts[first]
        for index in range(first + 1, last + 1):
            texts[index] = ""
            runs[index].text = ""
        position = "".join(texts).find(token, position + len(replacement))
    return count


def _runs_covering(texts: list[str], start: int, end: int) -> tuple[int, int, int]:
    """Indexes of the runs holding characters ``start`` and ``end - 1``, plus the first run's offset."""
    first = 0
    first_offset = 0
    offset = 0
    found_first = False
    for index, text in enumerate(texts):
        run_end = offset + len(text)
        if not found_first and start < run_end:
            first, first_offset, found_first = index, offset, True
        if found_first and end <= run_end:
            return first, index, first_offset
        offset = run_end
    return first, len(texts) - 1, first_offset


def _split_run_with_link(paragraph: Paragraph, run: Run, start: int, end: int, url: str) -> None:
    text = run.text
    before, linked, after = text[:start], text[start : end + 1], text[end + 1 :]

    link_r = deepcopy(run._r)
    after_r = deepcopy(run._r) if after else None

    hyperlink = OxmlElement("w:hyperlink")
    hyperlink.set(qn("r:id"), paragraph.part.relate_to(url, RT.HYPERLINK, is_external=True))
    hyperlink.append(link_r)
    link_run = Run(link_r, paragraph)
    link_run.text = linked
    link_run.font.underline = True
    link_run.font.color.rgb = HYPERLINK_COLOR
    run._r.addnext(hyperlink)

    if after_r is not None:
        hyperlink.addnext(after_r)
        Run(after_r, paragraph).text = after

    if before:
        run.text = before
    else:
        paragraph._p.remove(run._r)
