from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
import logging

from formdoc.config import PublisherConfig
from formdoc.domain.contracts import DocumentStore, FormatConverter, StorageBackend
from formdoc.domain.dto import RenderDocumentCommand
from formdoc.domain.error_taxonomy import error_code_for, resolve_stage_error
from formdoc.domain.ids import new_run_id
from formdoc.domain.lifecycle import PipelineRun
from formdoc.domain.models import DocumentHandle, ExtractedFields, KeyFields, SubmissionRecord
from formdoc.domain.text import UNKNOWN_SEGMENT, parse_submission_timestamp, safe_text
from formdoc.domain.use_cases.publish import (
    build_artifact_file_name,
    build_remote_destination,
    convert_to_artifact,
    ensure_folder,
    upload,
)
from formdoc.domain.use_cases.render import duplicate_template, render_document

COMPONENT_ID = "domain.pipeline.run"

logger = logging.getLogger("formdoc.pipeline")


def extract_key_fields(
    record: SubmissionRecord,
    *,
    key_fields: KeyFields,
    timestamp_fields: Sequence[str],
    now: datetime,
) -> ExtractedFields:
    timestamp = ""
    for label in timestamp_fields:
        timestamp = safe_text(_first_value(record, label))
        if timestamp:
            break

    return ExtractedFields(
        name=safe_text(_first_value(record, key_fields.name)).strip() or UNKNOWN_SEGMENT,
        email=safe_text(_first_value(record, key_fields.email)).strip(),
        lor_contact=safe_text(_first_value(record, key_fields.lor_contact)),
        timestamp=timestamp or now.isoformat(timespec="seconds"),
    )


def _first_value(record: SubmissionRecord, label: str) -> object:
    values = record.get(label)
    if values is None:
        return None
    if isinstance(values, str):
        return values
    return values[0] if len(values) else None


@contextmanager
def scoped_document(store: DocumentStore, *, template_id: str, copy_name: str) -> Iterator[DocumentHandle]:
    """Duplicate the template and dispose the copy on every exit path.

    A dispose failure while another error is already propagating is logged and
    the original error wins.
    """
    handle = duplicate_template(store, template_id=template_id, copy_name=copy_name)
    try:
        yield handle
    except BaseException:
        try:
            store.dispose(handle)
        except Exception:
            logger.exception("failed to dispose rendered document", extra={"stage": "failed"})
        raise
    store.dispose(handle)


@dataclass
class SubmissionPipeline:
    config: PublisherConfig
    documents: DocumentStore
    converter: FormatConverter
    storage: StorageBackend
    clock: Callable[[], datetime] = field(default=datetime.now)

    def run(self, record: SubmissionRecord, *, tracker: PipelineRun | None = None) -> PipelineRun:
        """Render, convert and publish one submission.

        Any failure marks the run failed and re-raises the underlying error.
        """
        run = tracker or PipelineRun(run_id=new_run_id())
        try:
            self._execute(record, run)
        except Exception as exc:
            code = resolve_stage_error(stage=run.state, code=error_code_for(exc))
            run.fail(error_code=code, detail=str(exc))
            logger.error(
                "pipeline run failed",
                extra={
                    "run_id": run.run_id,
                    "stage": run.failed_stage,
                    "submitter": run.submitter,
                    "error_code": code,
                },
            )
            raise
        return run

    def _execute(self, record: SubmissionRecord, run: PipelineRun) -> None:
        config = self.config
        now = self.clock()

        fields = extract_key_fields(
            record,
            key_fields=config.key_fields,
            timestamp_fields=config.timestamp_fields,
            now=now,
        )
        run.submitter = fields.name
        self._advance(run, "fields_extracted")

        copy_name = f"TEMP - {fields.name} - {now.isoformat()}"
        with scoped_document(self.documents, template_id=config.template_id, copy_name=copy_name) as handle:
            render_document(
                self.documents,
                RenderDocumentCommand(
                    handle=handle,
                    doc_title=config.document_title,
                    name=fields.name,
                    email=fields.email,
                    timestamp=fields.timestamp,
                    lor_contact=fields.lor_contact,
                    record=record,
                    policy=config.formatting,
                    layout=config.layout,
                ),
            )
            self._advance(run, "rendered")

            file_name = build_artifact_file_name(
                doc_title=config.document_title,
                submitter_name=fields.name,
                submitted_at=self._submitted_at(fields.timestamp, now=now, run=run),
                extension=config.artifact_extension,
            )
            artifact = convert_to_artifact(self.converter, handle, file_name=file_name)
            run.file_name = file_name
            self._advance(run, "converted")

            destination = build_remote_destination(
                base_folder=config.base_folder,
                submitter_name=fields.name,
                file_name=file_name,
            )
            ensure_folder(self.storage, path=destination.folder)
            self._advance(run, "folder_ensured")

            upload(self.storage, destination=destination, artifact=artifact)
            run.remote_path = destination.path
            self._advance(run, "uploaded")

        self._advance(run, "cleaned")

    def _submitted_at(self, raw: str, *, now: datetime, run: PipelineRun) -> datetime:
        parsed = parse_submission_timestamp(raw)
        if parsed is not None:
            return parsed
        logger.warning(
            "unparseable submission timestamp, using run time for file name",
            extra={"run_id": run.run_id, "stage": run.state},
        )
        return now

    def _advance(self, run: PipelineRun, to_state: str) -> None:
        run.advance(to_state)
        logger.info(
            "pipeline state changed",
            extra={"run_id": run.run_id, "stage": to_state, "submitter": run.submitter},
        )
