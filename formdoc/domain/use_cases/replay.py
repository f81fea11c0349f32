from __future__ import annotations

from collections.abc import Sequence
import logging

from formdoc.domain.contracts import TabularSource
from formdoc.domain.dto import ReplayRowCommand
from formdoc.domain.errors import InvalidSelectionError
from formdoc.domain.lifecycle import PipelineRun
from formdoc.domain.models import SubmissionRecord
from formdoc.domain.text import safe_text
from formdoc.domain.use_cases.pipeline import SubmissionPipeline

COMPONENT_ID = "domain.replay.row"
HEADER_ROW_NUMBER = 1

logger = logging.getLogger("formdoc.replay")


def build_record_from_row(headers: Sequence[object], values: Sequence[object]) -> SubmissionRecord:
    """Rebuild the webhook payload shape from one sheet row.

    Every header maps to a single-element list, the same shape form submit
    events deliver. Missing trailing cells count as blank.
    """
    record: dict[str, list[str]] = {}
    for index, header in enumerate(headers):
        value = values[index] if index < len(values) else ""
        record[safe_text(header)] = [safe_text(value)]
    return record


def replay_row(cmd: ReplayRowCommand, *, source: TabularSource, pipeline: SubmissionPipeline) -> PipelineRun:
    row_number = cmd.row_number
    if row_number is None or row_number <= HEADER_ROW_NUMBER:
        raise InvalidSelectionError("Please select a data row (not the header).")

    values = source.row(row_number)
    if values is None:
        raise InvalidSelectionError(f"row {row_number} does not exist in the sheet")

    record = build_record_from_row(source.header_row(), values)
    logger.info("replaying sheet row", extra={"stage": "received", "row": row_number})
    return pipeline.run(record)
