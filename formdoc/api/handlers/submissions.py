from __future__ import annotations

from formdoc.api.handlers.deps import ApiDeps
from formdoc.api.schemas import PipelineRunResponse
from formdoc.domain.ids import new_run_id
from formdoc.domain.lifecycle import PipelineRun
from formdoc.domain.text import safe_text

COMPONENT_ID = "api.form_submission"


def form_submission_handler(
    deps: ApiDeps,
    *,
    named_values: dict[str, list[str | None]],
    tracker: PipelineRun | None = None,
) -> PipelineRunResponse:
    """Run the publishing pipeline for one form submit event."""
    record = {label: [safe_text(value) for value in values] for label, values in named_values.items()}
    run = deps.pipeline.run(record, tracker=tracker or PipelineRun(run_id=new_run_id()))
    return to_run_response(run)


def to_run_response(run: PipelineRun) -> PipelineRunResponse:
    return PipelineRunResponse(
        run_id=run.run_id,
        state=run.state,
        transitions=list(run.transitions),
        submitter=run.submitter,
        file_name=run.file_name,
        remote_path=run.remote_path,
    )
