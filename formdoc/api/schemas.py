from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    error_code: str
    message: str
    run_id: str | None = None
    failed_stage: str | None = None


class ErrorResponse(BaseModel):
    detail: ErrorDetail | str


class HealthResponse(BaseModel):
    status: str
    role: str
    mode: str


class ReadyResponse(BaseModel):
    status: str
    role: str
    template_id: str
    storage_backend: str
    documents_backend: str
    converter_backend: str


class FormSubmissionRequest(BaseModel):
    # Same shape as a form submit event: header -> list of values.
    named_values: dict[str, list[str | None]] = Field(min_length=1)


class PipelineRunResponse(BaseModel):
    run_id: str
    state: str
    transitions: list[str]
    submitter: str | None
    file_name: str | None
    remote_path: str | None
