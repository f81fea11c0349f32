from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, HTTPException

from formdoc.api.handlers.deps import ApiDeps
from formdoc.api.handlers.submissions import form_submission_handler
from formdoc.api.schemas import (
    ErrorDetail,
    ErrorResponse,
    FormSubmissionRequest,
    HealthResponse,
    PipelineRunResponse,
    ReadyResponse,
)
from formdoc.domain.error_taxonomy import error_code_for
from formdoc.domain.errors import DomainError, DomainValidationError, RemoteStorageError
from formdoc.domain.ids import new_run_id
from formdoc.domain.lifecycle import PipelineRun


def status_code_for(exc: DomainError) -> int:
    if isinstance(exc, RemoteStorageError):
        return 502
    if isinstance(exc, DomainValidationError):
        return 400
    return 500


def build_app(role: str, run_id: str, api_deps: ApiDeps | None = None) -> FastAPI:
    logger = logging.getLogger("runtime")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        del app
        logger.info(
            "role started",
            extra={"role": role, "service": role, "run_id": run_id},
        )
        yield
        logger.info(
            "role stopped",
            extra={"role": role, "service": role, "run_id": run_id},
        )

    app = FastAPI(title="form-doc-publisher", version="0.1.0", lifespan=lifespan)

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health() -> HealthResponse:
        mode = "configured" if api_deps is not None else "empty"
        return HealthResponse(status="ok", role=role, mode=mode)

    @app.get(
        "/ready",
        response_model=ReadyResponse,
        responses={503: {"model": ErrorResponse}},
        tags=["System"],
    )
    async def ready() -> ReadyResponse:
        if api_deps is None:
            raise HTTPException(status_code=503, detail="api dependencies are not available")
        config = api_deps.config
        return ReadyResponse(
            status="ready",
            role=role,
            template_id=config.template_id,
            storage_backend=config.storage.backend,
            documents_backend=config.documents.backend,
            converter_backend=config.converter.backend,
        )

    # Plain def: the pipeline blocks on document and storage calls, so FastAPI
    # runs it in the threadpool.
    @app.post(
        "/submissions",
        response_model=PipelineRunResponse,
        responses={
            400: {"model": ErrorResponse},
            500: {"model": ErrorResponse},
            502: {"model": ErrorResponse},
            503: {"model": ErrorResponse},
        },
        tags=["Submissions"],
    )
    def submit_form(request: FormSubmissionRequest) -> PipelineRunResponse:
        if api_deps is None:
            raise HTTPException(status_code=503, detail="api dependencies are not available")
        tracker = PipelineRun(run_id=new_run_id())
        try:
            return form_submission_handler(api_deps, named_values=request.named_values, tracker=tracker)
        except DomainError as exc:
            detail = ErrorDetail(
                error_code=tracker.error_code or error_code_for(exc),
                message=str(exc),
                run_id=tracker.run_id,
                failed_stage=tracker.failed_stage,
            )
            raise HTTPException(status_code=status_code_for(exc), detail=detail.model_dump()) from exc

    return app
