from __future__ import annotations

from datetime import datetime
import json
import logging

from formdoc.domain.contracts import FormatConverter, StorageBackend
from formdoc.domain.errors import FolderProvisionError, StorageTransportError, UploadError
from formdoc.domain.models import Artifact, DocumentHandle, RemoteDestination, StorageResponse
from formdoc.domain.text import format_date_for_filename, sanitize_path_segment

COMPONENT_ID = "domain.publish.artifact"

# Dropbox answers create_folder_v2 with 409 path/conflict/folder when the
# folder is already there. The same status also covers a file in the way,
# missing write permission and a full quota.
FOLDER_CONFLICT_STATUS = 409
EXISTING_FOLDER_SUMMARY = "path/conflict/folder"

logger = logging.getLogger("formdoc.publish")


def build_artifact_file_name(
    *,
    doc_title: str,
    submitter_name: str,
    submitted_at: datetime,
    extension: str = "pdf",
) -> str:
    return (
        f"{doc_title} - {sanitize_path_segment(submitter_name)}"
        f" - {format_date_for_filename(submitted_at)}.{extension}"
    )


def build_remote_destination(*, base_folder: str, submitter_name: str, file_name: str) -> RemoteDestination:
    folder = f"{base_folder.rstrip('/')}/{sanitize_path_segment(submitter_name)}"
    return RemoteDestination(folder=folder, file_name=file_name)


def convert_to_artifact(converter: FormatConverter, handle: DocumentHandle, *, file_name: str) -> Artifact:
    content = converter.to_portable_artifact(handle)
    return Artifact(file_name=file_name, content=bytes(content), media_type=converter.media_type)


def ensure_folder(storage: StorageBackend, *, path: str) -> StorageResponse:
    try:
        response = storage.create_folder(path=path)
    except StorageTransportError as exc:
        raise FolderProvisionError(status=None, message=str(exc)) from exc

    if response.status_code == FOLDER_CONFLICT_STATUS and _is_existing_folder(response.text):
        logger.info("folder already exists", extra={"stage": "folder_ensured"})
        return response
    if not response.ok:
        raise FolderProvisionError(status=response.status_code, message=response.text)
    return response


def _is_existing_folder(body: str) -> bool:
    """True unless the conflict body names a cause other than an existing folder.

    Bodies without an ``error_summary`` keep the plain conflict-is-success rule.
    """
    try:
        payload = json.loads(body)
    except ValueError:
        return True
    summary = payload.get("error_summary") if isinstance(payload, dict) else None
    if not isinstance(summary, str) or not summary:
        return True
    return summary.startswith(EXISTING_FOLDER_SUMMARY)


def upload(storage: StorageBackend, *, destination: RemoteDestination, artifact: Artifact) -> StorageResponse:
    """Single-attempt upload. Name collisions are resolved by the backend's autorename."""
    try:
        response = storage.upload(path=destination.path, payload=artifact.content)
    except StorageTransportError as exc:
        raise UploadError(status=None, message=str(exc)) from exc

    if not response.ok:
        raise UploadError(status=response.status_code, message=response.text)
    return response
