from __future__ import annotations

import json
import logging

import httpx

from formdoc.config import StorageConfig
from formdoc.domain.errors import StorageTransportError
from formdoc.domain.models import StorageResponse

logger = logging.getLogger("formdoc.dropbox")


class DropboxStorageBackend:
    """Dropbox HTTP API v2 storage backend.

    Returns the status and body of every call as-is; deciding what counts as
    success (409 on create_folder, for example) belongs to the publisher.
    Transport failures surface as StorageTransportError. One attempt per call.
    """

    def __init__(self, *, settings: StorageConfig, client: httpx.Client | None = None) -> None:
        self.settings = settings
        self.client = client or httpx.Client(timeout=settings.timeout_seconds)

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.settings.token}"}

    def create_folder(self, *, path: str) -> StorageResponse:
        url = f"{self.settings.api_url}/files/create_folder_v2"
        try:
            response = self.client.post(
                url,
                headers=self._auth_headers(),
                json={"path": path, "autorename": False},
            )
        except httpx.HTTPError as exc:
            raise StorageTransportError(f"create_folder_v2 request failed: {exc}") from exc
        logger.info("dropbox create_folder_v2", extra={"stage": "converted"})
        return StorageResponse(status_code=response.status_code, text=response.text)

    def upload(self, *, path: str, payload: bytes) -> StorageResponse:
        url = f"{self.settings.content_url}/files/upload"
        api_arg = {
            "path": path,
            "mode": "add",
            "autorename": True,
            "mute": False,
        }
        headers = {
            **self._auth_headers(),
            "Content-Type": "application/octet-stream",
            # Dropbox requires ASCII-only header values; json escapes the rest.
            "Dropbox-API-Arg": json.dumps(api_arg, ensure_ascii=True),
        }
        try:
            response = self.client.post(url, headers=headers, content=payload)
        except httpx.HTTPError as exc:
            raise StorageTransportError(f"upload request failed: {exc}") from exc
        logger.info("dropbox upload", extra={"stage": "folder_ensured"})
        return StorageResponse(status_code=response.status_code, text=response.text)

    def close(self) -> None:
        self.client.close()
