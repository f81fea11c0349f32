import json

import httpx
import pytest

from formdoc.clients.dropbox import DropboxStorageBackend
from formdoc.config import StorageConfig
from formdoc.domain.errors import StorageTransportError

SETTINGS = StorageConfig(backend="dropbox", token="secret-token")


def _backend(handler) -> DropboxStorageBackend:
    return DropboxStorageBackend(settings=SETTINGS, client=httpx.Client(transport=httpx.MockTransport(handler)))


@pytest.mark.unit
def test_create_folder_posts_json_with_bearer_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(409, json={"error_summary": "path/conflict/folder/"})

    response = _backend(handler).create_folder(path="/Base/Jane Doe")

    assert response.status_code == 409
    assert "conflict" in response.text
    request = seen[0]
    assert str(request.url) == "https://api.dropboxapi.com/2/files/create_folder_v2"
    assert request.headers["Authorization"] == "Bearer secret-token"
    assert json.loads(request.content) == {"path": "/Base/Jane Doe", "autorename": False}


@pytest.mark.unit
def test_upload_sends_api_arg_header_and_raw_bytes() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"path_display": "/Base/José/f.pdf"})

    response = _backend(handler).upload(path="/Base/José/f.pdf", payload=b"%PDF-1.7")

    assert response.ok
    request = seen[0]
    assert str(request.url) == "https://content.dropboxapi.com/2/files/upload"
    assert request.headers["Content-Type"] == "application/octet-stream"
    assert json.loads(request.headers["Dropbox-API-Arg"]) == {
        "path": "/Base/José/f.pdf",
        "mode": "add",
        "autorename": True,
        "mute": False,
    }
    assert request.content == b"%PDF-1.7"


@pytest.mark.unit
def test_error_status_is_returned_not_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="invalid_access_token")

    response = _backend(handler).upload(path="/x/f.pdf", payload=b"")

    assert response.status_code == 401
    assert response.ok is False


@pytest.mark.unit
def test_transport_failure_raises_storage_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StorageTransportError):
        _backend(handler).create_folder(path="/x")
