from dataclasses import replace
from pathlib import Path

import pytest

from formdoc.clients.docx_store import DocxDocumentStore
from formdoc.clients.dropbox import DropboxStorageBackend
from formdoc.clients.soffice import SofficeFormatConverter
from formdoc.clients.stub import (
    InMemoryDocumentStore,
    InMemoryFormatConverter,
    InMemoryTabularSource,
    StubStorageBackend,
)
from formdoc.config import DocumentsConfig
from formdoc.domain.contracts import DocumentBody, DocumentStore, FormatConverter, StorageBackend, TabularSource
from formdoc.domain.errors import ConfigurationError
from formdoc.services.bootstrap import build_runtime_container
from tests.unit.pipeline_fixtures import build_test_config


@pytest.mark.unit
def test_stub_adapters_satisfy_contracts() -> None:
    store = InMemoryDocumentStore()
    store.add_template("t")
    handle = store.duplicate_template("t", "TEMP")

    assert isinstance(store, DocumentStore)
    assert isinstance(store.open_document(handle), DocumentBody)
    assert isinstance(InMemoryFormatConverter(store=store), FormatConverter)
    assert isinstance(StubStorageBackend(), StorageBackend)
    assert isinstance(InMemoryTabularSource(rows=[]), TabularSource)


@pytest.mark.unit
def test_runtime_container_wires_memory_backends() -> None:
    container = build_runtime_container(build_test_config())

    assert isinstance(container.documents, InMemoryDocumentStore)
    assert isinstance(container.converter, InMemoryFormatConverter)
    assert isinstance(container.storage, StubStorageBackend)
    assert container.pipeline.documents is container.documents
    assert "residency-form" in container.documents.templates


@pytest.mark.unit
def test_runtime_container_rejects_inconsistent_backends(tmp_path: Path) -> None:
    config = build_test_config()

    with pytest.raises(ConfigurationError, match="template_dir"):
        build_runtime_container(replace(config, documents=DocumentsConfig(backend="docx")))
    with pytest.raises(ConfigurationError, match="converter backend 'memory'"):
        build_runtime_container(
            replace(config, documents=DocumentsConfig(backend="docx", template_dir=tmp_path))
        )


@pytest.mark.unit
def test_runtime_container_wires_real_backends(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DROPBOX_TOKEN", "token")
    config = build_test_config(
        storage={"backend": "dropbox"},
        documents={"backend": "docx", "template_dir": str(tmp_path)},
        converter={"backend": "soffice", "binary": "libreoffice"},
    )

    container = build_runtime_container(config)

    assert isinstance(container.documents, DocxDocumentStore)
    assert isinstance(container.converter, SofficeFormatConverter)
    assert container.converter.binary == "libreoffice"
    assert isinstance(container.storage, DropboxStorageBackend)
    assert isinstance(container.storage, StorageBackend)
    container.storage.close()
