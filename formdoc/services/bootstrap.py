from __future__ import annotations

from dataclasses import dataclass

from formdoc.clients.docx_store import DocxDocumentStore
from formdoc.clients.dropbox import DropboxStorageBackend
from formdoc.clients.soffice import SofficeFormatConverter
from formdoc.clients.stub import InMemoryDocumentStore, InMemoryFormatConverter, StubStorageBackend
from formdoc.config import PublisherConfig
from formdoc.domain.contracts import DocumentStore, FormatConverter, StorageBackend
from formdoc.domain.errors import ConfigurationError
from formdoc.domain.use_cases.pipeline import SubmissionPipeline


@dataclass
class RuntimeContainer:
    config: PublisherConfig
    documents: DocumentStore
    converter: FormatConverter
    storage: StorageBackend
    pipeline: SubmissionPipeline


def build_runtime_container(config: PublisherConfig) -> RuntimeContainer:
    documents: DocumentStore
    converter: FormatConverter
    storage: StorageBackend

    if config.documents.backend == "docx":
        if config.documents.template_dir is None:
            raise ConfigurationError("documents.template_dir is required for the docx backend")
        documents = DocxDocumentStore(
            template_dir=config.documents.template_dir,
            work_dir=config.documents.work_dir,
        )
    else:
        memory_store = InMemoryDocumentStore()
        memory_store.add_template(config.template_id)
        documents = memory_store

    if config.converter.backend == "soffice":
        converter = SofficeFormatConverter(
            binary=config.converter.binary,
            timeout_seconds=config.converter.timeout_seconds,
        )
    else:
        if not isinstance(documents, InMemoryDocumentStore):
            raise ConfigurationError("converter backend 'memory' requires documents backend 'memory'")
        converter = InMemoryFormatConverter(store=documents)

    if config.storage.backend == "dropbox":
        storage = DropboxStorageBackend(settings=config.storage)
    else:
        storage = StubStorageBackend()

    return RuntimeContainer(
        config=config,
        documents=documents,
        converter=converter,
        storage=storage,
        pipeline=SubmissionPipeline(
            config=config,
            documents=documents,
            converter=converter,
            storage=storage,
        ),
    )
