from __future__ import annotations

from datetime import datetime

from formdoc.clients.stub import InMemoryDocumentStore, InMemoryFormatConverter, StubStorageBackend
from formdoc.config import PublisherConfig, parse_config
from formdoc.domain.use_cases.pipeline import SubmissionPipeline

TEMPLATE_ID = "residency-form"
LOR_LABEL = "LOR"
FIXED_NOW = datetime(2024, 6, 1, 9, 30, 0)


def build_test_config(**overrides: object) -> PublisherConfig:
    data: dict[str, object] = {
        "template_id": TEMPLATE_ID,
        "document_title": "Submitted Residency Form",
        "base_folder": "/Residency/{year}",
        "key_fields": {"name": "Name", "email": "Email", "lor_contact": LOR_LABEL},
        "answers": {
            "exclude": ["Timestamp"],
            "include_blank": True,
            "blank_text": "(blank)",
        },
    }
    data.update(overrides)
    return parse_config(data, now=FIXED_NOW)


def build_pipeline(
    config: PublisherConfig | None = None,
    *,
    template_lines: list[str] | None = None,
) -> tuple[SubmissionPipeline, InMemoryDocumentStore, StubStorageBackend]:
    config = config or build_test_config()
    store = InMemoryDocumentStore()
    if template_lines is None:
        store.add_template(config.template_id)
    else:
        store.add_template(config.template_id, template_lines)
    storage = StubStorageBackend()
    pipeline = SubmissionPipeline(
        config=config,
        documents=store,
        converter=InMemoryFormatConverter(store=store),
        storage=storage,
        clock=lambda: FIXED_NOW,
    )
    return pipeline, store, storage


def jane_doe_record() -> dict[str, list[str]]:
    return {
        "Timestamp": ["2024-03-05T10:15:00Z"],
        "Name": ["Jane Doe"],
        "Email": ["j@x.com"],
        LOR_LABEL: ["A, a@x.com, 555-1234"],
        "Extra Q": ["yes", "no"],
    }
