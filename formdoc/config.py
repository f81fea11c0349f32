from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import os
from pathlib import Path

import yaml

from formdoc.domain.errors import ConfigurationError
from formdoc.domain.models import (
    AnswerLayout,
    FormattingPolicy,
    KeyFields,
    build_formatting_policy,
)

DEFAULT_CONFIG_PATH = "config/publisher.yaml"
DEFAULT_TIMESTAMP_FIELDS: tuple[str, ...] = ("Timestamp", "Submitted at")
DROPBOX_API_URL = "https://api.dropboxapi.com/2"
DROPBOX_CONTENT_URL = "https://content.dropboxapi.com/2"

STORAGE_BACKENDS = ("memory", "dropbox")
DOCUMENT_BACKENDS = ("memory", "docx")
CONVERTER_BACKENDS = ("memory", "soffice")


@dataclass(frozen=True)
class StorageConfig:
    backend: str
    token: str
    api_url: str = DROPBOX_API_URL
    content_url: str = DROPBOX_CONTENT_URL
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class DocumentsConfig:
    backend: str
    template_dir: Path | None = None
    work_dir: Path | None = None


@dataclass(frozen=True)
class ConverterConfig:
    backend: str
    binary: str = "soffice"
    timeout_seconds: float = 120.0


@dataclass(frozen=True)
class PublisherConfig:
    template_id: str
    document_title: str
    base_folder: str
    key_fields: KeyFields
    formatting: FormattingPolicy
    layout: AnswerLayout
    timestamp_fields: tuple[str, ...]
    artifact_extension: str
    storage: StorageConfig
    documents: DocumentsConfig
    converter: ConverterConfig


def config_path_from_env() -> Path:
    return Path(os.getenv("FORMDOC_CONFIG", DEFAULT_CONFIG_PATH))


def load_config(*, file_path: str | Path, now: datetime | None = None) -> PublisherConfig:
    path = Path(file_path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"cannot read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError("publisher config must be a YAML object")
    return parse_config(data, base_dir=path.parent, now=now)


def parse_config(
    data: dict[str, object],
    *,
    base_dir: Path | None = None,
    now: datetime | None = None,
) -> PublisherConfig:
    current = now or datetime.now()

    template_id = _required_str(data, "template_id")
    document_title = _required_str(data, "document_title")
    base_folder = _required_str(data, "base_folder").replace("{year}", str(current.year)).rstrip("/")
    if not base_folder.startswith("/"):
        raise ConfigurationError("base_folder must be an absolute remote path starting with '/'")

    key_fields_raw = _required_obj(data, "key_fields")
    key_fields = KeyFields(
        name=_required_str(key_fields_raw, "name"),
        email=_required_str(key_fields_raw, "email"),
        lor_contact=_required_str(key_fields_raw, "lor_contact"),
    )

    answers_raw = _optional_obj(data, "answers")
    formatting = build_formatting_policy(
        key_fields=key_fields,
        exclude=_optional_str_list(answers_raw, "exclude", default=["Timestamp"]),
        include_blank_answers=_optional_bool(answers_raw, "include_blank", default=True),
        blank_answer_text=_optional_str(
            answers_raw,
            "blank_text",
            default="The applicant did not provide an answer to this question.",
        ),
    )

    layout_raw = _optional_obj(data, "layout")
    defaults = AnswerLayout()
    layout = AnswerLayout(
        question_spacing_before=_optional_float(
            layout_raw, "question_spacing_before", default=defaults.question_spacing_before
        ),
        question_spacing_after=_optional_float(
            layout_raw, "question_spacing_after", default=defaults.question_spacing_after
        ),
        answer_indent=_optional_float(layout_raw, "answer_indent", default=defaults.answer_indent),
        answer_spacing_after=_optional_float(
            layout_raw, "answer_spacing_after", default=defaults.answer_spacing_after
        ),
    )

    timestamp_fields = tuple(
        _optional_str_list(data, "timestamp_fields", default=list(DEFAULT_TIMESTAMP_FIELDS))
    )
    artifact_extension = _optional_str(data, "artifact_extension", default="pdf").lstrip(".")

    storage_raw = _optional_obj(data, "storage")
    storage = StorageConfig(
        backend=_choice(storage_raw, "backend", STORAGE_BACKENDS, default="memory"),
        token=os.getenv("DROPBOX_TOKEN") or _optional_str(storage_raw, "token", default=""),
        api_url=_optional_str(storage_raw, "api_url", default=DROPBOX_API_URL).rstrip("/"),
        content_url=_optional_str(storage_raw, "content_url", default=DROPBOX_CONTENT_URL).rstrip("/"),
        timeout_seconds=_optional_float(storage_raw, "timeout_seconds", default=30.0),
    )
    if storage.backend == "dropbox" and not storage.token:
        raise ConfigurationError("storage.token (or DROPBOX_TOKEN) is required for the dropbox backend")

    documents_raw = _optional_obj(data, "documents")
    documents = DocumentsConfig(
        backend=_choice(documents_raw, "backend", DOCUMENT_BACKENDS, default="memory"),
        template_dir=_optional_path(documents_raw, "template_dir", base_dir=base_dir),
        work_dir=_optional_path(documents_raw, "work_dir", base_dir=base_dir),
    )
    if documents.backend == "docx" and documents.template_dir is None:
        raise ConfigurationError("documents.template_dir is required for the docx backend")

    converter_raw = _optional_obj(data, "converter")
    converter = ConverterConfig(
        backend=_choice(converter_raw, "backend", CONVERTER_BACKENDS, default="memory"),
        binary=_optional_str(converter_raw, "binary", default="soffice"),
        timeout_seconds=_optional_float(converter_raw, "timeout_seconds", default=120.0),
    )
    if converter.backend == "soffice" and documents.backend != "docx":
        raise ConfigurationError("converter backend 'soffice' requires documents backend 'docx'")
    if converter.backend == "memory" and documents.backend != "memory":
        raise ConfigurationError("converter backend 'memory' requires documents backend 'memory'")

    return PublisherConfig(
        template_id=template_id,
        document_title=document_title,
        base_folder=base_folder,
        key_fields=key_fields,
        formatting=formatting,
        layout=layout,
        timestamp_fields=timestamp_fields,
        artifact_extension=artifact_extension,
        storage=storage,
        documents=documents,
        converter=converter,
    )


def _required_obj(data: dict[str, object], key: str) -> dict[str, object]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ConfigurationError(f"{key} must be an object")
    return value


def _optional_obj(data: dict[str, object], key: str) -> dict[str, object]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"{key} must be an object")
    return value


def _required_str(data: dict[str, object], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"{key} must be a non-empty string")
    return value


def _optional_str(data: dict[str, object], key: str, *, default: str) -> str:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigurationError(f"{key} must be a string")
    return value


def _optional_bool(data: dict[str, object], key: str, *, default: bool) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigurationError(f"{key} must be a boolean")
    return value


def _optional_float(data: dict[str, object], key: str, *, default: float) -> float:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{key} must be a number")
    if value < 0:
        raise ConfigurationError(f"{key} must be >= 0")
    return float(value)


def _optional_str_list(data: dict[str, object], key: str, *, default: list[str]) -> list[str]:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigurationError(f"{key} must be a list of strings")
    return list(value)


def _optional_path(data: dict[str, object], key: str, *, base_dir: Path | None) -> Path | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"{key} must be a non-empty string")
    path = Path(value)
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return path


def _choice(data: dict[str, object], key: str, allowed: tuple[str, ...], *, default: str) -> str:
    value = _optional_str(data, key, default=default)
    if value not in allowed:
        raise ConfigurationError(f"{key} must be one of: {', '.join(allowed)}")
    return value
