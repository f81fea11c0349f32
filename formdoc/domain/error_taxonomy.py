from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

from formdoc.domain.errors import (
    AnswersPlaceholderMissingError,
    ConfigurationError,
    ConversionError,
    FolderProvisionError,
    InvalidSelectionError,
    TemplateNotFoundError,
    UploadError,
)

# Canonical error vocabulary for all pipeline states.
ErrorCode = Literal[
    "configuration_invalid",
    "template_not_found",
    "answers_placeholder_missing",
    "conversion_failed",
    "folder_provision_failed",
    "upload_failed",
    "invalid_selection",
    "internal_error",
]

CANONICAL_ERROR_CODES: tuple[ErrorCode, ...] = (
    "configuration_invalid",
    "template_not_found",
    "answers_placeholder_missing",
    "conversion_failed",
    "folder_provision_failed",
    "upload_failed",
    "invalid_selection",
    "internal_error",
)

# Most specific class first; lookups walk this in order.
ERROR_CODE_BY_TYPE: tuple[tuple[type[Exception], ErrorCode], ...] = (
    (ConfigurationError, "configuration_invalid"),
    (TemplateNotFoundError, "template_not_found"),
    (AnswersPlaceholderMissingError, "answers_placeholder_missing"),
    (ConversionError, "conversion_failed"),
    (FolderProvisionError, "folder_provision_failed"),
    (UploadError, "upload_failed"),
    (InvalidSelectionError, "invalid_selection"),
)

# State-specific allowlist, keyed by the state the run was leaving when it
# failed. A code outside this map is normalized to internal_error by
# resolve_stage_error().
STAGE_ERROR_MAP: Mapping[str, frozenset[ErrorCode]] = {
    "received": frozenset({"configuration_invalid", "invalid_selection", "internal_error"}),
    "fields_extracted": frozenset(
        {
            "template_not_found",
            "answers_placeholder_missing",
            "internal_error",
        }
    ),
    "rendered": frozenset({"conversion_failed", "internal_error"}),
    "converted": frozenset({"folder_provision_failed", "internal_error"}),
    "folder_ensured": frozenset({"upload_failed", "internal_error"}),
    "uploaded": frozenset({"internal_error"}),
}


def is_canonical_error_code(code: str) -> bool:
    return code in CANONICAL_ERROR_CODES


def error_code_for(exc: BaseException) -> ErrorCode:
    for error_type, code in ERROR_CODE_BY_TYPE:
        if isinstance(exc, error_type):
            return code
    return "internal_error"


def resolve_stage_error(*, stage: str, code: str) -> ErrorCode:
    allowed = STAGE_ERROR_MAP.get(stage, frozenset({"internal_error"}))
    if code in allowed and is_canonical_error_code(code):
        return code  # type: ignore[return-value]
    return "internal_error"
