from __future__ import annotations

from dataclasses import dataclass, field

from formdoc.domain.errors import DomainInvariantError

PIPELINE_STATES: tuple[str, ...] = (
    "received",
    "fields_extracted",
    "rendered",
    "converted",
    "folder_ensured",
    "uploaded",
    "cleaned",
)
FAILED_STATE = "failed"
TERMINAL_STATES = frozenset({"cleaned", FAILED_STATE})

# Linear happy path; every non-terminal state may fall into failed.
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "received": {"fields_extracted", FAILED_STATE},
    "fields_extracted": {"rendered", FAILED_STATE},
    "rendered": {"converted", FAILED_STATE},
    "converted": {"folder_ensured", FAILED_STATE},
    "folder_ensured": {"uploaded", FAILED_STATE},
    "uploaded": {"cleaned", FAILED_STATE},
    "cleaned": set(),
    FAILED_STATE: set(),
}


@dataclass
class PipelineRun:
    run_id: str
    state: str = "received"
    transitions: list[str] = field(default_factory=lambda: ["received"])
    submitter: str | None = None
    file_name: str | None = None
    remote_path: str | None = None
    failed_stage: str | None = None
    error_code: str | None = None
    error_detail: str | None = None

    def advance(self, to_state: str) -> None:
        if to_state not in ALLOWED_TRANSITIONS.get(self.state, set()):
            raise DomainInvariantError(f"invalid pipeline transition: {self.state} -> {to_state}")
        self.state = to_state
        self.transitions.append(to_state)

    def fail(self, *, error_code: str, detail: str) -> None:
        if self.state in TERMINAL_STATES:
            return
        self.failed_stage = self.state
        self.error_code = error_code
        self.error_detail = detail
        self.advance(FAILED_STATE)

    @property
    def succeeded(self) -> bool:
        return self.state == "cleaned"
