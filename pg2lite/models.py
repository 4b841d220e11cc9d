"""Pydantic data models - run states, outcomes and preflight results."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

# --- Enums ---


class Flow(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


class RunStatus(str, Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


class RemoteState(str, Enum):
    CHECK_EXISTS = "check_exists"
    CREATE = "create"
    CHECK_TABLES = "check_tables"
    DELETE = "delete"
    PROVISION_SCHEMA = "provision_schema"
    IMPORT = "import"
    COMPLETED = "completed"
    ABORTED_BY_OPERATOR = "aborted_by_operator"
    FAILED = "failed"


TERMINAL_REMOTE_STATES = frozenset({RemoteState.COMPLETED, RemoteState.ABORTED_BY_OPERATOR, RemoteState.FAILED})


# --- Preflight models ---


class PreflightSeverity(str, Enum):
    BLOCKING = "blocking"
    WARNING = "warning"


class PreflightIssue(BaseModel):
    severity: PreflightSeverity
    component: str
    message: str


class PreflightResult(BaseModel):
    passed: bool = True
    issues: list[PreflightIssue] = Field(default_factory=list)

    @property
    def blocking_issues(self) -> list[PreflightIssue]:
        return [i for i in self.issues if i.severity == PreflightSeverity.BLOCKING]

    @property
    def warnings(self) -> list[PreflightIssue]:
        return [i for i in self.issues if i.severity == PreflightSeverity.WARNING]


# --- Run outcome ---


class RunOutcome(BaseModel):
    flow: Flow
    status: RunStatus
    started_at: datetime = Field(default_factory=datetime.now)
    duration_seconds: float = 0.0
    error: str = ""
    remote_states: list[RemoteState] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status != RunStatus.FAILED

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    @property
    def duration_text(self) -> str:
        total = int(self.duration_seconds)
        return f"{total // 60} minutes and {total % 60} seconds"
