"""Per-step state machine of a test run.

    pending -> running -> success | failed

`success` and `failed` are terminal; there are no retries. Illegal transitions
fail loudly.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[StepStatus, set[StepStatus]] = {
    StepStatus.PENDING: {StepStatus.RUNNING},
    StepStatus.RUNNING: {StepStatus.SUCCESS, StepStatus.FAILED},
    StepStatus.SUCCESS: set(),
    StepStatus.FAILED: set(),
}

TERMINAL_STATUSES: frozenset[StepStatus] = frozenset({StepStatus.SUCCESS, StepStatus.FAILED})


class IllegalTransitionError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class TestStepResult:
    """Outcome of one pipeline step as shown to the user."""

    __test__ = False

    label: str
    status: StepStatus = StepStatus.PENDING
    duration_ms: int | None = None
    message: str = ""
    details: dict[str, object] | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "label": self.label,
            "status": self.status.value,
            "durationMs": self.duration_ms,
            "message": self.message,
        }
        if self.details is not None:
            out["details"] = self.details
        return out


def transition(
    *,
    current: TestStepResult,
    to: StepStatus,
    duration_ms: int | None = None,
    message: str | None = None,
    details: dict[str, object] | None = None,
) -> TestStepResult:
    allowed = ALLOWED_TRANSITIONS.get(current.status, set())
    if to not in allowed:
        raise IllegalTransitionError(
            f"Illegal transition for {current.label!r}: {current.status.value} -> {to.value}"
        )
    return replace(
        current,
        status=to,
        duration_ms=duration_ms if duration_ms is not None else current.duration_ms,
        message=message if message is not None else current.message,
        details=details if details is not None else current.details,
    )
