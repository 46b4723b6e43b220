"""Tagged failures returned by the reservation core.

Core operations return ``(value, failure)`` pairs: exactly one of the two is
``None``. Expected business outcomes (a taken slot, a lost race) come back as
a :class:`Failure`; only programmer errors raise.
"""
from dataclasses import dataclass, field
from enum import Enum


class FailureKind(str, Enum):
    INVALID_RANGE = "invalid_range"
    INVALID_INPUT = "invalid_input"
    UNAVAILABLE = "unavailable"
    CONFLICT = "conflict"
    PERSISTENCE_ERROR = "persistence_error"
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str
    reason: str | None = None
    details: dict = field(default_factory=dict)

    @property
    def is_contention(self) -> bool:
        """True when the caller should refresh availability and re-select."""
        return self.kind in (FailureKind.UNAVAILABLE, FailureKind.CONFLICT)

    def to_dict(self) -> dict:
        out = {"error": self.message, "kind": self.kind.value}
        if self.reason:
            out["reason"] = self.reason
        if self.details:
            out["details"] = self.details
        return out


def invalid_range(message: str, **details) -> Failure:
    return Failure(FailureKind.INVALID_RANGE, message, details=details)


def invalid_input(message: str, **details) -> Failure:
    return Failure(FailureKind.INVALID_INPUT, message, details=details)


def unavailable(reason: str, message: str = "Slot is not available", **details) -> Failure:
    return Failure(FailureKind.UNAVAILABLE, message, reason=reason, details=details)


def conflict(message: str = "Slot was just taken", reason: str = "taken", **details) -> Failure:
    return Failure(FailureKind.CONFLICT, message, reason=reason, details=details)


def persistence_error(exc: Exception) -> Failure:
    return Failure(FailureKind.PERSISTENCE_ERROR, str(exc), details={"type": type(exc).__name__})


def not_found(what: str) -> Failure:
    return Failure(FailureKind.NOT_FOUND, f"{what} not found")


def invalid_state(message: str, **details) -> Failure:
    return Failure(FailureKind.INVALID_STATE, message, details=details)
