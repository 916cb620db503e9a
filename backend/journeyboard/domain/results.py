"""Structured command results surfaced to the UI/API layer instead of toasts."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ResultKind(str, Enum):
    OK = "ok"
    IGNORED = "ignored"  # consistency guard, nothing changed
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    REMOTE = "remote"


@dataclass
class CommandResult:
    """Outcome of one board command.

    ``message`` is a short human-readable notification; ``warnings`` carries
    non-fatal follow-up failures (e.g. an audit append that did not land).
    """

    kind: ResultKind
    message: str = ""
    value: Any = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.kind == ResultKind.OK

    @classmethod
    def success(cls, message: str, value: Any = None, warnings: list[str] | None = None) -> "CommandResult":
        return cls(ResultKind.OK, message, value, warnings or [])

    @classmethod
    def ignored(cls, message: str, value: Any = None) -> "CommandResult":
        return cls(ResultKind.IGNORED, message, value)

    @classmethod
    def failure(cls, kind: ResultKind, message: str) -> "CommandResult":
        return cls(kind, message)
