from __future__ import annotations

"""Exception hierarchy for the editor core.

Only conditions that must interrupt the caller are exceptions. Problems the
user can fix before a run (missing influences, bad run parameters) are
collected as `stockflow.issues.Issue` objects instead.
"""

from typing import Any, Mapping, Optional


class StockflowError(Exception):
    """Base exception for editor-core failures."""

    def __init__(self, message: str, *, context: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(message)
        self.context = dict(context) if context else {}

    def log_message(self) -> str:
        if not self.context:
            return str(self)
        return f"{self}: {self.context}"


class InvalidEdit(StockflowError, ValueError):
    """An edit was rejected at the edit boundary (the graph is unchanged)."""


class InvalidLabel(InvalidEdit):
    """A proposed label failed identifier validation."""


class TransactionError(StockflowError, RuntimeError):
    """A transaction was misused, e.g. opened re-entrantly from a listener."""


class ModelCorruption(StockflowError, RuntimeError):
    """The graph violates a structural invariant that edits should have enforced.

    Raised during translation only. This is a defect signal, never a
    user-fixable validation issue.
    """


__all__ = [
    "StockflowError",
    "InvalidEdit",
    "InvalidLabel",
    "TransactionError",
    "ModelCorruption",
]
