"""
User-facing issue taxonomy for run preparation.

Validators never stop at the first problem; they return every issue they find
so a caller can present a complete remediation list. Three families exist:

- StructuralIssue: problems in the diagram wiring (MissingInfluence)
- ParameterIssue: bad run parameters (non-numeric values, ordering, step size,
  unknown integration method)
- AdvisoryIssue: the high step-count warning, which blocks a run only when the
  caller has not explicitly acknowledged it
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence


class IssueKind(str, Enum):
    """Enumeration of every issue the run pipeline can report."""
    MISSING_INFLUENCE = "MissingInfluence"
    NON_NUMERIC_PARAMETER = "NonNumericParameter"
    NON_POSITIVE_STEP = "NonPositiveStep"
    ORDERING_VIOLATION = "OrderingViolation"
    UNKNOWN_INTEGRATION_METHOD = "UnknownIntegrationMethod"
    HIGH_STEP_COUNT = "HighStepCount"


class Issue:
    """Represents a single validation issue with context."""

    category = "issue"

    def __init__(
        self,
        kind: IssueKind,
        message: str,
        field: Optional[str] = None,
        severity: str = "error",
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize an issue.

        Args:
            kind: The issue kind
            message: Human-readable message
            field: The offending object or parameter, if any
            severity: "error" (blocking) or "advisory"
            context: Additional context information
        """
        self.kind = IssueKind(kind)
        self.message = message
        self.field = field
        self.severity = severity
        self.context = context or {}

    @property
    def blocking(self) -> bool:
        return self.severity == "error"

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, field={self.field!r}, message={self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Issue):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def to_dict(self) -> Dict:
        """Convert to dictionary representation."""
        return {
            'category': self.category,
            'kind': self.kind.value,
            'field': self.field,
            'message': self.message,
            'severity': self.severity,
            'context': self.context,
        }


class StructuralIssue(Issue):
    category = "structural"


class MissingInfluence(StructuralIssue):
    """A valve's rate equation references names that are not wired to it."""

    def __init__(self, valve: str, missing: Sequence[str]):
        missing = sorted(missing)
        super().__init__(
            IssueKind.MISSING_INFLUENCE,
            f"Object {valve} is missing influences for: {', '.join(missing)}",
            field=valve,
            context={'valve': valve, 'missing': list(missing)},
        )

    @property
    def valve(self) -> str:
        return self.context['valve']

    @property
    def missing(self) -> List[str]:
        return list(self.context['missing'])


class ParameterIssue(Issue):
    category = "parameter"


class AdvisoryIssue(Issue):
    category = "advisory"

    def __init__(self, kind: IssueKind, message: str, field: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(kind, message, field=field, severity="advisory", context=context)


def blocking_issues(issues: Iterable[Issue]) -> List[Issue]:
    return [issue for issue in issues if issue.blocking]


def advisory_issues(issues: Iterable[Issue]) -> List[Issue]:
    return [issue for issue in issues if not issue.blocking]


def format_issues(issues: Iterable[Issue]) -> str:
    """Render issues as a bullet list for logs and the CLI."""
    return "\n".join(f"- {issue}" for issue in issues)
