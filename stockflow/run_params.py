from __future__ import annotations

"""
Run parameters: start time, end time, dt and integration method.

Responsibilities
- Hold the raw simulation parameters as they are stored in a project
  document (`SimulationParameters`, possibly strings typed by the user) with
  defaults 0 → 10, dt = 0.1, RK4.
- Validate them independently of the graph. Every check runs so that all
  problems are reported together:
  * start, end and dt must parse as finite real numbers
  * end must be strictly greater than start
  * dt must be strictly positive and no larger than the run duration
  * the integration method must be "euler" or "rk4" (case-insensitive; empty
    means rk4)
  * 1000 or more steps produces a HighStepCount advisory, which blocks a run
    unless the caller explicitly overrides it
- Produce the finalized numeric `RunParameters` handed to the integrator.
"""

from dataclasses import dataclass
import math
from typing import Dict, List, Mapping, Optional

from .issues import AdvisoryIssue, Issue, IssueKind, ParameterIssue

DEFAULT_START = 0.0
DEFAULT_END = 10.0
DEFAULT_DT = 0.1
DEFAULT_METHOD = "rk4"
INTEGRATION_METHODS = ("euler", "rk4")
HIGH_STEP_COUNT_THRESHOLD = 1000


@dataclass
class SimulationParameters:
    """Raw parameters as entered by the user or read from a document."""
    start_time: object = DEFAULT_START
    end_time: object = DEFAULT_END
    dt: object = DEFAULT_DT
    integration_method: object = DEFAULT_METHOD

    @classmethod
    def from_document(cls, block: Optional[Mapping[str, object]]) -> "SimulationParameters":
        """Read a `simulationParameters` block; missing keys fall back to defaults."""
        if block is None:
            return cls()
        if not isinstance(block, Mapping):
            raise ValueError("'simulationParameters' must be a mapping")
        return cls(
            start_time=block.get("startTime", DEFAULT_START),
            end_time=block.get("endTime", DEFAULT_END),
            dt=block.get("dt", DEFAULT_DT),
            integration_method=block.get("integrationMethod", DEFAULT_METHOD),
        )

    def to_document(self) -> Dict[str, object]:
        out: Dict[str, object] = {}
        for key, value in (
            ("startTime", self.start_time),
            ("endTime", self.end_time),
            ("dt", self.dt),
        ):
            parsed = parse_number(value)
            out[key] = parsed if parsed is not None else value
        out["integrationMethod"] = resolve_method(self.integration_method) or self.integration_method
        return out


@dataclass(frozen=True)
class RunParameters:
    """Finalized numeric parameters consumed by the integrator."""
    start_time: float
    end_time: float
    dt: float
    integration_method: str

    @property
    def step_count(self) -> float:
        return (self.end_time - self.start_time) / self.dt

    def to_engine_fields(self) -> Dict[str, object]:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "dt": self.dt,
            "integration_method": self.integration_method,
        }


def parse_number(value: object) -> Optional[float]:
    """Return `value` as a finite float, or None when it is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def resolve_method(method: object) -> Optional[str]:
    """Normalize an integration method name; None when it is not recognized."""
    if method is None:
        return DEFAULT_METHOD
    if not isinstance(method, str):
        return None
    name = method.strip().lower()
    if not name:
        return DEFAULT_METHOD
    return name if name in INTEGRATION_METHODS else None


_FIELD_LABELS = {"start_time": "start time", "end_time": "end time", "dt": "dt"}


def validate_parameters(start: object, end: object, dt: object, method: object = DEFAULT_METHOD) -> List[Issue]:
    """Check run parameters and return every issue found (empty when valid)."""
    issues: List[Issue] = []
    values: Dict[str, Optional[float]] = {}
    for field_name, raw in (("start_time", start), ("end_time", end), ("dt", dt)):
        values[field_name] = parse_number(raw)
        if values[field_name] is None:
            issues.append(ParameterIssue(
                IssueKind.NON_NUMERIC_PARAMETER,
                f"The {_FIELD_LABELS[field_name]} must be a number",
                field=field_name,
                context={'value': raw},
            ))

    start_f, end_f, dt_f = values["start_time"], values["end_time"], values["dt"]

    if start_f is not None and end_f is not None and end_f <= start_f:
        issues.append(ParameterIssue(
            IssueKind.ORDERING_VIOLATION,
            "The end time must be greater than the start time",
            field="end_time",
            context={'start_time': start_f, 'end_time': end_f},
        ))

    if dt_f is not None and dt_f <= 0:
        issues.append(ParameterIssue(
            IssueKind.NON_POSITIVE_STEP,
            "The dt must be positive",
            field="dt",
            context={'dt': dt_f},
        ))

    if dt_f is not None and start_f is not None and end_f is not None and dt_f > end_f - start_f:
        issues.append(ParameterIssue(
            IssueKind.ORDERING_VIOLATION,
            "The dt must be less than or equal to the duration",
            field="dt",
            context={'dt': dt_f, 'duration': end_f - start_f},
        ))

    if resolve_method(method) is None:
        issues.append(ParameterIssue(
            IssueKind.UNKNOWN_INTEGRATION_METHOD,
            f"The integration method must be one of: {', '.join(INTEGRATION_METHODS)}",
            field="integration_method",
            context={'value': method},
        ))

    if not issues:
        steps = (end_f - start_f) / dt_f
        if steps >= HIGH_STEP_COUNT_THRESHOLD:
            issues.append(AdvisoryIssue(
                IssueKind.HIGH_STEP_COUNT,
                f"This simulation contains {steps:.0f} steps (>= {HIGH_STEP_COUNT_THRESHOLD}); "
                "adjust dt or explicitly allow high step-count runs",
                field="dt",
                context={'steps': steps, 'threshold': HIGH_STEP_COUNT_THRESHOLD},
            ))
    return issues


def finalize_parameters(start: object, end: object, dt: object, method: object = DEFAULT_METHOD) -> RunParameters:
    """Return parsed parameters; raises ValueError when they do not validate."""
    blocking = [i for i in validate_parameters(start, end, dt, method) if i.blocking]
    if blocking:
        raise ValueError("Invalid run parameters: " + "; ".join(str(i) for i in blocking))
    return RunParameters(
        start_time=parse_number(start),
        end_time=parse_number(end),
        dt=parse_number(dt),
        integration_method=resolve_method(method),
    )


class ParameterValidator:
    def validate(self, params: SimulationParameters) -> List[Issue]:
        return validate_parameters(params.start_time, params.end_time, params.dt, params.integration_method)
