from __future__ import annotations

"""
Run preparation: validate, then translate.

`prepare_run` is the single entry point the integrator's caller uses. Phases:

(a) influence completeness check over the graph
(b) run-parameter validation
(c) any structural issue or blocking parameter issue → return every issue,
    translation is never attempted
(d) only the high step-count advisory remains and no override was given →
    return it alone
(e) otherwise translate and return the EngineModel plus finalized parameters

The call is synchronous, performs no I/O and never mutates the graph.
"""

from dataclasses import dataclass, field
import logging
from typing import Dict, List, Optional

from .equations import EquationScanner
from .graph import Graph
from .influences import check_influences
from .issues import Issue, advisory_issues, blocking_issues
from .run_params import RunParameters, SimulationParameters, finalize_parameters, validate_parameters
from .translator import EngineModel, translate

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of `prepare_run`: either a model or the issues preventing one."""
    model: Optional[EngineModel] = None
    parameters: Optional[RunParameters] = None
    issues: List[Issue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.model is not None

    @property
    def blocked_by_advisory(self) -> bool:
        return not self.ok and bool(self.issues) and not blocking_issues(self.issues)

    def to_engine_json(self) -> Dict:
        """Engine payload: the translated model plus the run parameter block."""
        if not self.ok:
            raise ValueError("Run was not prepared; inspect `issues` instead")
        payload = self.model.to_dict()
        payload.update(self.parameters.to_engine_fields())
        return payload

    def to_dict(self) -> Dict:
        return {
            'ok': self.ok,
            'issues': [issue.to_dict() for issue in self.issues],
            'engine': self.to_engine_json() if self.ok else None,
        }


def prepare_run(
    graph: Graph,
    params: SimulationParameters,
    override_high_step_count: bool = False,
    *,
    scanner: Optional[EquationScanner] = None,
) -> RunResult:
    structural = check_influences(graph, scanner)
    parameter_issues = validate_parameters(
        params.start_time, params.end_time, params.dt, params.integration_method
    )

    if structural or blocking_issues(parameter_issues):
        issues: List[Issue] = [*structural, *parameter_issues]
        logger.info("Run blocked by %d issue(s)", len(issues))
        return RunResult(issues=issues)

    advisories = advisory_issues(parameter_issues)
    if advisories and not override_high_step_count:
        logger.info("Run blocked by advisory: %s", advisories[0])
        return RunResult(issues=advisories)
    for advisory in advisories:
        logger.warning("Proceeding despite advisory: %s", advisory)

    model = translate(graph)
    parameters = finalize_parameters(
        params.start_time, params.end_time, params.dt, params.integration_method
    )
    logger.info(
        "Prepared run: %d stocks, %d converters, t=%s..%s dt=%s (%s)",
        len(model.stocks), len(model.converters),
        parameters.start_time, parameters.end_time, parameters.dt, parameters.integration_method,
    )
    return RunResult(model=model, parameters=parameters, issues=advisories)


class RunPipeline:
    def __init__(self, scanner: Optional[EquationScanner] = None):
        self.scanner = scanner

    def prepare(self, graph: Graph, params: SimulationParameters, override_high_step_count: bool = False) -> RunResult:
        return prepare_run(graph, params, override_high_step_count, scanner=self.scanner)
