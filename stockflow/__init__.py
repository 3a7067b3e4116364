"""Stock & flow editor core.

Graph model, ghost reconciliation, identifier validation, equation scanning,
influence checking, run-parameter validation and translation of a
system-dynamics diagram into the schema consumed by an external integrator.

Note: `stockflow.equation_table` and `stockflow.session` import pandas and
are not imported here, so the core stays usable without building tables.
"""

from .errors import InvalidEdit, InvalidLabel, ModelCorruption, StockflowError, TransactionError
from .naming import GHOST_PREFIX, IdentifierValidator, NodeKind, validate_label
from .graph import Graph, Link, LinkCategory, Node, NodeCategory
from .ghosts import reconcile
from .store import GraphStore
from .equations import MATH_FUNCTIONS, EquationScanner, extract_identifiers
from .influences import InfluenceChecker, check_influences
from .issues import (  # noqa: F401
    AdvisoryIssue,
    Issue,
    IssueKind,
    MissingInfluence,
    ParameterIssue,
    StructuralIssue,
)
from .translator import EngineModel, ModelTranslator, StockSpec, translate
from .run_params import ParameterValidator, RunParameters, SimulationParameters, validate_parameters
from .pipeline import RunPipeline, RunResult, prepare_run

__all__ = [
    "StockflowError",
    "InvalidEdit",
    "InvalidLabel",
    "ModelCorruption",
    "TransactionError",
    "GHOST_PREFIX",
    "IdentifierValidator",
    "NodeKind",
    "validate_label",
    "Graph",
    "Link",
    "LinkCategory",
    "Node",
    "NodeCategory",
    "reconcile",
    "GraphStore",
    "MATH_FUNCTIONS",
    "EquationScanner",
    "extract_identifiers",
    "InfluenceChecker",
    "check_influences",
    "AdvisoryIssue",
    "Issue",
    "IssueKind",
    "MissingInfluence",
    "ParameterIssue",
    "StructuralIssue",
    "EngineModel",
    "ModelTranslator",
    "StockSpec",
    "translate",
    "ParameterValidator",
    "RunParameters",
    "SimulationParameters",
    "validate_parameters",
    "RunPipeline",
    "RunResult",
    "prepare_run",
]
