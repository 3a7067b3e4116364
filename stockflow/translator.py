from __future__ import annotations

"""
Model translation: diagram graph → engine schema.

The integrator consumes stocks (initial-value equation plus named inflow and
outflow rate equations), converters (named equations) and a flow-direction
flag per flow. This module projects a reconciled, validated graph onto that
shape:

- Stock nodes become `stocks[label]` with their equation as the initial value
- Each flow link is resolved through its valve (name = valve label, rate =
  valve equation); the `from` stock records an outflow, the `to` stock an
  inflow, and cloud endpoints record nothing
- Variable nodes become `converters[label]`
- Valves that disallow biflow translate as "uniflow", others as "biflow"; the
  flag is carried for the integrator, not interpreted here

Ghost nodes contribute no data of their own: a ghost stock at a flow endpoint
or a ghost valve on a flow resolves to its canonical node.

Graphs reaching this module must already satisfy the edit-time invariants. A
violation (flow without a valve, missing or mistyped endpoint, duplicate
label, orphaned ghost) raises `ModelCorruption`; it is a defect, not a user
validation issue.
"""

from dataclasses import dataclass, field
import logging
from typing import Dict, Optional

from .errors import ModelCorruption
from .ghosts import orphaned_ghosts
from .graph import FLOW_ENDPOINTS, Graph, Link, LinkCategory, Node, NodeCategory
from .naming import LabelRegistry

logger = logging.getLogger(__name__)

UNIFLOW = "uniflow"
BIFLOW = "biflow"


@dataclass
class StockSpec:
    equation: str
    inflows: Dict[str, str] = field(default_factory=dict)
    outflows: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "equation": self.equation,
            "inflows": dict(self.inflows),
            "outflows": dict(self.outflows),
        }


@dataclass
class EngineModel:
    stocks: Dict[str, StockSpec] = field(default_factory=dict)
    converters: Dict[str, str] = field(default_factory=dict)
    # flow name -> UNIFLOW | BIFLOW
    flow_directions: Dict[str, str] = field(default_factory=dict)

    def is_uniflow(self, flow: str) -> bool:
        return self.flow_directions.get(flow) == UNIFLOW

    def to_dict(self) -> Dict:
        return {
            "stocks": {name: spec.to_dict() for name, spec in self.stocks.items()},
            "converters": dict(self.converters),
            "flow_directions": dict(self.flow_directions),
        }


def _resolve(graph: Graph, key: Optional[str], link: Link, role: str) -> Node:
    node = graph.get_node(key) if key is not None else None
    if node is None:
        raise ModelCorruption(
            f"Flow link {link.key} has no {role} node '{key}'",
            context={'link': link.key, 'role': role, 'key': key},
        )
    canonical = graph.canonical(node)
    if canonical is None:
        raise ModelCorruption(
            f"Ghost '{node.label}' at flow link {link.key} has no canonical node",
            context={'link': link.key, 'role': role, 'key': key},
        )
    return canonical


def _check_preconditions(graph: Graph) -> None:
    orphans = orphaned_ghosts(graph)
    if orphans:
        raise ModelCorruption(
            f"Graph holds orphaned ghosts: {', '.join(str(k) for k in orphans)}",
            context={'ghosts': orphans},
        )
    registry = LabelRegistry()
    for node in graph.real_nodes():
        if node.name is not None:
            registry.register(node.name, node.key)


def _translate_flow(graph: Graph, link: Link, model: EngineModel) -> None:
    if link.label_key is None:
        raise ModelCorruption(f"Flow link {link.key} has no valve", context={'link': link.key})
    valve = _resolve(graph, link.label_key, link, "valve")
    if valve.category is not NodeCategory.VALVE:
        raise ModelCorruption(
            f"Flow link {link.key} label node '{valve.key}' is a {valve.category.value}, not a valve",
            context={'link': link.key},
        )
    flow_name = valve.name
    rate = valve.equation

    source = _resolve(graph, link.from_key, link, "source")
    target = _resolve(graph, link.to_key, link, "target")
    for role, node in (("source", source), ("target", target)):
        if node.category not in FLOW_ENDPOINTS:
            raise ModelCorruption(
                f"Flow '{flow_name}' {role} '{node.label}' is a {node.category.value}",
                context={'link': link.key, 'role': role},
            )

    if source.category is NodeCategory.STOCK:
        model.stocks[source.name].outflows[flow_name] = rate
    if target.category is NodeCategory.STOCK:
        model.stocks[target.name].inflows[flow_name] = rate
    if source.category is NodeCategory.CLOUD and target.category is NodeCategory.CLOUD:
        logger.debug("Flow '%s' runs cloud to cloud; no stock records it", flow_name)

    model.flow_directions[flow_name] = BIFLOW if valve.biflow_allowed else UNIFLOW


def translate(graph: Graph) -> EngineModel:
    """Translate a validated graph into an `EngineModel`.

    Raises
    ------
    ModelCorruption
        When the graph violates a structural invariant.
    """
    _check_preconditions(graph)
    model = EngineModel()

    for stock in graph.real_nodes(NodeCategory.STOCK):
        model.stocks[stock.name] = StockSpec(equation=stock.equation)

    for link in graph.iter_links(LinkCategory.FLOW):
        _translate_flow(graph, link, model)

    for variable in graph.real_nodes(NodeCategory.VARIABLE):
        model.converters[variable.name] = variable.equation

    logger.debug(
        "Translated graph: %d stocks, %d flows, %d converters",
        len(model.stocks), len(model.flow_directions), len(model.converters),
    )
    return model


class ModelTranslator:
    def translate(self, graph: Graph) -> EngineModel:
        return translate(graph)
