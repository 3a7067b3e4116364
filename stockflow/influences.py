from __future__ import annotations

"""Influence completeness check.

A flow's rate equation may only reference names that are explicitly wired to
its valve as causal influences. The check is structural name matching; it
does not evaluate equations.

An influence drawn from a ghost counts as an influence from its canonical
node, and an influence drawn into a ghost valve counts as feeding the
canonical valve.
"""

import logging
from typing import List, Optional, Set

from .equations import EquationScanner
from .graph import Graph, LinkCategory, NodeCategory
from .issues import MissingInfluence

logger = logging.getLogger(__name__)


def incoming_influence_names(graph: Graph, valve_key: str) -> Set[str]:
    """Canonical names of all nodes wired into the valve or any of its ghosts."""
    valve = graph.get_node(valve_key)
    if valve is None:
        return set()
    targets = {valve.key} | {g.key for g in graph.ghosts_of(valve)}
    names: Set[str] = set()
    for link in graph.iter_links():
        if link.category is not LinkCategory.INFLUENCE or link.to_key not in targets:
            continue
        source = graph.get_node(link.from_key)
        if source is not None and source.name is not None:
            names.add(source.name)
    return names


def check_influences(graph: Graph, scanner: Optional[EquationScanner] = None) -> List[MissingInfluence]:
    """Return one `MissingInfluence` per valve whose equation uses unwired names."""
    scanner = scanner or EquationScanner()
    issues: List[MissingInfluence] = []
    for valve in graph.real_nodes(NodeCategory.VALVE):
        used = scanner.extract(valve.equation)
        if not used:
            continue
        missing = used - incoming_influence_names(graph, valve.key)
        if missing:
            issue = MissingInfluence(valve.label, missing)
            logger.debug("Valve '%s' missing influences: %s", valve.label, issue.missing)
            issues.append(issue)
    return issues


class InfluenceChecker:
    def __init__(self, scanner: Optional[EquationScanner] = None):
        self.scanner = scanner or EquationScanner()

    def check(self, graph: Graph) -> List[MissingInfluence]:
        return check_influences(graph, self.scanner)
