from __future__ import annotations

"""
Ghost reconciliation.

A ghost is a presentation-only alias of a canonical node: same name, same
category, no equation of its own. After every committed transaction the
graph is reconciled so that nothing refers to a node that no longer exists:

- a ghost whose canonical node is gone (deleted or renamed) is removed
  (clouds are never ghosted)
- a link whose endpoints or valve are gone is removed
- a valve that no longer owns a flow link is removed, since a flow cannot
  exist without its valve and vice versa

Removing one item can orphan another (dropping a ghost stock drops the flow
attached to it, which drops that flow's valve and the influences feeding it),
so passes repeat until one removes nothing. Each pass is quadratic in the
node count, which is fine at diagram scale.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from .graph import Graph, LinkCategory, NodeCategory

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    removed_nodes: List[str] = field(default_factory=list)
    removed_links: List[int] = field(default_factory=list)
    passes: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.removed_nodes or self.removed_links)


def orphaned_ghosts(graph: Graph) -> List[str]:
    """Keys of ghost nodes with no canonical counterpart."""
    orphans: List[str] = []
    for node in graph.iter_nodes():
        if node.category is NodeCategory.CLOUD or not node.is_ghost:
            continue
        if graph.find_real(node.name, node.category) is None:
            orphans.append(node.key)
    return orphans


def _reconcile_pass(graph: Graph, report: ReconcileReport) -> bool:
    changed = False

    for key in orphaned_ghosts(graph):
        node = graph.get_node(key)
        if node is None:
            continue
        if node.category is NodeCategory.VALVE:
            flow = graph.flow_link_for_valve(key)
            if flow is not None:
                graph.drop_link(flow.key)
                report.removed_links.append(flow.key)
        graph.drop_node(key)
        report.removed_nodes.append(key)
        logger.info("Removed ghost '%s' (%s): no '%s' left to alias", node.label, key, node.name)
        changed = True

    for link in graph.iter_links():
        ends = [link.from_key, link.to_key]
        if link.category is LinkCategory.FLOW:
            ends.append(link.label_key)
        if any(k is None or graph.get_node(k) is None for k in ends):
            graph.drop_link(link.key)
            report.removed_links.append(link.key)
            logger.debug("Removed dangling %s link %s (%s -> %s)",
                         link.category.value, link.key, link.from_key, link.to_key)
            changed = True

    for valve in graph.iter_nodes(NodeCategory.VALVE):
        if graph.flow_link_for_valve(valve.key) is None:
            graph.drop_node(valve.key)
            report.removed_nodes.append(valve.key)
            logger.info("Removed valve '%s' (%s): its flow no longer exists", valve.label, valve.key)
            changed = True

    return changed


def reconcile_with_report(graph: Graph) -> ReconcileReport:
    """Reconcile `graph` in place to a fixpoint and report what was removed."""
    report = ReconcileReport()
    while True:
        report.passes += 1
        if not _reconcile_pass(graph, report):
            break
    return report


def reconcile(graph: Graph) -> Graph:
    """Reconcile `graph` in place and return it.

    Idempotent: reconciling an already reconciled graph removes nothing.
    """
    reconcile_with_report(graph)
    return graph
