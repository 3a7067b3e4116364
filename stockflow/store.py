from __future__ import annotations

"""
GraphStore: the canonical editable graph.

Every logical edit (insert, delete, rename, equation change) runs as a
transaction. Transactions nest by joining the outermost one; when the
outermost transaction commits, the store:

1. reconciles ghosts and cascading deletions (`stockflow.ghosts`)
2. notifies subscribed listeners (derived views such as the equation table)

exactly once. If the outermost transaction raises, the graph is restored to
its pre-transaction snapshot and the exception propagates. Listeners may read
the graph but must not open a transaction while being notified; doing so
raises `TransactionError`.

Edits are validated at this boundary: labels go through
`stockflow.naming.validate_label`, and link endpoints are type-checked, so that
graphs reaching translation already satisfy the structural invariants.
"""

from contextlib import contextmanager
import logging
from typing import Callable, Dict, Iterator, List, Optional

from .errors import InvalidEdit, InvalidLabel, TransactionError
from .ghosts import ReconcileReport, reconcile_with_report
from .graph import FLOW_ENDPOINTS, Graph, Link, LinkCategory, Node, NodeCategory
from .naming import NodeKind, parse_label, validate_label

logger = logging.getLogger(__name__)

Listener = Callable[[Graph], None]


class GraphStore:
    """Owns one `Graph` and exposes its mutation primitives as transactions."""

    def __init__(self, graph: Optional[Graph] = None):
        self.graph = graph if graph is not None else Graph()
        self._listeners: List[Listener] = []
        self._depth = 0
        self._snapshot: Optional[Graph] = None
        self._counter_snapshot: Optional[Dict[NodeCategory, int]] = None
        self._notifying = False
        self._counters: Dict[NodeCategory, int] = {c: 0 for c in NodeCategory}
        self.last_report: Optional[ReconcileReport] = None
        self.commit_count = 0

    # ---- listeners ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with the graph after every commit.

        Returns a callable that unsubscribes the listener.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ---- transactions ----

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self, name: str = "edit") -> Iterator[Graph]:
        if self._notifying:
            raise TransactionError(
                f"Transaction '{name}' opened while listeners are being notified",
                context={'transaction': name},
            )
        outermost = self._depth == 0
        if outermost:
            self._snapshot = self.graph.copy()
            self._counter_snapshot = dict(self._counters)
        self._depth += 1
        try:
            yield self.graph
        except BaseException:
            self._depth -= 1
            if outermost:
                self.graph.restore(self._snapshot)
                self._counters = self._counter_snapshot
                self._snapshot = None
                logger.debug("Transaction '%s' rolled back", name)
            raise
        self._depth -= 1
        if outermost:
            self._snapshot = None
            self._commit(name)

    def _commit(self, name: str) -> None:
        report = reconcile_with_report(self.graph)
        self.last_report = report
        self.commit_count += 1
        if report.changed:
            logger.debug(
                "Transaction '%s' reconciled: removed nodes=%s links=%s",
                name, report.removed_nodes, report.removed_links,
            )
        self._notifying = True
        try:
            for listener in list(self._listeners):
                listener(self.graph)
        finally:
            self._notifying = False

    def reconcile(self) -> ReconcileReport:
        """Run reconciliation as its own (empty) transaction."""
        with self.transaction("reconcile"):
            pass
        return self.last_report

    # ---- helpers ----

    def _require_node(self, key: str) -> Node:
        node = self.graph.get_node(key)
        if node is None:
            raise InvalidEdit(f"Unknown node '{key}'", context={'key': key})
        return node

    def _next_name(self, prefix: str, category: NodeCategory, *, as_key: bool, as_label: bool) -> str:
        """Generate the next `<prefix><n>` free as a node key and/or valid as a label."""
        while True:
            self._counters[category] += 1
            candidate = f"{prefix}{self._counters[category]}"
            if as_key and self.graph.get_node(candidate) is not None:
                continue
            if as_label and not validate_label(candidate, None, self.graph):
                continue
            return candidate

    def is_valid_label(self, label: str, key: Optional[str] = None) -> bool:
        """Validate `label` for the node `key` (or for a new node when key is None)."""
        node = self.graph.get_node(key) if key is not None else None
        old = node.label if node is not None else None
        category = node.category if node is not None else None
        return validate_label(label, old, self.graph, category=category)

    # ---- node edits ----

    def add_node(
        self,
        category: str,
        label: Optional[str] = None,
        *,
        equation: str = "",
        position: Optional[str] = None,
        key: Optional[str] = None,
    ) -> Node:
        """Add a stock, cloud or variable node.

        Valves are created together with their flow by `add_flow`. Without an
        explicit label the node is labelled with its key, which must then pass
        label validation like any other label.
        """
        category = NodeCategory(category)
        if category is NodeCategory.VALVE:
            raise InvalidEdit("Valves are created with their flow; use add_flow()")
        if key is not None and self.graph.get_node(key) is not None:
            raise InvalidEdit(f"Node key '{key}' already exists", context={'key': key})

        with self.transaction(f"add {category.value}"):
            if key is None:
                # The key doubles as the default label
                key = self._next_name(
                    category.value, category, as_key=True,
                    as_label=category is not NodeCategory.CLOUD and label is None,
                )

            if category is NodeCategory.CLOUD:
                if label is not None:
                    raise InvalidLabel("Clouds carry no label", context={'key': key})
                kind, name = NodeKind.REAL, None
            else:
                if label is None:
                    label = str(key)
                if not validate_label(label, None, self.graph, category=category.value):
                    raise InvalidLabel(f"Invalid label '{label}' for new {category.value}",
                                       context={'label': label})
                kind, name = parse_label(label)

            if kind is NodeKind.GHOST and equation:
                raise InvalidEdit("Ghost nodes carry no equation", context={'label': label})

            node = self.graph.put_node(Node(
                key=key,
                category=category,
                name=name,
                kind=kind,
                equation=equation or "",
                position=position,
            ))
            logger.debug("Added %s '%s' (%s)", category.value, node.label, key)
        return node

    def remove_node(self, key: str) -> None:
        """Delete a node and every link attached to it.

        Deleting a valve deletes its flow; deleting a stock or cloud deletes
        the flows ending there (and, on commit, their valves). Ghosts of a
        deleted node are removed by reconciliation.
        """
        with self.transaction("remove node"):
            node = self._require_node(key)
            for link in self.graph.links_touching(key):
                self.graph.drop_link(link.key)
            self.graph.drop_node(key)
            logger.debug("Removed %s '%s' (%s)", node.category.value, node.label, key)

    def rename(self, key: str, new_label: str) -> Node:
        """Commit a new label on a node after identifier validation.

        Renaming to a ghost label drops the node's own equation: a ghost only
        mirrors its canonical node. Existing ghosts of the old name are
        orphaned and removed on commit.
        """
        with self.transaction("rename"):
            node = self._require_node(key)
            if node.category is NodeCategory.CLOUD:
                raise InvalidLabel("Clouds carry no label", context={'key': key})
            if not validate_label(new_label, node.label, self.graph, category=node.category.value):
                raise InvalidLabel(
                    f"Invalid label '{new_label}' for {node.category.value} '{node.label}'",
                    context={'key': key, 'label': new_label},
                )
            if new_label == node.label:
                return node
            old_label = node.label
            node.kind, node.name = parse_label(new_label)
            if node.is_ghost:
                node.equation = ""
                node.biflow_allowed = True
            logger.debug("Renamed '%s' -> '%s' (%s)", old_label, new_label, key)
        return node

    def set_equation(self, key: str, equation: Optional[str]) -> None:
        with self.transaction("set equation"):
            node = self._require_node(key)
            if node.category is NodeCategory.CLOUD:
                raise InvalidEdit("Clouds carry no equation", context={'key': key})
            if node.is_ghost:
                raise InvalidEdit(
                    f"Ghost '{node.label}' carries no equation; edit '{node.name}' instead",
                    context={'key': key},
                )
            node.equation = equation or ""

    def set_biflow(self, key: str, allowed: bool) -> None:
        """Allow (biflow) or forbid (uniflow) negative rates on a valve's flow."""
        with self.transaction("set flow direction"):
            node = self._require_node(key)
            if node.category is not NodeCategory.VALVE:
                raise InvalidEdit("Only valves carry a flow direction", context={'key': key})
            if node.is_ghost:
                raise InvalidEdit(
                    f"Ghost '{node.label}' mirrors '{node.name}'; edit the canonical valve",
                    context={'key': key},
                )
            node.biflow_allowed = bool(allowed)

    def set_position(self, key: str, position: Optional[str]) -> None:
        with self.transaction("move"):
            self._require_node(key).position = position

    # ---- link edits ----

    def add_flow(
        self,
        from_key: str,
        to_key: str,
        label: Optional[str] = None,
        *,
        equation: str = "",
        biflow_allowed: bool = True,
        position: Optional[str] = None,
        curviness: Optional[float] = None,
    ) -> Link:
        """Draw a flow between two stocks/clouds together with its valve.

        Without an explicit label the valve gets the first free `flow<n>`.
        """
        with self.transaction("add flow"):
            source = self._require_node(from_key)
            target = self._require_node(to_key)
            if source.category not in FLOW_ENDPOINTS or target.category not in FLOW_ENDPOINTS:
                raise InvalidEdit(
                    "Flows may only connect stocks and clouds "
                    f"(got {source.category.value} -> {target.category.value})",
                    context={'from': from_key, 'to': to_key},
                )

            if label is None:
                label = self._next_name("flow", NodeCategory.VALVE, as_key=False, as_label=True)
            elif not validate_label(label, None, self.graph, category=NodeCategory.VALVE.value):
                raise InvalidLabel(f"Invalid label '{label}' for new flow", context={'label': label})
            kind, name = parse_label(label)
            if kind is NodeKind.GHOST and equation:
                raise InvalidEdit("Ghost nodes carry no equation", context={'label': label})

            valve_key = f"valve_{name}"
            suffix = 1
            while self.graph.get_node(valve_key) is not None:
                suffix += 1
                valve_key = f"valve_{name}_{suffix}"
            self.graph.put_node(Node(
                key=valve_key,
                category=NodeCategory.VALVE,
                name=name,
                kind=kind,
                equation=equation or "",
                biflow_allowed=bool(biflow_allowed),
                position=position,
            ))
            link = self.graph.put_link(Link(
                key=self.graph.new_link_key(),
                category=LinkCategory.FLOW,
                from_key=from_key,
                to_key=to_key,
                label_key=valve_key,
                curviness=curviness,
            ))
            logger.debug("Added flow '%s' %s -> %s", label, from_key, to_key)
        return link

    def add_influence(self, from_key: str, to_key: str, *, curviness: Optional[float] = None) -> Link:
        """Draw a causal influence; the target must be a variable or a valve."""
        with self.transaction("add influence"):
            self._require_node(from_key)
            target = self._require_node(to_key)
            if target.category in FLOW_ENDPOINTS:
                raise InvalidEdit(
                    f"Influences may not end at a {target.category.value}",
                    context={'from': from_key, 'to': to_key},
                )
            link = self.graph.put_link(Link(
                key=self.graph.new_link_key(),
                category=LinkCategory.INFLUENCE,
                from_key=from_key,
                to_key=to_key,
                curviness=curviness,
            ))
        return link

    def add_link(self, category: str, from_key: str, to_key: str, **kwargs) -> Link:
        category = LinkCategory(category)
        if category is LinkCategory.FLOW:
            return self.add_flow(from_key, to_key, **kwargs)
        return self.add_influence(from_key, to_key, **kwargs)

    def remove_link(self, key: int) -> None:
        """Delete a link; deleting a flow also deletes its valve on commit."""
        with self.transaction("remove link"):
            if self.graph.drop_link(key) is None:
                raise InvalidEdit(f"Unknown link {key}", context={'key': key})

    # ---- bulk ----

    def replace(self, graph: Graph) -> None:
        """Replace the whole graph (e.g. after loading a document) in one transaction."""
        with self.transaction("load"):
            self.graph.restore(graph.copy())
            for category in NodeCategory:
                self._counters[category] = 0

    def clear(self) -> None:
        self.replace(Graph())
