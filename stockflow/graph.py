from __future__ import annotations

"""
Diagram graph data model.

The graph holds nodes (stocks, clouds, variables, valves) keyed by a stable
string key, and links (flows, influences) keyed by an integer assigned on
insertion. A flow link names the valve node that carries its rate equation
and display name.

This module provides the plain container and its read-only queries plus
low-level insert/drop primitives. Edits with validation, transactions and
reconciliation live in `stockflow.store`.

Invariants (enforced at the edit boundary):
- flow links run between stocks and/or clouds
- influence links never end at a stock or a cloud
- non-ghost labels are unique across all categories
"""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Union

from .naming import NodeKind, format_label

# Documents written by the editor use string keys for nodes it creates and
# negative integers for valves; both are kept as given.
NodeKey = Union[str, int]


class NodeCategory(str, Enum):
    STOCK = "stock"
    CLOUD = "cloud"
    VARIABLE = "variable"
    VALVE = "valve"


class LinkCategory(str, Enum):
    FLOW = "flow"
    INFLUENCE = "influence"


# Categories allowed at either end of a flow link
FLOW_ENDPOINTS = (NodeCategory.STOCK, NodeCategory.CLOUD)


@dataclass
class Node:
    """A diagram node.

    `name` is the canonical name; for ghosts the display label is the name
    with the ghost marker prepended. Clouds carry no name.
    """
    key: NodeKey
    category: NodeCategory
    name: Optional[str] = None
    kind: NodeKind = NodeKind.REAL
    equation: str = ""
    biflow_allowed: bool = True
    position: Optional[str] = None

    @property
    def label(self) -> Optional[str]:
        return format_label(self.kind, self.name)

    @property
    def is_ghost(self) -> bool:
        return self.kind is NodeKind.GHOST

    def to_record(self) -> Dict:
        """Diagram exchange record for this node."""
        record: Dict = {"key": self.key, "category": self.category.value}
        if self.label is not None:
            record["label"] = self.label
        if self.category is not NodeCategory.CLOUD and not self.is_ghost:
            record["equation"] = self.equation
        if self.category is NodeCategory.VALVE:
            record["biflowAllowed"] = bool(self.biflow_allowed)
        if self.position is not None:
            record["position"] = self.position
        return record


@dataclass
class Link:
    key: int
    category: LinkCategory
    from_key: NodeKey
    to_key: NodeKey
    # Flow links only: key of the valve node holding the rate equation
    label_key: Optional[NodeKey] = None
    curviness: Optional[float] = None

    def to_record(self) -> Dict:
        record: Dict = {"category": self.category.value, "from": self.from_key, "to": self.to_key}
        if self.label_key is not None:
            record["labelKeys"] = [self.label_key]
        if self.curviness is not None:
            record["curviness"] = self.curviness
        return record


class Graph:
    """Container for nodes and links with lookup helpers."""

    def __init__(self) -> None:
        self.nodes: Dict[NodeKey, Node] = {}
        self.links: Dict[int, Link] = {}
        self._next_link_key = 1

    # ---- queries ----

    def __len__(self) -> int:
        return len(self.nodes)

    def iter_nodes(self, category: Optional[NodeCategory] = None) -> Iterator[Node]:
        for node in list(self.nodes.values()):
            if category is None or node.category == category:
                yield node

    def iter_links(self, category: Optional[LinkCategory] = None) -> Iterator[Link]:
        for link in list(self.links.values()):
            if category is None or link.category == category:
                yield link

    def get_node(self, key: NodeKey) -> Optional[Node]:
        return self.nodes.get(key)

    def real_nodes(self, category: Optional[NodeCategory] = None) -> List[Node]:
        return [n for n in self.iter_nodes(category) if not n.is_ghost]

    def find_real(self, name: str, category: Optional[NodeCategory] = None) -> Optional[Node]:
        """Return the non-ghost node with canonical `name` (and `category`, if given)."""
        for node in self.iter_nodes(category):
            if node.kind is NodeKind.REAL and node.name == name:
                return node
        return None

    def find_by_label(self, label: str) -> Optional[Node]:
        for node in self.iter_nodes():
            if node.label == label:
                return node
        return None

    def canonical(self, node: Node) -> Optional[Node]:
        """Resolve a ghost to its canonical node; non-ghosts resolve to themselves."""
        if not node.is_ghost:
            return node
        return self.find_real(node.name, node.category)

    def ghosts_of(self, node: Node) -> List[Node]:
        if node.is_ghost or node.name is None:
            return []
        return [
            n for n in self.iter_nodes(node.category)
            if n.is_ghost and n.name == node.name
        ]

    def flow_link_for_valve(self, valve_key: NodeKey) -> Optional[Link]:
        for link in self.iter_links(LinkCategory.FLOW):
            if link.label_key == valve_key:
                return link
        return None

    def links_touching(self, key: NodeKey) -> List[Link]:
        return [
            link for link in self.iter_links()
            if key in (link.from_key, link.to_key, link.label_key)
        ]

    def influences_into(self, key: NodeKey) -> List[Link]:
        return [link for link in self.iter_links(LinkCategory.INFLUENCE) if link.to_key == key]

    # ---- low-level primitives (no validation, no reconciliation) ----

    def put_node(self, node: Node) -> Node:
        self.nodes[node.key] = node
        return node

    def drop_node(self, key: NodeKey) -> Optional[Node]:
        return self.nodes.pop(key, None)

    def put_link(self, link: Link) -> Link:
        self.links[link.key] = link
        self._next_link_key = max(self._next_link_key, link.key + 1)
        return link

    def new_link_key(self) -> int:
        key = self._next_link_key
        self._next_link_key += 1
        return key

    def drop_link(self, key: int) -> Optional[Link]:
        return self.links.pop(key, None)

    # ---- snapshots & comparison ----

    def copy(self) -> "Graph":
        return copy.deepcopy(self)

    def restore(self, snapshot: "Graph") -> None:
        """Replace this graph's contents with those of `snapshot`, keeping identity."""
        self.nodes = snapshot.nodes
        self.links = snapshot.links
        self._next_link_key = snapshot._next_link_key

    def to_dict(self) -> Dict:
        return {
            "nodeDataArray": [n.to_record() for n in self.nodes.values()],
            "linkDataArray": [l.to_record() for l in self.links.values()],
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Graph):
            return NotImplemented
        return self.nodes == other.nodes and self.links == other.links

    def __repr__(self) -> str:
        return f"Graph(nodes={len(self.nodes)}, links={len(self.links)})"
