from __future__ import annotations

"""
Label & Identifier Utilities

This module owns the label conventions of the diagram and the identifier
validator invoked whenever a label is committed.

Conventions:
- A label starting with the ghost marker (``$``) denotes an alias ("ghost") of
  the non-ghost node carrying the same name in the same category. The marker
  is parsed once, when the label enters the graph, into a `(kind, name)` pair;
  nothing downstream inspects label text for the marker.
- Equations refer to nodes by label without category qualification, so
  non-ghost labels form one flat namespace across stocks, variables and
  valves. A stock and a variable may not share a label.
- Blank labels (empty or whitespace only) are rejected.
- A label that parses entirely as a number is rejected; otherwise a numeric
  literal in an equation could be mistaken for an identifier.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, Optional, Tuple

from .errors import ModelCorruption

if TYPE_CHECKING:  # pragma: no cover
    from .graph import Graph


GHOST_PREFIX = "$"


class NodeKind(str, Enum):
    """Tag distinguishing canonical nodes from presentation-only aliases."""
    REAL = "real"
    GHOST = "ghost"


def parse_label(label: Optional[str]) -> Tuple[NodeKind, Optional[str]]:
    """Split a display label into its kind tag and canonical name.

    >>> parse_label("$Population")
    (<NodeKind.GHOST: 'ghost'>, 'Population')
    """
    if label is None:
        return NodeKind.REAL, None
    if label.startswith(GHOST_PREFIX):
        return NodeKind.GHOST, label[len(GHOST_PREFIX):]
    return NodeKind.REAL, label


def format_label(kind: NodeKind, name: Optional[str]) -> Optional[str]:
    if name is None:
        return None
    if kind is NodeKind.GHOST:
        return f"{GHOST_PREFIX}{name}"
    return name


def looks_numeric(text: str) -> bool:
    """Return True when `text` parses entirely as a number.

    Accepts decimal/float syntax (surrounding whitespace allowed, as well as
    ``inf``/``nan`` spellings) and integer literals with a base prefix such as
    ``0x1F``.
    """
    s = text.strip()
    if not s:
        return False
    try:
        float(s)
        return True
    except ValueError:
        pass
    try:
        int(s, 0)
        return True
    except ValueError:
        return False


def validate_label(
    new_label: str,
    old_label: Optional[str],
    graph: "Graph",
    category: Optional[str] = None,
) -> bool:
    """Decide whether `new_label` may be committed in place of `old_label`.

    Parameters
    ----------
    new_label : str
        The proposed label, possibly carrying the ghost marker.
    old_label : Optional[str]
        The label currently on the node (None for a node being created). A
        non-ghost `old_label` identifies that node, which never counts as the
        canonical node of a ghost label.
    graph : Graph
        The graph the label will live in.
    category : Optional[str]
        Category of the node being labelled. When given, a ghost label only
        validates against a non-ghost node of the same category.

    Returns
    -------
    bool
        The verdict. The function has no side effects.
    """
    if new_label == old_label:
        return True
    if new_label is None or new_label.strip() == "":
        return False

    kind, name = parse_label(new_label)
    if kind is NodeKind.GHOST:
        # The canonical node must exist elsewhere: the node still carrying
        # `old_label` cannot become an alias of itself
        for node in graph.iter_nodes():
            if node.kind is NodeKind.REAL and node.name == name and node.label != old_label:
                if category is None or node.category == category:
                    return True
        return False

    if looks_numeric(new_label):
        return False

    for node in graph.iter_nodes():
        if node.label == new_label:
            return False
    return True


@dataclass
class LabelRegistry:
    """Registry used to detect duplicate non-ghost labels.

    Maps each registered label to the key of the node that claimed it.
    Registering the same label for a different key raises `ModelCorruption`,
    since the edit boundary should have rejected the second label.
    """

    label_to_key: Dict[str, str] = field(default_factory=dict)

    def register(self, label: str, key: str) -> None:
        existing = self.label_to_key.get(label)
        if existing is None:
            self.label_to_key[label] = key
            return
        if existing != key:
            raise ModelCorruption(
                "Duplicate label '{label}' on nodes '{first}' and '{second}'".format(
                    label=label, first=existing, second=key
                ),
                context={'label': label, 'keys': [existing, key]},
            )

    def __contains__(self, label: object) -> bool:
        return label in self.label_to_key


def duplicate_labels(nodes: Iterable) -> Dict[str, list]:
    """Return label -> node keys for every non-ghost label used more than once."""
    seen: Dict[str, list] = {}
    for node in nodes:
        if node.kind is NodeKind.GHOST or node.name is None:
            continue
        seen.setdefault(node.name, []).append(node.key)
    return {label: keys for label, keys in seen.items() if len(keys) > 1}


class IdentifierValidator:
    """Callable wrapper over `validate_label` bound to one graph."""

    def __init__(self, graph: "Graph"):
        self.graph = graph

    def validate(self, new_label: str, old_label: Optional[str], category: Optional[str] = None) -> bool:
        return validate_label(new_label, old_label, self.graph, category=category)

    __call__ = validate
