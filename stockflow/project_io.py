from __future__ import annotations

"""
Project documents (YAML/JSON): load, validate and save.

A project document is the diagram exchange payload written by the editor
(a GoJS `GraphLinksModel`) plus an optional `simulationParameters` block:

    class: GraphLinksModel
    linkLabelKeysProperty: labelKeys
    nodeDataArray:
      - {key: stock1, category: stock, label: Population, equation: "100"}
      - {key: cloud1, category: cloud}
      - {key: valve1, category: valve, label: births, equation: "0.1*Population", biflowAllowed: false}
    linkDataArray:
      - {category: flow, from: cloud1, to: stock1, labelKeys: [valve1]}
    simulationParameters: {startTime: 0, endTime: 10, dt: 0.1, integrationMethod: rk4}

Loading is strict: unknown categories, links violating endpoint typing, flow
links without a valve, and duplicate non-ghost labels are validation errors
raised as ValueError with actionable messages. Files written by older editor
versions are accepted: `checkbox` (true = uniflow) stands in for
`biflowAllowed`, and `loc` for `position`. A missing `simulationParameters`
block means defaults (0 → 10, dt 0.1, rk4).

Node keys keep the scalar type they have in the document (the editor writes
negative integer keys for valves), so a load/save cycle returns the same
`from`/`to`/`labelKeys` values. Keys must be strings or integers.

The loaded graph is reconciled once, so orphaned ghosts in a document are
dropped on load.
"""

from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import yaml

from .ghosts import reconcile_with_report
from .graph import FLOW_ENDPOINTS, Graph, Link, LinkCategory, Node, NodeCategory, NodeKey
from .naming import NodeKind, duplicate_labels, looks_numeric, parse_label
from .run_params import SimulationParameters

logger = logging.getLogger(__name__)

MODEL_CLASS = "GraphLinksModel"
LINK_LABEL_KEYS_PROPERTY = "labelKeys"


@dataclass
class Project:
    graph: Graph = field(default_factory=Graph)
    parameters: SimulationParameters = field(default_factory=SimulationParameters)
    name: str = "untitled"


def _parse_node(record: Mapping[str, object], idx: int) -> Node:
    if not isinstance(record, Mapping):
        raise ValueError(f"nodeDataArray[{idx}] must be a mapping, got {record!r}")
    key = record.get("key")
    if key is None or key == "":
        raise ValueError(f"nodeDataArray[{idx}] has no key")
    if isinstance(key, bool) or not isinstance(key, (str, int)):
        raise ValueError(f"nodeDataArray[{idx}] key must be a string or an integer, got {key!r}")
    try:
        category = NodeCategory(record.get("category"))
    except ValueError as exc:
        raise ValueError(
            f"nodeDataArray[{idx}] ('{key}') has unknown category {record.get('category')!r}; "
            f"expected one of: {', '.join(c.value for c in NodeCategory)}"
        ) from exc

    label = record.get("label")
    if category is NodeCategory.CLOUD:
        label = None
    elif label is None or str(label).strip() == "":
        raise ValueError(f"nodeDataArray[{idx}] ('{key}') has no label")
    else:
        label = str(label)
    kind, name = parse_label(label)
    if kind is NodeKind.REAL and name is not None and looks_numeric(name):
        raise ValueError(f"nodeDataArray[{idx}] ('{key}') label '{label}' is a number")

    if "biflowAllowed" in record:
        biflow_allowed = bool(record["biflowAllowed"])
    elif "checkbox" in record:
        biflow_allowed = not bool(record["checkbox"])
    else:
        biflow_allowed = True

    equation = record.get("equation")
    position = record.get("position", record.get("loc"))
    return Node(
        key=key,
        category=category,
        name=name,
        kind=kind,
        equation="" if equation is None or kind is NodeKind.GHOST else str(equation),
        biflow_allowed=biflow_allowed,
        position=None if position is None else str(position),
    )


def _lookup(graph: Graph, key: object) -> Optional[Node]:
    if isinstance(key, bool) or not isinstance(key, (str, int)):
        return None
    return graph.get_node(key)


def _parse_link(record: Mapping[str, object], idx: int, graph: Graph) -> Link:
    if not isinstance(record, Mapping):
        raise ValueError(f"linkDataArray[{idx}] must be a mapping, got {record!r}")
    try:
        category = LinkCategory(record.get("category"))
    except ValueError as exc:
        raise ValueError(
            f"linkDataArray[{idx}] has unknown category {record.get('category')!r}; "
            f"expected one of: {', '.join(c.value for c in LinkCategory)}"
        ) from exc

    from_key, to_key = record.get("from"), record.get("to")
    source = _lookup(graph, from_key)
    target = _lookup(graph, to_key)
    if source is None or target is None:
        raise ValueError(f"linkDataArray[{idx}] references unknown node(s): from={from_key!r}, to={to_key!r}")

    label_key: Optional[NodeKey] = None
    if category is LinkCategory.FLOW:
        if source.category not in FLOW_ENDPOINTS or target.category not in FLOW_ENDPOINTS:
            raise ValueError(
                f"linkDataArray[{idx}] flow must connect stocks/clouds, got "
                f"{source.category.value} -> {target.category.value}"
            )
        keys = record.get(LINK_LABEL_KEYS_PROPERTY) or []
        if not isinstance(keys, (list, tuple)) or not keys:
            raise ValueError(f"linkDataArray[{idx}] flow has no valve ({LINK_LABEL_KEYS_PROPERTY} is empty)")
        label_key = keys[0]
        valve = _lookup(graph, label_key)
        if valve is None or valve.category is not NodeCategory.VALVE:
            raise ValueError(f"linkDataArray[{idx}] flow valve '{label_key}' is not a valve node")
    elif target.category in FLOW_ENDPOINTS:
        raise ValueError(
            f"linkDataArray[{idx}] influence may not end at a {target.category.value} ('{to_key}')"
        )

    curviness = record.get("curviness")
    return Link(
        key=graph.new_link_key(),
        category=category,
        from_key=source.key,
        to_key=target.key,
        label_key=label_key,
        curviness=None if curviness is None else float(curviness),
    )


def parse_project(data: Mapping[str, object], *, name: str = "untitled") -> Project:
    """Validate a project mapping and build a reconciled `Project`."""
    if not isinstance(data, Mapping):
        raise ValueError("Project document must be a mapping at the top level")
    cls = data.get("class", MODEL_CLASS)
    if cls != MODEL_CLASS:
        raise ValueError(f"Unsupported model class {cls!r}; expected {MODEL_CLASS!r}")

    nodes = data.get("nodeDataArray") or []
    links = data.get("linkDataArray") or []
    if not isinstance(nodes, list) or not isinstance(links, list):
        raise ValueError("'nodeDataArray' and 'linkDataArray' must be lists")

    graph = Graph()
    for idx, record in enumerate(nodes):
        node = _parse_node(record, idx)
        if graph.get_node(node.key) is not None:
            raise ValueError(f"nodeDataArray[{idx}] duplicates key '{node.key}'")
        graph.put_node(node)

    dupes = duplicate_labels(graph.iter_nodes())
    if dupes:
        detail = "; ".join(f"'{label}' on {', '.join(str(k) for k in keys)}" for label, keys in sorted(dupes.items()))
        raise ValueError(f"Labels must be unique across all nodes: {detail}")

    for idx, record in enumerate(links):
        graph.put_link(_parse_link(record, idx, graph))

    report = reconcile_with_report(graph)
    if report.changed:
        logger.info(
            "Project '%s': dropped %d orphaned node(s) and %d link(s) on load",
            name, len(report.removed_nodes), len(report.removed_links),
        )

    parameters = SimulationParameters.from_document(data.get("simulationParameters"))
    return Project(graph=graph, parameters=parameters, name=name)


def project_to_dict(project: Project) -> Dict[str, object]:
    payload = {
        "class": MODEL_CLASS,
        "linkLabelKeysProperty": LINK_LABEL_KEYS_PROPERTY,
    }
    payload.update(project.graph.to_dict())
    payload["simulationParameters"] = project.parameters.to_document()
    return payload


def load_project(path: Path) -> Project:
    """Load and validate a project document from a YAML or JSON file."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"{path.name} is not valid YAML: {exc}") from exc
    elif path.suffix.lower() == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path.name} is not valid JSON: {exc}") from exc
    else:
        raise ValueError(f"Unsupported project file type: {path.suffix}")
    if data is None:
        data = {}
    project = parse_project(data, name=path.stem)
    logger.info(
        "Loaded project '%s': %d nodes, %d links",
        project.name, len(project.graph.nodes), len(project.graph.links),
    )
    return project


def save_project(path: Path, project: Project) -> Path:
    """Write a project document; the format follows the file suffix."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = project_to_dict(project)
    if path.suffix.lower() in (".yaml", ".yml"):
        path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    else:
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.info("Saved project '%s' to %s", project.name, path)
    return path


def list_projects(directory: Path) -> List[Path]:
    directory = Path(directory)
    if not directory.exists():
        return []
    files: List[Path] = []
    for pattern in ("*.json", "*.yaml", "*.yml"):
        files.extend(directory.glob(pattern))
    return sorted(files)
