"""
Equation table: the derived per-node view of the graph.

One row per non-ghost stock, variable and valve, in graph order. Valves are
shown with type "flow". The `uniflow` column is a bool for flows (True when
the flow may not run negative) and None for other rows.

The table is rebuilt from the graph after every committed transaction; edits
made in the table are written back through `apply_equation_table`, which runs
as one GraphStore transaction.
"""

import logging
from typing import Dict, List

import pandas as pd

from .graph import Graph, NodeCategory
from .store import GraphStore

logger = logging.getLogger(__name__)

TABLE_COLUMNS = ["type", "name", "equation", "uniflow"]

_TABLE_TYPES = {
    NodeCategory.STOCK: "stock",
    NodeCategory.VARIABLE: "variable",
    NodeCategory.VALVE: "flow",
}


def build_equation_table(graph: Graph) -> pd.DataFrame:
    rows: List[Dict] = []
    for node in graph.real_nodes():
        row_type = _TABLE_TYPES.get(node.category)
        if row_type is None:
            continue
        rows.append({
            "type": row_type,
            "name": node.name,
            "equation": node.equation,
            "uniflow": (not node.biflow_allowed) if node.category is NodeCategory.VALVE else None,
        })
    return pd.DataFrame(rows, columns=TABLE_COLUMNS)


def apply_equation_table(store: GraphStore, frame: pd.DataFrame) -> int:
    """Write equations and flow directions from `frame` back into the graph.

    Rows are matched by name. Unknown names are skipped with a warning.
    Returns the number of rows applied.
    """
    missing = [c for c in ("name", "equation") if c not in frame.columns]
    if missing:
        raise ValueError(f"Equation table is missing columns: {', '.join(missing)}")

    applied = 0
    with store.transaction("equation table"):
        for record in frame.to_dict(orient="records"):
            name = str(record["name"])
            node = store.graph.find_real(name)
            if node is None or node.category not in _TABLE_TYPES:
                logger.warning("Equation table row '%s' matches no stock, variable or flow", name)
                continue
            equation = record.get("equation")
            if equation is None or (isinstance(equation, float) and pd.isna(equation)):
                equation = ""
            store.set_equation(node.key, str(equation))
            uniflow = record.get("uniflow")
            if node.category is NodeCategory.VALVE and uniflow is not None and not pd.isna(uniflow):
                store.set_biflow(node.key, not bool(uniflow))
            applied += 1
    return applied
