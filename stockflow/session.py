"""
Editor session: the explicit context object for one open project.

The session owns exactly one GraphStore, the current (raw) simulation
parameters and the derived equation table. All components receive the graph
as an argument; nothing reads editor state from module globals.

The equation table is refreshed by a store listener, i.e. once per committed
transaction and never mid-transaction.
"""

from pathlib import Path
from typing import Optional
import logging

import pandas as pd

from .equation_table import apply_equation_table, build_equation_table
from .graph import Graph
from .pipeline import RunResult, prepare_run
from .project_io import Project, load_project, save_project
from .run_params import SimulationParameters
from .store import GraphStore

logger = logging.getLogger(__name__)


class EditorSession:
    """Framework-agnostic state for one project being edited."""

    def __init__(self, project: Optional[Project] = None):
        project = project or Project()
        self.name = project.name
        self.parameters: SimulationParameters = project.parameters
        self.store = GraphStore()
        self.equation_table: pd.DataFrame = build_equation_table(self.store.graph)
        self._unsubscribe = self.store.subscribe(self._on_commit)
        self.unsaved_edits = False
        if project.graph.nodes:
            self.store.replace(project.graph)
            self.unsaved_edits = False

    @property
    def graph(self) -> Graph:
        return self.store.graph

    def _on_commit(self, graph: Graph) -> None:
        self.equation_table = build_equation_table(graph)
        self.unsaved_edits = True

    # ---- parameters ----

    def update_parameters(self, **kwargs) -> None:
        """Update raw simulation parameters (start_time, end_time, dt, integration_method)."""
        for key, value in kwargs.items():
            if not hasattr(self.parameters, key):
                raise ValueError(f"Unknown simulation parameter '{key}'")
            setattr(self.parameters, key, value)
        self.unsaved_edits = True

    # ---- table write-back ----

    def apply_table(self, frame: pd.DataFrame) -> int:
        return apply_equation_table(self.store, frame)

    # ---- run ----

    def run(self, override_high_step_count: bool = False) -> RunResult:
        return prepare_run(self.graph, self.parameters, override_high_step_count)

    # ---- persistence ----

    def to_project(self) -> Project:
        return Project(graph=self.graph.copy(), parameters=self.parameters, name=self.name)

    def save(self, path: Path) -> Path:
        out = save_project(path, self.to_project())
        self.unsaved_edits = False
        return out

    @classmethod
    def open(cls, path: Path) -> "EditorSession":
        return cls(load_project(path))

    def close(self) -> None:
        self._unsubscribe()
