"""
Tests for EditorSession, the context object that owns one open project.
"""

import pytest

from stockflow.issues import IssueKind
from stockflow.io_paths import PROJECTS_DIR
from stockflow.session import EditorSession


class TestEditorSession:
    def test_new_session_is_empty(self):
        session = EditorSession()
        assert len(session.graph) == 0
        assert session.equation_table.empty
        assert not session.unsaved_edits

    def test_table_refreshed_after_each_commit(self):
        session = EditorSession()
        session.store.add_node("stock", "S", equation="100")
        assert session.equation_table["name"].tolist() == ["S"]
        assert session.unsaved_edits

        with session.store.transaction("batch"):
            session.store.add_node("variable", "k")
            session.store.add_node("variable", "j")
            assert session.equation_table["name"].tolist() == ["S"]
        assert session.equation_table["name"].tolist() == ["S", "k", "j"]

    def test_open_run_and_save(self, tmp_path):
        session = EditorSession.open(PROJECTS_DIR / "population.json")
        assert not session.unsaved_edits
        assert session.equation_table["name"].tolist() == [
            "Population", "birth rate", "death rate", "births", "deaths",
        ]

        result = session.run()
        assert result.ok
        assert result.model.stocks["Population"].outflows == {"deaths": 'Population * "death rate"'}
        assert result.model.flow_directions == {"births": "uniflow", "deaths": "biflow"}

        out = session.save(tmp_path / "copy.yaml")
        reopened = EditorSession.open(out)
        assert reopened.graph == session.graph
        assert reopened.name == "copy"

    def test_update_parameters(self):
        session = EditorSession()
        session.update_parameters(end_time=1000, dt=1)
        assert session.unsaved_edits

        result = session.run()
        assert result.blocked_by_advisory
        assert result.issues[0].kind is IssueKind.HIGH_STEP_COUNT
        assert session.run(override_high_step_count=True).ok

        with pytest.raises(ValueError):
            session.update_parameters(steps=5)

    def test_apply_table(self):
        session = EditorSession()
        session.store.add_node("variable", "k", equation="1")
        frame = session.equation_table.copy()
        frame.loc[0, "equation"] = "2"
        assert session.apply_table(frame) == 1
        assert session.graph.find_real("k").equation == "2"
        assert session.equation_table.loc[0, "equation"] == "2"

    def test_close_stops_refresh(self):
        session = EditorSession()
        session.close()
        session.store.add_node("stock", "S")
        assert session.equation_table.empty
