import json
from pathlib import Path
import tempfile
import unittest

import yaml

from stockflow.graph import NodeCategory
from stockflow.io_paths import PROJECTS_DIR
from stockflow.project_io import (
    Project,
    list_projects,
    load_project,
    parse_project,
    project_to_dict,
    save_project,
)
from stockflow.run_params import SimulationParameters


def _document(**overrides):
    doc = {
        "class": "GraphLinksModel",
        "linkLabelKeysProperty": "labelKeys",
        "nodeDataArray": [
            {"key": "stock1", "category": "stock", "label": "S", "equation": "100"},
            {"key": "cloud1", "category": "cloud"},
            {"key": "valve1", "category": "valve", "label": "F", "equation": "0.1*S"},
        ],
        "linkDataArray": [
            {"category": "flow", "from": "cloud1", "to": "stock1", "labelKeys": ["valve1"]},
            {"category": "influence", "from": "stock1", "to": "valve1"},
        ],
    }
    doc.update(overrides)
    return doc


class TestParseProject(unittest.TestCase):
    def test_minimal_document(self):
        project = parse_project(_document(), name="mini")
        self.assertEqual(project.name, "mini")
        self.assertEqual(len(project.graph.nodes), 3)
        self.assertEqual(project.graph.get_node("valve1").category, NodeCategory.VALVE)
        self.assertEqual(project.parameters, SimulationParameters())

    def test_legacy_fields(self):
        doc = _document()
        doc["nodeDataArray"][2]["checkbox"] = True
        doc["nodeDataArray"][0]["loc"] = "10 20"
        project = parse_project(doc)
        self.assertFalse(project.graph.get_node("valve1").biflow_allowed)
        self.assertEqual(project.graph.get_node("stock1").position, "10 20")

    def test_biflow_allowed_takes_precedence(self):
        doc = _document()
        doc["nodeDataArray"][2].update({"checkbox": True, "biflowAllowed": True})
        self.assertTrue(parse_project(doc).graph.get_node("valve1").biflow_allowed)

    def test_orphaned_ghost_dropped_on_load(self):
        doc = _document()
        doc["nodeDataArray"].append({"key": "stock2", "category": "stock", "label": "$Gone"})
        project = parse_project(doc)
        self.assertIsNone(project.graph.get_node("stock2"))

    def test_strict_errors(self):
        cases = {
            "unknown category": lambda d: d["nodeDataArray"].append({"key": "x", "category": "lake", "label": "L"}),
            "duplicate label": lambda d: d["nodeDataArray"].append({"key": "v", "category": "variable", "label": "S"}),
            "duplicate key": lambda d: d["nodeDataArray"].append({"key": "stock1", "category": "stock", "label": "T"}),
            "numeric label": lambda d: d["nodeDataArray"].append({"key": "v", "category": "variable", "label": "7"}),
            "missing label": lambda d: d["nodeDataArray"].append({"key": "v", "category": "variable"}),
            "unknown endpoint": lambda d: d["linkDataArray"].append({"category": "influence", "from": "zz", "to": "valve1"}),
            "influence into stock": lambda d: d["linkDataArray"].append({"category": "influence", "from": "valve1", "to": "stock1"}),
            "flow without valve": lambda d: d["linkDataArray"].append({"category": "flow", "from": "stock1", "to": "cloud1"}),
            "flow into valve": lambda d: d["linkDataArray"].append(
                {"category": "flow", "from": "cloud1", "to": "valve1", "labelKeys": ["valve1"]}),
            "blank label": lambda d: d["nodeDataArray"].append({"key": "v", "category": "variable", "label": "  "}),
            "non-scalar key": lambda d: d["nodeDataArray"].append({"key": [1], "category": "variable", "label": "v"}),
            "unhashable endpoint": lambda d: d["linkDataArray"].append({"category": "influence", "from": "stock1", "to": ["valve1"]}),
        }
        for label, mutate in cases.items():
            with self.subTest(label):
                doc = _document()
                mutate(doc)
                with self.assertRaises(ValueError):
                    parse_project(doc)

    def test_wrong_class(self):
        with self.assertRaises(ValueError):
            parse_project(_document(**{"class": "TreeModel"}))


class TestProjectFiles(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_json_round_trip(self):
        params = SimulationParameters(start_time=1, end_time=20, dt=0.5, integration_method="euler")
        project = parse_project(_document(), name="trip")
        project.parameters = params

        path = save_project(self.tmp / "trip.json", project)
        loaded = load_project(path)

        self.assertEqual(loaded.graph, project.graph)
        self.assertEqual(loaded.name, "trip")
        self.assertEqual(loaded.parameters.to_document(), params.to_document())
        self.assertEqual(json.loads(path.read_text())["simulationParameters"]["integrationMethod"], "euler")

    def test_integer_keys_survive_round_trip(self):
        doc = _document()
        doc["nodeDataArray"][2]["key"] = -1
        doc["linkDataArray"][0]["labelKeys"] = [-1]
        doc["linkDataArray"][1]["to"] = -1
        project = parse_project(doc, name="keys")

        for suffix in (".json", ".yaml"):
            with self.subTest(suffix):
                path = save_project(self.tmp / f"keys{suffix}", project)
                loaded = load_project(path)
                self.assertEqual(loaded.graph, project.graph)
                saved = project_to_dict(loaded)
                self.assertEqual(saved["nodeDataArray"][2]["key"], -1)
                self.assertEqual(saved["linkDataArray"][0]["labelKeys"], [-1])
                self.assertEqual(saved["linkDataArray"][1]["to"], -1)

    def test_yaml_round_trip(self):
        project = parse_project(_document(), name="trip")
        path = save_project(self.tmp / "trip.yaml", project)
        self.assertEqual(yaml.safe_load(path.read_text())["class"], "GraphLinksModel")
        self.assertEqual(load_project(path).graph, project.graph)

    def test_empty_project_document(self):
        data = project_to_dict(Project())
        self.assertEqual(data["nodeDataArray"], [])
        self.assertEqual(data["simulationParameters"]["dt"], 0.1)

    def test_invalid_files(self):
        bad_json = self.tmp / "bad.json"
        bad_json.write_text("{not json", encoding="utf-8")
        bad_yaml = self.tmp / "bad.yaml"
        bad_yaml.write_text("nodeDataArray: [unclosed", encoding="utf-8")
        other = self.tmp / "model.txt"
        other.write_text("{}", encoding="utf-8")
        for path in (bad_json, bad_yaml, other):
            with self.subTest(path.name):
                with self.assertRaises(ValueError):
                    load_project(path)

    def test_list_projects(self):
        (self.tmp / "a.json").write_text("{}", encoding="utf-8")
        (self.tmp / "b.yaml").write_text("{}", encoding="utf-8")
        (self.tmp / "notes.txt").write_text("", encoding="utf-8")
        self.assertEqual([p.name for p in list_projects(self.tmp)], ["a.json", "b.yaml"])
        self.assertEqual(list_projects(self.tmp / "missing"), [])

    def test_bundled_population_project(self):
        project = load_project(PROJECTS_DIR / "population.json")
        self.assertEqual(project.name, "population")
        self.assertTrue(project.graph.get_node("stock2").is_ghost)
        self.assertFalse(project.graph.get_node(-1).biflow_allowed)
        self.assertIsNone(project.graph.get_node("-1"))


if __name__ == "__main__":
    unittest.main()
