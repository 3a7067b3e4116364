import unittest

# Translation of a validated graph into the engine schema, plus the corruption
# signals raised for graphs that bypassed the edit boundary.
from stockflow.errors import ModelCorruption
from stockflow.graph import Graph, Link, LinkCategory, Node, NodeCategory
from stockflow.naming import NodeKind
from stockflow.store import GraphStore
from stockflow.translator import BIFLOW, UNIFLOW, ModelTranslator, translate


class TestTranslate(unittest.TestCase):
    def setUp(self):
        self.store = GraphStore()
        self.store.add_node("stock", "S", equation="100")
        self.store.add_node("cloud")
        self.store.add_flow("cloud1", "stock1", "F", equation="0.1*S")
        self.store.add_influence("stock1", "valve_F")

    def test_cloud_inflow(self):
        model = translate(self.store.graph)
        self.assertEqual(
            model.to_dict()["stocks"]["S"],
            {"equation": "100", "inflows": {"F": "0.1*S"}, "outflows": {}},
        )
        self.assertEqual(model.converters, {})
        self.assertEqual(model.flow_directions, {"F": BIFLOW})

    def test_stock_to_stock_flow_and_converters(self):
        store = self.store
        store.add_node("stock", "T", equation="0")
        store.add_node("variable", "k", equation="0.2")
        store.add_flow("stock1", "stock2", "G", equation="k*S", biflow_allowed=False)

        model = ModelTranslator().translate(store.graph)

        self.assertEqual(model.stocks["S"].outflows, {"G": "k*S"})
        self.assertEqual(model.stocks["T"].inflows, {"G": "k*S"})
        self.assertEqual(model.converters, {"k": "0.2"})
        self.assertTrue(model.is_uniflow("G"))
        self.assertEqual(model.flow_directions["G"], UNIFLOW)

    def test_ghost_endpoint_resolves_to_canonical(self):
        store = self.store
        store.add_node("stock", "$S")
        store.add_node("cloud")
        store.add_flow("stock2", "cloud2", "drain", equation="1")

        model = translate(store.graph)

        self.assertEqual(list(model.stocks), ["S"])
        self.assertEqual(model.stocks["S"].outflows, {"drain": "1"})

    def test_cloud_to_cloud_flow_recorded_nowhere(self):
        store = self.store
        store.add_node("cloud")
        store.add_flow("cloud1", "cloud2", "leak", equation="1")
        model = translate(store.graph)
        self.assertEqual(model.stocks["S"].inflows, {"F": "0.1*S"})
        self.assertEqual(model.flow_directions["leak"], BIFLOW)

    def test_translation_does_not_mutate_graph(self):
        before = self.store.graph.copy()
        translate(self.store.graph)
        self.assertEqual(self.store.graph, before)


class TestModelCorruption(unittest.TestCase):
    def _base(self):
        graph = Graph()
        graph.put_node(Node("stock1", NodeCategory.STOCK, "S", equation="1"))
        graph.put_node(Node("cloud1", NodeCategory.CLOUD))
        graph.put_node(Node("valve_F", NodeCategory.VALVE, "F", equation="1"))
        return graph

    def test_flow_without_valve(self):
        graph = self._base()
        graph.put_link(Link(1, LinkCategory.FLOW, "cloud1", "stock1"))
        with self.assertRaises(ModelCorruption):
            translate(graph)

    def test_flow_with_missing_endpoint(self):
        graph = self._base()
        graph.put_link(Link(1, LinkCategory.FLOW, "cloud1", "gone", label_key="valve_F"))
        with self.assertRaises(ModelCorruption) as ctx:
            translate(graph)
        self.assertEqual(ctx.exception.context["role"], "target")

    def test_flow_into_variable(self):
        graph = self._base()
        graph.put_node(Node("variable1", NodeCategory.VARIABLE, "v"))
        graph.put_link(Link(1, LinkCategory.FLOW, "cloud1", "variable1", label_key="valve_F"))
        with self.assertRaises(ModelCorruption):
            translate(graph)

    def test_duplicate_labels(self):
        graph = self._base()
        graph.put_node(Node("variable1", NodeCategory.VARIABLE, "S"))
        with self.assertRaises(ModelCorruption):
            translate(graph)

    def test_orphaned_ghost(self):
        graph = self._base()
        graph.put_node(Node("stock2", NodeCategory.STOCK, "Gone", kind=NodeKind.GHOST))
        with self.assertRaises(ModelCorruption):
            translate(graph)


if __name__ == "__main__":
    unittest.main()
