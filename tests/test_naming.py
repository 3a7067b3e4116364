import unittest

# Label conventions and the identifier validator. The order of checks matters:
# an unchanged label is always accepted, even when it would otherwise fail.
from stockflow.errors import ModelCorruption
from stockflow.graph import Graph, Node, NodeCategory
from stockflow.naming import (
    GHOST_PREFIX,
    IdentifierValidator,
    LabelRegistry,
    NodeKind,
    duplicate_labels,
    format_label,
    looks_numeric,
    parse_label,
    validate_label,
)


def _graph(*nodes):
    graph = Graph()
    for node in nodes:
        graph.put_node(node)
    return graph


class TestLabelParsing(unittest.TestCase):
    def test_ghost_marker_parsed_once(self):
        self.assertEqual(parse_label("$Population"), (NodeKind.GHOST, "Population"))
        self.assertEqual(parse_label("Population"), (NodeKind.REAL, "Population"))
        self.assertEqual(parse_label(None), (NodeKind.REAL, None))

    def test_format_is_inverse_of_parse(self):
        for label in ("birth rate", f"{GHOST_PREFIX}birth rate"):
            self.assertEqual(format_label(*parse_label(label)), label)
        self.assertIsNone(format_label(NodeKind.REAL, None))

    def test_numeric_detection(self):
        for text in ("3", "3.5", " 2e-3 ", "-4", "0x1F", "nan", "inf"):
            self.assertTrue(looks_numeric(text), text)
        for text in ("", "x3", "3x", "birth rate", "e"):
            self.assertFalse(looks_numeric(text), text)


class TestValidateLabel(unittest.TestCase):
    def setUp(self):
        self.graph = _graph(
            Node("stock1", NodeCategory.STOCK, "Population", equation="100"),
            Node("variable1", NodeCategory.VARIABLE, "rate", equation="0.1"),
        )

    def test_unchanged_label_always_valid(self):
        # Even a numeric label passes when it is not being changed
        self.assertTrue(validate_label("Population", "Population", self.graph))
        self.assertTrue(validate_label("42", "42", self.graph))

    def test_empty_label_rejected(self):
        self.assertFalse(validate_label("", "Population", self.graph))
        self.assertFalse(validate_label("", None, self.graph))

    def test_blank_label_rejected(self):
        for label in ("   ", "\t", " \n "):
            self.assertFalse(validate_label(label, None, self.graph), repr(label))
            self.assertFalse(validate_label(label, None, Graph()), repr(label))

    def test_node_cannot_ghost_itself(self):
        # Population is the only stock carrying that name
        self.assertFalse(validate_label("$Population", "Population", self.graph, category="stock"))
        # a different node may still ghost it
        self.assertTrue(validate_label("$Population", "Other", self.graph, category="stock"))

    def test_ghost_requires_existing_canonical(self):
        self.assertTrue(validate_label("$Population", None, self.graph))
        self.assertFalse(validate_label("$Nobody", None, self.graph))

    def test_ghost_category_must_match(self):
        self.assertTrue(validate_label("$Population", None, self.graph, category="stock"))
        self.assertFalse(validate_label("$Population", None, self.graph, category="variable"))

    def test_numeric_label_rejected(self):
        self.assertFalse(validate_label("3", None, self.graph))
        self.assertFalse(validate_label("1.5e3", "Population", self.graph))

    def test_flat_namespace_uniqueness(self):
        # A variable may not take a stock's label
        self.assertFalse(validate_label("Population", None, self.graph, category="variable"))
        self.assertFalse(validate_label("rate", "Population", self.graph))
        self.assertTrue(validate_label("births", None, self.graph))

    def test_validator_has_no_side_effects(self):
        before = self.graph.copy()
        IdentifierValidator(self.graph)("Deaths", None)
        self.assertEqual(self.graph, before)

    def test_validator_wrapper(self):
        validator = IdentifierValidator(self.graph)
        self.assertTrue(validator.validate("$rate", None, "variable"))
        self.assertFalse(validator("rate", None))


class TestLabelRegistry(unittest.TestCase):
    def test_registry_detects_conflict(self):
        reg = LabelRegistry()
        reg.register("Population", "stock1")
        # same mapping is fine
        reg.register("Population", "stock1")
        self.assertIn("Population", reg)
        with self.assertRaises(ModelCorruption) as ctx:
            reg.register("Population", "variable1")
        self.assertEqual(ctx.exception.context["keys"], ["stock1", "variable1"])

    def test_duplicate_labels_ignores_ghosts(self):
        nodes = [
            Node("stock1", NodeCategory.STOCK, "P"),
            Node("stock2", NodeCategory.STOCK, "P", kind=NodeKind.GHOST),
            Node("variable1", NodeCategory.VARIABLE, "x"),
            Node("variable2", NodeCategory.VARIABLE, "x"),
            Node("cloud1", NodeCategory.CLOUD),
        ]
        self.assertEqual(duplicate_labels(nodes), {"x": ["variable1", "variable2"]})


if __name__ == "__main__":
    unittest.main()
