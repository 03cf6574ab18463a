"""Tests for DOT rendering."""

import pytest

from modgraph.errors import RenderError
from modgraph.graph import FilterPolicy, ModuleGraph, StaticResolver
from modgraph.render import DotRenderer, Palette, render_dot

BOUNDARY = "github.com/x/proj"


def boundary_graph() -> ModuleGraph:
    imports = {
        f"{BOUNDARY}/cmd": [f"{BOUNDARY}/lib", "fmt"],
        f"{BOUNDARY}/lib": [],
    }
    graph = ModuleGraph(StaticResolver(imports), FilterPolicy(boundary=BOUNDARY))
    graph.add_recursive(f"{BOUNDARY}/cmd")
    return graph


def attr(dot, node_id: str, name: str):
    return dot.get_node(node_id)[0].get(name)


class TestDotRenderer:
    """Tests for DotRenderer class."""

    def test_node_ids_follow_sorted_identifiers(self):
        """Test that node IDs index the sorted identifier list."""
        dot = DotRenderer().render(boundary_graph())

        assert attr(dot, "N0", "label") == "cmd\n0 up 1 down"
        assert attr(dot, "N1", "label") == "lib\n1 up 0 down"
        assert [(e.get_source(), e.get_destination()) for e in dot.get_edges()] == [("N0", "N1")]

    def test_node_attributes(self):
        """Test shape, style and fill colors."""
        dot = DotRenderer().render(boundary_graph())

        assert attr(dot, "N0", "shape") == "box"
        assert attr(dot, "N0", "style") == "striped"
        assert attr(dot, "N0", "fillcolor") == "green"
        assert attr(dot, "N1", "fillcolor") == "#fcd92d"

    def test_graph_named_after_boundary(self):
        """Test the graph name."""
        assert BOUNDARY in render_dot(boundary_graph()).splitlines()[0]
        graph = ModuleGraph(StaticResolver({"a": []}))
        graph.add("a")
        assert render_dot(graph).splitlines()[0].startswith("digraph modules")

    def test_composite_fill_color(self):
        """Test that every applicable condition contributes a stripe, in order."""
        graph = ModuleGraph(StaticResolver({}))
        graph.add_recursive("missing")
        graph.keep("missing")

        dot = DotRenderer().render(graph)
        assert attr(dot, "N0", "fillcolor") == "#76E1FE:green:red"

    def test_no_fill_color_without_conditions(self):
        """Test that plain modules carry no fill color."""
        graph = ModuleGraph(StaticResolver({"a": ["c"], "b": ["c"], "c": []}))
        graph.add_recursive("a")
        graph.add_recursive("b")

        dot = DotRenderer().render(graph)
        assert attr(dot, "N2", "label") == "c\n2 up 0 down"
        assert attr(dot, "N2", "fillcolor") is None

    def test_dangling_edges_skipped(self):
        """Test that imports without a node produce no edge."""
        graph = ModuleGraph(StaticResolver({"app": ["lib"]}))
        graph.add("app")

        dot = DotRenderer().render(graph)
        assert len(dot.get_nodes()) == 1
        assert dot.get_edges() == []
        assert attr(dot, "N0", "label") == "app\n0 up 1 down"

    def test_foreign_modules_not_rendered(self):
        """Test that foreign pseudo-modules are left out entirely."""
        graph = ModuleGraph(StaticResolver({"app": ["C", "lib"], "lib": []}))
        graph.add_recursive("app")

        dot = DotRenderer().render(graph)
        labels = [n.get("label") for n in dot.get_nodes()]
        assert len(labels) == 2
        assert not any(label.startswith("C\n") for label in labels)
        assert len(dot.get_edges()) == 1

    def test_deterministic_output(self):
        """Test that graphs built in a different order render identically."""
        imports = {"a": ["c"], "b": ["c", "a"], "c": []}

        first = ModuleGraph(StaticResolver(imports))
        for root in ("a", "b"):
            first.add_recursive(root)
        second = ModuleGraph(StaticResolver(imports))
        for root in ("b", "a"):
            second.add_recursive(root)

        renderer = DotRenderer()
        assert renderer.render_string(first) == renderer.render_string(second)
        assert renderer.render_string(first) == renderer.render_string(first)

    def test_dot_text(self):
        """Test the DOT source text."""
        text = render_dot(boundary_graph())

        assert text.startswith("digraph")
        assert "N0 -> N1" in text
        assert text.index("N0 [") < text.index("N1 [")

    def test_custom_palette(self):
        """Test that the palette controls the fill colors."""
        palette = Palette(root="purple", single_parent="yellow")
        dot = DotRenderer(palette).render(boundary_graph())

        assert attr(dot, "N0", "fillcolor") == "purple"
        assert attr(dot, "N1", "fillcolor") == "yellow"

    def test_legend(self):
        """Test that the legend is an optional cluster."""
        assert DotRenderer().render(boundary_graph()).get_subgraphs() == []

        dot = DotRenderer(legend=True).render(boundary_graph())
        subgraphs = dot.get_subgraphs()
        assert len(subgraphs) == 1
        assert subgraphs[0].get_name() == "cluster_legend"
        assert len(subgraphs[0].get_nodes()) == 2 * len(Palette().legend())

    def test_unknown_format(self):
        """Test that unsupported output formats are rejected."""
        with pytest.raises(RenderError):
            DotRenderer().render_format(boundary_graph(), "gif")

    def test_dot_format_bytes(self):
        """Test that the dot format needs no Graphviz installation."""
        graph = boundary_graph()
        assert DotRenderer().render_format(graph, "dot") == render_dot(graph).encode("utf-8")
