"""Graphviz (DOT) rendering of module dependency graphs using pydot."""

import logging

import pydot

from ..errors import RenderError
from ..graph.engine import ModuleGraph
from ..graph.node import ModuleNode
from .palette import Palette

logger = logging.getLogger(__name__)

DEFAULT_GRAPH_NAME = "modules"
LEGEND_GRAPH_NAME = "legend"  # pydot adds the "cluster_" prefix
OUTPUT_FORMATS = ("dot", "svg", "png", "pdf")


class DotRenderer:
    """Renders a ModuleGraph as a Graphviz digraph.

    Node IDs are ``N<i>``, where ``i`` indexes the sorted list of every
    module and import name, so identical graphs always produce identical
    output regardless of how they were built.
    """

    def __init__(self, palette: Palette | None = None, legend: bool = False):
        """Initialize the renderer.

        Args:
            palette: Fill colors for node conditions
            legend: Append a legend explaining the colors
        """
        self.palette = palette or Palette()
        self.legend = legend

    def render(self, graph: ModuleGraph) -> pydot.Dot:
        """Build the pydot graph for a module graph.

        Args:
            graph: Module graph to render

        Returns:
            pydot digraph with one node per module and one edge per import
        """
        graph.count_incoming()

        names = graph.identifiers()
        node_ids = {name: f"N{i}" for i, name in enumerate(names)}
        logger.debug(f"node ids: {node_ids}")

        dot = pydot.Dot(
            graph_name=graph.policy.boundary or DEFAULT_GRAPH_NAME,
            graph_type="digraph",
        )

        emitted: set[str] = set()
        for name in names:
            node = graph.get(name)
            if node is None or node.is_foreign:
                continue
            dot.add_node(pydot.Node(node_ids[name], **self.node_attributes(node)))
            emitted.add(name)

        for source, target in graph.edges():
            if source in emitted and target in emitted:
                dot.add_edge(pydot.Edge(node_ids[source], node_ids[target], weight="1"))

        if self.legend:
            self._add_legend(dot)

        return dot

    def render_string(self, graph: ModuleGraph) -> str:
        """Render a module graph as DOT source text."""
        return self.render(graph).to_string()

    def render_format(self, graph: ModuleGraph, fmt: str) -> bytes:
        """Render a module graph in one of OUTPUT_FORMATS.

        Formats other than ``dot`` are laid out by the Graphviz ``dot``
        program, which must be installed.

        Raises:
            RenderError: If the format is unknown or Graphviz fails
        """
        if fmt not in OUTPUT_FORMATS:
            raise RenderError(f"unknown output format {fmt!r}, expected one of {OUTPUT_FORMATS}")
        if fmt == "dot":
            return self.render_string(graph).encode("utf-8")
        dot = self.render(graph)
        try:
            return dot.create(prog="dot", format=fmt)
        except (OSError, AssertionError) as e:
            raise RenderError(f"graphviz failed to render {fmt}: {e}") from e

    def node_attributes(self, node: ModuleNode) -> dict[str, str]:
        """Get the DOT attributes for a module node."""
        attributes = {
            "label": f"{node.display_name}\n{node.incoming_count} up {len(node.dependencies)} down",
            "shape": "box",
            "style": "striped",
        }
        fill = self.fill_color(node)
        if fill:
            attributes["fillcolor"] = fill
        return attributes

    def fill_color(self, node: ModuleNode) -> str:
        """Combine the colors of every condition the node meets into stripes."""
        colors = []
        if node.is_user_kept:
            colors.append(self.palette.user_keep)
        if node.is_root:
            colors.append(self.palette.root)
        if node.incoming_count == 1:
            colors.append(self.palette.single_parent)
        if node.is_broken:
            colors.append(self.palette.broken)
        return ":".join(colors)

    def _add_legend(self, dot: pydot.Dot) -> None:
        legend = pydot.Cluster(LEGEND_GRAPH_NAME, label="Legend", style="solid")
        for key, color, doc in self.palette.legend():
            legend.add_node(
                pydot.Node(f"{key}Color", label="module", shape="box", style="filled", fillcolor=color)
            )
            legend.add_node(pydot.Node(f"{key}Doc", label=doc, shape="plaintext"))
            legend.add_edge(pydot.Edge(f"{key}Color", f"{key}Doc", style="invis"))
        dot.add_subgraph(legend)


def render_dot(graph: ModuleGraph, palette: Palette | None = None, legend: bool = False) -> str:
    """Render a module graph as DOT source text.

    Args:
        graph: Module graph to render
        palette: Fill colors for node conditions
        legend: Append a legend explaining the colors

    Returns:
        DOT source suitable for ``dot -Tsvg``
    """
    return DotRenderer(palette, legend).render_string(graph)
