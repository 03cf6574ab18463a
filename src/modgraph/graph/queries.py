"""Query functions for traversing a module dependency graph."""

import logging

import networkx as nx

from .engine import ModuleGraph

logger = logging.getLogger(__name__)


def to_networkx(graph: ModuleGraph) -> nx.DiGraph:
    """Convert a module graph into a NetworkX DiGraph.

    Edges whose target has no node are dropped, matching what gets rendered.

    Args:
        graph: Module graph to convert

    Returns:
        Directed graph with one node per module and one edge per import
    """
    digraph = nx.DiGraph()
    for name, node in sorted(graph.nodes.items()):
        digraph.add_node(
            name,
            display_name=node.display_name,
            is_root=node.is_root,
            is_kept=node.is_kept,
            is_broken=node.is_broken,
            is_foreign=node.is_foreign,
        )
    for source, target in graph.edges():
        if target in graph:
            digraph.add_edge(source, target)
    return digraph


def get_dependencies(graph: ModuleGraph, identifier: str) -> list[str]:
    """Get the modules that a module imports directly.

    Args:
        graph: Module graph
        identifier: Module to query

    Returns:
        Sorted identifiers, or an empty list for unknown modules
    """
    node = graph.get(identifier)
    if node is None:
        return []
    return list(node.dependencies)


def get_dependents(graph: ModuleGraph, identifier: str) -> list[str]:
    """Get the modules that import a module directly.

    Args:
        graph: Module graph
        identifier: Module to query

    Returns:
        Sorted identifiers of importing modules
    """
    return sorted(source for source, target in graph.edges() if target == identifier)


def find_paths(
    graph: ModuleGraph,
    source: str,
    target: str,
    max_length: int = 10,
) -> list[list[str]]:
    """Find all import paths between two modules.

    Args:
        graph: Module graph
        source: Importing module
        target: Imported module
        max_length: Maximum path length

    Returns:
        Sorted list of paths (each path is a list of identifiers)
    """
    try:
        paths = nx.all_simple_paths(to_networkx(graph), source, target, cutoff=max_length)
        return sorted(list(p) for p in paths)
    except nx.NodeNotFound:
        return []


def find_cycles(graph: ModuleGraph) -> list[list[str]]:
    """Find every import cycle in the graph.

    Each cycle is rotated to start at its lexicographically smallest module,
    and cycles are returned sorted, so output is stable across runs.

    Args:
        graph: Module graph

    Returns:
        List of cycles (each cycle is a list of identifiers without repetition)
    """
    cycles = []
    for cycle in nx.simple_cycles(to_networkx(graph)):
        start = cycle.index(min(cycle))
        cycles.append(cycle[start:] + cycle[:start])
    cycles.sort()
    logger.debug(f"Found {len(cycles)} import cycles")
    return cycles
