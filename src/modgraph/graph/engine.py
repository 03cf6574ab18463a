"""Graph engine for building and narrowing module dependency graphs."""

import logging
import posixpath
from collections.abc import Iterator
from dataclasses import dataclass

from ..errors import ModuleNotInGraphError, RootResolutionError
from .filters import FilterPolicy
from .node import ModuleNode
from .resolver import ModuleResolver, ResolutionFailure

logger = logging.getLogger(__name__)


@dataclass
class GraphStats:
    """Summary counts for a module graph."""

    modules: int
    single_parent: int
    roots: int
    broken: int
    foreign: int
    edges: int

    def __str__(self) -> str:
        return (
            f"{self.modules} modules\n"
            f"  {self.single_parent} with a single parent\n"
            f"  {self.roots} are roots\n"
            f"  {self.broken} are broken\n"
            f"{self.edges} import statements"
        )


class ModuleGraph:
    """Map of module identifiers to the modules they import.

    The graph is not a tree: it may contain cycles, and the node map itself
    doubles as the "seen" set that stops expansion from revisiting a module.
    """

    def __init__(
        self,
        resolver: ModuleResolver,
        policy: FilterPolicy | None = None,
        include_tests: bool = False,
    ):
        """Initialize an empty graph.

        Args:
            resolver: Resolver that looks up each module's imports
            policy: Admission filters (defaults to admitting everything)
            include_tests: Also follow imports made by test files
        """
        self._resolver = resolver
        self._policy = policy or FilterPolicy()
        self._include_tests = include_tests
        self._nodes: dict[str, ModuleNode] = {}
        # requested name -> canonical name, for modules found under another name
        self._aliases: dict[str, str] = {}
        # broken module -> why it could not be resolved
        self._failures: dict[str, str] = {}

    @property
    def policy(self) -> FilterPolicy:
        """Access the admission filters."""
        return self._policy

    @property
    def nodes(self) -> dict[str, ModuleNode]:
        """Get a shallow copy of the identifier -> node map."""
        return dict(self._nodes)

    def get(self, identifier: str) -> ModuleNode | None:
        """Get a node by identifier."""
        return self._nodes.get(identifier)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._nodes))

    def __str__(self) -> str:
        lines = ["ModuleGraph{"]
        for name in sorted(self._nodes):
            lines.append(f"\t{name}: {self._nodes[name]}")
        lines.append("}")
        return "\n".join(lines)

    # -- construction -------------------------------------------------------

    def add(self, identifier: str, *, required: bool = False) -> bool:
        """Add a module to the graph as a root, without following its imports.

        Args:
            identifier: Module identifier
            required: Raise instead of recording a broken node if it cannot be resolved

        Returns:
            True if a new node was stored for the module

        Raises:
            RootResolutionError: If ``required`` and the module cannot be resolved
        """
        added, _ = self._admit(identifier, root=True, required=required)
        self._apply_aliases()
        return added

    def add_recursive(self, identifier: str, *, required: bool = False) -> bool:
        """Add a module as a root, then every module it transitively imports.

        Expansion is depth-first over an explicit stack; modules already in the
        graph are never resolved twice, so import cycles terminate.

        Args:
            identifier: Module identifier
            required: Raise instead of recording a broken node if the root cannot be resolved

        Returns:
            True if a new node was stored for the root module

        Raises:
            RootResolutionError: If ``required`` and the root cannot be resolved
        """
        added, node = self._admit(identifier, root=True, required=required)
        if node is not None:
            stack = list(reversed(node.dependencies))
            while stack:
                name = stack.pop()
                _, child = self._admit(name, root=False)
                if child is not None:
                    stack.extend(reversed(child.dependencies))
        self._apply_aliases()
        return added

    def _admit(
        self, name: str, root: bool, required: bool = False
    ) -> tuple[bool, ModuleNode | None]:
        """Run a single module through the admission steps.

        Returns:
            (whether a node was stored, the node whose imports still need expanding)
        """
        logger.debug(f"add({name}, root={root})")
        name = self._aliases.get(name, name)

        # roots bypass the filters for themselves, never for their imports
        if not root and not self._policy.admits(name):
            return False, None

        if name in self._nodes:
            if root and required and self._nodes[name].is_broken:
                raise RootResolutionError(name, self._failures.get(name, "module is broken"))
            self._mark_root(name, root)
            return False, None

        if self._policy.is_foreign(name):
            self._nodes[name] = ModuleNode(
                identifier=name, display_name=name, is_root=root, is_foreign=True
            )
            return True, None

        result = self._resolver.resolve(name, self._include_tests)

        if isinstance(result, ResolutionFailure):
            if root and required:
                raise RootResolutionError(name, result.reason)
            logger.debug(f"error resolving module:\n{result.detail()}")
            logger.warning(f"Could not resolve {name}, marking it broken")
            self._failures[name] = result.reason
            self._nodes[name] = ModuleNode(
                identifier=name,
                display_name=self._policy.display_name(name),
                is_root=root,
                is_broken=True,
            )
            return True, None

        key = result.identifier
        if key != name:
            self._aliases[name] = key
        if key != name and key in self._nodes:
            # found under its boundary-qualified name, which is already present
            self._mark_root(key, root)
            return False, None

        deps = self._policy.filter_dependencies(result.imports)
        if self._include_tests:
            deps += self._policy.filter_dependencies(result.test_imports)
        deps = [d for d in deps if d not in (key, name)]

        node = ModuleNode(
            identifier=key,
            display_name=self._policy.display_name(key),
            dependencies=deps,
            is_root=root,
        )
        self._nodes[key] = node
        logger.debug(f"adding {key} ({len(node.dependencies)} imports)")
        return True, node

    def _mark_root(self, name: str, root: bool) -> None:
        if root and not self._nodes[name].is_root:
            self._nodes[name] = self._nodes[name].model_copy(update={"is_root": True})

    def _apply_aliases(self) -> None:
        """Point every import at the name its module was stored under."""
        if not self._aliases:
            return
        for name, node in list(self._nodes.items()):
            deps = sorted({self._aliases.get(d, d) for d in node.dependencies} - {name})
            if deps != node.dependencies:
                self._nodes[name] = node.model_copy(update={"dependencies": deps})

    def canonical(self, identifier: str) -> str:
        """Get the name a module is stored under.

        Accepts the name a module was requested under, and names given
        without the boundary prefix.
        """
        identifier = self._aliases.get(identifier, identifier)
        if identifier not in self._nodes and self._policy.boundary:
            qualified = posixpath.join(self._policy.boundary, identifier)
            if qualified in self._nodes:
                return qualified
        return identifier

    # -- neighborhood selection --------------------------------------------

    def keep(self, identifier: str) -> None:
        """Mark a single module for keeping.

        Should only be used as a result of user action; ``grow`` marks the
        modules around it.

        Raises:
            ModuleNotInGraphError: If the module is not in the graph
        """
        identifier = self.canonical(identifier)
        node = self._nodes.get(identifier)
        if node is None:
            raise ModuleNotInGraphError(identifier)
        logger.info(f"Keeping {identifier}")
        self._nodes[identifier] = node.model_copy(update={"is_kept": True, "is_user_kept": True})

    def kept(self) -> set[str]:
        """Get the identifiers currently marked for keeping."""
        return {name for name, node in self._nodes.items() if node.is_kept}

    def grow(self, count: int) -> None:
        """Expand the kept set by ``count`` steps along imports in both directions.

        Each step reads only the previous step's keep state: dependencies of
        kept modules become kept (down), and modules importing a kept module
        become kept (up). Grown modules are never marked as user-kept.
        """
        for step in range(count, 0, -1):
            before = self.kept()
            self._log_grow(step, "Before", len(before))

            grown = set(before)
            for name, node in self._nodes.items():
                if name in before:
                    grown.update(d for d in node.dependencies if d in self._nodes)
                if any(d in before for d in node.dependencies):
                    grown.add(name)

            self._nodes = {
                name: (
                    node.model_copy(update={"is_kept": True})
                    if name in grown and not node.is_kept
                    else node.model_copy()
                )
                for name, node in self._nodes.items()
            }
            self._log_grow(step, "After", len(grown))

            if grown == before:
                logger.debug(f"Grow reached a fixed point with {step - 1} steps left")
                break

    def _log_grow(self, count: int, info: str, keep_count: int) -> None:
        logger.debug(f"Grow {count}. {info}: keep {keep_count} (total {len(self._nodes)})")

    def prune(self) -> None:
        """Remove every module not marked for keeping, and every import of one."""
        logger.info("Pruning")
        survivors = self.kept()
        self._nodes = {
            name: node.model_copy(
                update={"dependencies": [d for d in node.dependencies if d in survivors]}
            )
            for name, node in sorted(self._nodes.items())
            if name in survivors
        }

    # -- statistics and ordering --------------------------------------------

    def count_incoming(self) -> None:
        """Recompute how many modules import each module."""
        counts = dict.fromkeys(self._nodes, 0)
        for node in self._nodes.values():
            for dep in node.dependencies:
                if dep in counts:
                    counts[dep] += 1
        for name, node in self._nodes.items():
            node.incoming_count = counts[name]

    def identifiers(self) -> list[str]:
        """Get the sorted names of every module and every module import."""
        names = set(self._nodes)
        for node in self._nodes.values():
            names.update(node.dependencies)
        return sorted(names)

    def edges(self) -> list[tuple[str, str]]:
        """Get every (module, import) pair, sorted."""
        return [
            (name, dep)
            for name in sorted(self._nodes)
            for dep in self._nodes[name].dependencies
        ]

    def stats(self) -> GraphStats:
        """Count modules, roots, broken modules and import statements."""
        self.count_incoming()
        nodes = self._nodes.values()
        return GraphStats(
            modules=len(self._nodes),
            single_parent=sum(1 for n in nodes if n.incoming_count == 1),
            roots=sum(1 for n in nodes if n.is_root),
            broken=sum(1 for n in nodes if n.is_broken),
            foreign=sum(1 for n in nodes if n.is_foreign),
            edges=len(self.edges()),
        )
