"""Call index over Python source trees, and graphs of a function's referrers."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import FunctionNotFoundError
from ..parser import DEFAULT_TEST_PATTERNS, MODULE_SCOPE, CallParser, is_test_file
from .engine import ModuleGraph
from .filters import FilterPolicy
from .resolver import StaticResolver

logger = logging.getLogger(__name__)


@dataclass
class FunctionRecord:
    """A function found while indexing, keyed by ``<module>:<qualified name>``."""

    identifier: str
    module: str
    name: str
    calls: list[str] = field(default_factory=list)

    @property
    def simple_name(self) -> str:
        """The name after the last dot."""
        return self.name.rsplit(".", 1)[-1]


def function_identifier(module: str, name: str) -> str:
    """Build the identifier of a function, e.g. ``proj/lib/core:Service.run``."""
    return f"{module}:{name}"


def parse_target(target: str) -> tuple[str, str]:
    """Split a ``MODULE:FUNCTION`` target.

    The module may be written with dots or slashes, so ``proj.lib:helper``
    and ``proj/lib:helper`` name the same function.

    Raises:
        FunctionNotFoundError: If the target is not of that form
    """
    module, sep, name = target.partition(":")
    module = module.replace(".", "/").strip("/")
    if not sep or not module or not name:
        raise FunctionNotFoundError(target, "expected MODULE:FUNCTION")
    return module, name


class CallIndex:
    """Name-based index of the function calls made under a set of source directories.

    A call is linked the way a reader would guess it: to a function with that
    name in the calling module if there is one, otherwise to every function
    with that name in any other module.
    """

    def __init__(
        self,
        search_paths: Iterable[Path | str],
        boundary: str = "",
        include_tests: bool = False,
        test_patterns: Iterable[str] = DEFAULT_TEST_PATTERNS,
        parser: CallParser | None = None,
    ):
        """Initialize an empty index.

        Args:
            search_paths: Directories holding the modules, in order
            boundary: Only index modules below this path prefix
            include_tests: Also index test files
            test_patterns: Glob patterns that identify test files
            parser: CallParser instance (created if omitted)
        """
        self.search_paths = [Path(p) for p in search_paths]
        self.boundary = boundary.strip("/")
        self.include_tests = include_tests
        self.test_patterns = tuple(test_patterns)
        self._parser = parser or CallParser()
        self._functions: dict[str, FunctionRecord] = {}
        self._by_module: dict[str, dict[str, list[str]]] = {}
        self._by_name: dict[str, list[str]] = {}
        self._callers: dict[str, set[str]] | None = None

    def __len__(self) -> int:
        return len(self._functions)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._functions

    def get(self, identifier: str) -> FunctionRecord | None:
        """Get a function by identifier."""
        return self._functions.get(identifier)

    def build(self) -> "CallIndex":
        """Parse every module under the search paths.

        A module found under more than one search path is indexed from the
        first one only. Unreadable files are skipped with a warning.
        """
        seen_modules: set[str] = set()
        for root in self.search_paths:
            base = root.joinpath(*self.boundary.split("/")) if self.boundary else root
            if not base.is_dir():
                continue
            for path in sorted(base.rglob("*.py")):
                if not self.include_tests and is_test_file(path, self.test_patterns):
                    continue
                module = self._module_identifier(root, path)
                if module in seen_modules:
                    continue
                seen_modules.add(module)
                try:
                    definitions = self._parser.parse_file(path)
                except OSError as e:
                    logger.warning(f"Skipping unreadable module {path}: {e}")
                    continue
                for definition in definitions:
                    self._add(module, definition.name, definition.calls)

        self._callers = None
        logger.info(f"Indexed {len(self._functions)} functions in {len(seen_modules)} modules")
        return self

    def _module_identifier(self, root: Path, path: Path) -> str:
        parts = list(path.relative_to(root).with_suffix("").parts)
        if parts[-1] == "__init__" and len(parts) > 1:
            parts.pop()
        return "/".join(parts)

    def _add(self, module: str, name: str, calls: list[str]) -> None:
        record = FunctionRecord(function_identifier(module, name), module, name, list(calls))
        self._functions[record.identifier] = record
        if name == MODULE_SCOPE:
            return
        self._by_module.setdefault(module, {}).setdefault(record.simple_name, []).append(
            record.identifier
        )
        self._by_name.setdefault(record.simple_name, []).append(record.identifier)

    def find(self, target: str) -> FunctionRecord:
        """Find the declaration a ``MODULE:FUNCTION`` target names.

        The module may be given with or without the boundary prefix.

        Raises:
            FunctionNotFoundError: If no such function was indexed
        """
        module, name = parse_target(target)
        candidates = [function_identifier(module, name)]
        if self.boundary:
            candidates.append(function_identifier(f"{self.boundary}/{module}", name))
        for identifier in candidates:
            record = self._functions.get(identifier)
            if record is not None and record.name != MODULE_SCOPE:
                logger.debug(f"found {target} as {identifier}")
                return record
        raise FunctionNotFoundError(target)

    def callees(self, identifier: str) -> list[str]:
        """Get the functions a function may call, sorted."""
        record = self._functions.get(identifier)
        if record is None:
            return []
        local = self._by_module.get(record.module, {})
        targets: set[str] = set()
        for call in record.calls:
            targets.update(local.get(call) or self._by_name.get(call, []))
        return sorted(targets)

    def callers(self, identifier: str) -> list[str]:
        """Get the functions that may call a function, sorted."""
        if self._callers is None:
            self._callers = {}
            for caller in self._functions:
                for callee in self.callees(caller):
                    self._callers.setdefault(callee, set()).add(caller)
        return sorted(self._callers.get(identifier, ()))

    def referrers(self, identifier: str) -> set[str]:
        """Get the function and everything that calls it, directly or not."""
        found = {identifier}
        stack = [identifier]
        while stack:
            for caller in self.callers(stack.pop()):
                if caller not in found:
                    found.add(caller)
                    stack.append(caller)
        return found


def build_referrer_graph(index: CallIndex, target: str) -> ModuleGraph:
    """Build the graph of every caller of a function, up to the callers nobody calls.

    Edges run from caller to callee. The callers nobody calls are the graph's
    roots, and the target function is kept, so it stands out when rendered.

    Args:
        index: Built call index
        target: ``MODULE:FUNCTION`` naming the function

    Returns:
        Graph keyed by function identifier

    Raises:
        FunctionNotFoundError: If the target names no indexed function
    """
    record = index.find(target)
    closure = index.referrers(record.identifier)
    calls = {name: [c for c in index.callees(name) if c in closure] for name in closure}

    # the boundary is only used for display names: some callers live in the
    # boundary package itself ("proj:main")
    policy = FilterPolicy(boundary=index.boundary, include_externals=True, foreign_modules=())
    graph = ModuleGraph(StaticResolver(calls, vendor_dir=""), policy)

    called = {callee for callees in calls.values() for callee in callees}
    for name in sorted(closure - called):
        graph.add_recursive(name)
    # callers that only call each other have no entry point
    for name in sorted(closure):
        if name not in graph:
            graph.add_recursive(name)

    graph.keep(record.identifier)
    logger.info(f"{len(closure) - 1} referrers of {record.identifier}")
    return graph
