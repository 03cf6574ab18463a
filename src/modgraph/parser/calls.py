"""Tree-sitter parser for extracting function definitions and the calls they make."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from tree_sitter import Node, Parser, Query, QueryCursor

from .imports import PYTHON_LANGUAGE

logger = logging.getLogger(__name__)

PYTHON_DEFINITION_QUERY = """
(function_definition) @function.def
"""

PYTHON_CALL_QUERY = """
(call
  function: (identifier) @call.name
)
(call
  function: (attribute
    attribute: (identifier) @call.method
  )
)
"""

# Name of the pseudo-function holding calls made outside any function
MODULE_SCOPE = "<module>"

SCOPE_TYPES = frozenset({"function_definition", "class_definition"})


@dataclass
class FunctionDefinition:
    """A function or method and the names it calls."""

    name: str  # Qualified within its module, e.g. "Service.run"
    line: int
    calls: list[str] = field(default_factory=list)  # Sorted, de-duplicated

    @property
    def simple_name(self) -> str:
        """The name after the last dot."""
        return self.name.rsplit(".", 1)[-1]


class CallParser:
    """Parser for extracting function definitions and their calls using Tree-sitter.

    Calls are recorded by name only: ``helper()`` records ``helper`` and
    ``obj.run()`` records ``run``. Each call belongs to the innermost
    function containing it; calls outside every function belong to
    MODULE_SCOPE.
    """

    def __init__(self):
        self._parser = Parser(PYTHON_LANGUAGE)
        self._definition_query = Query(PYTHON_LANGUAGE, PYTHON_DEFINITION_QUERY)
        self._call_query = Query(PYTHON_LANGUAGE, PYTHON_CALL_QUERY)

    def parse_source(self, source: bytes) -> list[FunctionDefinition]:
        """Extract function definitions from Python source code.

        Args:
            source: Raw bytes of the Python source

        Returns:
            Definitions in source order, preceded by MODULE_SCOPE when
            module-level code makes calls
        """
        root = self._parser.parse(source).root_node

        calls_by_scope: dict[tuple[int, int] | None, set[str]] = {}
        call_captures = QueryCursor(self._call_query).captures(root)
        for capture in ("call.name", "call.method"):
            for node in call_captures.get(capture, []):
                scope = self._enclosing_function(node)
                key = (scope.start_byte, scope.end_byte) if scope is not None else None
                calls_by_scope.setdefault(key, set()).add(self._node_text(node, source))

        definitions: list[FunctionDefinition] = []
        if None in calls_by_scope:
            definitions.append(
                FunctionDefinition(name=MODULE_SCOPE, line=0, calls=sorted(calls_by_scope[None]))
            )

        def_captures = QueryCursor(self._definition_query).captures(root)
        for def_node in def_captures.get("function.def", []):
            name = self._qualified_name(def_node, source)
            if not name:
                continue
            key = (def_node.start_byte, def_node.end_byte)
            definitions.append(
                FunctionDefinition(
                    name=name,
                    line=def_node.start_point[0] + 1,
                    calls=sorted(calls_by_scope.get(key, ())),
                )
            )

        definitions.sort(key=lambda d: (d.line, d.name))
        return definitions

    def parse_file(self, file_path: Path | str) -> list[FunctionDefinition]:
        """Extract function definitions from a Python file.

        Raises:
            OSError: If the file cannot be read
        """
        return self.parse_source(Path(file_path).read_bytes())

    def _enclosing_function(self, node: Node) -> Node | None:
        current = node.parent
        while current is not None:
            if current.type == "function_definition":
                return current
            current = current.parent
        return None

    def _qualified_name(self, node: Node, source: bytes) -> str:
        """Join the names of the enclosing classes and functions, e.g. "Outer.Inner.method"."""
        parts = []
        current: Node | None = node
        while current is not None:
            if current.type in SCOPE_TYPES:
                name_node = current.child_by_field_name("name")
                if name_node is None:
                    return ""
                parts.append(self._node_text(name_node, source))
            current = current.parent
        return ".".join(reversed(parts))

    def _node_text(self, node: Node, source: bytes) -> str:
        """Get the text content of a node."""
        return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
