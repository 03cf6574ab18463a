"""Tree-sitter parser for extracting import statements from Python sources."""

import fnmatch
import logging
from dataclasses import dataclass, field
from pathlib import Path

import tree_sitter_python as tspython
from tree_sitter import Language, Node, Parser, Query, QueryCursor

logger = logging.getLogger(__name__)

PYTHON_LANGUAGE = Language(tspython.language())

# Tree-sitter query patterns for Python import statements
PYTHON_IMPORT_QUERY = """
(import_statement) @import

(import_from_statement) @import.from

(future_import_statement) @import.future
"""

DEFAULT_TEST_PATTERNS = ("test_*.py", "*_test.py")


@dataclass
class ImportStatement:
    """A single import statement found in a source file."""

    module: str  # Dotted module path without leading dots ("" for "from . import x")
    level: int = 0  # Number of leading dots for relative imports
    names: list[str] = field(default_factory=list)  # Names after "from ... import"
    line: int | None = None

    @property
    def is_relative(self) -> bool:
        """Whether this is a relative ("from .x import y") import."""
        return self.level > 0

    @property
    def is_from_import(self) -> bool:
        """Whether this is a "from ... import ..." statement."""
        return bool(self.names) or self.level > 0


def is_test_file(path: Path | str, patterns: tuple[str, ...] | list[str] = DEFAULT_TEST_PATTERNS) -> bool:
    """Check if a file name matches one of the test-file patterns."""
    name = Path(path).name
    return any(fnmatch.fnmatch(name, pattern) for pattern in patterns)


class ImportParser:
    """Parser for extracting import statements using Tree-sitter."""

    def __init__(self):
        self._parser = Parser(PYTHON_LANGUAGE)
        self._query = Query(PYTHON_LANGUAGE, PYTHON_IMPORT_QUERY)

    def parse_source(self, source: bytes) -> list[ImportStatement]:
        """Extract import statements from Python source code.

        Imports nested in functions, classes and conditional blocks are
        included. Statements are returned in source order.

        Args:
            source: Raw bytes of the Python source

        Returns:
            List of extracted import statements
        """
        tree = self._parser.parse(source)
        captures = QueryCursor(self._query).captures(tree.root_node)

        statements: list[ImportStatement] = []
        for node in captures.get("import", []):
            statements.extend(self._plain_import(node, source))
        for node in captures.get("import.from", []):
            statement = self._from_import(node, source)
            if statement is not None:
                statements.append(statement)
        for node in captures.get("import.future", []):
            statements.append(
                ImportStatement(
                    module="__future__",
                    names=self._imported_names(node, source),
                    line=node.start_point[0] + 1,
                )
            )

        statements.sort(key=lambda s: (s.line or 0, s.module))
        return statements

    def parse_file(self, file_path: Path | str) -> list[ImportStatement]:
        """Extract import statements from a Python file.

        Args:
            file_path: Path to the file to parse

        Returns:
            List of extracted import statements

        Raises:
            OSError: If the file cannot be read
        """
        source = Path(file_path).read_bytes()
        return self.parse_source(source)

    def _plain_import(self, node: Node, source: bytes) -> list[ImportStatement]:
        """Handle "import a.b, c as d"."""
        statements = []
        for name_node in node.children_by_field_name("name"):
            dotted = self._dotted_name(name_node, source)
            if dotted:
                statements.append(
                    ImportStatement(module=dotted, line=node.start_point[0] + 1)
                )
        return statements

    def _from_import(self, node: Node, source: bytes) -> ImportStatement | None:
        """Handle "from a.b import c" and "from ..a import b"."""
        module_node = node.child_by_field_name("module_name")
        if module_node is None:
            return None

        level = 0
        module = ""
        if module_node.type == "relative_import":
            for child in module_node.children:
                if child.type == "import_prefix":
                    level = self._node_text(child, source).count(".")
                elif child.type == "dotted_name":
                    module = self._node_text(child, source)
        else:
            module = self._node_text(module_node, source)

        return ImportStatement(
            module=module,
            level=level,
            names=self._imported_names(node, source),
            line=node.start_point[0] + 1,
        )

    def _imported_names(self, node: Node, source: bytes) -> list[str]:
        names = []
        for name_node in node.children_by_field_name("name"):
            dotted = self._dotted_name(name_node, source)
            if dotted:
                names.append(dotted)
        return names

    def _dotted_name(self, node: Node, source: bytes) -> str:
        # "a.b as c" carries the dotted name in its own "name" field
        if node.type == "aliased_import":
            inner = node.child_by_field_name("name")
            return self._node_text(inner, source) if inner is not None else ""
        if node.type == "dotted_name":
            return self._node_text(node, source)
        return ""

    def _node_text(self, node: Node, source: bytes) -> str:
        """Get the text content of a node."""
        return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
