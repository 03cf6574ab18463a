"""Tests for the call index and referrer graphs."""

from pathlib import Path

import pytest

from modgraph.errors import FunctionNotFoundError
from modgraph.graph import CallIndex, build_referrer_graph, parse_target
from modgraph.render import render_dot

FILES = {
    "proj/__init__.py": "",
    "proj/core.py": (
        "def helper():\n"
        "    return 1\n"
        "\n\n"
        "def compute():\n"
        "    return helper() + 1\n"
        "\n\n"
        "class Service:\n"
        "    def run(self):\n"
        "        return compute()\n"
    ),
    "proj/cli.py": (
        "from proj.core import Service\n"
        "\n\n"
        "def main():\n"
        "    Service().run()\n"
        "\n\n"
        "def unrelated():\n"
        "    print('hi')\n"
        "\n\n"
        "main()\n"
    ),
    "proj/local.py": (
        "def helper():\n"
        "    return 2\n"
        "\n\n"
        "def uses_local():\n"
        "    return helper()\n"
    ),
    "proj/loop.py": (
        "def ping():\n"
        "    return pong()\n"
        "\n\n"
        "def pong():\n"
        "    compute()\n"
        "    return ping()\n"
    ),
    "proj/pkg/__init__.py": "def setup():\n    helper()\n",
    "proj/test_core.py": "from proj.core import helper\n\n\ndef test_helper():\n    assert helper() == 1\n",
    "other/mod.py": "def helper():\n    return 3\n",
}

REFERRERS = [
    "proj/cli:<module>",
    "proj/cli:main",
    "proj/core:Service.run",
    "proj/core:compute",
    "proj/core:helper",
    "proj/loop:ping",
    "proj/loop:pong",
    "proj/pkg:setup",
]


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    """Create a source tree with a call chain, a call cycle and a shadowing helper."""
    for name, content in FILES.items():
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return tmp_path


@pytest.fixture
def index(source_root: Path) -> CallIndex:
    return CallIndex([source_root], boundary="proj").build()


class TestParseTarget:
    """Tests for MODULE:FUNCTION targets."""

    def test_dotted_and_slashed_modules(self):
        """Test that both module spellings are accepted."""
        assert parse_target("proj.core:helper") == ("proj/core", "helper")
        assert parse_target("proj/core:Service.run") == ("proj/core", "Service.run")

    @pytest.mark.parametrize("target", ["proj.core.helper", ":helper", "proj/core:"])
    def test_malformed(self, target):
        """Test that a target must name both a module and a function."""
        with pytest.raises(FunctionNotFoundError):
            parse_target(target)


class TestCallIndex:
    """Tests for CallIndex class."""

    def test_boundary_limits_indexed_modules(self, index):
        """Test that only modules below the boundary are indexed."""
        assert "proj/core:helper" in index
        assert "other/mod:helper" not in index
        assert "proj/pkg:setup" in index

    def test_test_files_skipped_by_default(self, index, source_root):
        """Test that test files are only indexed when requested."""
        assert "proj/test_core:test_helper" not in index

        with_tests = CallIndex([source_root], boundary="proj", include_tests=True).build()
        assert "proj/test_core:test_helper" in with_tests
        assert "proj/test_core:test_helper" in with_tests.referrers("proj/core:helper")

    def test_find(self, index):
        """Test finding a declaration with or without the boundary prefix."""
        assert index.find("proj.core:helper").identifier == "proj/core:helper"
        assert index.find("core:Service.run").identifier == "proj/core:Service.run"

    def test_find_unknown(self, index):
        """Test that unknown functions and module scopes cannot be targets."""
        with pytest.raises(FunctionNotFoundError):
            index.find("core:nope")
        with pytest.raises(FunctionNotFoundError):
            index.find("cli:<module>")

    def test_local_function_wins(self, index):
        """Test that a call is linked to a same-module function before any other."""
        assert index.callees("proj/local:uses_local") == ["proj/local:helper"]
        assert index.callees("proj/core:compute") == ["proj/core:helper"]

    def test_calls_across_modules(self, index):
        """Test that calls without a local match link to every function of that name."""
        assert index.callees("proj/cli:main") == ["proj/core:Service.run"]
        assert index.callees("proj/pkg:setup") == ["proj/core:helper", "proj/local:helper"]
        assert index.callees("proj/cli:unrelated") == []

    def test_callers(self, index):
        """Test the reverse call lookup."""
        assert index.callers("proj/core:compute") == ["proj/core:Service.run", "proj/loop:pong"]
        assert index.callers("proj/cli:<module>") == []

    def test_referrers(self, index):
        """Test that referrers are collected transitively, through cycles."""
        assert sorted(index.referrers("proj/core:helper")) == REFERRERS
        assert index.referrers("proj/local:uses_local") == {"proj/local:uses_local"}


class TestReferrerGraph:
    """Tests for build_referrer_graph."""

    def test_graph_holds_every_referrer(self, index):
        """Test the nodes and caller-to-callee edges."""
        graph = build_referrer_graph(index, "core:helper")

        assert list(graph) == REFERRERS
        assert graph.edges() == [
            ("proj/cli:<module>", "proj/cli:main"),
            ("proj/cli:main", "proj/core:Service.run"),
            ("proj/core:Service.run", "proj/core:compute"),
            ("proj/core:compute", "proj/core:helper"),
            ("proj/loop:ping", "proj/loop:pong"),
            ("proj/loop:pong", "proj/core:compute"),
            ("proj/loop:pong", "proj/loop:ping"),
            ("proj/pkg:setup", "proj/core:helper"),
        ]

    def test_roots_and_target(self, index):
        """Test that uncalled callers are roots and the target is kept."""
        graph = build_referrer_graph(index, "core:helper")

        roots = sorted(name for name, node in graph.nodes.items() if node.is_root)
        assert roots == ["proj/cli:<module>", "proj/loop:ping", "proj/pkg:setup"]
        assert graph.kept() == {"proj/core:helper"}
        assert graph.get("proj/core:helper").is_user_kept
        assert graph.get("proj/cli:main").display_name == "cli:main"

    def test_function_without_callers(self, index):
        """Test that an uncalled function is a graph of its own."""
        graph = build_referrer_graph(index, "proj/local:uses_local")

        assert list(graph) == ["proj/local:uses_local"]
        assert graph.get("proj/local:uses_local").is_root
        assert graph.edges() == []

    def test_renders(self, index):
        """Test that a referrer graph renders like an import graph."""
        text = render_dot(build_referrer_graph(index, "core:compute"))
        assert text.startswith("digraph")
        assert "N0 -> " in text

    def test_unknown_target(self, index):
        """Test that a missing declaration is an error."""
        with pytest.raises(FunctionNotFoundError):
            build_referrer_graph(index, "core:missing")
