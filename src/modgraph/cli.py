"""
modgraph CLI

Command-line interface for graphing the imports of Python modules.
"""

import logging
from importlib.metadata import PackageNotFoundError, version as package_version
from pathlib import Path

import typer
from pydantic import ValidationError

from .config import Settings, setup_logging
from .errors import ModuleGraphError
from .graph import (
    CallIndex,
    FilterPolicy,
    ModuleGraph,
    SourceTreeResolver,
    build_referrer_graph,
    find_cycles,
    find_paths,
)
from .render import OUTPUT_FORMATS, DotRenderer

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="modgraph",
    help="A tool for graphing the imports of Python modules",
    add_completion=False,
)

IMPORTS_HELP = """Visualize module imports.

BOUNDARY is a path prefix such as "proj": modules outside it are not included
by default, and it is trimmed from every module name in the output. Root modules can be named with or without the boundary prefix.

By default the roots' imports are added recursively. Use --keep to select
some modules, --grow to widen the selection, and everything else is pruned.

The output is DOT, for use with a graphviz tool such as `dot`:

    modgraph imports proj proj/cli | dot -Tsvg > graph.svg
"""


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Configure logging before any command runs."""
    try:
        settings = Settings()
    except ValidationError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1)
    setup_logging("DEBUG" if verbose else settings.log_level)
    ctx.obj = settings


def _build_graph(
    settings: Settings,
    boundary: str,
    roots: list[str],
    filter_pattern: str | None,
    tests: bool,
    exts: bool,
    strict: bool,
    source_dirs: list[Path] | None,
    vendor_dir: str | None,
) -> ModuleGraph:
    policy = FilterPolicy(
        pattern=filter_pattern,
        boundary=boundary,
        include_externals=exts,
        foreign_modules=settings.foreign_modules,
    )
    search_paths = source_dirs or settings.source_dirs
    for path in search_paths:
        if not path.is_dir():
            raise typer.BadParameter(f"source directory does not exist: {path}")
    resolver = SourceTreeResolver(
        search_paths,
        boundary=boundary,
        vendor_dir=vendor_dir if vendor_dir is not None else settings.vendor_dir,
        test_patterns=settings.test_patterns,
    )
    graph = ModuleGraph(resolver, policy, include_tests=tests)
    for root in roots:
        graph.add_recursive(root, required=strict)
    return graph


@app.command(help=IMPORTS_HELP)
def imports(
    ctx: typer.Context,
    boundary: str = typer.Argument(..., help="Boundary (parent directory) of in-scope modules"),
    roots: list[str] = typer.Argument(..., help="Root modules of the graph"),
    filter_pattern: str | None = typer.Option(
        None, "--filter", help="Only include modules matching this regular expression"
    ),
    keep: list[str] | None = typer.Option(
        None, "--keep", help="Designate a module to \"keep\", and prune away the rest (repeatable)"
    ),
    grow: int = typer.Option(
        1, "--grow", help="How far to \"grow\" the graph away from any kept modules. Use with --keep."
    ),
    tests: bool = typer.Option(False, "--tests", help="Whether to include imports from test files"),
    exts: bool = typer.Option(
        False, "--exts", help="[SLOW] Whether to include modules from outside the boundary"
    ),
    strict: bool = typer.Option(False, "--strict", help="Fail if a root module cannot be resolved"),
    source_dirs: list[Path] | None = typer.Option(
        None, "--source-dir", help="Directory to search for modules (repeatable)"
    ),
    vendor_dir: str | None = typer.Option(None, "--vendor-dir", help="Vendored modules sub-path"),
    legend: bool = typer.Option(False, "--legend", help="Add a legend explaining the colors"),
    fmt: str = typer.Option("dot", "--format", help=f"Output format: {', '.join(OUTPUT_FORMATS)}"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write to a file instead of stdout"),
):
    settings: Settings = ctx.obj
    keep = keep or []
    try:
        graph = _build_graph(
            settings, boundary, roots, filter_pattern, tests, exts, strict, source_dirs, vendor_dir
        )

        for name in keep:
            graph.keep(name)
        if keep:
            graph.grow(grow)
            graph.prune()

        logger.debug(graph)

        rendered = DotRenderer(settings.palette, legend=legend).render_format(graph, fmt)
    except ModuleGraphError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    _write_output(rendered, fmt, output)
    logger.info(graph.stats())


def _write_output(rendered: bytes, fmt: str, output: Path | None) -> None:
    if output is not None:
        output.write_bytes(rendered)
        logger.info(f"Graph written to {output}")
    elif fmt == "dot":
        typer.echo(rendered.decode("utf-8"))
    else:
        typer.echo("Refusing to write binary output to stdout, use --output", err=True)
        raise typer.Exit(code=1)


@app.command()
def cycles(
    ctx: typer.Context,
    boundary: str = typer.Argument(..., help="Boundary (parent directory) of in-scope modules"),
    roots: list[str] = typer.Argument(..., help="Root modules of the graph"),
    filter_pattern: str | None = typer.Option(
        None, "--filter", help="Only include modules matching this regular expression"
    ),
    tests: bool = typer.Option(False, "--tests", help="Whether to include imports from test files"),
    exts: bool = typer.Option(False, "--exts", help="Whether to include modules from outside the boundary"),
    source_dirs: list[Path] | None = typer.Option(
        None, "--source-dir", help="Directory to search for modules (repeatable)"
    ),
):
    """List import cycles among the roots and their imports."""
    settings: Settings = ctx.obj
    try:
        graph = _build_graph(
            settings, boundary, roots, filter_pattern, tests, exts, False, source_dirs, None
        )
    except ModuleGraphError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    found = find_cycles(graph)
    for cycle in found:
        typer.echo(" -> ".join(cycle + cycle[:1]))
    logger.info(f"{len(found)} import cycles")


@app.command()
def paths(
    ctx: typer.Context,
    boundary: str = typer.Argument(..., help="Boundary (parent directory) of in-scope modules"),
    source: str = typer.Argument(..., help="Importing module, used as the root of the graph"),
    target: str = typer.Argument(..., help="Imported module"),
    max_length: int = typer.Option(10, "--max-length", help="Longest path to report"),
    tests: bool = typer.Option(False, "--tests", help="Whether to include imports from test files"),
    exts: bool = typer.Option(False, "--exts", help="Whether to include modules from outside the boundary"),
    source_dirs: list[Path] | None = typer.Option(
        None, "--source-dir", help="Directory to search for modules (repeatable)"
    ),
):
    """List the import paths from one module to another."""
    settings: Settings = ctx.obj
    try:
        graph = _build_graph(
            settings, boundary, [source], None, tests, exts, True, source_dirs, None
        )
    except ModuleGraphError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    found = find_paths(graph, graph.canonical(source), graph.canonical(target), max_length)
    for path in found:
        typer.echo(" -> ".join(path))
    logger.info(f"{len(found)} import paths")


REFERRERS_HELP = """Visualize function referrers.

TARGET names a function as MODULE:FUNCTION, for example proj/lib/core:helper
or proj.lib.core:Service.run. The module may be given without the BOUNDARY
prefix. Every Python file below BOUNDARY is searched for calls, and the
output graph holds every caller of the function, all the way up to the
callers nobody calls.

Calls are matched by name: a function with that name in the calling module
if there is one, otherwise every function with that name.
"""


@app.command(help=REFERRERS_HELP)
def referrers(
    ctx: typer.Context,
    boundary: str = typer.Argument(..., help="Boundary (parent directory) of in-scope modules"),
    target: str = typer.Argument(..., help="Function to find callers of, as MODULE:FUNCTION"),
    tests: bool = typer.Option(False, "--tests", help="Whether to include calls from test files"),
    source_dirs: list[Path] | None = typer.Option(
        None, "--source-dir", help="Directory to search for modules (repeatable)"
    ),
    legend: bool = typer.Option(False, "--legend", help="Add a legend explaining the colors"),
    fmt: str = typer.Option("dot", "--format", help=f"Output format: {', '.join(OUTPUT_FORMATS)}"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write to a file instead of stdout"),
):
    settings: Settings = ctx.obj
    search_paths = source_dirs or settings.source_dirs
    for path in search_paths:
        if not path.is_dir():
            raise typer.BadParameter(f"source directory does not exist: {path}")
    try:
        index = CallIndex(
            search_paths,
            boundary=boundary,
            include_tests=tests,
            test_patterns=settings.test_patterns,
        ).build()
        graph = build_referrer_graph(index, target)
        logger.debug(graph)
        rendered = DotRenderer(settings.palette, legend=legend).render_format(graph, fmt)
    except ModuleGraphError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    _write_output(rendered, fmt, output)
    logger.info(graph.stats())


@app.command()
def version():
    """Prints version information."""
    try:
        typer.echo(package_version("modgraph"))
    except PackageNotFoundError:
        typer.echo("unknown")


if __name__ == "__main__":
    app()
