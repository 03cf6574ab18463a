"""Graph module for building module dependency graphs."""

from .engine import GraphStats, ModuleGraph
from .filters import DEFAULT_FOREIGN_MODULES, FilterPolicy, trim_boundary, under_boundary
from .node import ModuleNode
from .queries import (
    find_cycles,
    find_paths,
    get_dependencies,
    get_dependents,
    to_networkx,
)
from .referrers import (
    CallIndex,
    FunctionRecord,
    build_referrer_graph,
    function_identifier,
    parse_target,
)
from .resolver import (
    ModuleLocation,
    ModuleResolver,
    ResolutionFailure,
    ResolutionResult,
    ResolvedModule,
    SourceTreeResolver,
    StaticResolver,
    StrategyAttempt,
)

__all__ = [
    # Engine
    "GraphStats",
    "ModuleGraph",
    "ModuleNode",
    # Filters
    "DEFAULT_FOREIGN_MODULES",
    "FilterPolicy",
    "trim_boundary",
    "under_boundary",
    # Resolution
    "ModuleLocation",
    "ModuleResolver",
    "ResolutionFailure",
    "ResolutionResult",
    "ResolvedModule",
    "SourceTreeResolver",
    "StaticResolver",
    "StrategyAttempt",
    # Referrers
    "CallIndex",
    "FunctionRecord",
    "build_referrer_graph",
    "function_identifier",
    "parse_target",
    # Queries
    "find_cycles",
    "find_paths",
    "get_dependencies",
    "get_dependents",
    "to_networkx",
]
