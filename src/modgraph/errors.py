"""Exceptions raised by modgraph."""


class ModuleGraphError(Exception):
    """Base class for every error modgraph reports to its caller."""


class FilterPatternError(ModuleGraphError):
    """The configured filter pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"invalid filter pattern {pattern!r}: {reason}")


class ModuleNotInGraphError(ModuleGraphError):
    """A module was referenced by name but was never added to the graph."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"module {identifier} not found")


class RootResolutionError(ModuleGraphError):
    """A root module that was required to exist could not be resolved."""

    def __init__(self, identifier: str, reason: str):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"could not resolve root module {identifier}: {reason}")


class RenderError(ModuleGraphError):
    """The graph description backend rejected the graph."""


class FunctionNotFoundError(ModuleGraphError):
    """A referrers target does not name a function declared under the search paths."""

    def __init__(self, target: str, reason: str = "no such function declaration"):
        self.target = target
        self.reason = reason
        super().__init__(f"function {target} not found: {reason}")
