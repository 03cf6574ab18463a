"""Admission filters applied to modules before they enter the graph."""

import logging
import re
from collections.abc import Iterable

from ..errors import FilterPatternError

logger = logging.getLogger(__name__)

DEFAULT_FOREIGN_MODULES = frozenset({"C", "__future__"})


class FilterPolicy:
    """Decides which module identifiers may enter the graph.

    Two independent checks apply to every candidate dependency:

    - pattern: when set, the identifier must match the regular expression
    - boundary: when set, the identifier must start with the boundary prefix,
      unless ``include_externals`` is enabled

    The boundary also controls display names: it is trimmed (along with a
    following ``/``) from every identifier shown in the rendered graph.
    """

    def __init__(
        self,
        pattern: str | None = None,
        boundary: str = "",
        include_externals: bool = False,
        foreign_modules: Iterable[str] = DEFAULT_FOREIGN_MODULES,
    ):
        """Initialize the policy.

        Args:
            pattern: Optional regular expression restricting admitted identifiers
            boundary: Optional path prefix separating in-scope modules from externals
            include_externals: Skip the boundary check for dependencies
            foreign_modules: Pseudo-modules that are recorded but never resolved

        Raises:
            FilterPatternError: If ``pattern`` is not a valid regular expression
        """
        self.pattern = pattern or None
        self.boundary = boundary.rstrip("/")
        self.include_externals = include_externals
        self.foreign_modules = frozenset(foreign_modules)
        self._regex: re.Pattern[str] | None = None
        if self.pattern is not None:
            try:
                self._regex = re.compile(self.pattern)
            except re.error as e:
                raise FilterPatternError(self.pattern, str(e)) from e

    def matches_pattern(self, identifier: str) -> bool:
        """Check the identifier against the pattern filter."""
        return self._regex is None or self._regex.search(identifier) is not None

    def within_boundary(self, identifier: str) -> bool:
        """Check whether the identifier is the boundary or lives below it."""
        return not self.boundary or under_boundary(identifier, self.boundary)

    def is_foreign(self, identifier: str) -> bool:
        """Check whether the identifier names a non-source pseudo-module."""
        return identifier in self.foreign_modules

    def admits(self, identifier: str) -> bool:
        """Check whether a discovered dependency may enter the graph."""
        if not identifier:
            return False
        if not self.include_externals and not self.within_boundary(identifier):
            logger.debug(f"  {identifier} didn't pass boundary filter ({self.boundary})")
            return False
        if not self.matches_pattern(identifier):
            logger.debug(f"  {identifier} didn't pass pattern filter ({self.pattern})")
            return False
        return True

    def filter_dependencies(self, identifiers: Iterable[str]) -> list[str]:
        """Keep only the identifiers that pass every filter, in input order."""
        return [name for name in identifiers if self.admits(name)]

    def display_name(self, identifier: str) -> str:
        """Strip the boundary prefix (and a following separator) for display."""
        return trim_boundary(identifier, self.boundary) or identifier


def under_boundary(identifier: str, boundary: str) -> bool:
    """Check whether a slash-separated identifier is ``boundary`` or below it.

    ``proj`` contains ``proj/lib`` but not ``projects/lib``.
    """
    return identifier == boundary or identifier.startswith(f"{boundary}/")


def trim_boundary(identifier: str, boundary: str) -> str:
    """Remove the boundary prefix and its separator ("" for the boundary itself)."""
    if boundary and under_boundary(identifier, boundary):
        return identifier[len(boundary):].lstrip("/")
    return identifier
