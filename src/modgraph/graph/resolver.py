"""Module resolvers that turn a module identifier into its declared imports."""

import logging
import posixpath
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from ..parser import DEFAULT_TEST_PATTERNS, ImportParser, ImportStatement, is_test_file
from .filters import trim_boundary

logger = logging.getLogger(__name__)

STRATEGY_AS_GIVEN = "as-given"
STRATEGY_BOUNDARY = "boundary"
STRATEGY_VENDOR = "vendor"


@dataclass
class StrategyAttempt:
    """One failed attempt at locating a module."""

    strategy: str
    candidate: str
    error: str


@dataclass
class ResolvedModule:
    """Result of successfully resolving a module."""

    identifier: str  # Canonical name the module was found under
    requested: str  # Name the caller asked for
    strategy: str
    imports: list[str] = field(default_factory=list)
    test_imports: list[str] = field(default_factory=list)
    path: Path | None = None  # Module file, or None for namespace/in-memory modules


@dataclass
class ResolutionFailure:
    """Result of failing to resolve a module with every strategy."""

    identifier: str
    reason: str
    attempts: list[StrategyAttempt] = field(default_factory=list)

    def detail(self) -> str:
        """Describe every attempt, for diagnostics."""
        lines = [f"{self.identifier}: {self.reason}"]
        for attempt in self.attempts:
            lines.append(f"  {attempt.strategy} ({attempt.candidate}): {attempt.error}")
        return "\n".join(lines)


ResolutionResult = ResolvedModule | ResolutionFailure


class ModuleResolver(ABC):
    """Base class for module resolvers.

    A resolver tries, in order, the identifier as given, the identifier
    qualified under the boundary, and the identifier re-rooted under the
    vendor sub-path. The first candidate that can be located wins.
    """

    def __init__(self, boundary: str = "", vendor_dir: str = "vendor"):
        """Initialize the resolver.

        Args:
            boundary: Path prefix of in-scope modules
            vendor_dir: Sub-path tried as a last resort
        """
        self.boundary = boundary.rstrip("/")
        self.vendor_dir = vendor_dir.strip("/")

    def candidates(self, identifier: str) -> list[tuple[str, str, str]]:
        """List (strategy, candidate, canonical identifier) triples to try.

        Vendored modules keep the name they were requested under, since other
        modules import them by that name.
        """
        trimmed = trim_boundary(identifier, self.boundary)
        result = [(STRATEGY_AS_GIVEN, identifier, identifier)]
        if self.boundary and trimmed:
            qualified = posixpath.join(self.boundary, trimmed)
            if qualified != identifier:
                result.append((STRATEGY_BOUNDARY, qualified, qualified))
        if self.vendor_dir and trimmed:
            result.append((STRATEGY_VENDOR, posixpath.join(self.vendor_dir, trimmed), identifier))
        return result

    def resolve(self, identifier: str, include_tests: bool = False) -> ResolutionResult:
        """Resolve a module identifier to its imports.

        Args:
            identifier: Module identifier to resolve
            include_tests: Also collect imports of the module's test files

        Returns:
            ResolvedModule on success, ResolutionFailure otherwise
        """
        if not identifier:
            return ResolutionFailure(identifier, "empty module identifier")

        attempts: list[StrategyAttempt] = []
        for strategy, candidate, canonical in self.candidates(identifier):
            result = self._try(candidate, include_tests)
            if isinstance(result, str):
                attempts.append(StrategyAttempt(strategy, candidate, result))
                continue
            imports, test_imports, path = result
            logger.debug(f"resolved {identifier} via {strategy} as {candidate}")
            return ResolvedModule(
                identifier=canonical,
                requested=identifier,
                strategy=strategy,
                imports=imports,
                test_imports=test_imports if include_tests else [],
                path=path,
            )

        return ResolutionFailure(
            identifier,
            reason="; ".join(f"{a.strategy}: {a.error}" for a in attempts),
            attempts=attempts,
        )

    @abstractmethod
    def _try(
        self, candidate: str, include_tests: bool
    ) -> tuple[list[str], list[str], Path | None] | str:
        """Attempt a single candidate.

        Returns:
            (imports, test_imports, path) on success, or an error message
        """
        pass


class StaticResolver(ModuleResolver):
    """Resolver backed by in-memory import mappings."""

    def __init__(
        self,
        imports: Mapping[str, Iterable[str]],
        test_imports: Mapping[str, Iterable[str]] | None = None,
        boundary: str = "",
        vendor_dir: str = "vendor",
    ):
        super().__init__(boundary, vendor_dir)
        self._imports = {name: list(deps) for name, deps in imports.items()}
        self._test_imports = {name: list(deps) for name, deps in (test_imports or {}).items()}
        self.calls: list[str] = []

    def resolve(self, identifier: str, include_tests: bool = False) -> ResolutionResult:
        self.calls.append(identifier)
        return super().resolve(identifier, include_tests)

    def _try(self, candidate, include_tests):
        if candidate not in self._imports:
            return f"no module named {candidate}"
        return list(self._imports[candidate]), list(self._test_imports.get(candidate, [])), None


@dataclass
class ModuleLocation:
    """Where a module candidate was found on disk."""

    root: Path
    path: Path  # Package directory or module file
    is_package: bool

    @property
    def source_file(self) -> Path | None:
        """The file holding the module's own imports (None for namespace packages)."""
        if not self.is_package:
            return self.path
        init = self.path / "__init__.py"
        return init if init.is_file() else None


class SourceTreeResolver(ModuleResolver):
    """Resolver for Python modules laid out under one or more source directories.

    Identifiers are slash-separated paths relative to a search path, so
    ``proj/lib/core`` names ``<search path>/proj/lib/core.py`` or the package
    ``<search path>/proj/lib/core/``.
    """

    def __init__(
        self,
        search_paths: Iterable[Path | str],
        boundary: str = "",
        vendor_dir: str = "vendor",
        test_patterns: Iterable[str] = DEFAULT_TEST_PATTERNS,
        parser: ImportParser | None = None,
    ):
        """Initialize the resolver.

        Args:
            search_paths: Directories searched for modules, in order
            boundary: Path prefix of in-scope modules
            vendor_dir: Sub-path tried as a last resort
            test_patterns: Glob patterns that identify test files
            parser: ImportParser instance (created if omitted)
        """
        super().__init__(boundary, vendor_dir)
        self.search_paths = [Path(p) for p in search_paths]
        self.test_patterns = tuple(test_patterns)
        self._parser = parser or ImportParser()
        self._canonical_cache: dict[str, str | None] = {}

    def locate(self, candidate: str) -> ModuleLocation | None:
        """Find a module candidate under the search paths.

        Regular packages win over modules, and modules over namespace
        packages, within each search path.
        """
        parts = [p for p in candidate.split("/") if p]
        if not parts or any(p in (".", "..") for p in parts):
            return None
        for root in self.search_paths:
            base = root.joinpath(*parts)
            if (base / "__init__.py").is_file():
                return ModuleLocation(root, base, is_package=True)
            module_file = base.parent / f"{base.name}.py"
            if module_file.is_file():
                return ModuleLocation(root, module_file, is_package=False)
            if base.is_dir():
                return ModuleLocation(root, base, is_package=True)
        return None

    def canonical(self, identifier: str) -> str | None:
        """Get the name the identifier would resolve under, or None if it cannot be located."""
        if identifier not in self._canonical_cache:
            self._canonical_cache[identifier] = next(
                (
                    canonical
                    for _, candidate, canonical in self.candidates(identifier)
                    if self.locate(candidate) is not None
                ),
                None,
            )
        return self._canonical_cache[identifier]

    def _try(self, candidate, include_tests):
        location = self.locate(candidate)
        if location is None:
            roots = ", ".join(str(p) for p in self.search_paths)
            return f"no module or package {candidate} under {roots}"

        # vendored modules import each other by their un-vendored names
        logical = candidate
        if self.vendor_dir and candidate.startswith(f"{self.vendor_dir}/"):
            logical = candidate[len(self.vendor_dir) + 1:]
        parts = logical.split("/")
        package = parts if location.is_package else parts[:-1]

        imports: list[str] = []
        source_file = location.source_file
        if source_file is not None:
            try:
                statements = self._parser.parse_file(source_file)
            except OSError as e:
                return f"cannot read {source_file}: {e}"
            imports = self._to_identifiers(statements, package, source_file)

        test_imports: list[str] = []
        if include_tests:
            for test_file in self._test_files(location):
                try:
                    statements = self._parser.parse_file(test_file)
                except OSError as e:
                    logger.warning(f"Skipping unreadable test file {test_file}: {e}")
                    continue
                test_imports.extend(self._to_identifiers(statements, package, test_file))

        return imports, test_imports, source_file

    def _test_files(self, location: ModuleLocation) -> list[Path]:
        if location.is_package:
            return sorted(
                p for p in location.path.glob("*.py")
                if is_test_file(p, self.test_patterns)
            )
        stem = location.path.stem
        siblings = [
            location.path.with_name(f"test_{stem}.py"),
            location.path.with_name(f"{stem}_test.py"),
        ]
        return [p for p in siblings if p.is_file() and p != location.path]

    def _to_identifiers(
        self, statements: list[ImportStatement], package: list[str], source_file: Path
    ) -> list[str]:
        """Convert import statements to module identifiers."""
        identifiers: list[str] = []
        for statement in statements:
            if statement.module == "__future__":
                identifiers.append("__future__")
                continue

            if statement.is_relative:
                up = statement.level - 1
                if up > len(package):
                    logger.warning(
                        f"{source_file}:{statement.line}: relative import climbs above "
                        f"the source root, ignoring"
                    )
                    continue
                base = package[: len(package) - up] if up else list(package)
                module_parts = base + (statement.module.split(".") if statement.module else [])
            else:
                module_parts = statement.module.split(".")

            if statement.names:
                targets = [module_parts + name.split(".") for name in statement.names]
            else:
                targets = [module_parts]
            identifiers.extend(self._best_identifier(parts) for parts in targets if parts)
        return identifiers

    def _best_identifier(self, parts: list[str]) -> str:
        """Pick the longest resolvable prefix, else the top-level name."""
        for end in range(len(parts), 0, -1):
            canonical = self.canonical("/".join(parts[:end]))
            if canonical is not None:
                return canonical
        return parts[0]
