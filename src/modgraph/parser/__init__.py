"""Parser module for extracting imports and calls from Python sources using Tree-sitter."""

from .calls import MODULE_SCOPE, CallParser, FunctionDefinition
from .imports import DEFAULT_TEST_PATTERNS, ImportParser, ImportStatement, is_test_file

__all__ = [
    # Imports
    "DEFAULT_TEST_PATTERNS",
    "ImportParser",
    "ImportStatement",
    "is_test_file",
    # Calls
    "MODULE_SCOPE",
    "CallParser",
    "FunctionDefinition",
]
