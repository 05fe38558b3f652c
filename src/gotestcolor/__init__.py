"""
gotestcolor: go test output in colour, with links to failing tests
"""

__version__ = "0.1.0"

from .goparse import (
    FuncDecl,
    GoFile,
    parse_file,
    parse_package_clause,
)

from .index import (
    TestIndex,
    build_index,
)

from .classifier import (
    Category,
    ClassifiedLine,
    Color,
    LinkMode,
    OutputClassifier,
    RunState,
)

from .exceptions import (
    GotestError,
    IndexBuildError,
    GoSyntaxError,
    ProcessError,
    ConfigError,
)

from .supervisor import (
    GoTestRun,
    merge_exit_code,
)

from .render import ConsoleRenderer

__all__ = [
    "FuncDecl",
    "GoFile",
    "parse_file",
    "parse_package_clause",
    "TestIndex",
    "build_index",
    "Category",
    "ClassifiedLine",
    "Color",
    "LinkMode",
    "OutputClassifier",
    "RunState",
    "GotestError",
    "IndexBuildError",
    "GoSyntaxError",
    "ProcessError",
    "ConfigError",
    "GoTestRun",
    "merge_exit_code",
    "ConsoleRenderer",
]
