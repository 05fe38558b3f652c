"""Line-by-line classification of go test output.

Each line is matched against ordered rule groups. Every group whose rule
matches applies its effects (counters, run state); the category and color of
the line come from the first matching group. Location hints for failing
tests are resolved on the line *after* the trigger, using the test index.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional, Sequence

from .index import TestIndex
from .markers import (
    BUILD_FAILED,
    FAIL_MARKER,
    FAIL_STATUS,
    FIELD_SEPARATOR,
    KEY_SEPARATOR,
    NO_TEST_FILES,
    NO_TEST_PACKAGE,
    NOTHING_TO_TEST,
    PACKAGE_ERROR,
    SKIP_MARKER,
    after_key,
    failed_function,
    find_file_reference,
    is_pass_status,
    package_field,
    parse_section,
    strip_ansi,
)

logger = logging.getLogger(__name__)


class Category(Enum):
    """Semantic category of one output line."""

    RUNNING = "running"
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"
    BUILD_ERROR = "build_error"
    UNKNOWN_PACKAGE = "unknown_package"
    PLAIN = "plain"


class Color:
    """Display color tags; the renderer maps them to terminal colors."""

    PROGRESS = "progress"
    INFO = "info"
    SUCCESS = "success"
    FAILURE = "failure"
    SKIP = "skip"
    LINK = "link"


class LinkMode(Enum):
    """Which key-separated segment of a detail line holds the file reference."""

    FIRST_SEGMENT = "first"
    SECOND_SEGMENT = "second"


def link_mode_for(verbose: bool, legacy: bool = False) -> LinkMode:
    """Verbose output of modern toolchains puts the test name before the file"""
    if verbose and not legacy:
        return LinkMode.SECOND_SEGMENT
    return LinkMode.FIRST_SEGMENT


@dataclass
class RunState:
    """Mutable per-run bookkeeping, owned by one classifier."""

    last_line: str = ""
    context_line: str = ""
    last_failed_function: str = ""
    in_flight_prefix: str = ""
    link_armed: bool = False
    failures: int = 0
    skips: int = 0
    no_test_packages: int = 0

    @property
    def had_failures(self) -> bool:
        return self.failures > 0


@dataclass(frozen=True)
class ClassifiedLine:
    """One classified output line, ready for rendering."""

    text: str
    category: Category
    color: Optional[str] = None
    location: Optional[str] = None
    visible: bool = True


@dataclass
class _LineContext:
    text: str
    trimmed: str
    category: Optional[Category] = None
    color: Optional[str] = None

    def assign(self, category: Category, color: Optional[str]) -> None:
        if self.category is None:
            self.category = category
            self.color = color


Rule = Callable[[_LineContext], bool]


class OutputClassifier:
    """
    Stateful classifier for the lines of one go test run

    Not thread-safe: feed it from a single consumer, in arrival order.

    Args:
        index: Test index used to resolve location hints
        root: Directory hints are made relative to (defaults to the index root)
        link_mode: Segment of a detail line holding the file reference
        display_prefix: Module prefix removed from every line
        count_nested_failures: Also count ``--- FAIL`` lines of subtests
        count_resolved_links: Count a failure for every resolved hint
        hide_untested_packages: Hide summary lines of packages without tests
    """

    def __init__(
        self,
        index: Optional[TestIndex] = None,
        *,
        root: Optional[str] = None,
        link_mode: LinkMode = LinkMode.FIRST_SEGMENT,
        display_prefix: str = "",
        count_nested_failures: bool = False,
        count_resolved_links: bool = False,
        hide_untested_packages: bool = False,
    ):
        self.index = index
        if root is None:
            root = index.root if index is not None else os.getcwd()
        self.root = os.path.abspath(root)
        self.link_mode = link_mode
        self.display_prefix = display_prefix
        self.count_nested_failures = count_nested_failures
        self.count_resolved_links = count_resolved_links
        self.hide_untested_packages = hide_untested_packages
        self.state = RunState()

        # precedence order, most specific first
        self._groups: Sequence[Sequence[Rule]] = (
            (self._fail_detail,),
            (self._build_failure,),
            (self._fail_status, self._pass_status),
            (self._unknown_package,),
            (self._section_marker,),
        )

    def reset(self) -> RunState:
        """Start a new run with fresh counters"""
        self.state = RunState()
        return self.state

    def classify(self, line: str) -> ClassifiedLine:
        """
        Classify one line of output

        Args:
            line: Raw output line without its line terminator

        Returns:
            The classified line; never raises
        """
        state = self.state

        if self.display_prefix:
            line = line.replace(self.display_prefix, "")

        if self.hide_untested_packages and self._untested_summary(line):
            return ClassifiedLine(line, Category.PLAIN, visible=False)

        ctx = _LineContext(text=line, trimmed=strip_ansi(line).strip())

        pending_prefix = state.in_flight_prefix
        link_armed = state.link_armed
        state.in_flight_prefix = ""
        state.link_armed = False

        for group in self._groups:
            for rule in group:
                if rule(ctx):
                    break

        location = None
        if link_armed or (pending_prefix and ctx.trimmed.startswith(pending_prefix)):
            location = self.resolve_location(ctx.trimmed)

        state.last_line = ctx.text
        return ClassifiedLine(
            text=ctx.text,
            category=ctx.category or Category.PLAIN,
            color=ctx.color,
            location=location,
        )

    def classify_all(self, lines: Iterable[str]) -> Iterator[ClassifiedLine]:
        for line in lines:
            yield self.classify(line)

    # ------------------------------------------------------------------ rules
    def _fail_detail(self, ctx: _LineContext) -> bool:
        if FAIL_MARKER not in ctx.trimmed:
            return False

        state = self.state
        detail = FAIL_MARKER + ctx.trimmed.split(FAIL_MARKER, 1)[1]
        remainder = detail[len(FAIL_MARKER):]
        ctx.text = detail
        ctx.assign(Category.FAIL, Color.FAILURE)

        if "/" not in remainder or self.count_nested_failures:
            state.failures += 1

        state.context_line = state.last_line
        function = failed_function(detail)
        if function is not None:
            state.last_failed_function = function
        state.link_armed = True
        return True

    def _build_failure(self, ctx: _LineContext) -> bool:
        if BUILD_FAILED in ctx.trimmed or ctx.trimmed.startswith(PACKAGE_ERROR):
            ctx.assign(Category.BUILD_ERROR, Color.FAILURE)
            self.state.failures += 1
            return True
        return False

    def _fail_status(self, ctx: _LineContext) -> bool:
        # counted on the more specific --- FAIL line
        if ctx.trimmed.startswith(FAIL_STATUS):
            ctx.assign(Category.FAIL, Color.FAILURE)
            return True
        return False

    def _pass_status(self, ctx: _LineContext) -> bool:
        if is_pass_status(ctx.trimmed):
            ctx.assign(Category.PASS, Color.SUCCESS)
            return True
        return False

    def _unknown_package(self, ctx: _LineContext) -> bool:
        if not ctx.trimmed.startswith(NO_TEST_PACKAGE):
            return False

        package = package_field(ctx.text)
        if package and self.index is not None and self.index.is_skipped(package):
            ctx.text = ctx.text.replace(NO_TEST_FILES, NOTHING_TO_TEST)
            ctx.assign(Category.UNKNOWN_PACKAGE, Color.SUCCESS)
        else:
            self.state.no_test_packages += 1
            ctx.assign(Category.UNKNOWN_PACKAGE, Color.INFO)
        return True

    def _section_marker(self, ctx: _LineContext) -> bool:
        section = parse_section(ctx.trimmed)
        if section is None:
            return False

        marker, name = section
        self.state.in_flight_prefix = name + KEY_SEPARATOR
        if marker == SKIP_MARKER:
            self.state.skips += 1
            ctx.assign(Category.SKIP, Color.SKIP)
        else:
            ctx.assign(Category.RUNNING, Color.PROGRESS)
        return True

    # ---------------------------------------------------------------- helpers
    def _untested_summary(self, line: str) -> bool:
        fields = strip_ansi(line).split(FIELD_SEPARATOR)
        if len(fields) != 3 or self.index is None:
            return False
        package = fields[1].strip()
        return bool(package) and not self.index.has_tests(package)

    def resolve_location(self, text: str) -> Optional[str]:
        """
        Build a clickable ``dir/file.go:line:`` hint from a detail line

        The file reference is looked up together with the last failed test;
        on a miss the hint falls back to the bare file name.

        Returns:
            The hint, or None if the line names no Go source file
        """
        if self.link_mode is LinkMode.SECOND_SEGMENT:
            text = after_key(text)
            if text is None:
                return None

        reference = find_file_reference(text)
        if reference is None:
            return None

        directory = ""
        function = self.state.last_failed_function
        path = None
        if self.index is not None and function:
            path = self.index.lookup(reference.name, function)
        if path is not None:
            directory = os.path.relpath(os.path.dirname(path), self.root)
            directory = "" if directory == os.curdir else directory.replace(os.sep, "/")
        else:
            logger.debug(f"No index entry for ({reference.name!r}, {function!r})")

        hint = reference.name + reference.suffix
        if directory:
            hint = f"{directory}/{hint}"

        if self.count_resolved_links:
            self.state.failures += 1
        return hint

