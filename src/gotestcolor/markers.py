"""
Markers and small tokenizers for go test output
"""

import os
import re
from typing import NamedTuple, Optional, Tuple

# Section markers that name the test currently in flight
RUN_MARKER = "=== RUN"
PAUSE_MARKER = "=== PAUSE"
CONT_MARKER = "=== CONT"
NAME_MARKER = "=== NAME"
SKIP_MARKER = "--- SKIP"

# Terminal status markers
PASS_MARKER = "--- PASS"
FAIL_MARKER = "--- FAIL"
FAIL_STATUS = "FAIL"
PASS_STATUS = "PASS"
OK_STATUS = "ok"

# Build and package markers
BUILD_FAILED = "[build failed]"
PACKAGE_ERROR = "# "
NO_TEST_PACKAGE = "?"
NO_TEST_FILES = "[no test files]"
NOTHING_TO_TEST = "[nothing to test]"

KEY_SEPARATOR = ": "
FIELD_SEPARATOR = "\t"

ANSI_RE = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")

SECTION_RE = re.compile(
    r"^(?P<marker>=== (?:RUN|PAUSE|CONT|NAME)|--- SKIP)\b:?\s*(?P<rest>.*)$"
)
PASS_RE = re.compile(r"^(?:--- PASS\b|ok(?:\s|$)|PASS(?:\s|$))")
FAIL_NAME_RE = re.compile(r"^--- FAIL:?\s+(?P<name>[^\s(]+)")
FILE_REF_RE = re.compile(
    r"(?P<file>[^\s:]+?\.go)(?!\w)(?P<position>(?::\d+)*)(?P<colon>:?)"
)


class FileReference(NamedTuple):
    """A ``file.go:line:col:`` reference found in a detail line."""

    path: str
    position: str = ""
    colon: str = ""

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @property
    def suffix(self) -> str:
        """Line/column suffix, defaulting a bare colon to line 1"""
        if not self.position and self.colon:
            return ":1:"
        return self.position + self.colon


def strip_ansi(value: str) -> str:
    """Remove ANSI escape sequences."""
    return ANSI_RE.sub("", value)


def parse_section(text: str) -> Optional[Tuple[str, str]]:
    """
    Split a section marker line into marker and test name

    Args:
        text: Trimmed output line

    Returns:
        (marker, test name) or None if the line is not a section marker.
        For ``--- SKIP: TestX (0.00s)`` the duration is dropped.
    """
    match = SECTION_RE.match(text)
    if not match:
        return None

    marker = match.group("marker")
    rest = match.group("rest").strip()
    if marker == SKIP_MARKER:
        rest = rest.split(" ", 1)[0] if rest else ""
    return marker, rest


def is_pass_status(text: str) -> bool:
    return PASS_RE.match(text) is not None


def failed_function(text: str) -> Optional[str]:
    """
    Extract the test name from a ``--- FAIL: TestName (0.01s)`` line

    Returns:
        The test name (possibly ``Parent/sub``) or None for malformed lines
    """
    match = FAIL_NAME_RE.match(text)
    if not match:
        return None
    return match.group("name")


def package_field(line: str) -> Optional[str]:
    """
    Return the package column of a tab-separated summary line

    ``?   \\tpkg/path\\t[no test files]`` gives ``pkg/path``.
    """
    fields = line.split(FIELD_SEPARATOR)
    if len(fields) < 2:
        return None
    return fields[1].strip() or None


def after_key(text: str) -> Optional[str]:
    """Text following the first key separator, or None without one"""
    if KEY_SEPARATOR not in text:
        return None
    return text.split(KEY_SEPARATOR, 1)[1]


def find_file_reference(text: str) -> Optional[FileReference]:
    """
    Find the first Go source reference in ``text``

    Args:
        text: Candidate detail line, e.g. ``main_test.go:10: boom``

    Returns:
        FileReference or None if the text names no ``.go`` file
    """
    match = FILE_REF_RE.search(text)
    if not match:
        return None
    return FileReference(match.group("file"), match.group("position"), match.group("colon"))
