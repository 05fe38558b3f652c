"""Module descriptor and toolchain helpers."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import pexpect

logger = logging.getLogger(__name__)

MODULE_RE = re.compile(r"^\s*module\s+\"?([^\s\"]+)\"?", re.MULTILINE)
VERSION_RE = re.compile(r"go(\d+)\.(\d+)")

# go test switched to the per-test output layout in go1.14
MODERN_OUTPUT_VERSION = (1, 14)


@dataclass(frozen=True)
class ModuleInfo:
    """The module path declared in go.mod, split for display purposes."""

    path: str = ""

    @property
    def prefix(self) -> str:
        """Leading part of the module path stripped from output lines"""
        if "/" not in self.path:
            return ""
        return self.path.rsplit("/", 1)[0]

    @property
    def name(self) -> str:
        """Last element of the module path"""
        return self.path.rsplit("/", 1)[-1]


def parse_module(text: str) -> ModuleInfo:
    match = MODULE_RE.search(text)
    if not match:
        return ModuleInfo()
    return ModuleInfo(match.group(1))


def read_module(directory: Union[str, Path]) -> ModuleInfo:
    """
    Read the module declaration from ``directory/go.mod``

    A missing or unreadable go.mod yields an empty ModuleInfo, in which case
    nothing is stripped from displayed paths.
    """
    gomod = Path(directory) / "go.mod"
    try:
        text = gomod.read_text(encoding="utf-8")
    except OSError as e:
        logger.debug(f"No module descriptor at {gomod}: {e}")
        return ModuleInfo()

    info = parse_module(text)
    logger.debug(f"Module path {info.path!r} (prefix {info.prefix!r})")
    return info


def parse_go_version(text: str) -> Optional[Tuple[int, int]]:
    match = VERSION_RE.search(text)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def detect_go_version(go_binary: str = "go", timeout: int = 10) -> Optional[Tuple[int, int]]:
    """
    Ask the toolchain for its version

    Returns:
        (major, minor) or None if the toolchain could not be queried
    """
    try:
        output, status = pexpect.run(
            f"{go_binary} env GOVERSION",
            timeout=timeout,
            withexitstatus=True,
            encoding="utf-8",
        )
    except (pexpect.ExceptionPexpect, OSError) as e:
        logger.debug(f"Could not query Go version: {e}")
        return None

    if status != 0:
        logger.debug(f"'{go_binary} env GOVERSION' exited with {status}")
        return None
    return parse_go_version(output)


def is_legacy_toolchain(version: Optional[Tuple[int, int]]) -> bool:
    """True when the toolchain predates the go1.14 output layout"""
    if version is None:
        return False
    return version < MODERN_OUTPUT_VERSION
