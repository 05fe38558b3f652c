"""
Static test index for gotestcolor
Maps test functions to the files declaring them and finds test-free packages
"""

import os
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from .exceptions import GoSyntaxError, IndexBuildError
from .goparse import has_function, is_generated, parse_file, parse_package_clause

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".go"
TEST_SUFFIX = "_test.go"
VENDOR_SEGMENT = "/vendor/"
DEFAULT_EXCLUDE_DIRS = ("vendor", "testdata")


class TestIndex:
    """
    Lookup table from (test file base name, function name) to file path

    Built once per run by :func:`build_index` and only read afterwards.
    When two directories hold a same-named test file declaring a same-named
    function, :meth:`lookup` answers with the last one walked while
    :meth:`candidates` keeps all of them.
    """

    __test__ = False  # not a pytest test class

    def __init__(self, root: str):
        self.root = root
        self._entries: Dict[Tuple[str, str], List[str]] = {}
        self.skip_dirs: FrozenSet[str] = frozenset()
        self.test_dirs: Set[str] = set()
        self.files_scanned = 0

    def add(self, path: str, function: str) -> None:
        key = (os.path.basename(path), function)
        paths = self._entries.setdefault(key, [])
        if paths and paths[-1] != path:
            logger.debug(f"Index collision for {key}: {paths[-1]} replaced by {path}")
        if path in paths:
            paths.remove(path)
        paths.append(path)

    def lookup(self, file_name: str, function: str) -> Optional[str]:
        """
        Find the file declaring ``function`` in a test file called ``file_name``

        Subtest names (``TestFoo/case``) resolve through their parent function.

        Returns:
            Absolute path of the declaring file, or None on a miss
        """
        paths = self.candidates(file_name, function)
        return paths[-1] if paths else None

    def candidates(self, file_name: str, function: str) -> List[str]:
        """All paths registered for the key, in walk order"""
        function = function.split("/", 1)[0]
        return list(self._entries.get((file_name, function), ()))

    def is_skipped(self, package: str) -> bool:
        """True for packages known to hold nothing worth testing"""
        return normalize_package(package) in self.skip_dirs

    def has_tests(self, package: str) -> bool:
        return normalize_package(package) in self.test_dirs

    def keys(self) -> Iterable[Tuple[str, str]]:
        return self._entries.keys()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TestIndex):
            return NotImplemented
        return (
            self.root == other.root
            and self._entries == other._entries
            and self.skip_dirs == other.skip_dirs
            and self.test_dirs == other.test_dirs
        )

    def __repr__(self):
        return (
            f"TestIndex(root={self.root!r}, entries={len(self)}, "
            f"skip_dirs={len(self.skip_dirs)}, test_dirs={len(self.test_dirs)})"
        )


def _relative_dir(directory: str, root: str) -> str:
    rel = os.path.relpath(directory, root)
    if rel == os.curdir:
        return ""
    return "/" + rel.replace(os.sep, "/")


def package_key(relative_dir: str, module_name: str = "") -> str:
    """Display form of a package directory, as ``go test`` prints it"""
    parts = [part for part in (module_name, relative_dir.strip("/")) if part]
    return "/" + "/".join(parts)


def normalize_package(package: str) -> str:
    """Bring a package field from go test output into package key form"""
    return "/" + package.strip("/")


def _excluded(name: str, exclude_dirs: Iterable[str]) -> bool:
    return name in exclude_dirs or name.startswith((".", "_"))


def _read_source(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        raise IndexBuildError(f"Cannot read {path}: {e}") from e


def _add_test_file(index: TestIndex, path: str, source: str, package: str) -> None:
    try:
        parsed = parse_file(source, filename=path)
    except GoSyntaxError as e:
        raise IndexBuildError(f"Cannot parse test file {e}") from e

    index.test_dirs.add(package)
    for func in parsed.functions:
        index.add(path, func.name)


def _skip_eligible(path: str, source: str) -> Optional[bool]:
    """
    Decide whether a non-test file leaves its package test-free

    Returns None for files that are not valid Go packages at all.
    """
    try:
        parse_package_clause(source, filename=path)
        if not has_function(source, filename=path):
            return True
    except GoSyntaxError as e:
        logger.debug(f"Ignoring unparsable source {e}")
        return None
    return is_generated(source)


def build_index(
    root: str,
    module_name: str = "",
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    module_root: Optional[str] = None,
) -> TestIndex:
    """
    Walk ``root`` once and index every test function

    Package keys are built relative to ``module_root``, so indexing only a
    subtree (``go test ./pkg/...``) still yields the package names that
    go test prints.

    Args:
        root: Project directory to scan
        module_name: Last element of the module path, used for package keys
        exclude_dirs: Directory names never descended into
        module_root: Directory holding go.mod (defaults to ``root``)

    Returns:
        The populated TestIndex

    Raises:
        IndexBuildError: If the tree cannot be walked, or a test file cannot
            be read or parsed
    """
    root = os.path.abspath(root)
    if not os.path.isdir(root):
        raise IndexBuildError(f"Not a directory: {root}")
    module_root = os.path.abspath(module_root) if module_root else root

    exclude_dirs = tuple(exclude_dirs)
    index = TestIndex(root)
    skip_state: Dict[str, bool] = {}

    def _walk_error(error: OSError) -> None:
        raise IndexBuildError(f"Cannot walk {error.filename}: {error.strerror}") from error

    for dirpath, dirnames, filenames in os.walk(root, onerror=_walk_error):
        dirnames[:] = sorted(d for d in dirnames if not _excluded(d, exclude_dirs))
        key = package_key(_relative_dir(dirpath, module_root), module_name)

        for name in sorted(filenames):
            if not name.endswith(SOURCE_SUFFIX):
                continue
            path = os.path.join(dirpath, name)
            if VENDOR_SEGMENT in _relative_dir(path, root) or not os.path.isfile(path):
                continue

            source = _read_source(path)
            index.files_scanned += 1

            if name.endswith(TEST_SUFFIX):
                _add_test_file(index, path, source, key)
                continue

            eligible = _skip_eligible(path, source)
            if eligible is None:
                continue
            # one hand-written file with code is enough to keep the package
            skip_state[key] = skip_state.get(key, True) and eligible

    index.skip_dirs = frozenset(key for key, skip in skip_state.items() if skip)
    logger.info(
        f"Indexed {len(index)} test functions in {len(index.test_dirs)} directories "
        f"({index.files_scanned} files scanned, {len(index.skip_dirs)} test-free packages)"
    )
    return index
