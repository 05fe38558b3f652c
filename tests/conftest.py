"""
Shared fixtures and configuration for gotestcolor tests
"""

import os
import sys
import tempfile
import shutil
from pathlib import Path
import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from gotestcolor import config as config_module


MAIN_TEST_GO = '''package pkg

import "testing"

// TestFoo checks foo.
func TestFoo(t *testing.T) {
	t.Run("case", func(t *testing.T) {
		if "}" == "{" {
			t.Fatal("braces")
		}
	})
}

func TestBar(t *testing.T) {
	t.Skip("later")
}
'''


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Never read the developer's real configuration"""
    monkeypatch.setattr(config_module, "CONFIG_PATH", tmp_path / "no-config" / "config.json")
    config_module._reset_config()
    yield
    config_module._reset_config()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    # Cleanup
    shutil.rmtree(temp_path, ignore_errors=True)


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


@pytest.fixture
def go_project(temp_dir):
    """A small Go module with tests, generated code and vendored packages"""
    root = temp_dir / "proj"
    write(root / "go.mod", "module github.com/acme/proj\n\ngo 1.21\n")
    write(root / "main.go", "package main\n\nfunc main() {}\n")
    write(root / "pkg" / "main_test.go", MAIN_TEST_GO)
    write(root / "pkg" / "pkg.go", "package pkg\n\nfunc Foo() int { return 1 }\n")
    write(
        root / "gen" / "gen.go",
        "// Code generated by protoc-gen-go. DO NOT EDIT.\n\npackage gen\n\nfunc Marshal() {}\n",
    )
    write(root / "docs" / "doc.go", "// Package docs is documentation only.\npackage docs\n")
    write(
        root / "vendor" / "example.com" / "dep" / "dep_test.go",
        "package dep\n\nfunc TestVendored(t *testing.T) {}\n",
    )
    write(root / "testdata" / "broken_test.go", "package broken\n\nfunc TestBroken( {\n")
    return root


@pytest.fixture
def failing_transcript():
    """go test output for one failing test in non-verbose mode"""
    return [
        "=== RUN   TestFoo",
        "--- FAIL: TestFoo (0.00s)",
        "    main_test.go:10: boom",
        "FAIL",
    ]


@pytest.fixture
def verbose_transcript():
    """go test -v output with passing, skipped and failing tests"""
    return [
        "=== RUN   TestFoo",
        "=== RUN   TestFoo/case",
        "    main_test.go:9: braces",
        "--- FAIL: TestFoo (0.00s)",
        "    --- FAIL: TestFoo/case (0.00s)",
        "=== RUN   TestBar",
        "    main_test.go:15: later",
        "--- SKIP: TestBar (0.00s)",
        "FAIL",
        "FAIL\tgithub.com/acme/proj/pkg\t0.012s",
        "?   \tgithub.com/acme/proj/docs\t[no test files]",
        "FAIL",
    ]


@pytest.fixture
def make_fake_go(temp_dir):
    """Factory for a fake go executable printing canned output"""
    def _make(lines, exit_code=0, name="go", marker=None, sleep=None):
        script = temp_dir / "bin" / name
        body = "\n".join(lines)
        touch = f"touch '{marker}'\n" if marker else ""
        pause = f"sleep {sleep}\n" if sleep else ""
        write(
            script,
            f"#!/bin/sh\n{touch}cat <<'GOTEST_EOF'\n{body}\nGOTEST_EOF\n{pause}exit {exit_code}\n",
        )
        script.chmod(0o755)
        return str(script)
    return _make
