"""
Tests for module and toolchain helpers
"""

from gotestcolor.gomod import (
    ModuleInfo,
    detect_go_version,
    is_legacy_toolchain,
    parse_go_version,
    parse_module,
    read_module,
)


class TestModule:
    """Test go.mod parsing"""

    def test_parse_module(self):
        info = parse_module("// comment\nmodule github.com/acme/proj\n\ngo 1.21\n")
        assert info.path == "github.com/acme/proj"
        assert info.prefix == "github.com/acme"
        assert info.name == "proj"

    def test_quoted_module(self):
        assert parse_module('module "example.com/x"\n').path == "example.com/x"

    def test_single_element(self):
        info = ModuleInfo("proj")
        assert info.prefix == ""
        assert info.name == "proj"

    def test_no_module_line(self):
        assert parse_module("go 1.21\n") == ModuleInfo()

    def test_read_module(self, go_project):
        assert read_module(go_project).path == "github.com/acme/proj"

    def test_missing_go_mod(self, temp_dir):
        """Without go.mod nothing is stripped"""
        info = read_module(temp_dir)
        assert info.path == ""
        assert info.prefix == ""


class TestToolchain:
    """Test Go version detection"""

    def test_parse_go_version(self):
        assert parse_go_version("go1.21.3") == (1, 21)
        assert parse_go_version("go1.9") == (1, 9)
        assert parse_go_version("devel") is None

    def test_legacy(self):
        assert is_legacy_toolchain((1, 13))
        assert not is_legacy_toolchain((1, 14))
        assert not is_legacy_toolchain((2, 0))
        assert not is_legacy_toolchain(None)

    def test_detect_with_fake_binary(self, make_fake_go):
        go = make_fake_go(["go1.12.17"])
        assert detect_go_version(go) == (1, 12)

    def test_detect_failure_status(self, make_fake_go):
        go = make_fake_go(["unknown command"], exit_code=2)
        assert detect_go_version(go) is None

    def test_detect_missing_binary(self, temp_dir):
        assert detect_go_version(str(temp_dir / "no-such-go")) is None
