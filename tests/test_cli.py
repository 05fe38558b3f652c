"""
Tests for the command-line interface
"""

import io
import json
import logging

import pytest

from gotestcolor import cli
from gotestcolor.cli import TestCommand, build_parser, index_root_for, log_level_for, main
from gotestcolor.config import load_config
from gotestcolor.render import ConsoleRenderer


@pytest.fixture
def config_file(tmp_path):
    """Write a config pointing at a fake toolchain"""
    def _write(go_binary, **extra):
        path = tmp_path / "gotestcolor.json"
        path.write_text(json.dumps(dict(go_binary=go_binary, **extra)))
        return str(path)
    return _write


class TestParser:
    """Test argument handling"""

    def test_go_args_pass_through(self):
        args, go_args = build_parser().parse_known_args(["--no-color", "-v", "-run", "TestFoo", "./..."])
        assert args.no_color
        assert go_args == ["-v", "-run", "TestFoo", "./..."]

    def test_no_abbreviations(self):
        """Go flags that prefix our own are not swallowed"""
        args, go_args = build_parser().parse_known_args(["--c", "x"])
        assert args.cd is None
        assert go_args == ["--c", "x"]

    def test_index_root(self, go_project):
        cwd = str(go_project)
        assert index_root_for([], cwd) == cwd
        assert index_root_for(["./..."], cwd) == cwd
        assert index_root_for(["-v"], cwd) == cwd
        assert index_root_for(["./pkg/..."], cwd) == str(go_project / "pkg")
        assert index_root_for(["./missing/..."], cwd) == cwd


class TestMain:
    """Test whole invocations against a fake toolchain"""

    def test_no_arguments(self, capsys):
        assert main(["--no-color"]) == 0
        out = capsys.readouterr().out
        assert "gotest v" in out
        assert "no argument was given" in out

    def test_missing_config(self, capsys, tmp_path):
        assert main(["--config", str(tmp_path / "absent.json"), "./..."]) == 1
        assert "Error" in capsys.readouterr().err

    def test_failing_run(self, capsys, monkeypatch, temp_dir, go_project, make_fake_go,
                         failing_transcript, config_file):
        monkeypatch.chdir(temp_dir)
        go = make_fake_go(failing_transcript, exit_code=1)
        code = main(["--no-color", "--config", config_file(go), "--cd", str(go_project), "./..."])

        out = capsys.readouterr().out
        assert code == 1
        assert "pkg/main_test.go:10:\n\n    main_test.go:10: boom" in out
        assert "Total fails: 1" in out
        assert "\x1b[" not in out

    def test_passing_run(self, capsys, monkeypatch, go_project, make_fake_go, config_file):
        monkeypatch.chdir(go_project)
        go = make_fake_go(["ok  \tgithub.com/acme/proj/pkg\t0.01s"])
        code = main(["--no-color", "--config", config_file(go, emoji=False), "./..."])

        out = capsys.readouterr().out
        assert code == 0
        assert "ok  \t/proj/pkg\t0.01s" in out
        assert "No fails\n" in out

    def test_bad_directory(self, capsys, go_project, make_fake_go, config_file):
        go = make_fake_go([])
        code = main(["--config", config_file(go), "--cd", str(go_project / "nope"), "./..."])
        assert code == 1
        assert "cannot change" in capsys.readouterr().out

    def test_broken_index_does_not_spawn(self, capsys, monkeypatch, go_project, make_fake_go,
                                         config_file, temp_dir):
        """go test is never started when the index cannot be built"""
        (go_project / "pkg" / "bad_test.go").write_text("package pkg\n\nfunc TestBad( {\n")
        marker = temp_dir / "spawned"
        go = make_fake_go(["ok"], marker=marker)
        monkeypatch.chdir(go_project)

        assert main(["--no-color", "--config", config_file(go), "./..."]) == 1
        assert "bad_test.go" in capsys.readouterr().out
        assert not marker.exists()

    def test_loop_argument(self, monkeypatch, go_project, make_fake_go, config_file):
        """A trailing 'loop' enables loop mode and is not passed to go test"""
        calls = {}

        def fake_run_loop(run_once, root, debounce, exclude_dirs, on_wait):
            calls["root"] = root
            calls["debounce"] = debounce
            on_wait()
            return run_once()

        monkeypatch.setattr(cli, "run_loop", fake_run_loop)
        monkeypatch.chdir(go_project)
        go = make_fake_go(["PASS"])

        assert main(["--no-color", "--config", config_file(go, loop_debounce=0.1), "./...", "loop"]) == 0
        assert calls == {"root": str(go_project), "debounce": 0.1}

    def test_loop_survives_broken_index(self, capsys, monkeypatch, go_project, make_fake_go,
                                        config_file):
        (go_project / "pkg" / "bad_test.go").write_text("package pkg\n\nfunc TestBad( {\n")
        monkeypatch.setattr(cli, "run_loop", lambda run_once, *a, **kw: run_once())
        monkeypatch.chdir(go_project)
        go = make_fake_go(["PASS"])

        assert main(["--no-color", "--loop", "--config", config_file(go), "./..."]) == 1
        assert "Error: Cannot parse test file" in capsys.readouterr().out


GENERATED_GO = "// Code generated by mockgen. DO NOT EDIT.\n\npackage gen\n\nfunc Mock() {}\n"


def make_command(go_args, cwd, **config):
    settings = load_config()
    settings.update(config)
    return TestCommand(go_args, settings, ConsoleRenderer(stream=io.StringIO()), cwd=str(cwd))


class TestPackageNames:
    """Test that indexed packages match the names go test prints"""

    def test_subdirectory_pattern(self, go_project):
        """Packages below a sub-pattern keep their module-relative names"""
        (go_project / "pkg" / "gen").mkdir()
        (go_project / "pkg" / "gen" / "gen.go").write_text(GENERATED_GO)
        classifier = make_command(["./pkg/..."], go_project).make_classifier()

        result = classifier.classify("?   \tgithub.com/acme/proj/pkg/gen\t[no test files]")
        assert result.text == "?   \t/proj/pkg/gen\t[nothing to test]"

    def test_module_without_host(self, temp_dir):
        """A single element module path is matched as printed"""
        (temp_dir / "go.mod").write_text("module myapp\n\ngo 1.21\n")
        (temp_dir / "main.go").write_text("package main\n\nfunc main() {}\n")
        (temp_dir / "gen").mkdir()
        (temp_dir / "gen" / "gen.go").write_text(GENERATED_GO)
        classifier = make_command(["./..."], temp_dir).make_classifier()

        result = classifier.classify("?   \tmyapp/gen\t[no test files]")
        assert result.text == "?   \tmyapp/gen\t[nothing to test]"
        assert classifier.state.no_test_packages == 0

    def test_hidden_below_subdirectory_pattern(self, go_project):
        (go_project / "pkg" / "gen").mkdir()
        (go_project / "pkg" / "gen" / "gen.go").write_text(GENERATED_GO)
        command = make_command(["./pkg/..."], go_project, hide_untested_packages=True)
        classifier = command.make_classifier()

        assert classifier.classify("ok  \tgithub.com/acme/proj/pkg\t0.01s").visible
        assert not classifier.classify("?   \tgithub.com/acme/proj/pkg/gen\t[no test files]").visible


class TestLogging:
    """Test log level selection"""

    def test_debug_wins(self):
        assert log_level_for(True, {"log_level": "ERROR"}) == (logging.DEBUG, None)

    def test_configured_level(self):
        assert log_level_for(False, {"log_level": "warning"}) == (logging.WARNING, None)
        assert log_level_for(False, {}) == (logging.INFO, None)

    def test_unknown_level(self):
        assert log_level_for(False, {"log_level": "LOUD"}) == (logging.INFO, "LOUD")


class TestHideUntested:
    """Test the --hide-untested switch"""

    LINES = [
        "ok  \tgithub.com/acme/proj/pkg\t0.01s",
        "?   \tgithub.com/acme/proj/docs\t[no test files]",
    ]

    def test_shown_by_default(self, capsys, monkeypatch, go_project, make_fake_go, config_file):
        monkeypatch.chdir(go_project)
        go = make_fake_go(self.LINES)
        assert main(["--no-color", "--config", config_file(go), "./..."]) == 0

        out = capsys.readouterr().out
        assert "?   \t/proj/docs\t[nothing to test]" in out

    def test_hidden(self, capsys, monkeypatch, go_project, make_fake_go, config_file):
        monkeypatch.chdir(go_project)
        go = make_fake_go(self.LINES)
        assert main(["--no-color", "--hide-untested", "--config", config_file(go), "./..."]) == 0

        out = capsys.readouterr().out
        assert "ok  \t/proj/pkg\t0.01s" in out
        assert "/proj/docs" not in out
