#!/usr/bin/env python3
"""Command-line interface for gotestcolor."""

import os
import sys
import argparse
import logging
from typing import Dict, List, Optional, Sequence, Tuple

import colorama

from . import __version__
from .classifier import OutputClassifier, link_mode_for
from .config import _load_config
from .exceptions import ConfigError, GotestError, IndexBuildError
from .gomod import ModuleInfo, detect_go_version, is_legacy_toolchain, read_module
from .index import build_index
from .render import ConsoleRenderer
from .supervisor import GoTestRun
from .watch import run_loop

logger = logging.getLogger(__name__)

LOOP_ARG = "loop"
VERBOSE_ARG = "-v"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gotest",
        description="Run go test and print its output in colour",
        epilog="Any other arguments are passed to 'go test' unchanged.",
        allow_abbrev=False,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--no-color", action="store_true", help="Disable colour output")
    parser.add_argument("--loop", action="store_true", help="Re-run after every Go source change")
    parser.add_argument(
        "--legacy",
        action="store_true",
        help="Parse output in the pre-go1.14 layout",
    )
    parser.add_argument("--config", help="Configuration file")
    parser.add_argument("--cd", metavar="DIR", help="Change to DIR before running")
    parser.add_argument(
        "--hide-untested",
        action="store_true",
        help="Hide summary lines of packages without test files "
        "(shown by default; also the hide_untested_packages config key)",
    )
    return parser


def log_level_for(debug: bool, config: Dict) -> Tuple[int, Optional[str]]:
    """Logging level to use, and the configured name if it was not understood"""
    if debug:
        return logging.DEBUG, None
    name = str(config.get("log_level", "INFO")).upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        return logging.INFO, name
    return level, None


def setup_logging(debug: bool, config: Dict) -> None:
    level, unknown = log_level_for(debug, config)
    logging.basicConfig(level=level)
    if unknown:
        logger.warning(f"Unknown log level {unknown!r} in configuration, using INFO")


def index_root_for(go_args: Sequence[str], cwd: str) -> str:
    """
    Directory to index, taken from the last package pattern

    ``./...`` and flags give the working directory, ``./pkg/...`` gives
    ``cwd/pkg``.
    """
    if not go_args or go_args[-1].startswith("-"):
        return cwd

    directory = os.path.dirname(go_args[-1]) or os.curdir
    root = os.path.normpath(os.path.join(cwd, directory))
    if not os.path.isdir(root):
        logger.debug(f"Package pattern {go_args[-1]!r} is not a directory, indexing {cwd}")
        return cwd
    return root


class TestCommand:
    """Everything needed to run (and re-run) go test for one invocation."""

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        go_args: List[str],
        config: Dict,
        renderer: ConsoleRenderer,
        cwd: Optional[str] = None,
        legacy: bool = False,
    ):
        self.go_args = go_args
        self.config = config
        self.renderer = renderer
        self.cwd = cwd or os.getcwd()
        self.module: ModuleInfo = read_module(self.cwd)
        self.index_root = index_root_for(go_args, self.cwd)
        self.verbose = VERBOSE_ARG in go_args
        if self.verbose and not legacy:
            legacy = is_legacy_toolchain(detect_go_version(config["go_binary"]))
        self.link_mode = link_mode_for(self.verbose, legacy)

    def make_classifier(self) -> OutputClassifier:
        index = build_index(
            self.index_root,
            self.module.name,
            self.config["exclude_dirs"],
            module_root=self.cwd,
        )
        return OutputClassifier(
            index,
            root=self.cwd,
            link_mode=self.link_mode,
            display_prefix=self.module.prefix,
            count_nested_failures=self.config["count_nested_failures"],
            count_resolved_links=self.config["count_resolved_links"],
            hide_untested_packages=self.config["hide_untested_packages"],
        )

    def run_once(self) -> int:
        """Index, run go test, print the summary"""
        classifier = self.make_classifier()
        run = GoTestRun(
            self.go_args,
            classifier,
            sink=self.renderer.render,
            go_binary=self.config["go_binary"],
            cwd=self.cwd,
        )
        exit_code = run.run()
        self.renderer.summary(run.state, run.elapsed)
        return exit_code

    def run_guarded(self) -> int:
        """Like run_once, but a broken index only fails this iteration"""
        try:
            return self.run_once()
        except IndexBuildError as e:
            self.renderer.error(f"Error: {e}")
            return 1

    def loop(self) -> int:
        return run_loop(
            self.run_guarded,
            self.index_root,
            debounce=self.config["loop_debounce"],
            exclude_dirs=self.config["exclude_dirs"],
            on_wait=lambda: self.renderer.banner("Waiting for changes..."),
        )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point"""
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    args, go_args = parser.parse_known_args(argv)

    if go_args and go_args[-1] == LOOP_ARG:
        go_args.pop()
        args.loop = True

    colorama.just_fix_windows_console()

    try:
        config = _load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.hide_untested:
        config = dict(config, hide_untested_packages=True)

    setup_logging(args.debug, config)

    renderer = ConsoleRenderer(
        colors=config["colors"],
        use_color=False if args.no_color else None,
        emoji=config["emoji"],
    )
    renderer.banner(f"gotest v{__version__}")

    if not go_args:
        renderer.error("no argument was given")
        return 0

    if args.cd:
        try:
            os.chdir(args.cd)
        except OSError as e:
            renderer.error(f"Error: cannot change to {args.cd}: {e}")
            return 1
        logger.info(f"Changed directory to {args.cd}")

    try:
        command = TestCommand(go_args, config, renderer, legacy=args.legacy)
        if args.loop:
            return command.loop()
        return command.run_once()
    except GotestError as e:
        renderer.error(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
