"""
Process supervision for gotestcolor
Runs go test under a pty and streams its output through the classifier
"""

import os
import time
import signal
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional, Sequence

import pexpect
import psutil

from .classifier import ClassifiedLine, OutputClassifier, RunState
from .exceptions import ProcessError

logger = logging.getLogger(__name__)

RELAYED_SIGNALS = (signal.SIGINT, signal.SIGTERM)
JOIN_INTERVAL = 0.1


def build_command(go_binary: str, args: Sequence[str]) -> List[str]:
    return [go_binary, "test", *args]


def signal_process_tree(pid: int, sig: int) -> int:
    """
    Send a signal to a process and all of its descendants

    go test runs each package's test binary as a grandchild, so signalling
    only the direct child would leave those running.

    Returns:
        Number of processes signalled
    """
    try:
        parent = psutil.Process(pid)
        processes = [parent] + parent.children(recursive=True)
    except psutil.NoSuchProcess:
        return 0

    sent = 0
    for proc in processes:
        try:
            proc.send_signal(sig)
            sent += 1
        except psutil.NoSuchProcess:
            pass
    return sent


def merge_exit_code(child_status: int, state: RunState) -> int:
    """Non-zero when either the child or the classifier saw a failure"""
    if child_status:
        return child_status
    return 1 if state.had_failures else 0


class GoTestRun:
    """
    One supervised ``go test`` invocation

    The child's merged stdout/stderr is drained by a worker thread that is
    the only caller of the classifier. :meth:`run` returns once the child
    has exited and every buffered line has been classified.

    Args:
        args: Arguments forwarded to ``go test``
        classifier: Classifier for this run's output
        sink: Called with every classified line, in arrival order
        go_binary: Go toolchain executable
        cwd: Working directory of the child
        env: Environment of the child (defaults to ours)
        encoding: Output encoding; undecodable bytes are replaced
    """

    def __init__(
        self,
        args: Sequence[str],
        classifier: OutputClassifier,
        sink: Optional[Callable[[ClassifiedLine], None]] = None,
        go_binary: str = "go",
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        encoding: str = "utf-8",
        dimensions: tuple = (24, 200),
    ):
        self.args = list(args)
        self.classifier = classifier
        self.sink = sink or (lambda line: None)
        self.go_binary = go_binary
        self.cwd = cwd or os.getcwd()
        self.env = dict(env) if env is not None else dict(os.environ)
        self.encoding = encoding
        self.dimensions = dimensions
        self.process: Optional[pexpect.spawn] = None
        self.line_count = 0
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None
        self._done = threading.Event()

    @property
    def command(self) -> List[str]:
        return build_command(self.go_binary, self.args)

    @property
    def state(self) -> RunState:
        return self.classifier.state

    @property
    def elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.finished_at if self.finished_at is not None else time.time()
        return end - self.started_at

    def start(self) -> None:
        """Spawn the child process"""
        command = self.command
        logger.debug(f"Spawning {' '.join(command)} in {self.cwd}")
        self.started_at = time.time()
        try:
            self.process = pexpect.spawn(
                command[0],
                command[1:],
                timeout=None,
                cwd=self.cwd,
                env=self.env,
                encoding=self.encoding,
                codec_errors="replace",
                dimensions=self.dimensions,
                echo=False,
            )
        except (pexpect.ExceptionPexpect, OSError) as e:
            raise ProcessError(f"Failed to start '{' '.join(command)}': {e}") from e

    def _consume(self) -> None:
        """Drain the child's output into the classifier"""
        try:
            while True:
                try:
                    raw = self.process.readline()
                except (pexpect.ExceptionPexpect, OSError) as e:
                    logger.error(f"Error reading test output: {e}")
                    break
                if not raw:
                    break
                self.line_count += 1
                self.sink(self.classifier.classify(raw.rstrip("\r\n")))
        finally:
            self._done.set()

    def _relay(self, signum, frame) -> None:
        if self.process is None:
            return
        sent = signal_process_tree(self.process.pid, signum)
        logger.debug(f"Relayed signal {signum} to {sent} processes")

    @contextmanager
    def relay_signals(self):
        """Forward interrupts to the child tree while the run is active"""
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        previous = {sig: signal.signal(sig, self._relay) for sig in RELAYED_SIGNALS}
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def wait(self) -> int:
        """Reap the child and return its exit status"""
        try:
            self.process.wait()
        except pexpect.ExceptionPexpect as e:
            logger.debug(f"Wait on child failed: {e}")
        finally:
            self.process.close()

        if self.process.signalstatus:
            status = 128 + self.process.signalstatus
        elif self.process.exitstatus is None:
            status = 1
        else:
            status = self.process.exitstatus
        logger.debug(f"go test exited with status {status}")
        return status

    def run(self) -> int:
        """
        Run go test to completion

        Returns:
            The child's exit status, or 1 if it exited zero but failures
            were classified

        Raises:
            ProcessError: If the child could not be spawned
        """
        self.start()
        worker = threading.Thread(target=self._consume, name="gotest-classifier", daemon=True)
        worker.start()

        with self.relay_signals():
            while not self._done.wait(JOIN_INTERVAL):
                pass
            worker.join()
            child_status = self.wait()

        self.finished_at = time.time()
        return merge_exit_code(child_status, self.state)

    def __repr__(self):
        return f"GoTestRun(command={' '.join(self.command)!r}, lines={self.line_count})"
