"""Git command execution for repo-keeper."""

import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

import git
from git.compat import defenc

from repo_keeper.exceptions import (
    CommandTimeoutError,
    GitOperationError,
    OperationCancelledError,
)
from repo_keeper.logging_config import get_logger
from repo_keeper.models import RepositoryRecord

logger = get_logger(__name__)

LineCallback = Callable[[str], None]

# Never wait on a credential prompt
_GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}


@dataclass(frozen=True)
class CommandResult:
    """Exit code and captured text of one git invocation."""
    args: tuple
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def operation(self) -> str:
        return _describe(self.args)


def _describe(args: Sequence[str]) -> str:
    """Command description without the metadata scoping options."""
    visible: List[str] = []
    skip = False
    for arg in args:
        if skip:
            skip = False
            continue
        if arg in ("--git-dir", "--work-tree"):
            skip = True
            continue
        visible.append(arg)
    return "git " + " ".join(visible)


def git_args(record: RepositoryRecord, *args: str) -> List[str]:
    """Scope a git command to the repository's real metadata directory."""
    return ["--git-dir", record.git_dir, "--work-tree", record.path, *args]


class GitCommandExecutor:
    """Runs git as a subprocess with a timeout and a cancellation token.

    The process is started through GitPython and polled, so that both the
    time budget and ``cancel_event`` terminate it while it is in flight.
    """

    poll_interval = 0.1

    def __init__(
        self,
        timeout: Optional[float] = 300.0,
        cancel_event: Optional[threading.Event] = None,
        log_all_commands: bool = False,
    ):
        self.timeout = timeout
        self.cancel_event = cancel_event or threading.Event()
        self.log_all_commands = log_all_commands

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """Cancel in-flight and future commands."""
        self.cancel_event.set()

    def run(
        self,
        working_dir: str,
        args: Sequence[str],
        on_stdout_line: Optional[LineCallback] = None,
        on_stderr_line: Optional[LineCallback] = None,
    ) -> CommandResult:
        """Run ``git <args>`` in ``working_dir`` and capture its output.

        A non-zero exit code is returned, not raised; see ``run_checked``.

        Raises:
            CommandTimeoutError: the command exceeded ``timeout``
            OperationCancelledError: ``cancel_event`` was set
        """
        args = tuple(args)
        operation = _describe(args)
        if self.cancelled:
            raise OperationCancelledError(operation, working_dir)

        if self.log_all_commands:
            logger.info(f"{working_dir}> {operation}")
        else:
            logger.debug(f"{working_dir}> {operation}")

        try:
            process = git.Git(working_dir).execute(
                ["git", *args], as_process=True, env=_GIT_ENV
            )
        except git.exc.GitCommandNotFound as e:
            raise GitOperationError(operation, working_dir, f"could not start git: {e}")

        stdout_bytes, stderr_bytes = self._wait(process, operation, working_dir)
        stdout = stdout_bytes.decode(defenc, errors="replace") if stdout_bytes else ""
        stderr = stderr_bytes.decode(defenc, errors="replace") if stderr_bytes else ""

        if on_stdout_line:
            for line in stdout.splitlines():
                on_stdout_line(line)
        if on_stderr_line:
            for line in stderr.splitlines():
                on_stderr_line(line)

        exit_code = process.returncode
        if exit_code != 0:
            logger.debug(f"{operation} exited with {exit_code}: {stderr.strip()}")
        # Leading whitespace is significant in porcelain output
        return CommandResult(args, exit_code, stdout.rstrip(), stderr.strip())

    def run_checked(
        self,
        working_dir: str,
        args: Sequence[str],
        on_stdout_line: Optional[LineCallback] = None,
        on_stderr_line: Optional[LineCallback] = None,
    ) -> str:
        """Run a git command and return its stdout.

        Raises:
            GitOperationError: non-zero exit, with the stderr text as message
        """
        result = self.run(working_dir, args, on_stdout_line, on_stderr_line)
        if not result.ok:
            message = result.stderr or result.stdout or f"exit code {result.exit_code}"
            raise GitOperationError(result.operation, working_dir, message, result.exit_code)
        return result.stdout

    def _wait(self, process, operation: str, working_dir: str):
        deadline = time.monotonic() + self.timeout if self.timeout else None
        while True:
            try:
                return process.communicate(timeout=self.poll_interval)
            except subprocess.TimeoutExpired:
                if self.cancelled:
                    self._terminate(process)
                    raise OperationCancelledError(operation, working_dir)
                if deadline is not None and time.monotonic() >= deadline:
                    self._terminate(process)
                    raise CommandTimeoutError(operation, working_dir, self.timeout)

    @staticmethod
    def _terminate(process) -> None:
        process.kill()
        try:
            process.communicate(timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning("git process did not exit after kill")
