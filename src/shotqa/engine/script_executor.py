"""ShotQA Script Executor -- run osascript with a hard wall-clock timeout.

The executor launches the interpreter asynchronously and blocks the calling
thread on a single-fire semaphore with a deadline.  The semaphore is released
exactly once, by the thread that collects the child's output when it exits.
If the deadline elapses first the child is killed and reaped before
``ScriptTimeoutError`` is raised, so no orphaned ``osascript`` outlives a
call.

Non-zero exits are classified once, here, into a typed
``ScriptExecutionError``; callers never need to look at raw stderr to decide
control flow.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import subprocess
import threading
import time
from typing import Callable, Sequence

from shotqa.engine.failure_classifier import FailureClassifier, is_syntax_error
from shotqa.engine.protocols import BoundedProcess, ProcessFactory
from shotqa.models import SCRIPT_INTERPRETER

logger = logging.getLogger("shotqa.engine.script_executor")

# Upper bound on how long we wait for a killed child to be reaped.
_KILL_REAP_TIMEOUT = 0.5


# ---------------------------------------------------------------------------
# Result and error types
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class ScriptExecutionResult:
    """Outcome of a script that ran to completion within its timeout."""

    stdout: str
    stderr: str
    exit_code: int
    duration: float  # seconds

    @classmethod
    def success(cls, output: str = "", duration: float = 0.1) -> ScriptExecutionResult:
        return cls(stdout=output, stderr="", exit_code=0, duration=duration)

    @classmethod
    def failure(cls, exit_code: int, stderr: str, duration: float = 0.1) -> ScriptExecutionResult:
        return cls(stdout="", stderr=stderr, exit_code=exit_code, duration=duration)


class ScriptErrorKind(enum.Enum):
    TIMEOUT = "timeout"
    SYNTAX_ERROR = "syntax_error"
    PERMISSION_DENIED = "permission_denied"
    EXECUTION_FAILED = "execution_failed"


class ScriptExecutionError(Exception):
    """Base class for classified script failures."""

    kind: ScriptErrorKind

    def _payload(self) -> tuple:
        return ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScriptExecutionError):
            return NotImplemented
        return self.kind == other.kind and self._payload() == other._payload()

    def __hash__(self) -> int:
        return hash((self.kind, self._payload()))

    @property
    def user_message(self) -> str:
        return str(self)


class ScriptTimeoutError(ScriptExecutionError):
    """The script outlived its timeout and was killed."""

    kind = ScriptErrorKind.TIMEOUT

    def __init__(self, timeout: float, duration: float | None = None) -> None:
        self.timeout = timeout
        self.duration = duration if duration is not None else timeout
        super().__init__(f"AppleScript execution timed out after {timeout:g}s")

    def _payload(self) -> tuple:
        return (self.timeout,)


class ScriptSyntaxError(ScriptExecutionError):
    """The script failed to compile.  Not retryable."""

    kind = ScriptErrorKind.SYNTAX_ERROR

    def __init__(self, message: str, stderr: str = "") -> None:
        self.message = message
        self.stderr = stderr
        super().__init__(f"AppleScript syntax error: {message}")

    def _payload(self) -> tuple:
        return (self.stderr,)


class PermissionDeniedError(ScriptExecutionError):
    """TCC denied the Apple event.  Needs a human in System Settings."""

    kind = ScriptErrorKind.PERMISSION_DENIED

    def __init__(self, message: str, stderr: str = "") -> None:
        self.message = message
        self.stderr = stderr
        super().__init__(message)

    def _payload(self) -> tuple:
        return (self.stderr,)


class ScriptExecutionFailedError(ScriptExecutionError):
    """Any other non-zero exit.  Carries raw diagnostics unmodified."""

    kind = ScriptErrorKind.EXECUTION_FAILED

    def __init__(self, exit_code: int, stderr: str) -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"AppleScript failed with exit code {exit_code}: {stderr}")

    def _payload(self) -> tuple:
        return (self.exit_code, self.stderr)


class ScriptLaunchError(RuntimeError):
    """The interpreter could not be spawned at all.  Fatal, never classified."""


def classify_failure(
    exit_code: int,
    stderr: str,
    classifier: FailureClassifier | None = None,
) -> ScriptExecutionError:
    """Turn a non-zero exit into exactly one typed error."""
    outcome = (classifier or FailureClassifier()).classify(stderr)
    if outcome.is_permission_error:
        return PermissionDeniedError(outcome.actionable_message, stderr)
    if is_syntax_error(stderr):
        return ScriptSyntaxError(stderr.strip(), stderr)
    return ScriptExecutionFailedError(exit_code, stderr)


# ---------------------------------------------------------------------------
# Production process
# ---------------------------------------------------------------------------

class SubprocessScriptProcess:
    """``BoundedProcess`` backed by ``subprocess.Popen``.

    The script is fed on stdin, so *argv* must make the interpreter read its
    program from there (``osascript`` and ``python -`` both do).
    """

    def __init__(self, argv: Sequence[str]) -> None:
        self._argv = list(argv)
        self._proc: subprocess.Popen[str] | None = None
        self._waiter: threading.Thread | None = None
        self.returncode: int | None = None
        self.stdout = ""
        self.stderr = ""

    def start(self, script: str, on_exit: Callable[[], None]) -> None:
        self._proc = subprocess.Popen(
            self._argv,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
        )
        self._waiter = threading.Thread(
            target=self._collect,
            args=(script, on_exit),
            name=f"shotqa-script-{self._proc.pid}",
            daemon=True,
        )
        self._waiter.start()

    def _collect(self, script: str, on_exit: Callable[[], None]) -> None:
        assert self._proc is not None
        try:
            out, err = self._proc.communicate(input=script)
            self.stdout = out or ""
            self.stderr = err or ""
        except OSError as exc:
            # Pipes torn down by kill(); returncode is still authoritative.
            logger.debug("Output collection interrupted: %s", exc)
        finally:
            self.returncode = self._proc.wait()
            on_exit()

    def kill(self) -> None:
        if self._proc is None:
            return
        if self._proc.poll() is None:
            self._proc.kill()
        try:
            self._proc.wait(timeout=_KILL_REAP_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning("Killed script process pid=%s did not exit promptly", self._proc.pid)
        if self._waiter is not None:
            self._waiter.join(timeout=_KILL_REAP_TIMEOUT)


# ---------------------------------------------------------------------------
# AppleScriptExecutor
# ---------------------------------------------------------------------------

class AppleScriptExecutor:
    """Executes AppleScript via ``osascript`` with a hard timeout.

    Usage::

        executor = AppleScriptExecutor()
        result = executor.execute('return "ok"', timeout=5)
        print(result.stdout)
    """

    def __init__(
        self,
        interpreter: Sequence[str] = SCRIPT_INTERPRETER,
        process_factory: ProcessFactory | None = None,
        classifier: FailureClassifier | None = None,
    ) -> None:
        """
        Args:
            interpreter: Command that reads a script from stdin.
            process_factory: Builds a ``BoundedProcess`` for *interpreter*.
                Defaults to ``SubprocessScriptProcess``; tests inject fakes.
            classifier: Rule set used to classify non-zero exits.
        """
        self._interpreter = tuple(interpreter)
        self._process_factory: ProcessFactory = process_factory or SubprocessScriptProcess
        self._classifier = classifier or FailureClassifier()

    def execute(self, script: str, timeout: float) -> ScriptExecutionResult:
        """Run *script*, waiting at most *timeout* seconds.

        Raises:
            ScriptTimeoutError: deadline elapsed; the process was killed.
            PermissionDeniedError: TCC denied automation.
            ScriptSyntaxError: the script did not compile.
            ScriptExecutionFailedError: any other non-zero exit.
            ScriptLaunchError: the interpreter could not be started.
        """
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout!r}")

        process: BoundedProcess = self._process_factory(self._interpreter)
        done = threading.Semaphore(0)

        start = time.monotonic()
        try:
            process.start(script, done.release)
        except OSError as exc:
            raise ScriptLaunchError(
                f"Could not launch {' '.join(self._interpreter)}: {exc}"
            ) from exc
        logger.debug("Launched %s (timeout=%.1fs, %d chars)", self._interpreter[0], timeout, len(script))

        finished = done.acquire(timeout=timeout)
        duration = time.monotonic() - start
        if not finished:
            process.kill()
            logger.warning("Script timed out after %.2fs (limit %.1fs); process killed", duration, timeout)
            raise ScriptTimeoutError(timeout, duration)

        exit_code = process.returncode if process.returncode is not None else -1
        result = ScriptExecutionResult(
            stdout=process.stdout,
            stderr=process.stderr,
            exit_code=exit_code,
            duration=duration,
        )
        logger.debug("Script exited with %d in %.2fs", exit_code, duration)

        if exit_code == 0:
            return result
        raise classify_failure(exit_code, result.stderr, self._classifier)
