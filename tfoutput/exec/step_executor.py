"""
Step executor module for running commands.

Streamed steps share the plugin's stdout/stderr so the operator sees tool
output live; captured steps buffer stdout for parsing.
"""

import logging
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TextIO

from .context import EnvironmentContext


logger = logging.getLogger(__name__)


@dataclass
class CommandStep:
    """A single subprocess invocation."""
    name: str
    argv: List[str]
    cwd: Optional[Path] = None  # None runs in the executor's working directory
    capture: bool = False
    prepare: Optional[Callable[[], None]] = None  # Runs right before spawning

    def command_line(self) -> str:
        return " ".join(self.argv)


@dataclass
class StepResult:
    """Result of step execution."""
    step_name: str
    exit_code: int
    duration_ms: int = 0
    stdout: bytes = b""
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and self.error is None

    def describe_failure(self) -> str:
        if self.error:
            return self.error.get("message", "unknown error")
        return f"exit code {self.exit_code}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dict for structured logging."""
        result: Dict[str, Any] = {
            "step": self.step_name,
            "exit_code": self.exit_code,
            "duration_ms": self.duration_ms,
        }
        if self.error:
            result["error"] = self.error
        return result


class StepExecutor:
    """
    Executes command steps against a working directory.
    Handles tracing, environment composition and result processing.
    """

    def __init__(
        self,
        working_dir: Path,
        trace: bool = True,
        trace_stream: Optional[TextIO] = None,
    ):
        """
        Initialize step executor.

        Args:
            working_dir: Directory used by steps without an explicit cwd
            trace: Whether to echo each command line before running it
            trace_stream: Where the echo goes (default: sys.stdout)
        """
        self.working_dir = working_dir
        self.trace = trace
        self.trace_stream = trace_stream

    def execute(self, step: CommandStep, context: Optional[EnvironmentContext] = None) -> StepResult:
        """
        Execute a step and report the outcome as a StepResult.

        Spawn failures and preparation failures are reported as results,
        never raised, so callers decide how to stop.
        """
        context = context or EnvironmentContext()
        working_dir = step.cwd or self.working_dir

        start_time = time.time()

        if step.prepare is not None:
            try:
                step.prepare()
            except OSError as e:
                return StepResult(
                    step_name=step.name,
                    exit_code=1,
                    error={
                        "type": "prepare_error",
                        "message": str(e),
                        "context": {"path": getattr(e, "filename", None)},
                    },
                )

        if self.trace and not step.capture:
            self._trace(step)

        logger.debug(f"Running step '{step.name}' in {working_dir}")

        try:
            if step.capture:
                result = subprocess.run(
                    step.argv,
                    cwd=str(working_dir),
                    env=context.child_env(),
                    stdout=subprocess.PIPE,
                )
                stdout = result.stdout or b""
            else:
                # Inherit the plugin's own stdout/stderr
                sys.stdout.flush()
                sys.stderr.flush()
                result = subprocess.run(
                    step.argv,
                    cwd=str(working_dir),
                    env=context.child_env(),
                )
                stdout = b""

            exit_code = result.returncode
            error = None

        except OSError as e:
            exit_code = 1
            stdout = b""
            error = {
                "type": "execution_error",
                "message": str(e),
                "context": {"argv": step.argv, "cwd": str(working_dir)},
            }

        duration_ms = int((time.time() - start_time) * 1000)

        return StepResult(
            step_name=step.name,
            exit_code=exit_code,
            duration_ms=duration_ms,
            stdout=stdout,
            error=error,
        )

    def _trace(self, step: CommandStep) -> None:
        stream = self.trace_stream or sys.stdout
        print("$", step.command_line(), file=stream, flush=True)
