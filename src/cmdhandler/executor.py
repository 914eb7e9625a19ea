"""
Run plugin processes.

Plugins are started with an explicit argument vector (no shell), with
stdout and stderr merged into a single captured stream.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import Optional

from cmdhandler.commands import PluginInvocation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one plugin run."""

    combined_output: bytes
    succeeded: bool
    failure_detail: Optional[str] = None

    @property
    def output_text(self) -> str:
        return self.combined_output.decode("utf-8", errors="replace")


def run_invocation(
    invocation: PluginInvocation, timeout: Optional[float] = None
) -> ExecutionResult:
    """
    Execute a plugin and wait for it to finish.

    Never raises for plugin problems; a non-zero exit, a missing executable
    or a timeout are all reported as an unsuccessful ExecutionResult.

    Args:
        invocation: What to run
        timeout: Seconds to wait before killing the child (None = no limit)

    Returns:
        ExecutionResult with the combined stdout/stderr of the child
    """
    logger.debug(f"Running: {invocation.argv}")

    try:
        completed = subprocess.run(
            invocation.argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        # subprocess.run kills the child before re-raising
        return ExecutionResult(
            combined_output=e.output or b"",
            succeeded=False,
            failure_detail=f"timed out after {timeout}s",
        )
    except OSError as e:
        return ExecutionResult(
            combined_output=b"",
            succeeded=False,
            failure_detail=f"could not start {invocation.executable}: {e}",
        )

    if completed.returncode != 0:
        return ExecutionResult(
            combined_output=completed.stdout or b"",
            succeeded=False,
            failure_detail=f"exit status {completed.returncode}",
        )

    return ExecutionResult(combined_output=completed.stdout or b"", succeeded=True)
