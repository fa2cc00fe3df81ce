"""Read-only external tool execution."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
import subprocess

from core.errors import ProbeError, ProbeTimeoutError
from core.logging import logger as LOGGER


@dataclass(frozen=True)
class CommandResult:
    """Captured output of a finished external command."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """Return stdout and stderr joined, for message matching."""

        return "\n".join(part for part in (self.stdout, self.stderr) if part)


CommandRunner = Callable[[Sequence[str], float], CommandResult]


def run_tool(args: Sequence[str], timeout_s: float) -> CommandResult:
    """Run a command and capture its text output.

    The child is killed when ``timeout_s`` expires.

    Raises:
        ProbeTimeoutError: The command did not finish in time.
        ProbeError: The executable is missing or could not be started.
    """

    LOGGER.debug("Running %s (timeout %.1fs)", " ".join(args), timeout_s)
    try:
        completed = subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout_s,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise ProbeTimeoutError(f"{args[0]} did not finish within {timeout_s:.0f}s") from exc
    except OSError as exc:
        raise ProbeError(f"Unable to run {args[0]}: {exc}") from exc
    return CommandResult(
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )


def run_powershell(script: str, runner: CommandRunner, timeout_s: float) -> str:
    """Run a PowerShell snippet and return stdout."""

    result = runner(
        ["powershell", "-NoProfile", "-ExecutionPolicy", "Bypass", "-Command", script],
        timeout_s,
    )
    if result.returncode != 0:
        raise ProbeError(f"PowerShell error: {result.stderr.strip() or result.returncode}")
    return result.stdout
