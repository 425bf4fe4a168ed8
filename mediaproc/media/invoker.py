# mediaproc/media/invoker.py
"""
Execution of the external transcoding binaries.

Commands are argument lists (never a shell string). stdout and stderr are merged
and fully drained before the exit code is read, so a chatty ffmpeg can never
block on a full pipe.
"""

import subprocess
from dataclasses import dataclass, field
from timeit import default_timer as timer
from typing import List, Optional, Sequence

from mediaproc.core.setup_logging import get_logger

logger = get_logger(__name__)

# Conventional exit codes for failures that happen before/around the child
RC_TIMEOUT = 124
RC_NOT_FOUND = 127
RC_SPAWN_ERROR = 1

PROGRESS_MARKERS = ("frame=", "size=")
WARNING_MARKERS = ("error", "warning")


@dataclass
class CommandResult:
    returncode: int
    output: str = ""
    warnings: List[str] = field(default_factory=list)
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def tail(self, lines: int = 10) -> str:
        """Return the last lines of the combined output (for error logs)."""
        return "\n".join(self.output.splitlines()[-lines:])


def classify_line(line: str) -> str:
    """
    Classify one line of ffmpeg/ffprobe output.

    Returns:
        str: "progress", "warning" or "info"
    """
    stripped = line.strip()
    if stripped.startswith(PROGRESS_MARKERS):
        return "progress"
    lowered = stripped.lower()
    if any(marker in lowered for marker in WARNING_MARKERS):
        return "warning"
    return "info"


def _log_output(output: str, task_name: str) -> List[str]:
    warnings: List[str] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        kind = classify_line(line)
        if kind == "warning":
            warnings.append(line.strip())
            logger.warning(f"[{task_name}] {line.strip()}")
        else:
            logger.debug(f"[{task_name}] {line.strip()}")
    return warnings


def run_command(
    cmd: Sequence[str], task_name: str = "ffmpeg", timeout: Optional[float] = None
) -> CommandResult:
    """
    Run an external command and wait for it to finish.

    Args:
        cmd: Command and its arguments
        task_name: Label used in log lines
        timeout: Maximum execution time in seconds (None: unbounded)

    Returns:
        CommandResult: Exit code, merged output and classified warning lines.
            A missing binary yields 127, an expired timeout 124 (the child is killed).
    """
    args = [str(arg) for arg in cmd]
    logger.debug(f"[{task_name}] Executing: {' '.join(args)}")
    start = timer()

    try:
        completed = subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            timeout=timeout,
        )
    except FileNotFoundError:
        logger.error(f"[{task_name}] Command not found: {args[0]}")
        return CommandResult(RC_NOT_FOUND, f"Command not found: {args[0]}\n")
    except subprocess.TimeoutExpired as e:
        output = _decode(e.output)
        logger.error(f"[{task_name}] Timeout after {timeout}s: {' '.join(args)}")
        return CommandResult(
            RC_TIMEOUT, output, warnings=_log_output(output, task_name), timed_out=True
        )
    except OSError as e:
        logger.error(f"[{task_name}] Could not start {args[0]}: {e}")
        return CommandResult(RC_SPAWN_ERROR, f"OS error: {e}\n")

    output = _decode(completed.stdout)
    warnings = _log_output(output, task_name)
    elapsed = timer() - start

    if completed.returncode != 0:
        logger.error(f"[{task_name}] Failed with exit code {completed.returncode} in {elapsed:.3}s")
    else:
        logger.debug(f"[{task_name}] Done in {elapsed:.3}s")

    return CommandResult(completed.returncode, output, warnings=warnings)


def _decode(raw: Optional[bytes]) -> str:
    if not raw:
        return ""
    if isinstance(raw, str):
        return raw
    return raw.decode("utf-8", errors="replace")
