"""Execution of external media commands (ffmpeg / ffprobe)."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


class CommandTimeout(RuntimeError):
    """The command did not finish within its timeout budget."""


class CommandNotFound(RuntimeError):
    """The executable could not be located."""


@dataclass(frozen=True)
class CommandResult:
    stdout: str
    stderr: str
    exit_code: int


class MediaCommandRunner(Protocol):
    def run(self, args: list[str], timeout: float) -> CommandResult:
        """Run *args* and return its captured output.

        Raises:
            CommandTimeout: If the process outlives *timeout* seconds.
            CommandNotFound: If ``args[0]`` is not installed.
        """


class SubprocessRunner:
    """Runs commands as child processes via :func:`subprocess.run`."""

    def run(self, args: list[str], timeout: float) -> CommandResult:
        logger.debug("Running command: %s", " ".join(args))
        try:
            proc = subprocess.run(args, capture_output=True, text=True, timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeout(f"Command timed out after {timeout:g}s: {' '.join(args)}") from exc
        except FileNotFoundError as exc:
            raise CommandNotFound(f"Executable not found: {args[0]}") from exc
        return CommandResult(stdout=proc.stdout, stderr=proc.stderr, exit_code=proc.returncode)
