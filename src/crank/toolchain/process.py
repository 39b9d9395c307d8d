"""Blocking subprocess execution with captured, relayed output."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol, Sequence

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Exit status and captured streams of one finished child process."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    """Callable that runs a command to completion and returns its result.

    Implementations raise ``FileNotFoundError`` when the executable does not exist.
    """

    def __call__(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult: ...


def run_command(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Run a command, wait for it to exit, and capture stdout/stderr as text."""

    command = [str(arg) for arg in args]
    merged_env = None if env is None else {**os.environ, **env}
    completed = subprocess.run(
        command,
        cwd=str(cwd) if cwd is not None else None,
        env=merged_env,
        capture_output=True,
        text=True,
        errors="replace",
        check=False,
    )
    return CommandResult(
        args=tuple(command),
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )


def format_command(args: Sequence[str]) -> str:
    """Render a command for log lines and error messages."""

    return subprocess.list2cmdline([str(arg) for arg in args])


def invoke(
    runner: CommandRunner,
    args: Sequence[str],
    *,
    tool: str,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    logger: logging.Logger | None = None,
) -> CommandResult:
    """Run one tool through ``runner`` and relay its output to the log line by line."""

    effective_logger = logger or LOGGER
    effective_logger.info("%s.exec cmd=%s cwd=%s", tool, format_command(args), cwd)
    result = runner([str(arg) for arg in args], cwd=cwd, env=env)
    for stream_name, text in (("stdout", result.stdout), ("stderr", result.stderr)):
        for line in text.splitlines():
            effective_logger.info("%s.%s | %s", tool, stream_name, line)
    effective_logger.info("%s.exit returncode=%s", tool, result.returncode)
    return result
