"""Error types raised by the crank build pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class CrankError(Exception):
    """Base class for every error the pipeline reports to the user."""

    def __init__(self, message: str, *, diagnostics: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.diagnostics = diagnostics


class ConfigurationError(CrankError, ValueError):
    """Raised when the asset manifest or project configuration is unusable."""


class ToolchainNotFound(CrankError):
    """Raised when the vendor SDK or a required tool cannot be located."""

    def __init__(self, message: str, *, searched: Sequence[Path] = ()) -> None:
        searched_paths = tuple(searched)
        diagnostics = "\n".join(f"searched: {path}" for path in searched_paths)
        super().__init__(message, diagnostics=diagnostics)
        self.searched = searched_paths


class InvalidTarget(CrankError, ValueError):
    """Raised when the requested device/simulator/example combination is invalid."""


class ArtifactNotFound(CrankError):
    """Raised when a tool exits cleanly but its expected output is missing."""

    def __init__(self, message: str, *, expected_path: Path) -> None:
        super().__init__(message, diagnostics=f"expected: {expected_path}")
        self.expected_path = expected_path


class PathTraversalError(CrankError, ValueError):
    """Raised when an asset destination escapes the staging root or hits a reserved entry."""


class StagingFailed(CrankError):
    """Raised when the filesystem refuses a read, copy or write while building the bundle."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message, diagnostics=f"path: {path}" if path is not None else "")
        self.path = path


class ToolFailed(CrankError):
    """Base class for external tools that exited with a nonzero status."""

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str],
        returncode: int | None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        diagnostics = "\n".join(part for part in (stdout.rstrip("\n"), stderr.rstrip("\n")) if part)
        super().__init__(message, diagnostics=diagnostics)
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class CompilationFailed(ToolFailed):
    """Raised when cargo or the device link tools fail."""


class BundleCompilationFailed(ToolFailed):
    """Raised when pdc fails."""


class RunFailed(ToolFailed):
    """Raised when the simulator or device runner fails or is missing."""


__all__ = [
    "ArtifactNotFound",
    "BundleCompilationFailed",
    "CompilationFailed",
    "ConfigurationError",
    "CrankError",
    "InvalidTarget",
    "PathTraversalError",
    "RunFailed",
    "StagingFailed",
    "ToolFailed",
    "ToolchainNotFound",
]
