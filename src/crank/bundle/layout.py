"""On-disk layout of the staged bundle and its containment rules."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Mapping

from crank.build.target import TargetProfile
from crank.config import AppSettings
from crank.errors import PathTraversalError
from crank.project.cargo import CargoProject

BINARY_ENTRY = "pdex.bin"
ELF_ENTRY = "pdex.elf"
METADATA_ENTRY = "pdxinfo"
LIBRARY_ENTRIES: Mapping[str, str] = {
    "Darwin": "pdex.dylib",
    "Windows": "pdex.dll",
    "Linux": "pdex.so",
}
RESERVED_ENTRIES: frozenset[str] = frozenset(
    {BINARY_ENTRY, ELF_ENTRY, METADATA_ENTRY, "pdex.dylib", "pdex.dll", "pdex.so"}
)


def library_entry_name(system: str) -> str:
    return LIBRARY_ENTRIES.get(system, "pdex.so")


@dataclass(frozen=True, slots=True)
class BundleLayout:
    """Staging directory for one target plus the paths derived from it.

    The compiled ``.pdx`` and the run summary sit next to the staging
    directory, never inside it.
    """

    root: Path

    @property
    def binary_path(self) -> Path:
        return self.root / BINARY_ENTRY

    @property
    def metadata_path(self) -> Path:
        return self.root / METADATA_ENTRY

    @property
    def output_path(self) -> Path:
        return self.root.parent / f"{self.root.name}.pdx"

    @property
    def summary_path(self) -> Path:
        return self.root.parent / f"{self.root.name}.summary.json"

    def library_path(self, system: str) -> Path:
        return self.root / library_entry_name(system)

    def resolve_destination(self, destination: PurePosixPath) -> Path:
        """Canonicalize a bundle-relative destination and enforce containment.

        Raises PathTraversalError when the destination is absolute, normalizes
        to the root itself or outside it, or lands on a reserved entry.
        """

        text = str(destination)
        if destination.is_absolute() or PureWindowsPath(text).anchor:
            raise PathTraversalError(f"asset destination '{text}' must be relative to the bundle root")

        root = Path(os.path.abspath(self.root))
        candidate = Path(os.path.normpath(root.joinpath(*destination.parts)))
        if candidate == root or root not in candidate.parents:
            raise PathTraversalError(f"asset destination '{text}' escapes the bundle root {root}")

        first_part = candidate.relative_to(root).parts[0]
        if first_part.lower() in RESERVED_ENTRIES:
            raise PathTraversalError(f"asset destination '{text}' collides with reserved entry '{first_part}'")
        return candidate


def layout_for(
    profile: TargetProfile,
    project: CargoProject,
    settings: AppSettings,
    environ: Mapping[str, str] | None = None,
) -> BundleLayout:
    """Staging root ``<target>/<staging_subdir>/<kind>/<mode>/<Title>``."""

    root = project.target_dir(environ) / settings.paths.staging_subdir / profile.kind / profile.mode / profile.title
    return BundleLayout(root=root)
