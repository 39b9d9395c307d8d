"""Map a build request onto a concrete compilation target."""

from __future__ import annotations

import logging
import platform
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from crank.config import AppSettings
from crank.errors import InvalidTarget
from crank.project.cargo import CargoProject
from crank.utils.text import to_title_case

LOGGER = logging.getLogger(__name__)

TargetKind = Literal["device", "simulator"]
BuildMode = Literal["debug", "release"]

_EXAMPLE_NAME = re.compile(r"[A-Za-z0-9_-]+")

_HOST_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
}


@dataclass(frozen=True, slots=True)
class BuildRequest:
    """What the user asked for on the command line."""

    device: bool = False
    simulator: bool = False
    example: str | None = None
    manifest_path: Path | None = None
    release: bool = False
    run: bool = False

    @property
    def mode(self) -> BuildMode:
        return "release" if self.release else "debug"


@dataclass(frozen=True, slots=True)
class TargetProfile:
    """Resolved compilation target for one pipeline run."""

    kind: TargetKind
    triple: str | None
    arch: str
    crate_name: str
    example: str | None
    artifact_name: str
    entry_point: Path
    title: str
    mode: BuildMode

    @property
    def is_device(self) -> bool:
        return self.kind == "device"


def host_arch(machine: str | None = None) -> str:
    """Normalize ``platform.machine()`` to the names cargo uses."""

    raw = (machine if machine is not None else platform.machine()).strip().lower()
    return _HOST_ARCH_ALIASES.get(raw, raw) or "unknown"


def select_target(
    request: BuildRequest,
    project: CargoProject,
    settings: AppSettings,
    *,
    machine: str | None = None,
    logger: logging.Logger | None = None,
) -> TargetProfile:
    """Validate the device/simulator/example flags and build the TargetProfile.

    Runs before any subprocess so a bad combination never costs a compile.
    """

    effective_logger = logger or LOGGER
    if request.device and request.simulator:
        raise InvalidTarget("--device and --simulator are mutually exclusive")
    kind: TargetKind = "device" if request.device else "simulator"

    example = request.example
    if example is not None:
        example = example.strip()
        if not example:
            raise InvalidTarget("--example requires a non-empty name")
        if not _EXAMPLE_NAME.fullmatch(example):
            raise InvalidTarget(
                f"Example name '{example}' is not a cargo target name (use letters, digits, '_' or '-')"
            )
        entry_point = project.example_source(example)
        if entry_point is None:
            raise InvalidTarget(f"Example '{example}' not found under {project.root / 'examples'}")
        artifact_name = example.replace("-", "_")
    else:
        if not project.lib_path.is_file():
            raise InvalidTarget(f"{project.package_name} has no library target at {project.lib_path}")
        entry_point = project.lib_path
        artifact_name = project.lib_name

    if kind == "device":
        triple: str | None = settings.cargo.device_triple
        arch = settings.cargo.device_triple.split("-", 1)[0]
    else:
        triple = None
        arch = host_arch(machine)

    profile = TargetProfile(
        kind=kind,
        triple=triple,
        arch=arch,
        crate_name=project.package_name,
        example=example,
        artifact_name=artifact_name,
        entry_point=entry_point,
        title=to_title_case(example or project.package_name),
        mode=request.mode,
    )
    effective_logger.info(
        "target.selected kind=%s triple=%s arch=%s example=%s mode=%s title=%s",
        profile.kind,
        profile.triple,
        profile.arch,
        profile.example,
        profile.mode,
        profile.title,
    )
    return profile
