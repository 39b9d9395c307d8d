"""Invoke cargo (and, for device builds, the ARM link tools) to produce the game binary."""

from __future__ import annotations

import logging
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from crank.build.target import BuildRequest, TargetProfile
from crank.config import AppSettings
from crank.errors import ArtifactNotFound, CompilationFailed, ToolchainNotFound
from crank.project.cargo import CargoProject
from crank.toolchain.process import CommandRunner, invoke, run_command
from crank.toolchain.sdk import ToolchainPaths

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompiledArtifact:
    """The binary to stage, plus the library cargo produced it from."""

    path: Path
    library: Path
    kind: str


def cargo_build_args(
    profile: TargetProfile,
    request: BuildRequest,
    project: CargoProject,
    settings: AppSettings,
) -> list[str]:
    """Command line for ``cargo build`` matching the profile and mode."""

    args = [settings.cargo.executable, "build"]
    if request.manifest_path is not None:
        args += ["--manifest-path", str(project.manifest_path)]
    if profile.example is not None:
        args += ["--example", profile.example]
    else:
        args.append("--lib")
    if profile.mode == "release":
        args.append("--release")
    if profile.triple is not None:
        args += ["--target", profile.triple]
    args += settings.cargo.extra_args
    return args


def cargo_output_dir(
    profile: TargetProfile,
    project: CargoProject,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Directory cargo writes the artifact to: ``<target>[/<triple>]/<mode>[/examples]``."""

    output_dir = project.target_dir(environ)
    if profile.triple is not None:
        output_dir = output_dir / profile.triple
    output_dir = output_dir / profile.mode
    if profile.example is not None:
        output_dir = output_dir / "examples"
    return output_dir


def library_file_name(profile: TargetProfile, system: str) -> str:
    """Static library for the device, host dynamic library for the simulator."""

    name = profile.artifact_name
    if profile.is_device:
        return f"lib{name}.a"
    if system == "Darwin":
        return f"lib{name}.dylib"
    if system == "Windows":
        return f"{name}.dll"
    return f"lib{name}.so"


def _run_step(
    runner: CommandRunner,
    args: Sequence[str],
    *,
    tool: str,
    cwd: Path,
    expected: Path,
    logger: logging.Logger,
) -> Path:
    try:
        result = invoke(runner, args, tool=tool, cwd=cwd, logger=logger)
    except OSError as exc:
        raise ToolchainNotFound(
            f"{tool} executable cannot be run: {args[0]} ({exc})",
            searched=[Path(str(args[0]))],
        ) from exc
    if not result.ok:
        raise CompilationFailed(
            f"{tool} failed with exit status {result.returncode}",
            command=result.args,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    if not expected.is_file():
        raise ArtifactNotFound(
            f"{tool} exited successfully but did not produce {expected.name}",
            expected_path=expected,
        )
    return expected


def link_device_binary(
    profile: TargetProfile,
    library: Path,
    toolchain: ToolchainPaths,
    settings: AppSettings,
    *,
    runner: CommandRunner = run_command,
    logger: logging.Logger | None = None,
) -> Path:
    """Compile the SDK's setup.c, link it with the static library and flatten to ``.bin``."""

    effective_logger = logger or LOGGER
    if toolchain.arm_gcc is None or toolchain.arm_objcopy is None:
        raise ToolchainNotFound("ARM toolchain was not resolved for a device build")

    output_dir = library.parent
    setup_obj = output_dir / "setup.o"
    elf_path = output_dir / f"{profile.artifact_name}.elf"
    bin_path = output_dir / f"{profile.artifact_name}.bin"
    link = settings.device_link

    _run_step(
        runner,
        [str(toolchain.arm_gcc), *link.compile_flags, str(toolchain.setup_source), "-I", str(toolchain.c_api_dir), "-o", str(setup_obj)],
        tool="gcc",
        cwd=output_dir,
        expected=setup_obj,
        logger=effective_logger,
    )
    _run_step(
        runner,
        [str(toolchain.arm_gcc), str(setup_obj), str(library), *link.link_flags, "-T", str(toolchain.link_map), "-o", str(elf_path)],
        tool="gcc",
        cwd=output_dir,
        expected=elf_path,
        logger=effective_logger,
    )
    _run_step(
        runner,
        [str(toolchain.arm_objcopy), "-O", "binary", str(elf_path), str(bin_path)],
        tool="objcopy",
        cwd=output_dir,
        expected=bin_path,
        logger=effective_logger,
    )
    return bin_path


def compile_target(
    profile: TargetProfile,
    request: BuildRequest,
    project: CargoProject,
    toolchain: ToolchainPaths,
    settings: AppSettings,
    *,
    runner: CommandRunner = run_command,
    environ: Mapping[str, str] | None = None,
    system: str | None = None,
    logger: logging.Logger | None = None,
) -> CompiledArtifact:
    """Run cargo for the profile and return the binary the bundle should carry.

    A nonzero cargo exit is a CompilationFailed with cargo's output attached
    verbatim; a clean exit without the expected library is ArtifactNotFound.
    """

    effective_logger = logger or LOGGER
    effective_system = system or platform.system()
    library = cargo_output_dir(profile, project, environ) / library_file_name(profile, effective_system)

    _run_step(
        runner,
        cargo_build_args(profile, request, project, settings),
        tool="cargo",
        cwd=project.root,
        expected=library,
        logger=effective_logger,
    )
    effective_logger.info("compile.library path=%s", library)

    if profile.is_device:
        binary = link_device_binary(profile, library, toolchain, settings, runner=runner, logger=effective_logger)
        return CompiledArtifact(path=binary, library=library, kind="device")
    return CompiledArtifact(path=library, library=library, kind="simulator")
