"""Resolve the Playdate SDK installation and the vendor tools inside it."""

from __future__ import annotations

import logging
import os
import platform
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping

from crank.config import AppSettings
from crank.errors import ToolchainNotFound
from crank.utils.paths import is_executable

LOGGER = logging.getLogger(__name__)

SDK_PATH_ENV = "PLAYDATE_SDK_PATH"
SDK_CONFIG_ROOT_KEY = "SDKRoot"

Which = Callable[[str], str | None]


@dataclass(frozen=True, slots=True)
class ToolchainPaths:
    """Vendor SDK locations resolved once per invocation."""

    sdk_root: Path
    c_api_dir: Path
    pdc: Path
    simulator: Path
    pdutil: Path
    arm_gcc: Path | None = None
    arm_objcopy: Path | None = None

    @property
    def setup_source(self) -> Path:
        return self.c_api_dir / "buildsupport" / "setup.c"

    @property
    def link_map(self) -> Path:
        return self.c_api_dir / "buildsupport" / "link_map.ld"


def parse_sdk_config(text: str) -> dict[str, str]:
    """Parse the SDK's tab-separated ``key<TAB>value`` config file."""

    values: dict[str, str] = {}
    for line in text.strip().splitlines():
        key, sep, value = line.partition("\t")
        if sep:
            values[key.strip()] = value.strip()
    return values


def read_sdk_config_root(config_file: Path) -> Path | None:
    """Return the SDKRoot recorded by the SDK installer, if any."""

    if not config_file.is_file():
        return None
    root = parse_sdk_config(config_file.read_text(encoding="utf-8", errors="replace")).get(SDK_CONFIG_ROOT_KEY)
    return Path(root) if root else None


def default_sdk_paths(system: str, home: Path) -> list[Path]:
    """Platform-default install locations, in preference order."""

    if system == "Darwin":
        return [home / "Developer" / "PlaydateSDK"]
    if system == "Windows":
        return [home / "Documents" / "PlaydateSDK"]
    return [home / "PlaydateSDK", home / "Developer" / "PlaydateSDK"]


def executable_name(name: str, system: str) -> str:
    return f"{name}.exe" if system == "Windows" else name


def simulator_path(sdk_root: Path, system: str) -> Path:
    """Expected simulator location; on macOS this is an application bundle."""

    if system == "Darwin":
        return sdk_root / "bin" / "Playdate Simulator.app"
    return sdk_root / "bin" / executable_name("PlaydateSimulator", system)


def sdk_candidates(
    settings: AppSettings,
    *,
    environ: Mapping[str, str],
    system: str,
    home: Path,
) -> list[Path]:
    """Candidate SDK roots: env override, settings, SDK config file, platform default."""

    candidates: list[Path] = []
    env_value = environ.get(SDK_PATH_ENV, "").strip()
    if env_value:
        candidates.append(Path(env_value).expanduser())
    if settings.sdk.path is not None:
        candidates.append(settings.sdk.path.expanduser())

    config_file = settings.sdk.config_file
    if str(config_file).startswith("~"):
        config_file = home / Path(*config_file.parts[1:])
    configured_root = read_sdk_config_root(config_file)
    if configured_root is not None:
        candidates.append(configured_root)

    candidates.extend(default_sdk_paths(system, home))

    unique: list[Path] = []
    for candidate in candidates:
        if candidate not in unique:
            unique.append(candidate)
    return unique


def _resolve_tool(name: str, which: Which) -> Path | None:
    found = which(name)
    return Path(found) if found else None


def resolve_toolchain(
    settings: AppSettings,
    *,
    device: bool = False,
    environ: Mapping[str, str] | None = None,
    system: str | None = None,
    home: Path | None = None,
    which: Which = shutil.which,
    logger: logging.Logger | None = None,
) -> ToolchainPaths:
    """Find a usable SDK root and the tools the requested build needs.

    A candidate root is accepted when it is a directory holding an executable
    ``bin/pdc``. Device builds also require the ARM gcc/objcopy tools and the
    SDK's C build-support files.
    """

    effective_logger = logger or LOGGER
    effective_environ = os.environ if environ is None else environ
    effective_system = system or platform.system()
    effective_home = home or Path.home()

    candidates = sdk_candidates(settings, environ=effective_environ, system=effective_system, home=effective_home)
    sdk_root: Path | None = None
    for candidate in candidates:
        pdc = candidate / "bin" / executable_name("pdc", effective_system)
        if candidate.is_dir() and is_executable(pdc):
            sdk_root = candidate
            break
        effective_logger.debug("toolchain.candidate_rejected sdk_root=%s pdc=%s", candidate, pdc)

    if sdk_root is None:
        expected = candidates[0] if candidates else Path("PlaydateSDK")
        raise ToolchainNotFound(
            f"Playdate SDK not found (expected an SDK with bin/pdc at {expected}); "
            f"set {SDK_PATH_ENV} to the SDK root",
            searched=candidates,
        )

    bin_dir = sdk_root / "bin"
    arm_gcc: Path | None = None
    arm_objcopy: Path | None = None
    c_api_dir = sdk_root / "C_API"
    if device:
        arm_gcc = _resolve_tool(settings.device_link.gcc, which)
        arm_objcopy = _resolve_tool(settings.device_link.objcopy, which)
        missing = [
            name
            for name, found in ((settings.device_link.gcc, arm_gcc), (settings.device_link.objcopy, arm_objcopy))
            if found is None
        ]
        if missing:
            raise ToolchainNotFound(
                f"ARM toolchain not found on PATH: {', '.join(missing)} (required for device builds)",
                searched=[Path(name) for name in missing],
            )
        for support_file in (c_api_dir / "buildsupport" / "setup.c", c_api_dir / "buildsupport" / "link_map.ld"):
            if not support_file.is_file():
                raise ToolchainNotFound(
                    f"Playdate SDK at {sdk_root} is missing {support_file.name}",
                    searched=[support_file],
                )

    paths = ToolchainPaths(
        sdk_root=sdk_root,
        c_api_dir=c_api_dir,
        pdc=bin_dir / executable_name("pdc", effective_system),
        simulator=simulator_path(sdk_root, effective_system),
        pdutil=bin_dir / executable_name("pdutil", effective_system),
        arm_gcc=arm_gcc,
        arm_objcopy=arm_objcopy,
    )
    effective_logger.info("toolchain.resolved sdk_root=%s pdc=%s device=%s", paths.sdk_root, paths.pdc, device)
    return paths
