"""Launch a finished bundle in the simulator or on a connected device."""

from __future__ import annotations

import logging
import platform
from pathlib import Path
from typing import Sequence

from crank.build.target import TargetProfile
from crank.config import AppSettings
from crank.errors import RunFailed
from crank.toolchain.process import CommandResult, CommandRunner, invoke, run_command
from crank.toolchain.sdk import ToolchainPaths
from crank.utils.paths import is_executable

LOGGER = logging.getLogger(__name__)

DEVICE_GAMES_DIR = "/Games"


def find_serial_port(settings: AppSettings, system: str, dev_root: Path = Path("/dev")) -> str | None:
    """Configured serial port, else the first Playdate-looking port on this host."""

    if settings.device.serial_port:
        return settings.device.serial_port
    if system == "Darwin":
        ports = sorted(dev_root.glob("cu.usbmodemPD*"))
        return str(ports[0]) if ports else None
    if system == "Linux":
        ports = sorted(dev_root.glob("ttyACM*"))
        return str(ports[0]) if ports else None
    return None


def _run_checked(runner: CommandRunner, args: Sequence[str], *, tool: str, logger: logging.Logger) -> CommandResult:
    try:
        result = invoke(runner, args, tool=tool, logger=logger)
    except OSError as exc:
        raise RunFailed(
            f"{tool} executable cannot be run: {args[0]} ({exc})",
            command=args,
            returncode=None,
        ) from exc
    if not result.ok:
        raise RunFailed(
            f"{tool} failed with exit status {result.returncode}",
            command=result.args,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    return result


def launch_simulator(
    bundle_path: Path,
    toolchain: ToolchainPaths,
    *,
    runner: CommandRunner = run_command,
    system: str | None = None,
    logger: logging.Logger | None = None,
) -> CommandResult:
    effective_logger = logger or LOGGER
    effective_system = system or platform.system()
    simulator = toolchain.simulator
    # on macOS the simulator is an .app directory handed to `open`
    usable = simulator.is_dir() if effective_system == "Darwin" else is_executable(simulator)
    if not usable:
        raise RunFailed(
            f"Playdate Simulator not found or not executable at {simulator}",
            command=(str(simulator),),
            returncode=None,
        )
    if effective_system == "Darwin":
        args = ["open", "-a", str(simulator), str(bundle_path)]
    else:
        args = [str(simulator), str(bundle_path)]
    return _run_checked(runner, args, tool="simulator", logger=effective_logger)


def deploy_to_device(
    bundle_path: Path,
    toolchain: ToolchainPaths,
    settings: AppSettings,
    *,
    runner: CommandRunner = run_command,
    system: str | None = None,
    dev_root: Path = Path("/dev"),
    logger: logging.Logger | None = None,
) -> CommandResult:
    """Install the bundle with pdutil, then start it from the device's Games folder."""

    effective_logger = logger or LOGGER
    effective_system = system or platform.system()
    if not is_executable(toolchain.pdutil):
        raise RunFailed(f"pdutil not found at {toolchain.pdutil}", command=(str(toolchain.pdutil),), returncode=None)
    port = find_serial_port(settings, effective_system, dev_root)
    if port is None:
        raise RunFailed(
            "No Playdate device found; connect and unlock it or set CRANK_DEVICE__SERIAL_PORT",
            command=(str(toolchain.pdutil),),
            returncode=None,
        )

    pdutil = str(toolchain.pdutil)
    _run_checked(runner, [pdutil, port, "install", str(bundle_path)], tool="pdutil", logger=effective_logger)
    return _run_checked(
        runner,
        [pdutil, port, "run", f"{DEVICE_GAMES_DIR}/{bundle_path.name}"],
        tool="pdutil",
        logger=effective_logger,
    )


def run_bundle(
    bundle_path: Path,
    profile: TargetProfile,
    toolchain: ToolchainPaths,
    settings: AppSettings,
    *,
    runner: CommandRunner = run_command,
    system: str | None = None,
    dev_root: Path = Path("/dev"),
    logger: logging.Logger | None = None,
) -> CommandResult:
    """Run the bundle on the profile's target; any failure is RunFailed."""

    effective_logger = logger or LOGGER
    effective_logger.info("run.start kind=%s bundle=%s", profile.kind, bundle_path)
    if profile.is_device:
        return deploy_to_device(
            bundle_path,
            toolchain,
            settings,
            runner=runner,
            system=system,
            dev_root=dev_root,
            logger=effective_logger,
        )
    return launch_simulator(bundle_path, toolchain, runner=runner, system=system, logger=effective_logger)
