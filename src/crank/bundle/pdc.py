"""Run the vendor bundle compiler (pdc) over the staging directory."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from crank.bundle.layout import BundleLayout
from crank.config import AppSettings
from crank.errors import ArtifactNotFound, BundleCompilationFailed, ToolchainNotFound
from crank.toolchain.process import CommandRunner, invoke, run_command
from crank.toolchain.sdk import ToolchainPaths

LOGGER = logging.getLogger(__name__)


def pdc_args(layout: BundleLayout, toolchain: ToolchainPaths, settings: AppSettings, *, release: bool) -> list[str]:
    args = [str(toolchain.pdc)]
    if release and settings.pdc.strip_release:
        args.append("--strip")
    args += settings.pdc.extra_args
    args += [str(layout.root), str(layout.output_path)]
    return args


def compile_bundle(
    layout: BundleLayout,
    toolchain: ToolchainPaths,
    settings: AppSettings,
    *,
    release: bool = False,
    runner: CommandRunner = run_command,
    logger: logging.Logger | None = None,
) -> Path:
    """Produce ``<Title>.pdx`` beside the staging directory and return its path."""

    effective_logger = logger or LOGGER
    output_path = layout.output_path
    if output_path.is_dir():
        shutil.rmtree(output_path)
    elif output_path.exists():
        output_path.unlink()

    args = pdc_args(layout, toolchain, settings, release=release)
    try:
        result = invoke(runner, args, tool="pdc", cwd=layout.root.parent, logger=effective_logger)
    except OSError as exc:
        raise ToolchainNotFound(
            f"pdc executable cannot be run: {toolchain.pdc} ({exc})",
            searched=[toolchain.pdc],
        ) from exc
    if not result.ok:
        raise BundleCompilationFailed(
            f"pdc failed with exit status {result.returncode}",
            command=result.args,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    if not output_path.exists():
        raise ArtifactNotFound(
            f"pdc exited successfully but did not produce {output_path.name}",
            expected_path=output_path,
        )
    effective_logger.info("pdc.done output=%s", output_path)
    return output_path
