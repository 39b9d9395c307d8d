"""Build pipeline orchestration: resolve, select, compile, assemble, bundle, run."""

from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Literal, Mapping
from uuid import uuid4

from crank.build.compiler import compile_target
from crank.build.target import BuildRequest, TargetProfile, select_target
from crank.bundle.assembler import assemble_bundle
from crank.bundle.layout import BundleLayout, layout_for
from crank.bundle.pdc import compile_bundle
from crank.bundle.pdxinfo import resolve_metadata
from crank.config import AppSettings
from crank.errors import CrankError, StagingFailed
from crank.project.cargo import load_cargo_project, resolve_project_root
from crank.project.manifest import load_asset_manifest, locate_asset_manifest
from crank.run.runner import run_bundle
from crank.toolchain.process import CommandRunner, run_command
from crank.toolchain.sdk import Which, resolve_toolchain
from crank.utils.paths import write_json_atomically
from crank.utils.time_utils import elapsed_seconds, now_utc

LOGGER = logging.getLogger(__name__)

PipelineStage = Literal[
    "resolving",
    "target_selecting",
    "compiling",
    "assembling",
    "bundle_compiling",
    "running",
    "done",
]

STAGE_EXIT_CODES: Mapping[str, int] = {
    "resolving": 2,
    "target_selecting": 3,
    "compiling": 4,
    "assembling": 5,
    "bundle_compiling": 6,
    "running": 7,
}


@dataclass(frozen=True, slots=True)
class PipelineFailure:
    """Terminal failure: the stage that raised and the error it raised."""

    stage: PipelineStage
    error: CrankError


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Outcome of one pipeline invocation."""

    run_id: str
    stage: PipelineStage
    bundle_path: Path | None = None
    failure: PipelineFailure | None = None
    profile: TargetProfile | None = None
    summary_path: Path | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def build_succeeded(self) -> bool:
        """True once pdc produced the bundle, even if running it failed afterwards."""

        return self.bundle_path is not None

    @property
    def exit_code(self) -> int:
        if self.failure is None:
            return 0
        return STAGE_EXIT_CODES.get(self.failure.stage, 1)


def _os_error_path(exc: OSError) -> Path | None:
    return Path(exc.filename) if isinstance(exc.filename, (str, Path)) else None


def _build_summary(
    *,
    run_id: str,
    request: BuildRequest,
    result_stage: PipelineStage,
    profile: TargetProfile | None,
    layout: BundleLayout | None,
    bundle_path: Path | None,
    failure: PipelineFailure | None,
    started_ts: datetime,
    duration_sec: float,
) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "run_id": run_id,
        "started_ts": started_ts.isoformat(),
        "finished_ts": now_utc().isoformat(),
        "duration_sec": duration_sec,
        "stage": result_stage,
        "ok": failure is None,
        "build_succeeded": bundle_path is not None,
        "request": {
            "device": request.device,
            "simulator": request.simulator,
            "example": request.example,
            "manifest_path": str(request.manifest_path) if request.manifest_path else None,
            "release": request.release,
            "run": request.run,
        },
        "target": None,
        "outputs": {
            "staging_dir": str(layout.root) if layout else None,
            "bundle_path": str(bundle_path) if bundle_path else None,
        },
        "error": None,
    }
    if profile is not None:
        summary["target"] = {
            "kind": profile.kind,
            "triple": profile.triple,
            "arch": profile.arch,
            "example": profile.example,
            "mode": profile.mode,
            "title": profile.title,
        }
    if failure is not None:
        summary["error"] = {
            "stage": failure.stage,
            "type": type(failure.error).__name__,
            "message": failure.error.message,
            "diagnostics": failure.error.diagnostics,
        }
    return summary


def run_build_pipeline(
    request: BuildRequest,
    settings: AppSettings,
    *,
    runner: CommandRunner = run_command,
    cwd: Path | None = None,
    environ: Mapping[str, str] | None = None,
    system: str | None = None,
    home: Path | None = None,
    machine: str | None = None,
    which: Which = shutil.which,
    dev_root: Path = Path("/dev"),
    logger: logging.Logger | None = None,
) -> PipelineResult:
    """Run every stage in order and stop at the first failure.

    Stage errors (``CrankError``, plus any ``OSError`` wrapped as
    StagingFailed) are captured into the returned result with the stage that
    raised them; nothing is retried. A run failure after a
    successful pdc keeps ``bundle_path`` so callers can tell the build itself
    succeeded.
    """

    effective_logger = logger or LOGGER
    if request.example is not None:
        request = replace(request, example=request.example.strip())
    run_id = f"build-{uuid4().hex[:12]}"
    started_ts = now_utc()
    started_mono = time.monotonic()

    stage: PipelineStage = "resolving"
    profile: TargetProfile | None = None
    layout: BundleLayout | None = None
    bundle_path: Path | None = None
    failure: PipelineFailure | None = None

    def enter(next_stage: PipelineStage) -> PipelineStage:
        effective_logger.info("pipeline.stage run_id=%s stage=%s", run_id, next_stage)
        return next_stage

    try:
        stage = enter("resolving")
        project_root = resolve_project_root(request.manifest_path, cwd)
        project = load_cargo_project(project_root, request.manifest_path)
        manifest = load_asset_manifest(locate_asset_manifest(project_root), example=request.example)
        toolchain = resolve_toolchain(
            settings,
            device=request.device and not request.simulator,
            environ=environ,
            system=system,
            home=home,
            which=which,
            logger=effective_logger,
        )

        stage = enter("target_selecting")
        profile = select_target(request, project, settings, machine=machine, logger=effective_logger)
        layout = layout_for(profile, project, settings, environ)

        stage = enter("compiling")
        artifact = compile_target(
            profile,
            request,
            project,
            toolchain,
            settings,
            runner=runner,
            environ=environ,
            system=system,
            logger=effective_logger,
        )

        stage = enter("assembling")
        metadata = resolve_metadata(manifest.metadata, profile, project, settings)
        assemble_bundle(artifact, manifest, layout, metadata, system=system, logger=effective_logger)

        stage = enter("bundle_compiling")
        bundle_path = compile_bundle(
            layout,
            toolchain,
            settings,
            release=request.release,
            runner=runner,
            logger=effective_logger,
        )

        if request.run:
            stage = enter("running")
            run_bundle(
                bundle_path,
                profile,
                toolchain,
                settings,
                runner=runner,
                system=system,
                dev_root=dev_root,
                logger=effective_logger,
            )

        stage = enter("done")
    except (CrankError, OSError) as exc:
        if isinstance(exc, CrankError):
            error: CrankError = exc
        else:
            error = StagingFailed(f"{stage} stage hit a filesystem error: {exc}", path=_os_error_path(exc))
        failure = PipelineFailure(stage=stage, error=error)
        effective_logger.error(
            "pipeline.failed run_id=%s stage=%s error_type=%s message=%s",
            run_id,
            stage,
            type(exc).__name__,
            error.message,
        )

    summary_path: Path | None = None
    if layout is not None:
        summary = _build_summary(
            run_id=run_id,
            request=request,
            result_stage=stage,
            profile=profile,
            layout=layout,
            bundle_path=bundle_path,
            failure=failure,
            started_ts=started_ts,
            duration_sec=elapsed_seconds(started_mono),
        )
        summary_path = write_json_atomically(summary, layout.summary_path)

    effective_logger.info(
        "pipeline.finished run_id=%s stage=%s ok=%s build_succeeded=%s bundle=%s",
        run_id,
        stage,
        failure is None,
        bundle_path is not None,
        bundle_path,
    )
    return PipelineResult(
        run_id=run_id,
        stage=stage,
        bundle_path=bundle_path,
        failure=failure,
        profile=profile,
        summary_path=summary_path,
    )
