"""Typer CLI entrypoint for crank."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
import yaml

from crank.build.target import BuildRequest
from crank.config import AppSettings, load_settings
from crank.errors import ConfigurationError
from crank.logging_utils import configure_logging
from crank.pipeline import PipelineResult, run_build_pipeline
from crank.project.cargo import CARGO_MANIFEST_FILE, resolve_project_root

app = typer.Typer(
    add_completion=False,
    help="Build, bundle and run Rust games for the Playdate.",
    no_args_is_help=True,
)


def _load_and_configure_logger(
    config_file: Path | None,
    manifest_path: Path | None,
    verbose: bool,
) -> tuple[AppSettings, logging.Logger]:
    settings = load_settings(config_file=config_file)
    try:
        project_root = resolve_project_root(manifest_path)
    except ConfigurationError:
        project_root = None
    log_file = None
    if project_root is not None and (project_root / CARGO_MANIFEST_FILE).is_file():
        log_file = settings.paths.resolved_logs_dir(project_root) / "crank.log"
    logger = configure_logging(log_file, level=logging.DEBUG if verbose else logging.INFO)
    return settings, logger


def _report_failure(result: PipelineResult) -> None:
    failure = result.failure
    if failure is None:
        return
    typer.echo(f"[{failure.stage}] {failure.error.message}", err=True)
    if failure.error.diagnostics:
        typer.echo(failure.error.diagnostics, err=True)
    if result.build_succeeded:
        typer.echo(f"build succeeded, run failed; bundle: {result.bundle_path}", err=True)


@app.command("build")
def build(
    device: bool = typer.Option(False, "--device", help="Build for the Playdate device."),
    simulator: bool = typer.Option(False, "--simulator", help="Build for the Playdate Simulator (default)."),
    release: bool = typer.Option(False, "--release", help="Build artifacts in release mode, with optimizations."),
    run: bool = typer.Option(False, "--run", help="Run the bundle after building it."),
    example: str | None = typer.Option(None, "--example", help="Build a specific example from the examples/ dir."),
    manifest_path: Path | None = typer.Option(
        None,
        "--manifest-path",
        help="Path to Cargo.toml.",
        exists=False,
        file_okay=True,
        dir_okay=False,
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config-file",
        help="Optional crank settings YAML path.",
        exists=False,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug detail."),
) -> None:
    """Compile the game, assemble the bundle with pdc, and optionally run it."""

    settings, logger = _load_and_configure_logger(config_file, manifest_path, verbose)
    request = BuildRequest(
        device=device,
        simulator=simulator,
        example=example,
        manifest_path=manifest_path,
        release=release,
        run=run,
    )
    result = run_build_pipeline(request, settings, logger=logger)

    typer.echo(f"run_id: {result.run_id}")
    typer.echo(f"stage: {result.stage}")
    if result.bundle_path is not None:
        typer.echo(f"bundle: {result.bundle_path}")
    if result.summary_path is not None:
        typer.echo(f"summary_path: {result.summary_path}")
    if not result.ok:
        _report_failure(result)
        raise typer.Exit(code=result.exit_code)


@app.command("show-config")
def show_config(
    config_file: Path | None = typer.Option(
        None,
        "--config-file",
        help="Optional crank settings YAML path.",
        exists=False,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Print the effective settings after env overrides."""

    settings = load_settings(config_file=config_file)
    rendered = yaml.safe_dump(settings.as_dict(), sort_keys=False)
    typer.echo(rendered)


if __name__ == "__main__":
    app()
