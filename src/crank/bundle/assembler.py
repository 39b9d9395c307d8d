"""Stage the compiled binary, assets, and pdxinfo into the bundle directory."""

from __future__ import annotations

import logging
import platform
import shutil
from dataclasses import dataclass
from pathlib import Path

from crank.build.compiler import CompiledArtifact
from crank.bundle.layout import BundleLayout
from crank.bundle.pdxinfo import render_pdxinfo
from crank.errors import ConfigurationError, StagingFailed
from crank.project.manifest import AssetEntry, AssetManifest, BundleMetadata
from crank.utils.paths import reset_directory, write_text_atomically

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AssemblyResult:
    """Files written into the staging directory."""

    layout: BundleLayout
    binary_path: Path
    metadata_path: Path
    asset_paths: tuple[Path, ...]


def plan_assets(manifest: AssetManifest, layout: BundleLayout) -> list[tuple[AssetEntry, Path]]:
    """Resolve every destination up front so a bad entry aborts before any copy.

    Two entries may not share a destination, and no destination may sit
    inside another entry's destination.
    """

    planned: list[tuple[AssetEntry, Path]] = []
    seen: dict[Path, str] = {}
    for entry in manifest.entries:
        target = layout.resolve_destination(entry.destination)
        if target in seen:
            raise ConfigurationError(
                f"{entry.label}: destination '{entry.destination}' is already used by {seen[target]}"
            )
        for other, label in seen.items():
            if other in target.parents or target in other.parents:
                raise ConfigurationError(
                    f"{entry.label}: destination '{entry.destination}' overlaps the destination of {label}"
                )
        seen[target] = entry.label
        planned.append((entry, target))
    return planned


def _copy_asset(source: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir():
        shutil.copytree(source, target, dirs_exist_ok=True)
    else:
        shutil.copy2(source, target)


def assemble_bundle(
    artifact: CompiledArtifact,
    manifest: AssetManifest,
    layout: BundleLayout,
    metadata: BundleMetadata,
    *,
    system: str | None = None,
    logger: logging.Logger | None = None,
) -> AssemblyResult:
    """Rebuild the staging directory from scratch.

    Destinations are validated before the directory is cleared. Sources are
    copied, never moved. Filesystem failures surface as StagingFailed.
    """

    effective_logger = logger or LOGGER
    effective_system = system or platform.system()
    planned = plan_assets(manifest, layout)

    try:
        reset_directory(layout.root)
    except OSError as exc:
        raise StagingFailed(f"Cannot reset staging directory: {exc}", path=layout.root) from exc
    effective_logger.info("assemble.reset staging=%s", layout.root)

    binary_path = layout.binary_path if artifact.kind == "device" else layout.library_path(effective_system)
    try:
        shutil.copy2(artifact.path, binary_path)
        if artifact.kind != "device":
            # the simulator refuses bundles without a pdex.bin entry
            layout.binary_path.write_bytes(b"")
    except OSError as exc:
        raise StagingFailed(f"Cannot stage {artifact.path.name} as {binary_path.name}: {exc}", path=binary_path) from exc

    asset_paths: list[Path] = []
    for entry, target in planned:
        try:
            _copy_asset(entry.source, target)
        except OSError as exc:
            raise StagingFailed(
                f"{entry.label}: cannot copy '{entry.source}' to '{entry.destination}': {exc}",
                path=target,
            ) from exc
        asset_paths.append(target)
        effective_logger.debug("assemble.asset source=%s destination=%s", entry.source, entry.destination)

    try:
        metadata_path = write_text_atomically(render_pdxinfo(metadata), layout.metadata_path)
    except OSError as exc:
        raise StagingFailed(f"Cannot write pdxinfo: {exc}", path=layout.metadata_path) from exc
    effective_logger.info(
        "assemble.done staging=%s binary=%s assets=%s",
        layout.root,
        binary_path.name,
        len(asset_paths),
    )
    return AssemblyResult(
        layout=layout,
        binary_path=binary_path,
        metadata_path=metadata_path,
        asset_paths=tuple(asset_paths),
    )
