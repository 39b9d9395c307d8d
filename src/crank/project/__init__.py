"""Project-level inputs: the cargo package and the Crank.yaml asset manifest."""

from crank.project.cargo import (
    CARGO_MANIFEST_FILE,
    CARGO_TARGET_DIR_ENV,
    CargoProject,
    load_cargo_project,
    resolve_project_root,
)
from crank.project.manifest import (
    ASSET_MANIFEST_FILES,
    AssetEntry,
    AssetManifest,
    BundleMetadata,
    load_asset_manifest,
    locate_asset_manifest,
    parse_asset_manifest,
)

__all__ = [
    "CARGO_MANIFEST_FILE",
    "CARGO_TARGET_DIR_ENV",
    "CargoProject",
    "load_cargo_project",
    "resolve_project_root",
    "ASSET_MANIFEST_FILES",
    "AssetEntry",
    "AssetManifest",
    "BundleMetadata",
    "load_asset_manifest",
    "locate_asset_manifest",
    "parse_asset_manifest",
]
