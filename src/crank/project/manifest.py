"""Locate and parse the project's Crank.yaml asset manifest."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path, PurePosixPath
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from crank.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

ASSET_MANIFEST_FILES: tuple[str, ...] = ("Crank.yaml", "Crank.yml")


class AssetEntrySpec(BaseModel):
    """One ``assets`` item; a bare string is shorthand for ``{source: <string>}``."""

    model_config = ConfigDict(extra="forbid")

    source: str = Field(min_length=1)
    destination: str | None = Field(default=None, min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _expand_shorthand(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"source": value}
        return value


class MetadataSpec(BaseModel):
    """Bundle metadata fields as written in the manifest."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    author: str | None = None
    description: str | None = None
    bundle_id: str | None = None
    version: str | None = None
    build_number: int | None = Field(default=None, ge=0)
    image_path: str | None = None
    launch_sound_path: str | None = None
    content_warning: str | None = None


class ExampleSpec(BaseModel):
    """Per-example additions applied when that example is built."""

    model_config = ConfigDict(extra="forbid")

    metadata: MetadataSpec = Field(default_factory=MetadataSpec)
    assets: list[AssetEntrySpec] = Field(default_factory=list)


class ManifestSpec(BaseModel):
    """Top-level document shape of Crank.yaml."""

    model_config = ConfigDict(extra="forbid")

    metadata: MetadataSpec = Field(default_factory=MetadataSpec)
    assets: list[AssetEntrySpec] = Field(default_factory=list)
    examples: dict[str, ExampleSpec] = Field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class BundleMetadata:
    """pdxinfo fields; None means "fill from project defaults"."""

    name: str | None = None
    author: str | None = None
    description: str | None = None
    bundle_id: str | None = None
    version: str | None = None
    build_number: int | None = None
    image_path: str | None = None
    launch_sound_path: str | None = None
    content_warning: str | None = None

    def merged(self, override: BundleMetadata) -> BundleMetadata:
        """Return a copy where every field set on ``override`` wins."""

        updates = {
            item.name: getattr(override, item.name)
            for item in fields(override)
            if getattr(override, item.name) is not None
        }
        return replace(self, **updates)


@dataclass(frozen=True, slots=True)
class AssetEntry:
    """A validated asset: an existing source file and its bundle-relative destination."""

    source: Path
    destination: PurePosixPath
    label: str


@dataclass(frozen=True, slots=True)
class AssetManifest:
    """Ordered assets plus bundle metadata; empty when the project has no Crank.yaml."""

    entries: tuple[AssetEntry, ...] = ()
    metadata: BundleMetadata = field(default_factory=BundleMetadata)
    path: Path | None = None


def locate_asset_manifest(project_root: Path) -> Path | None:
    """Return the project's Crank.yaml (or Crank.yml) if present."""

    for file_name in ASSET_MANIFEST_FILES:
        candidate = project_root / file_name
        if candidate.is_file():
            return candidate
    return None


def _format_loc(loc: tuple[int | str, ...]) -> str:
    rendered = ""
    for part in loc:
        if isinstance(part, int):
            rendered += f"[{part}]"
        else:
            rendered += f".{part}" if rendered else str(part)
    return rendered or "<root>"


def _metadata_from_spec(spec: MetadataSpec) -> BundleMetadata:
    return BundleMetadata(**spec.model_dump())


def _entries_from_specs(specs: list[AssetEntrySpec], base_dir: Path, prefix: str) -> list[AssetEntry]:
    entries: list[AssetEntry] = []
    for index, spec in enumerate(specs):
        label = f"{prefix}[{index}]"
        declared_source = Path(spec.source)
        source = declared_source if declared_source.is_absolute() else base_dir / declared_source
        if not source.exists():
            raise ConfigurationError(f"{label}: source '{spec.source}' does not exist (looked for {source})")
        if spec.destination is not None:
            destination = PurePosixPath(spec.destination.replace("\\", "/"))
        elif declared_source.is_absolute():
            destination = PurePosixPath(declared_source.name)
        else:
            destination = PurePosixPath(declared_source.as_posix())
        entries.append(AssetEntry(source=source, destination=destination, label=label))
    return entries


def parse_asset_manifest(
    document: Any,
    *,
    base_dir: Path,
    example: str | None = None,
    path: Path | None = None,
) -> AssetManifest:
    """Validate a loaded YAML document and resolve its asset sources against ``base_dir``."""

    if document is None:
        return AssetManifest(path=path)
    if not isinstance(document, dict):
        raise ConfigurationError(f"{path or 'asset manifest'}: top level must be a mapping")
    try:
        spec = ManifestSpec.model_validate(document)
    except ValidationError as exc:
        first = exc.errors()[0]
        raise ConfigurationError(
            f"{path or 'asset manifest'}: invalid entry {_format_loc(tuple(first['loc']))}: {first['msg']}",
            diagnostics=str(exc),
        ) from exc

    metadata = _metadata_from_spec(spec.metadata)
    entries = _entries_from_specs(spec.assets, base_dir, "assets")
    if example is not None and example in spec.examples:
        example_spec = spec.examples[example]
        metadata = metadata.merged(_metadata_from_spec(example_spec.metadata))
        entries.extend(_entries_from_specs(example_spec.assets, base_dir, f"examples.{example}.assets"))
    return AssetManifest(entries=tuple(entries), metadata=metadata, path=path)


def load_asset_manifest(path: Path | None, *, example: str | None = None) -> AssetManifest:
    """Load Crank.yaml from ``path``; ``None`` yields an empty manifest."""

    if path is None:
        LOGGER.info("manifest.absent using empty asset manifest")
        return AssetManifest()
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"{path}: malformed YAML", diagnostics=str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise ConfigurationError(f"{path}: not valid UTF-8", diagnostics=str(exc)) from exc
    except OSError as exc:
        raise ConfigurationError(f"{path}: cannot be read: {exc}") from exc

    manifest = parse_asset_manifest(document, base_dir=path.parent, example=example, path=path)
    LOGGER.info("manifest.loaded path=%s assets=%s example=%s", path, len(manifest.entries), example)
    return manifest
