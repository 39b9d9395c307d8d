"""Read the cargo package a build is run against."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from crank.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

CARGO_MANIFEST_FILE = "Cargo.toml"
CARGO_TARGET_DIR_ENV = "CARGO_TARGET_DIR"


@dataclass(frozen=True, slots=True)
class CargoProject:
    """Package fields crank needs from Cargo.toml."""

    root: Path
    manifest_path: Path
    package_name: str
    lib_name: str
    lib_path: Path
    version: str | None = None
    authors: tuple[str, ...] = ()
    description: str | None = None
    declared_examples: Mapping[str, Path] = field(default_factory=dict)

    def target_dir(self, environ: Mapping[str, str] | None = None) -> Path:
        """Cargo's output root: ``CARGO_TARGET_DIR`` or ``<root>/target``."""

        effective_environ = os.environ if environ is None else environ
        override = effective_environ.get(CARGO_TARGET_DIR_ENV, "").strip()
        if override:
            path = Path(override)
            return path if path.is_absolute() else (self.root / path).resolve()
        return self.root / "target"

    def example_source(self, name: str) -> Path | None:
        """Locate an example's entry point using cargo's discovery rules.

        Undeclared examples must resolve to a file under ``<root>/examples``.
        """

        declared = self.declared_examples.get(name)
        if declared is not None:
            return declared if declared.is_file() else None
        examples_dir = (self.root / "examples").resolve()
        for candidate in (examples_dir / f"{name}.rs", examples_dir / name / "main.rs"):
            resolved = candidate.resolve()
            if examples_dir in resolved.parents and resolved.is_file():
                return resolved
        return None


def resolve_project_root(manifest_path: Path | None, cwd: Path | None = None) -> Path:
    """Return the directory holding the project's Cargo.toml.

    An explicit manifest path must exist; otherwise the working directory is the project.
    """

    if manifest_path is not None:
        if not manifest_path.is_file():
            raise ConfigurationError(f"Cannot find manifest at path '{manifest_path}'")
        return manifest_path.resolve().parent
    return (cwd or Path.cwd()).resolve()


def _optional_str(value: Any) -> str | None:
    # workspace-inherited fields arrive as tables such as {workspace = true}
    return (value.strip() or None) if isinstance(value, str) else None


def load_cargo_project(project_root: Path, manifest_path: Path | None = None) -> CargoProject:
    """Parse Cargo.toml under ``project_root`` into a CargoProject."""

    cargo_toml = manifest_path.resolve() if manifest_path is not None else project_root / CARGO_MANIFEST_FILE
    if not cargo_toml.is_file():
        raise ConfigurationError(f"No {CARGO_MANIFEST_FILE} found in {project_root}")
    try:
        data = tomllib.loads(cargo_toml.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Malformed {cargo_toml}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ConfigurationError(f"{cargo_toml} is not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"{cargo_toml} cannot be read: {exc}") from exc

    package = data.get("package")
    if not isinstance(package, dict) or not isinstance(package.get("name"), str):
        raise ConfigurationError(f"{cargo_toml} has no [package] name")
    package_name = package["name"]

    lib = data.get("lib") if isinstance(data.get("lib"), dict) else {}
    lib_name = lib.get("name") if isinstance(lib.get("name"), str) else package_name.replace("-", "_")
    lib_path = project_root / (lib.get("path") if isinstance(lib.get("path"), str) else "src/lib.rs")

    authors_raw = package.get("authors")
    authors = tuple(str(item) for item in authors_raw) if isinstance(authors_raw, list) else ()

    declared_examples: dict[str, Path] = {}
    for entry in data.get("example", []) or []:
        if isinstance(entry, dict) and isinstance(entry.get("name"), str):
            relative = entry.get("path") if isinstance(entry.get("path"), str) else f"examples/{entry['name']}.rs"
            declared_examples[entry["name"]] = project_root / relative

    project = CargoProject(
        root=project_root,
        manifest_path=cargo_toml,
        package_name=package_name,
        lib_name=lib_name,
        lib_path=lib_path,
        version=_optional_str(package.get("version")),
        authors=authors,
        description=_optional_str(package.get("description")),
        declared_examples=declared_examples,
    )
    LOGGER.debug(
        "cargo.loaded package=%s lib=%s examples=%s",
        project.package_name,
        project.lib_name,
        sorted(declared_examples),
    )
    return project
