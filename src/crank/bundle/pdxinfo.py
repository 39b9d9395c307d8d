"""Bundle metadata defaults and the pdxinfo text format."""

from __future__ import annotations

import re

from crank.build.target import TargetProfile
from crank.config import AppSettings
from crank.project.cargo import CargoProject
from crank.project.manifest import BundleMetadata
from crank.utils.text import to_snake_case

PDXINFO_KEYS: tuple[tuple[str, str], ...] = (
    ("name", "name"),
    ("author", "author"),
    ("description", "description"),
    ("bundle_id", "bundleID"),
    ("version", "version"),
    ("build_number", "buildNumber"),
    ("image_path", "imagePath"),
    ("launch_sound_path", "launchSoundPath"),
    ("content_warning", "contentWarning"),
)

_EMAIL_SUFFIX = re.compile(r"\s*<[^>]*>\s*$")


def _first_author(project: CargoProject) -> str | None:
    for author in project.authors:
        cleaned = _EMAIL_SUFFIX.sub("", author).strip()
        if cleaned:
            return cleaned
    return None


def resolve_metadata(
    declared: BundleMetadata,
    profile: TargetProfile,
    project: CargoProject,
    settings: AppSettings,
) -> BundleMetadata:
    """Fill unset manifest fields from Cargo.toml and settings defaults."""

    identifier = to_snake_case(profile.example or project.package_name)
    defaults = BundleMetadata(
        name=profile.title,
        author=_first_author(project) or settings.bundle.default_author,
        description=project.description,
        bundle_id=f"{settings.bundle.id_prefix}.{identifier}",
        version=project.version or settings.bundle.default_version,
        build_number=settings.bundle.default_build_number,
    )
    return defaults.merged(declared)


def render_pdxinfo(metadata: BundleMetadata) -> str:
    """Render ``key=value`` lines, skipping unset fields."""

    lines: list[str] = []
    for attribute, key in PDXINFO_KEYS:
        value = getattr(metadata, attribute)
        if value is None:
            continue
        rendered = " ".join(str(value).splitlines()).strip()
        if rendered:
            lines.append(f"{key}={rendered}")
    return "\n".join(lines) + "\n"
