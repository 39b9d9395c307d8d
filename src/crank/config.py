"""crank settings: nested pydantic groups loaded from YAML, .env and CRANK_* variables."""

from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_SETTINGS_FILE = Path(".crank/settings.yaml")
SETTINGS_FILE_ENV = "CRANK_SETTINGS_FILE"


class SdkConfig(BaseModel):
    """Where to look for the Playdate SDK beyond the environment override."""

    path: Path | None = None
    config_file: Path = Path("~/.Playdate/config")


class CargoConfig(BaseModel):
    """How cargo is invoked for simulator and device builds."""

    executable: str = "cargo"
    device_triple: str = "thumbv7em-none-eabihf"
    extra_args: list[str] = Field(default_factory=list)


class DeviceLinkConfig(BaseModel):
    """ARM tools used to turn the device static library into a loadable binary."""

    gcc: str = "arm-none-eabi-gcc"
    objcopy: str = "arm-none-eabi-objcopy"
    compile_flags: list[str] = Field(
        default_factory=lambda: [
            "-g",
            "-c",
            "-mthumb",
            "-mcpu=cortex-m7",
            "-mfloat-abi=hard",
            "-mfpu=fpv4-sp-d16",
            "-D__FPU_USED=1",
            "-O2",
            "-falign-functions=16",
            "-fomit-frame-pointer",
            "-gdwarf-2",
            "-Wall",
            "-Wno-unused",
            "-Wstrict-prototypes",
            "-Wno-unknown-pragmas",
            "-fverbose-asm",
            "-ffunction-sections",
            "-fdata-sections",
            "-DTARGET_PLAYDATE=1",
            "-DTARGET_EXTENSION=1",
        ]
    )
    link_flags: list[str] = Field(
        default_factory=lambda: [
            "-mthumb",
            "-mcpu=cortex-m7",
            "-mfloat-abi=hard",
            "-mfpu=fpv4-sp-d16",
            "-D__FPU_USED=1",
            "-Wl,--gc-sections,--no-warn-mismatch",
        ]
    )


class PdcConfig(BaseModel):
    """Bundle compiler switches."""

    strip_release: bool = True
    extra_args: list[str] = Field(default_factory=list)


class BundleConfig(BaseModel):
    """Defaults for pdxinfo fields the project does not declare."""

    id_prefix: str = "com.crank"
    default_author: str = "Unknown"
    default_version: str = "0.1.0"
    default_build_number: int = Field(default=1, ge=0)


class DeviceConfig(BaseModel):
    """Connected-device settings used when running on hardware."""

    serial_port: str | None = None


class PathsConfig(BaseModel):
    """Output locations, relative to the project root unless absolute."""

    staging_subdir: Path = Path("crank")
    logs_dir: Path = Path("target/crank/logs")

    def resolved_logs_dir(self, project_root: Path) -> Path:
        """Return the log directory resolved against the project root."""

        return self.logs_dir if self.logs_dir.is_absolute() else (project_root / self.logs_dir).resolve()


class AppSettings(BaseSettings):
    """Top-level tool settings."""

    _yaml_file_override: ClassVar[Path | None] = None

    sdk: SdkConfig = Field(default_factory=SdkConfig)
    cargo: CargoConfig = Field(default_factory=CargoConfig)
    device_link: DeviceLinkConfig = Field(default_factory=DeviceLinkConfig)
    pdc: PdcConfig = Field(default_factory=PdcConfig)
    bundle: BundleConfig = Field(default_factory=BundleConfig)
    device: DeviceConfig = Field(default_factory=DeviceConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)

    model_config = SettingsConfigDict(
        env_prefix="CRANK_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Order sources so CRANK_* variables beat the project's settings.yaml."""

        settings_file = resolve_settings_file(cls._yaml_file_override)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=settings_file),
            file_secret_settings,
        )

    def as_dict(self) -> dict[str, object]:
        """JSON-safe nested dict, used by ``crank show-config``."""

        return self.model_dump(mode="json")


def find_project_root(start: Path | None = None) -> Path:
    """Nearest directory at or above ``start`` holding Cargo.toml or .crank/settings.yaml."""

    start_dir = (start or Path.cwd()).resolve()
    for directory in (start_dir, *start_dir.parents):
        if (directory / "Cargo.toml").is_file() or (directory / DEFAULT_SETTINGS_FILE).is_file():
            return directory
    return start_dir


def resolve_settings_file(override: Path | None = None) -> Path:
    """Pick the settings YAML: ``--config-file``, then CRANK_SETTINGS_FILE, then the project default.

    Relative paths are anchored at the project root so the CLI behaves the
    same from any subdirectory of the game.
    """

    env_value = os.getenv(SETTINGS_FILE_ENV, "").strip()
    settings_file = override or (Path(env_value) if env_value else DEFAULT_SETTINGS_FILE)
    if settings_file.is_absolute():
        return settings_file
    return (find_project_root() / settings_file).resolve()


def load_settings(config_file: Path | None = None) -> AppSettings:
    """Build AppSettings for one CLI invocation.

    A missing settings file is not an error; every field has a default.
    """

    AppSettings._yaml_file_override = resolve_settings_file(config_file)
    try:
        return AppSettings()
    finally:
        AppSettings._yaml_file_override = None
