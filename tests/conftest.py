from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Sequence

import pytest

from crank.config import AppSettings
from crank.toolchain.process import CommandResult

CARGO_TOML = """\
[package]
name = "cat_game"
version = "1.2.0"
authors = ["Jane Doe <jane@example.com>"]
description = "A game about cats"
edition = "2021"

[lib]
crate-type = ["cdylib", "staticlib"]
"""

CAT_PNG = b"\x89PNG\r\n\x1a\nnot-really-a-cat"


def make_executable(path: Path, content: str = "#!/bin/sh\nexit 0\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@dataclass
class FakeCall:
    args: list[str]
    cwd: Path | None
    env: Mapping[str, str] | None


@dataclass
class _Script:
    program: str
    returncode: int
    stdout: str
    stderr: str
    effect: Callable[[list[str]], None] | None


@dataclass
class FakeRunner:
    """Records every command and answers with scripted results per program name."""

    calls: list[FakeCall] = field(default_factory=list)
    _scripts: list[_Script] = field(default_factory=list)

    def on(
        self,
        program: str,
        *,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        effect: Callable[[list[str]], None] | None = None,
    ) -> "FakeRunner":
        self._scripts.insert(0, _Script(program, returncode, stdout, stderr, effect))
        return self

    def __call__(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        command = [str(arg) for arg in args]
        self.calls.append(FakeCall(args=command, cwd=cwd, env=env))
        program = Path(command[0]).name
        for script in self._scripts:
            if script.program == program:
                if script.effect is not None:
                    script.effect(command)
                return CommandResult(
                    args=tuple(command),
                    returncode=script.returncode,
                    stdout=script.stdout,
                    stderr=script.stderr,
                )
        return CommandResult(args=tuple(command), returncode=0)

    @property
    def programs(self) -> list[str]:
        return [Path(call.args[0]).name for call in self.calls]


def touch(path: Path, content: bytes = b"binary") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def create_output_after(flag: str) -> Callable[[list[str]], None]:
    """Effect that writes the file named by the argument following ``flag``."""

    def _effect(args: list[str]) -> None:
        touch(Path(args[args.index(flag) + 1]))

    return _effect


def create_pdx(args: list[str]) -> None:
    output = Path(args[-1])
    output.mkdir(parents=True, exist_ok=True)
    (output / "pdxinfo").write_text("name=compiled\n", encoding="utf-8")


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host CRANK_* variables and settings files out of every test."""

    for key in list(os.environ):
        if key.startswith("CRANK_") or key in {"PLAYDATE_SDK_PATH", "CARGO_TARGET_DIR"}:
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("CRANK_SETTINGS_FILE", str(tmp_path / "no-settings.yaml"))


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings()


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    root = tmp_path / "cat_game"
    (root / "src").mkdir(parents=True)
    (root / "Cargo.toml").write_text(CARGO_TOML, encoding="utf-8")
    (root / "src" / "lib.rs").write_text("#![no_std]\n", encoding="utf-8")
    (root / "examples").mkdir()
    (root / "examples" / "hello_world.rs").write_text("fn main() {}\n", encoding="utf-8")
    touch(root / "images" / "cat.png", CAT_PNG)
    return root


@pytest.fixture
def sdk_root(tmp_path: Path) -> Path:
    root = tmp_path / "PlaydateSDK"
    make_executable(root / "bin" / "pdc")
    make_executable(root / "bin" / "PlaydateSimulator")
    make_executable(root / "bin" / "pdutil")
    touch(root / "C_API" / "buildsupport" / "setup.c", b"/* setup */\n")
    touch(root / "C_API" / "buildsupport" / "link_map.ld", b"/* link map */\n")
    return root


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def arm_which(tmp_path: Path) -> Callable[[str], str | None]:
    gcc = make_executable(tmp_path / "arm" / "arm-none-eabi-gcc")
    objcopy = make_executable(tmp_path / "arm" / "arm-none-eabi-objcopy")
    tools = {gcc.name: str(gcc), objcopy.name: str(objcopy)}
    return tools.get
