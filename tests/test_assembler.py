from pathlib import Path, PurePosixPath

import pytest

from crank.build.compiler import CompiledArtifact
from crank.build.target import BuildRequest, select_target
from crank.bundle.assembler import assemble_bundle
from crank.bundle.layout import BundleLayout, layout_for
from crank.bundle.pdxinfo import render_pdxinfo, resolve_metadata
from crank.config import AppSettings
from crank.errors import ConfigurationError, PathTraversalError, StagingFailed
from crank.project.cargo import load_cargo_project
from crank.project.manifest import AssetEntry, AssetManifest, BundleMetadata, parse_asset_manifest

from conftest import CAT_PNG, touch


@pytest.fixture
def project(project_dir: Path):
    return load_cargo_project(project_dir)


@pytest.fixture
def layout(project, settings: AppSettings) -> BundleLayout:
    profile = select_target(BuildRequest(), project, settings)
    return layout_for(profile, project, settings, {})


@pytest.fixture
def simulator_artifact(project_dir: Path) -> CompiledArtifact:
    library = project_dir / "target" / "debug" / "libcat_game.so"
    touch(library, b"\x7fELF-simulator")
    return CompiledArtifact(path=library, library=library, kind="simulator")


def _manifest(project_dir: Path, *assets) -> AssetManifest:
    return parse_asset_manifest({"assets": list(assets)}, base_dir=project_dir)


def test_layout_paths(layout: BundleLayout, project_dir: Path):
    staging = project_dir / "target" / "crank" / "simulator" / "debug" / "Cat Game"

    assert layout.root == staging
    assert layout.output_path == staging.parent / "Cat Game.pdx"
    assert layout.summary_path == staging.parent / "Cat Game.summary.json"
    assert layout.library_path("Darwin").name == "pdex.dylib"


def test_simulator_bundle_contains_library_assets_and_pdxinfo(
    layout: BundleLayout, simulator_artifact: CompiledArtifact, project_dir: Path
):
    manifest = _manifest(project_dir, {"source": "images/cat.png", "destination": "images/cat.png"})

    result = assemble_bundle(simulator_artifact, manifest, layout, BundleMetadata(name="Cat Game"), system="Linux")

    assert (layout.root / "images" / "cat.png").read_bytes() == CAT_PNG
    assert (layout.root / "pdex.so").read_bytes() == b"\x7fELF-simulator"
    assert layout.binary_path.read_bytes() == b""
    assert layout.metadata_path.read_text(encoding="utf-8") == "name=Cat Game\n"
    assert result.asset_paths == (layout.root / "images" / "cat.png",)
    assert (project_dir / "images" / "cat.png").read_bytes() == CAT_PNG


def test_device_bundle_carries_pdex_bin(layout: BundleLayout, project_dir: Path):
    binary = project_dir / "target" / "thumbv7em-none-eabihf" / "debug" / "cat_game.bin"
    touch(binary, b"device-binary")
    artifact = CompiledArtifact(path=binary, library=binary.with_name("libcat_game.a"), kind="device")

    result = assemble_bundle(artifact, AssetManifest(), layout, BundleMetadata(name="Cat Game"), system="Linux")

    assert result.binary_path == layout.binary_path
    assert layout.binary_path.read_bytes() == b"device-binary"
    assert sorted(path.name for path in layout.root.iterdir()) == ["pdex.bin", "pdxinfo"]


def test_escaping_destination_writes_nothing(layout: BundleLayout, simulator_artifact: CompiledArtifact, project_dir: Path):
    manifest = _manifest(project_dir, {"source": "images/cat.png", "destination": "../../escape"})

    with pytest.raises(PathTraversalError):
        assemble_bundle(simulator_artifact, manifest, layout, BundleMetadata(), system="Linux")

    assert not layout.root.exists()
    assert not (layout.root.parent.parent / "escape").exists()


@pytest.mark.parametrize("destination", ["/etc/passwd", "C:\\games\\cat.png", ".", "images/../.."])
def test_destinations_outside_the_root_are_rejected(layout: BundleLayout, destination: str):
    with pytest.raises(PathTraversalError):
        layout.resolve_destination(PurePosixPath(destination.replace("\\", "/")))


def test_reserved_entry_collision_is_rejected(layout: BundleLayout, simulator_artifact: CompiledArtifact, project_dir: Path):
    manifest = _manifest(project_dir, {"source": "images/cat.png", "destination": "pdxinfo"})

    with pytest.raises(PathTraversalError) as excinfo:
        assemble_bundle(simulator_artifact, manifest, layout, BundleMetadata(), system="Linux")

    assert "pdxinfo" in excinfo.value.message


def test_duplicate_destinations_are_rejected(layout: BundleLayout, simulator_artifact: CompiledArtifact, project_dir: Path):
    manifest = _manifest(
        project_dir,
        {"source": "images/cat.png", "destination": "cat.png"},
        {"source": "images/cat.png", "destination": "./cat.png"},
    )

    with pytest.raises(ConfigurationError) as excinfo:
        assemble_bundle(simulator_artifact, manifest, layout, BundleMetadata(), system="Linux")

    assert "assets[1]" in excinfo.value.message


def test_reassembly_drops_stale_files(layout: BundleLayout, simulator_artifact: CompiledArtifact, project_dir: Path):
    manifest = _manifest(project_dir, "images/cat.png")
    assemble_bundle(simulator_artifact, manifest, layout, BundleMetadata(name="Cat Game"), system="Linux")
    first = sorted(str(path.relative_to(layout.root)) for path in layout.root.rglob("*"))
    touch(layout.root / "leftover.txt", b"stale")

    assemble_bundle(simulator_artifact, manifest, layout, BundleMetadata(name="Cat Game"), system="Linux")
    second = sorted(str(path.relative_to(layout.root)) for path in layout.root.rglob("*"))

    assert first == second
    assert not (layout.root / "leftover.txt").exists()


def test_directory_assets_are_copied_recursively(layout: BundleLayout, simulator_artifact: CompiledArtifact, project_dir: Path):
    touch(project_dir / "fonts" / "big" / "font.fnt", b"font")
    manifest = AssetManifest(
        entries=(AssetEntry(source=project_dir / "fonts", destination=PurePosixPath("fonts"), label="assets[0]"),)
    )

    assemble_bundle(simulator_artifact, manifest, layout, BundleMetadata(), system="Linux")

    assert (layout.root / "fonts" / "big" / "font.fnt").read_bytes() == b"font"


def test_metadata_defaults_come_from_cargo(project, settings: AppSettings):
    profile = select_target(BuildRequest(example="hello_world"), project, settings)

    metadata = resolve_metadata(BundleMetadata(), profile, project, settings)

    assert metadata == BundleMetadata(
        name="Hello World",
        author="Jane Doe",
        description="A game about cats",
        bundle_id="com.crank.hello_world",
        version="1.2.0",
        build_number=1,
    )


def test_declared_metadata_wins_over_defaults(project, settings: AppSettings):
    profile = select_target(BuildRequest(), project, settings)

    metadata = resolve_metadata(BundleMetadata(name="Whiskers", build_number=7), profile, project, settings)

    assert metadata.name == "Whiskers"
    assert metadata.build_number == 7
    assert metadata.bundle_id == "com.crank.cat_game"


def test_render_pdxinfo_skips_unset_fields_and_flattens_lines():
    rendered = render_pdxinfo(
        BundleMetadata(name="Cat Game", description="line one\nline two", bundle_id="com.crank.cat_game", image_path="")
    )

    assert rendered == "name=Cat Game\ndescription=line one line two\nbundleID=com.crank.cat_game\n"


@pytest.mark.parametrize(
    "destinations",
    [("a", "a/b.png"), ("art/cat.png", "art"), ("fonts", "fonts/big/font.fnt")],
)
def test_nested_destinations_are_rejected_before_staging(
    layout: BundleLayout, simulator_artifact: CompiledArtifact, project_dir: Path, destinations
):
    first, second = destinations
    manifest = _manifest(
        project_dir,
        {"source": "images/cat.png", "destination": first},
        {"source": "images/cat.png", "destination": second},
    )

    with pytest.raises(ConfigurationError) as excinfo:
        assemble_bundle(simulator_artifact, manifest, layout, BundleMetadata(), system="Linux")

    assert "assets[1]" in excinfo.value.message
    assert not layout.root.exists()


def test_copy_failure_names_the_asset_entry(
    layout: BundleLayout, simulator_artifact: CompiledArtifact, project_dir: Path, monkeypatch: pytest.MonkeyPatch
):
    def refuse(source: Path, target: Path) -> None:
        raise PermissionError(13, "Permission denied", str(target))

    monkeypatch.setattr("crank.bundle.assembler._copy_asset", refuse)
    manifest = _manifest(project_dir, {"source": "images/cat.png", "destination": "images/cat.png"})

    with pytest.raises(StagingFailed) as excinfo:
        assemble_bundle(simulator_artifact, manifest, layout, BundleMetadata(), system="Linux")

    assert excinfo.value.message.startswith("assets[0]: cannot copy")
    assert excinfo.value.path == layout.root / "images" / "cat.png"
