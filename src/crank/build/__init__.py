"""Target selection and compilation stages."""

from crank.build.compiler import (
    CompiledArtifact,
    cargo_build_args,
    cargo_output_dir,
    compile_target,
    library_file_name,
    link_device_binary,
)
from crank.build.target import BuildMode, BuildRequest, TargetKind, TargetProfile, host_arch, select_target

__all__ = [
    "CompiledArtifact",
    "cargo_build_args",
    "cargo_output_dir",
    "compile_target",
    "library_file_name",
    "link_device_binary",
    "BuildMode",
    "BuildRequest",
    "TargetKind",
    "TargetProfile",
    "host_arch",
    "select_target",
]
