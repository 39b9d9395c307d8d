"""Vendor SDK discovery and the subprocess seam shared by every tool invocation."""

from crank.toolchain.process import CommandResult, CommandRunner, format_command, invoke, run_command
from crank.toolchain.sdk import (
    SDK_PATH_ENV,
    ToolchainPaths,
    default_sdk_paths,
    parse_sdk_config,
    read_sdk_config_root,
    resolve_toolchain,
    sdk_candidates,
)

__all__ = [
    "CommandResult",
    "CommandRunner",
    "format_command",
    "invoke",
    "run_command",
    "SDK_PATH_ENV",
    "ToolchainPaths",
    "default_sdk_paths",
    "parse_sdk_config",
    "read_sdk_config_root",
    "resolve_toolchain",
    "sdk_candidates",
]
