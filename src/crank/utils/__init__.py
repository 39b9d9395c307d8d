"""Shared utility helpers."""

from crank.utils.paths import is_executable, reset_directory, write_json_atomically, write_text_atomically
from crank.utils.text import to_snake_case, to_title_case
from crank.utils.time_utils import elapsed_seconds, now_utc

__all__ = [
    "is_executable",
    "reset_directory",
    "write_json_atomically",
    "write_text_atomically",
    "to_snake_case",
    "to_title_case",
    "elapsed_seconds",
    "now_utc",
]
