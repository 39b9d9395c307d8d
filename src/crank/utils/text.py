"""Name conversions between cargo identifiers and bundle titles."""

from __future__ import annotations

import re

_WORD_SPLIT = re.compile(r"[\s_\-]+|(?<=[a-z0-9])(?=[A-Z])")


def to_title_case(name: str) -> str:
    """Convert a cargo-style name to a display title: ``hello_world`` -> ``Hello World``."""

    words = [word for word in _WORD_SPLIT.split(name.strip()) if word]
    return " ".join(word[:1].upper() + word[1:].lower() for word in words)


def to_snake_case(name: str) -> str:
    """Convert a crate or display name to the identifier cargo uses for artifacts."""

    words = [word for word in _WORD_SPLIT.split(name.strip()) if word]
    return "_".join(word.lower() for word in words)
