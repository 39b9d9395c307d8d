"""Bundle staging, pdxinfo rendering, and the pdc adapter."""

from crank.bundle.assembler import AssemblyResult, assemble_bundle, plan_assets
from crank.bundle.layout import (
    BINARY_ENTRY,
    METADATA_ENTRY,
    RESERVED_ENTRIES,
    BundleLayout,
    layout_for,
    library_entry_name,
)
from crank.bundle.pdc import compile_bundle, pdc_args
from crank.bundle.pdxinfo import render_pdxinfo, resolve_metadata

__all__ = [
    "AssemblyResult",
    "assemble_bundle",
    "plan_assets",
    "BINARY_ENTRY",
    "METADATA_ENTRY",
    "RESERVED_ENTRIES",
    "BundleLayout",
    "layout_for",
    "library_entry_name",
    "compile_bundle",
    "pdc_args",
    "render_pdxinfo",
    "resolve_metadata",
]
