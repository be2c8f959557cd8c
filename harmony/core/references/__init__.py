"""Per-assembly generation inputs: precompiled paths and exclusion folders."""

from .exclusions import assign_excluded_folders, find_excluded_folders
from .expander import (
    expand_precompiled_reference,
    expand_precompiled_references,
    find_candidates,
)

__all__ = [
    "assign_excluded_folders",
    "expand_precompiled_reference",
    "expand_precompiled_references",
    "find_candidates",
    "find_excluded_folders",
]
