"""Precompiled reference expansion.

A descriptor lists precompiled binaries by file name. Each name must match
exactly one file under the search root; zero or several matches are errors
since picking one could compile against the wrong binary.
"""

import logging
import os
from pathlib import Path
from typing import List

from ..descriptor.models import AssemblyDefinition
from ..errors import AmbiguousReferenceError, ReferenceNotFoundError

logger = logging.getLogger(__name__)


def find_candidates(name: str, search_root: str) -> List[str]:
    """All files under `search_root` matching `name`, sorted."""
    root = Path(search_root)
    return sorted(
        os.path.abspath(str(p)) for p in root.rglob(name) if p.is_file()
    )


def expand_precompiled_reference(name: str, search_root: str) -> str:
    """Resolve a precompiled reference name to one absolute path.

    Raises:
        ReferenceNotFoundError: Nothing under `search_root` matches.
        AmbiguousReferenceError: More than one file matches.
    """
    candidates = find_candidates(name, search_root)

    if not candidates:
        raise ReferenceNotFoundError(name, str(search_root))
    if len(candidates) > 1:
        raise AmbiguousReferenceError(name, candidates)

    logger.debug(f"Expanded precompiled reference {name} -> {candidates[0]}")
    return candidates[0]


def expand_precompiled_references(node: AssemblyDefinition, search_root: str) -> List[str]:
    """Expand every precompiled reference of `node` in place and return them."""
    node.precompiled_references = [
        expand_precompiled_reference(name, search_root)
        for name in node.precompiled_references
    ]
    return node.precompiled_references
