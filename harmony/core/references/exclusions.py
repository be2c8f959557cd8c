"""Exclusion folders: nested compilation units inside an assembly folder.

Any other descriptor found below an assembly's directory owns its folder,
so that folder is removed from the enclosing assembly's compiled sources.
"""

import os
from pathlib import Path
from typing import List

from ..constants import DESCRIPTOR_PATTERN
from ..descriptor.models import AssemblyDefinition


def find_excluded_folders(
    node: AssemblyDefinition,
    pattern: str = DESCRIPTOR_PATTERN,
) -> List[str]:
    """Folders of descriptors nested at any depth below `node`'s directory.

    Returns:
        Sorted absolute folder paths, without duplicates; empty when the
        assembly has no nested descriptors.
    """
    own_path = os.path.normcase(os.path.abspath(node.path_location))
    own_dir = os.path.normcase(os.path.abspath(node.directory))
    folders = set()

    for descriptor in Path(node.directory).rglob(pattern):
        path = os.path.abspath(str(descriptor))
        if os.path.normcase(path) == own_path:
            continue
        folder = os.path.dirname(path)
        if os.path.normcase(folder) == own_dir:
            continue
        folders.add(folder)

    return sorted(folders)


def assign_excluded_folders(node: AssemblyDefinition, pattern: str = DESCRIPTOR_PATTERN) -> List[str]:
    node.excluded_folders = find_excluded_folders(node, pattern)
    return node.excluded_folders
