"""Descriptor discovery: walks a project tree for descriptor files."""

import fnmatch
import os
from typing import List

from ..constants import DESCRIPTOR_PATTERN, SKIP_DIRECTORIES


def should_skip_directory(dir_name: str) -> bool:
    return dir_name in SKIP_DIRECTORIES or dir_name.startswith(".")


def find_descriptors(root: str, pattern: str = DESCRIPTOR_PATTERN) -> List[str]:
    """Return absolute, sorted paths of descriptor files under `root`."""
    found: List[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if not should_skip_directory(d)]
        for filename in fnmatch.filter(filenames, pattern):
            found.append(os.path.abspath(os.path.join(dirpath, filename)))
    return sorted(found)
