"""Package lockfile: dependency tree parsing.

Public API:
    PackageFileParser().parse(path) → PackageDependencies
"""

from .models import PackageDependencies, PackageDependency
from .parser import PackageFileParser

__all__ = [
    "PackageDependencies",
    "PackageDependency",
    "PackageFileParser",
]
