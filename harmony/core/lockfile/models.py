"""Package dependency tree models."""

from dataclasses import dataclass, field
from typing import List, Optional

from ..constants import SOURCE_BUILTIN


@dataclass(eq=False)
class PackageDependency:
    """One entry of the resolved dependency tree.

    Identity is (name, version, source); depth, children and url are
    ignored by equality and hashing.
    """

    name: str
    version: str
    source: str
    depth: int
    dependencies: List["PackageDependency"] = field(default_factory=list)
    url: Optional[str] = None

    @property
    def key(self) -> tuple:
        return (self.name, self.version, self.source)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, PackageDependency):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    @property
    def folder_name(self) -> str:
        """Folder that an extracted source archive of this package lives in."""
        return f"{self.name}-{self.version}"


@dataclass
class PackageDependencies:
    """Forest parsed from a lockfile: one root per flat lockfile entry."""

    registry_dependencies: List[PackageDependency] = field(default_factory=list)

    def find(self, name: str) -> Optional[PackageDependency]:
        for dep in self.registry_dependencies:
            if dep.name == name:
                return dep
        return None

    def compilable(self) -> List[PackageDependency]:
        """Entries whose sources must be fetched and compiled."""
        return [d for d in self.registry_dependencies if d.source != SOURCE_BUILTIN]
