"""Assembly descriptor data models.

Pure data containers for the assembly reference graph. Nodes live in an
arena (AssemblyGraph); references point at arena indices or at built-in
placeholders, never at the referencing node itself.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union
from uuid import UUID

from ..constants import BUILTIN_PATH, EMPTY_ID


@dataclass(frozen=True, eq=False)
class BuiltInAssembly:
    """Synthetic stand-in for a reference that has no local descriptor.

    Compared by identity: two placeholders created for the same raw
    reference are distinct objects.
    """

    name: str
    id: UUID = EMPTY_ID
    path_location: str = BUILTIN_PATH


@dataclass(frozen=True)
class ResolvedReference:
    """Reference to another descriptor in the same AssemblyGraph."""

    index: int


@dataclass(frozen=True)
class BuiltInReference:
    """Reference that fell back to a built-in placeholder."""

    assembly: BuiltInAssembly

    @property
    def name(self) -> str:
        return self.assembly.name


AssemblyReference = Union[ResolvedReference, BuiltInReference]


@dataclass
class AssemblyDefinition:
    """A compilation unit parsed from an assembly descriptor file.

    Attributes from the descriptor are fixed at parse time. `references` is
    filled once by the linker, `is_user_assembly` once when the closure is
    seeded, `excluded_folders` and `precompiled_references` (expanded to
    absolute paths) once before synthesis.
    """

    id: UUID
    name: str
    path_location: str  # Absolute path of the descriptor file
    root_namespace: str = ""
    include_platforms: List[str] = field(default_factory=list)
    exclude_platforms: List[str] = field(default_factory=list)
    allow_unsafe_code: bool = False
    precompiled_references: List[str] = field(default_factory=list)
    define_constraints: List[str] = field(default_factory=list)
    version_defines: List[Any] = field(default_factory=list)
    no_engine_references: bool = False
    auto_referenced: bool = False
    references: List[AssemblyReference] = field(default_factory=list)
    excluded_folders: List[str] = field(default_factory=list)
    is_user_assembly: bool = False

    @property
    def directory(self) -> str:
        return os.path.dirname(self.path_location)


class AssemblyGraph:
    """Arena of linked assembly definitions.

    Attributes:
        nodes: Definitions in parse order; a node's position is its index.
        index_by_id: Identifier → index.
    """

    __slots__ = ("nodes", "index_by_id")

    def __init__(self, nodes: Optional[List[AssemblyDefinition]] = None):
        self.nodes: List[AssemblyDefinition] = list(nodes or [])
        self.index_by_id: Dict[UUID, int] = {
            node.id: i for i, node in enumerate(self.nodes)
        }

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[AssemblyDefinition]:
        return iter(self.nodes)

    def __getitem__(self, index: int) -> AssemblyDefinition:
        return self.nodes[index]

    def index_of(self, node: AssemblyDefinition) -> int:
        """Arena index of a node, by identity."""
        for i, candidate in enumerate(self.nodes):
            if candidate is node:
                return i
        raise KeyError(f"{node.name} is not part of this graph")

    def find_by_name(self, name: str) -> Optional[AssemblyDefinition]:
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def resolve(self, ref: AssemblyReference) -> Union[AssemblyDefinition, BuiltInAssembly]:
        if isinstance(ref, ResolvedReference):
            return self.nodes[ref.index]
        return ref.assembly

    def references_of(
        self, node: AssemblyDefinition
    ) -> List[Union[AssemblyDefinition, BuiltInAssembly]]:
        return [self.resolve(ref) for ref in node.references]

    def user_assemblies(self) -> List[AssemblyDefinition]:
        return [node for node in self.nodes if node.is_user_assembly]
