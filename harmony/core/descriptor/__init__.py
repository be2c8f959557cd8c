"""Assembly descriptors: parsing, linking and discovery.

Public API:
    AssemblyDefinitionParser().parse_all(paths) → AssemblyGraph
    link_references(parsed) → AssemblyGraph
    find_descriptors(root, pattern) → List[str]
"""

from .discovery import find_descriptors
from .linker import link_references, uses_identifier_references
from .meta_parser import MetaFileParser
from .models import (
    AssemblyDefinition,
    AssemblyGraph,
    AssemblyReference,
    BuiltInAssembly,
    BuiltInReference,
    ResolvedReference,
)
from .parser import AssemblyDefinitionParser, ParsedDescriptor

__all__ = [
    "AssemblyDefinition",
    "AssemblyDefinitionParser",
    "AssemblyGraph",
    "AssemblyReference",
    "BuiltInAssembly",
    "BuiltInReference",
    "MetaFileParser",
    "ParsedDescriptor",
    "ResolvedReference",
    "find_descriptors",
    "link_references",
    "uses_identifier_references",
]
