"""Descriptor linker: resolves raw reference strings into graph edges.

Resolution is decided per descriptor, not per reference: if any raw
reference carries the `GUID:` prefix, every reference of that descriptor
is treated as an identifier; otherwise every reference is a plain name.
A descriptor that mixes both forms is therefore miscategorized (its plain
names are looked up as identifiers). That behavior is kept on purpose so
generated projects match the editor's own resolution.
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Optional
from uuid import UUID

from ..constants import GUID_PREFIX
from .models import (
    AssemblyGraph,
    AssemblyReference,
    BuiltInAssembly,
    BuiltInReference,
    ResolvedReference,
)

if TYPE_CHECKING:
    from .parser import ParsedDescriptor

logger = logging.getLogger(__name__)


def uses_identifier_references(raw_references: List[str]) -> bool:
    """True if the descriptor's references must all be treated as identifiers."""
    return any(ref.startswith(GUID_PREFIX) for ref in raw_references)


def _parse_identifier(raw: str) -> Optional[UUID]:
    try:
        return UUID(raw.replace(GUID_PREFIX, ""))
    except ValueError:
        return None


def _resolve_by_identifier(
    raw: str,
    index_by_id: Dict[UUID, int],
) -> AssemblyReference:
    assembly_id = _parse_identifier(raw)
    if assembly_id is None:
        # Plain name inside an identifier list: never looked up by name
        token = raw.replace(GUID_PREFIX, "")
        logger.debug(f"Reference '{raw}' is not a valid identifier, using built-in '{token}'")
        return BuiltInReference(BuiltInAssembly(token))

    index = index_by_id.get(assembly_id)
    if index is None:
        return BuiltInReference(BuiltInAssembly(str(assembly_id)))
    return ResolvedReference(index)


def _resolve_by_name(raw: str, index_by_name: Dict[str, int]) -> AssemblyReference:
    index = index_by_name.get(raw)
    if index is None:
        return BuiltInReference(BuiltInAssembly(raw))
    return ResolvedReference(index)


def link_references(parsed: List["ParsedDescriptor"]) -> AssemblyGraph:
    """Build an AssemblyGraph and link every node's references.

    Args:
        parsed: De-duplicated descriptors in parse order.

    Returns:
        Graph whose nodes carry resolved references. Unresolved references
        become fresh BuiltInAssembly placeholders; self-references are dropped.
    """
    graph = AssemblyGraph([p.definition for p in parsed])

    # First match wins for duplicate names
    index_by_name: Dict[str, int] = {}
    for i, node in enumerate(graph.nodes):
        index_by_name.setdefault(node.name, i)

    for i, descriptor in enumerate(parsed):
        raw_references = descriptor.raw_references
        by_identifier = uses_identifier_references(raw_references)

        references: List[AssemblyReference] = []
        for raw in raw_references:
            if by_identifier:
                ref = _resolve_by_identifier(raw, graph.index_by_id)
            else:
                ref = _resolve_by_name(raw, index_by_name)

            if isinstance(ref, ResolvedReference) and ref.index == i:
                logger.warning(
                    f"Assembly {descriptor.definition.name} references itself; ignoring"
                )
                continue
            references.append(ref)

        graph.nodes[i].references = references

    resolved = sum(
        1 for node in graph.nodes for ref in node.references
        if isinstance(ref, ResolvedReference)
    )
    logger.info(f"Linked {len(graph)} assemblies ({resolved} local references)")
    return graph
