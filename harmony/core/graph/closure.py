"""Closure builder: the set of assemblies that must get a project file.

Breadth-first traversal from the user-owned assemblies over resolved
references. Nodes are tracked by arena index, so each local assembly is
visited once even when the graph has cycles. Built-in placeholders end
traversal and never appear in the result.
"""

import logging
import os
from collections import deque
from typing import Deque, Iterable, List, Set

from ..descriptor.models import AssemblyDefinition, AssemblyGraph, ResolvedReference

logger = logging.getLogger(__name__)


def _is_under(path: str, root: str) -> bool:
    path = os.path.normcase(os.path.abspath(path))
    root = os.path.normcase(os.path.abspath(root))
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:
        # Different drives
        return False


def seed_user_assemblies(
    graph: AssemblyGraph,
    roots: Iterable[str] = (),
    names: Iterable[str] = (),
) -> List[int]:
    """Mark user-owned assemblies and return their indices.

    An assembly is user-owned when its descriptor lives under one of
    `roots` or its name is listed in `names`.
    """
    roots = [str(r) for r in roots]
    wanted = set(names)
    seeds: List[int] = []

    for i, node in enumerate(graph.nodes):
        if node.name in wanted or any(_is_under(node.path_location, r) for r in roots):
            node.is_user_assembly = True
            seeds.append(i)

    missing = wanted - {graph.nodes[i].name for i in seeds}
    for name in sorted(missing):
        logger.warning(f"Requested user assembly '{name}' was not found")

    logger.info(f"Seeded {len(seeds)} user assemblies")
    return seeds


def build_closure(graph: AssemblyGraph, seeds: Iterable[int]) -> List[AssemblyDefinition]:
    """Return every assembly reachable from `seeds`, seeds included.

    Order is BFS insertion order; each node appears exactly once.
    """
    visited: Set[int] = set()
    order: List[int] = []
    queue: Deque[int] = deque()

    for index in seeds:
        if index not in visited:
            visited.add(index)
            order.append(index)
            queue.append(index)

    while queue:
        current = graph.nodes[queue.popleft()]
        for ref in current.references:
            if not isinstance(ref, ResolvedReference):
                continue
            if ref.index in visited:
                continue
            visited.add(ref.index)
            order.append(ref.index)
            queue.append(ref.index)

    logger.info(f"Closure contains {len(order)} assemblies")
    return [graph.nodes[i] for i in order]
