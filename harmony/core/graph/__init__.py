"""Reference graph traversal.

Public API:
    seed_user_assemblies(graph, roots, names) → List[int]
    build_closure(graph, seeds) → List[AssemblyDefinition]
"""

from .closure import build_closure, seed_user_assemblies

__all__ = ["build_closure", "seed_user_assemblies"]
