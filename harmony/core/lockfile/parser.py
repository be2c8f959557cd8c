"""Lockfile parser.

The lockfile is a flat table: every package appears once at the top level
and nested `dependencies` only list names (their version strings are
ignored). The tree is materialized by re-resolving those names against the
flat table, so the same package can appear under several parents.
"""

import json
import logging
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import LockfileError
from .models import PackageDependencies, PackageDependency

logger = logging.getLogger(__name__)


class PackageLockDependency(BaseModel):
    model_config = ConfigDict(extra="ignore")

    version: str
    source: str
    depth: int
    dependencies: Dict[str, str] = Field(default_factory=dict)
    url: Optional[str] = None


class PackageLockFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    dependencies: Dict[str, PackageLockDependency]


def _lower_keys(value):
    # Property names are matched case-insensitively; package names are not
    if isinstance(value, dict):
        return {k.lower(): v for k, v in value.items()}
    return value


def _normalize(data: dict) -> dict:
    data = _lower_keys(data)
    table = data.get("dependencies")
    if isinstance(table, dict):
        data["dependencies"] = {name: _lower_keys(entry) for name, entry in table.items()}
    return data


class PackageFileParser:
    """Parse a lockfile into a PackageDependencies forest."""

    def parse(self, path: str) -> PackageDependencies:
        try:
            with open(path, "r", encoding="utf-8-sig") as f:
                text = f.read()
        except OSError as e:
            raise LockfileError(path, f"cannot read lockfile: {e}") from e
        except UnicodeDecodeError as e:
            raise LockfileError(path, f"not valid UTF-8: {e}") from e
        return self.parse_text(text, path)

    def parse_text(self, text: str, path: str = "<lockfile>") -> PackageDependencies:
        """Parse lockfile JSON.

        Raises:
            LockfileError: Invalid JSON, schema violation, or a nested
                dependency name missing from the flat table.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise LockfileError(path, f"invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise LockfileError(path, "lockfile must be a JSON object")

        try:
            lock = PackageLockFile.model_validate(_normalize(data))
        except ValidationError as e:
            raise LockfileError(path, f"invalid lockfile: {e}") from e

        table = lock.dependencies
        roots = [
            self._materialize(name, table, frozenset(), path)
            for name in table
        ]

        logger.info(f"Parsed {len(roots)} packages from {path}")
        return PackageDependencies(registry_dependencies=roots)

    def _materialize(
        self,
        name: str,
        table: Dict[str, PackageLockDependency],
        ancestors: FrozenSet[str],
        path: str,
    ) -> PackageDependency:
        entry = table.get(name)
        if entry is None:
            raise LockfileError(path, f"dependency '{name}' is not listed in the lockfile")

        ancestors = ancestors | {name}
        children: List[PackageDependency] = []
        for child_name in entry.dependencies:
            if child_name in ancestors:
                logger.warning(f"Dependency cycle in {path}: {name} -> {child_name}; edge dropped")
                continue
            children.append(self._materialize(child_name, table, ancestors, path))

        return PackageDependency(
            name=name,
            version=entry.version,
            source=entry.source,
            depth=entry.depth,
            dependencies=children,
            url=entry.url,
        )
