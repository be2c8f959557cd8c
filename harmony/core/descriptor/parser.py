"""Assembly descriptor parser.

Parsing is two-phase: every descriptor is read into a ParsedDescriptor
(definition + raw reference strings), then the linker resolves the raw
references against the whole set.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..constants import META_SUFFIX
from ..errors import DescriptorError
from .linker import link_references
from .meta_parser import MetaFileParser
from .models import AssemblyDefinition, AssemblyGraph

logger = logging.getLogger(__name__)


class AssemblyDefinitionFile(BaseModel):
    """On-disk descriptor schema. Keys are matched case-insensitively."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(..., min_length=1)
    root_namespace: str = Field("", alias="rootnamespace")
    references: List[str] = Field(default_factory=list)
    include_platforms: List[str] = Field(default_factory=list, alias="includeplatforms")
    exclude_platforms: List[str] = Field(default_factory=list, alias="excludeplatforms")
    allow_unsafe_code: bool = Field(False, alias="allowunsafecode")
    precompiled_references: List[str] = Field(default_factory=list, alias="precompiledreferences")
    define_constraints: List[str] = Field(default_factory=list, alias="defineconstraints")
    version_defines: List[Any] = Field(default_factory=list, alias="versiondefines")
    no_engine_references: bool = Field(False, alias="noenginereferences")
    auto_referenced: bool = Field(False, alias="autoreferenced")


@dataclass
class ParsedDescriptor:
    """A descriptor read from disk whose references are not yet linked."""

    definition: AssemblyDefinition
    raw_references: List[str] = field(default_factory=list)


def _lower_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    # Explicit nulls fall back to field defaults
    return {key.lower(): value for key, value in data.items() if value is not None}


class AssemblyDefinitionParser:
    """Parse assembly descriptor files into a linked AssemblyGraph."""

    def __init__(
        self,
        meta_parser: Optional[MetaFileParser] = None,
        meta_suffix: str = META_SUFFIX,
    ):
        self._meta_parser = meta_parser or MetaFileParser()
        self._meta_suffix = meta_suffix

    def parse(self, path: str) -> ParsedDescriptor:
        """Parse one descriptor and its companion meta file.

        Raises:
            FileNotFoundError: The descriptor or its meta file is missing
                (MetaFileNotFoundError for the latter).
            DescriptorError: Invalid JSON, schema violation, bad guid, or a
                file that cannot be read or decoded.
        """
        path = os.path.abspath(path)
        assembly_id = self._meta_parser.parse(f"{path}{self._meta_suffix}")

        try:
            with open(path, "r", encoding="utf-8-sig") as f:
                source_text = f.read()
        except UnicodeDecodeError as e:
            raise DescriptorError(path, f"not valid UTF-8: {e}") from e
        except FileNotFoundError:
            raise
        except OSError as e:
            raise DescriptorError(path, f"cannot read descriptor: {e}") from e

        return self.parse_source(source_text, path, assembly_id)

    def parse_source(self, source_text: str, path: str, assembly_id) -> ParsedDescriptor:
        """Parse descriptor JSON text that belongs to `path`."""
        try:
            data = json.loads(source_text)
        except json.JSONDecodeError as e:
            raise DescriptorError(path, f"invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise DescriptorError(path, "descriptor must be a JSON object")

        try:
            file = AssemblyDefinitionFile.model_validate(_lower_keys(data))
        except ValidationError as e:
            raise DescriptorError(path, f"invalid descriptor: {e}") from e

        definition = AssemblyDefinition(
            id=assembly_id,
            name=file.name,
            path_location=path,
            root_namespace=file.root_namespace,
            include_platforms=list(file.include_platforms),
            exclude_platforms=list(file.exclude_platforms),
            allow_unsafe_code=file.allow_unsafe_code,
            precompiled_references=list(file.precompiled_references),
            define_constraints=list(file.define_constraints),
            version_defines=list(file.version_defines),
            no_engine_references=file.no_engine_references,
            auto_referenced=file.auto_referenced,
        )
        return ParsedDescriptor(definition=definition, raw_references=list(file.references))

    def parse_many(self, paths: Iterable[str]) -> Tuple[List[ParsedDescriptor], List[str]]:
        """Parse descriptors, skipping ones whose files cannot be found.

        Duplicate identifiers keep the first descriptor encountered.

        Returns:
            (parsed descriptors in first-seen order, skipped paths)
        """
        by_id: Dict[Any, ParsedDescriptor] = {}
        skipped: List[str] = []

        for path in paths:
            try:
                parsed = self.parse(path)
            except FileNotFoundError as e:
                logger.warning(f"Skipping descriptor {path}: {e}")
                skipped.append(str(path))
                continue

            assembly_id = parsed.definition.id
            if assembly_id in by_id:
                logger.debug(
                    f"Duplicate assembly id {assembly_id} in {path}; "
                    f"keeping {by_id[assembly_id].definition.path_location}"
                )
                continue
            by_id[assembly_id] = parsed

        return list(by_id.values()), skipped

    def parse_all(self, paths: Iterable[str]) -> AssemblyGraph:
        """Parse and link every descriptor in `paths`."""
        parsed, _ = self.parse_many(paths)
        return link_references(parsed)
