"""Project file synthesizer: one project document per closure assembly.

Each call loads a fresh template tree, rewrites its placeholder tokens and
adds or removes the labelled ItemGroups that depend on the assembly:

    References       one entry per non-built-in reference
    Compile          precompiled binaries with absolute hint paths
    Engine Packages  engine DLLs, or removed for noEngineReferences
    FilesCompile     Compile Remove for nested assembly folders
"""

import glob
import logging
import os
import xml.etree.ElementTree as ET
from typing import List

from ..config import GenerationConfig, ReferenceMode
from ..constants import (
    ENGINE_ASSEMBLY_PATTERN,
    LABEL_COMPILE,
    LABEL_ENGINE_PACKAGES,
    LABEL_FILES_COMPILE,
    LABEL_REFERENCES,
    NUPKG_EXTENSION,
    TOKEN_EDITOR_ROOT,
    TOKEN_PACKAGE_DESTINATION,
    TOKEN_PROJECT_ROOT,
)
from ..descriptor.models import AssemblyDefinition, AssemblyGraph, BuiltInAssembly
from ..errors import TemplateStructureError
from .template import (
    find_all,
    find_labelled_group,
    load_template,
    make_element,
    remove_element,
    require_first,
    sub_element,
    write_document,
)

logger = logging.getLogger(__name__)


def _reference_name(path: str) -> str:
    return os.path.splitext(os.path.basename(path))[0]


class ProjectFileSynthesizer:
    """Build project documents from the configured template.

    Holds no per-assembly state, so one instance can serve several
    worker threads.
    """

    def __init__(self, config: GenerationConfig):
        self._config = config
        self._template_path = str(config.template_path)

    # ── Public API ──────────────────────────────────────────────────────

    def output_path(self, node: AssemblyDefinition) -> str:
        return os.path.join(node.directory, f"{node.name}.{self._config.project_extension}")

    def synthesize(self, node: AssemblyDefinition, graph: AssemblyGraph) -> ET.ElementTree:
        """Return the rewritten project document for `node`.

        Raises:
            TemplateStructureError: An element the rewrite needs is missing.
        """
        tree = load_template(self._template_path)
        root = tree.getroot()

        self._expand_hint_paths(root)

        if not node.is_user_assembly:
            require_first(root, "WarningLevel", self._template_path).text = "0"

        unsafe = require_first(root, "AllowUnsafeBlocks", self._template_path)
        unsafe.text = str(node.allow_unsafe_code).lower()

        self._expand_copy_destinations(root)

        root.append(self._build_references_group(root, node, graph))

        if node.precompiled_references:
            root.append(self._build_compile_group(root, node))

        self._apply_engine_packages(root, node)

        if node.excluded_folders:
            root.append(self._build_exclusion_group(root, node))

        return tree

    def write(self, node: AssemblyDefinition, graph: AssemblyGraph) -> str:
        """Synthesize and save `node`'s project file; return its path."""
        tree = self.synthesize(node, graph)
        path = self.output_path(node)
        write_document(tree, path)
        logger.info(f"Wrote {path}")
        return path

    def engine_assemblies(self) -> List[str]:
        """Absolute paths of the engine DLLs added to every project."""
        folder = str(self._config.engine_assemblies_dir)
        if not os.path.isdir(folder):
            logger.warning(f"Engine assemblies folder not found: {folder}")
            return []
        return sorted(
            os.path.abspath(p)
            for p in glob.glob(os.path.join(folder, ENGINE_ASSEMBLY_PATTERN))
        )

    # ── Rewrite steps ───────────────────────────────────────────────────

    def _expand_hint_paths(self, root: ET.Element) -> None:
        editor_root = str(self._config.editor_root)
        project_root = str(self._config.project_root)
        for hint_path in find_all(root, "HintPath"):
            if not hint_path.text:
                continue
            hint_path.text = (
                hint_path.text
                .replace(TOKEN_EDITOR_ROOT, editor_root)
                .replace(TOKEN_PROJECT_ROOT, project_root)
            )

    def _expand_copy_destinations(self, root: ET.Element) -> None:
        cache = str(self._config.package_cache_location)
        for copy in find_all(root, "Copy"):
            destination = copy.get("DestinationFolder")
            if destination is None:
                raise TemplateStructureError(
                    self._template_path, "DestinationFolder attribute on <Copy>"
                )
            copy.set("DestinationFolder", destination.replace(TOKEN_PACKAGE_DESTINATION, cache))

    def _build_references_group(
        self,
        root: ET.Element,
        node: AssemblyDefinition,
        graph: AssemblyGraph,
    ) -> ET.Element:
        group = make_element(root, "ItemGroup", {"Label": LABEL_REFERENCES})
        for reference in graph.references_of(node):
            if isinstance(reference, BuiltInAssembly):
                continue
            if self._config.reference_mode is ReferenceMode.PACKAGE:
                self._add_package_reference(group, reference)
            else:
                self._add_project_reference(group, reference)
        return group

    def _add_project_reference(self, group: ET.Element, reference: AssemblyDefinition) -> None:
        project_path = os.path.join(
            reference.directory, f"{reference.name}.{self._config.project_extension}"
        )
        sub_element(group, "ProjectReference", {"Include": project_path})

    def _add_package_reference(self, group: ET.Element, reference: AssemblyDefinition) -> None:
        element = sub_element(group, "PackageReference", {"Include": reference.name})
        nupkg = os.path.join(str(self._config.package_cache_location), reference.name) + NUPKG_EXTENSION
        sub_element(element, "Source", text=nupkg)

    def _build_compile_group(self, root: ET.Element, node: AssemblyDefinition) -> ET.Element:
        group = make_element(root, "ItemGroup", {"Label": LABEL_COMPILE})
        for path in node.precompiled_references:
            reference = sub_element(group, "Reference", {"Include": _reference_name(path)})
            sub_element(reference, "HintPath", text=path)
        return group

    def _apply_engine_packages(self, root: ET.Element, node: AssemblyDefinition) -> None:
        group = find_labelled_group(root, LABEL_ENGINE_PACKAGES)
        if group is None:
            raise TemplateStructureError(
                self._template_path, f'<ItemGroup Label="{LABEL_ENGINE_PACKAGES}">'
            )

        if node.no_engine_references:
            remove_element(root, group)
            return

        for dll in self.engine_assemblies():
            reference = sub_element(group, "Reference", {"Include": _reference_name(dll)})
            sub_element(reference, "HintPath", text=dll)

    def _build_exclusion_group(self, root: ET.Element, node: AssemblyDefinition) -> ET.Element:
        group = make_element(root, "ItemGroup", {"Label": LABEL_FILES_COMPILE})
        excluded = ";".join(f"{folder}/**/*" for folder in node.excluded_folders)
        sub_element(group, "Compile", {"Remove": excluded})
        return group
