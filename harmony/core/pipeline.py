"""Project generation pipeline.

Orchestrates: discover → parse → link → seed → closure → prepare → synthesize.

Per-assembly failures (unresolvable precompiled references, malformed
template) are collected in GenerationResult.errors and the remaining
assemblies still get their project files. Config, lockfile and template
problems abort the run.
"""

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import GenerationConfig
from .descriptor import AssemblyDefinitionParser, AssemblyGraph, find_descriptors, link_references
from .descriptor.models import AssemblyDefinition
from .errors import ConfigError, HarmonyError
from .graph import build_closure, seed_user_assemblies
from .lockfile import PackageDependencies, PackageFileParser
from .packages import DownloadResult, PackageSourceDownloader
from .references import assign_excluded_folders, expand_precompiled_references
from .synthesis import ProjectFileSynthesizer

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    """Summary of a project generation run."""

    assemblies: int = 0
    written: List[str] = field(default_factory=list)
    skipped_descriptors: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    packages: Optional[PackageDependencies] = None
    downloads: Optional[DownloadResult] = None
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.errors


class ProjectGenerationService:
    """Generate project files for every assembly the user's code needs."""

    def __init__(
        self,
        config: GenerationConfig,
        descriptor_parser: Optional[AssemblyDefinitionParser] = None,
        lockfile_parser: Optional[PackageFileParser] = None,
        synthesizer: Optional[ProjectFileSynthesizer] = None,
        downloader: Optional[PackageSourceDownloader] = None,
    ):
        self._config = config
        self._descriptor_parser = descriptor_parser or AssemblyDefinitionParser(
            meta_suffix=config.meta_suffix
        )
        self._lockfile_parser = lockfile_parser or PackageFileParser()
        self._synthesizer = synthesizer or ProjectFileSynthesizer(config)
        self._downloader = downloader or PackageSourceDownloader(config)

    # ── Stages ──────────────────────────────────────────────────────────

    def discover(self) -> List[str]:
        paths = find_descriptors(str(self._config.project_root), self._config.descriptor_pattern)
        logger.info(f"Found {len(paths)} descriptors under {self._config.project_root}")
        return paths

    def build_graph(self, paths: Iterable[str]) -> Tuple[AssemblyGraph, List[str]]:
        """Parse and link descriptors. Returns (graph, skipped paths)."""
        parsed, skipped = self._descriptor_parser.parse_many(paths)
        return link_references(parsed), skipped

    def prepare(self, node: AssemblyDefinition) -> None:
        """Set exclusion folders and expand precompiled references."""
        assign_excluded_folders(node, self._config.descriptor_pattern)
        expand_precompiled_references(node, str(self._config.precompiled_search_root))

    def parse_lockfile(self, path: str) -> PackageDependencies:
        return self._lockfile_parser.parse(os.path.abspath(path))

    def download_sources(self, packages: PackageDependencies) -> DownloadResult:
        return self._downloader.download_all(packages.compilable())

    # ── Entry points ────────────────────────────────────────────────────

    def generate(
        self,
        descriptor_paths: Optional[Sequence[str]] = None,
        user_assemblies: Iterable[str] = (),
    ) -> GenerationResult:
        """Generate project files for the closure of the user assemblies.

        Args:
            descriptor_paths: Descriptors to load. Defaults to every
                descriptor under the project root.
            user_assemblies: Extra assembly names treated as user-owned.

        Raises:
            ConfigError: The template file does not exist.
        """
        start = time.time()
        result = GenerationResult()

        if not os.path.isfile(self._config.template_path):
            raise ConfigError(f"Project template not found: {self._config.template_path}")

        if descriptor_paths is None:
            descriptor_paths = self.discover()

        graph, result.skipped_descriptors = self.build_graph(descriptor_paths)
        seeds = seed_user_assemblies(
            graph,
            roots=[str(r) for r in self._config.user_assembly_roots],
            names=user_assemblies,
        )
        closure = build_closure(graph, seeds)
        result.assemblies = len(closure)

        with ThreadPoolExecutor(max_workers=self._config.max_workers) as pool:
            outcomes = list(pool.map(lambda node: self._generate_one(node, graph), closure))

        for path, error in outcomes:
            if error:
                result.errors.append(error)
            else:
                result.written.append(path)

        result.elapsed_seconds = time.time() - start
        self._log_result(result)
        return result

    def run(
        self,
        lockfile_path: Optional[str] = None,
        download_sources: bool = False,
        descriptor_paths: Optional[Sequence[str]] = None,
        user_assemblies: Iterable[str] = (),
    ) -> GenerationResult:
        """Parse the lockfile, optionally download sources, and generate.

        Downloads run in the background while the assembly graph is
        resolved and synthesized.
        """
        packages = self.parse_lockfile(lockfile_path) if lockfile_path else None

        if packages is None or not download_sources:
            result = self.generate(descriptor_paths, user_assemblies)
            result.packages = packages
            return result

        with ThreadPoolExecutor(max_workers=1) as background:
            future = background.submit(self.download_sources, packages)
            result = self.generate(descriptor_paths, user_assemblies)
            result.downloads = future.result()

        result.packages = packages
        return result

    # ── Helpers ─────────────────────────────────────────────────────────

    def _generate_one(
        self, node: AssemblyDefinition, graph: AssemblyGraph
    ) -> Tuple[Optional[str], Optional[str]]:
        try:
            self.prepare(node)
            return self._synthesizer.write(node, graph), None
        except (HarmonyError, OSError) as e:
            message = f"{node.name} ({node.path_location}): {e}"
            logger.error(f"Project generation failed for {message}")
            return None, message

    def _log_result(self, result: GenerationResult) -> None:
        logger.info(
            f"Generation complete: {len(result.written)}/{result.assemblies} project files written, "
            f"{len(result.skipped_descriptors)} descriptors skipped, "
            f"{len(result.errors)} errors, {result.elapsed_seconds:.1f}s"
        )
