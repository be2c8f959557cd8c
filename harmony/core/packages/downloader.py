"""Package source downloader.

Fetches registry packages' source archives from a mirror and extracts
them into `<project root>/<name>-<version>`. A package whose folder
already exists is not downloaded again. A failed download is logged and
skipped without affecting the others.
"""

import logging
import os
import shutil
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import httpx

from ..config import GenerationConfig
from ..constants import SOURCE_REGISTRY
from ..lockfile.models import PackageDependency

logger = logging.getLogger(__name__)

STATUS_DOWNLOADED = "downloaded"
STATUS_PRESENT = "present"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass
class DownloadResult:
    """Summary of a batch of source downloads (folder names per outcome)."""

    downloaded: List[str] = field(default_factory=list)
    present: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def available(self) -> List[str]:
        """Package folders that exist on disk after the batch."""
        return self.present + self.downloaded


class PackageSourceDownloader:
    """Download and unpack registry package sources."""

    def __init__(self, config: GenerationConfig, client: Optional[httpx.Client] = None):
        self._config = config
        self._client = client

    def target_folder(self, dependency: PackageDependency) -> str:
        return os.path.join(str(self._config.project_root), dependency.folder_name)

    def download(self, dependency: PackageDependency) -> str:
        """Fetch one package. Returns one of the STATUS_* values."""
        if dependency.source != SOURCE_REGISTRY:
            logger.info(f"Skipping {dependency.name} because it's not from the registry")
            return STATUS_SKIPPED

        target = self.target_folder(dependency)
        if os.path.isdir(target):
            logger.info(f"Skipping {dependency.name} because it's already been downloaded")
            return STATUS_PRESENT

        url = self._config.mirror_url(dependency.name, dependency.version)
        zip_path = f"{target}.zip"
        staging = f"{target}.partial"

        try:
            response = self._get(url)
            if not response.is_success:
                logger.warning(
                    f"Failed to download source code for {dependency.name} "
                    f"({response.status_code} from {url})"
                )
                return STATUS_FAILED

            with open(zip_path, "wb") as f:
                f.write(response.content)

            # The target folder only appears once extraction has completed
            with zipfile.ZipFile(zip_path, "r") as zf:
                zf.extractall(staging)
            os.rename(staging, target)

        except httpx.HTTPError as e:
            logger.warning(f"Failed to download source code for {dependency.name}: {e}")
            return STATUS_FAILED
        except zipfile.BadZipFile:
            logger.warning(f"Downloaded archive for {dependency.name} is not a valid zip file")
            return STATUS_FAILED
        except OSError as e:
            logger.warning(f"Failed to unpack source code for {dependency.name}: {e}")
            return STATUS_FAILED
        finally:
            if os.path.exists(zip_path):
                os.remove(zip_path)
            if os.path.isdir(staging):
                shutil.rmtree(staging, ignore_errors=True)

        logger.info(f"Downloaded {dependency.name} {dependency.version} to {target}")
        return STATUS_DOWNLOADED

    def download_all(self, dependencies: Iterable[PackageDependency]) -> DownloadResult:
        """Download packages concurrently, once per distinct dependency."""
        unique: List[PackageDependency] = []
        seen = set()
        for dep in dependencies:
            if dep not in seen:
                seen.add(dep)
                unique.append(dep)

        result = DownloadResult()
        if not unique:
            return result

        with ThreadPoolExecutor(max_workers=self._config.max_workers) as pool:
            statuses = list(pool.map(self.download, unique))

        for dep, status in zip(unique, statuses):
            getattr(result, status).append(dep.folder_name)

        logger.info(
            f"Package sources: {len(result.downloaded)} downloaded, "
            f"{len(result.present)} present, {len(result.skipped)} skipped, "
            f"{len(result.failed)} failed"
        )
        return result

    def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return self._client.get(url)
        with httpx.Client(timeout=self._config.download_timeout, follow_redirects=True) as client:
            return client.get(url)
