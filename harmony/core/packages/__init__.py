"""Registry package source downloads."""

from .downloader import DownloadResult, PackageSourceDownloader

__all__ = ["DownloadResult", "PackageSourceDownloader"]
