"""Release download locations."""

from dataclasses import dataclass
from typing import Optional

from .config import (
    DEFAULT_RELEASE_HOST,
    GITHUB_DOWNLOAD_URL,
    GITHUB_SERVICE_FILE_FORMAT,
    REGION_EN,
)


@dataclass(frozen=True)
class ResolvedURLs:
    """Templates for the release tarball and the systemd unit file."""

    download_base: str
    service_file_format: str

    def tarball_url(self, version: str, filename: str) -> str:
        return f"{self.download_base}/v{version}/{filename}"

    def service_file_url(self, version: str, filename: str) -> str:
        return self.service_file_format.format(version=version, filename=filename)


def _from_host(host: str) -> ResolvedURLs:
    host = host.rstrip("/")
    return ResolvedURLs(
        download_base=f"{host}/releases/download",
        service_file_format=f"{host}/releases/service/{{version}}/{{filename}}",
    )


DEFAULT_URLS = _from_host(DEFAULT_RELEASE_HOST)


def resolve_urls(custom_url: Optional[str] = None, region: Optional[str] = None) -> ResolvedURLs:
    """Resolve where releases are fetched from.

    A custom download URL replaces the built-in host; the ``en`` region
    always points at GitHub, even when a custom URL was given.
    """
    urls = DEFAULT_URLS
    if custom_url:
        urls = _from_host(custom_url)
    if region == REGION_EN:
        urls = ResolvedURLs(
            download_base=GITHUB_DOWNLOAD_URL,
            service_file_format=GITHUB_SERVICE_FILE_FORMAT,
        )
    return urls
