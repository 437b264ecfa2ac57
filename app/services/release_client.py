"""Client for the upstream release host (GitHub releases API)."""
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from app.schemas.firmware import AssetDescriptor, GithubRelease, ReleaseDescriptor
from app.services.errors import UpstreamUnavailable, UpstreamUnparseable
from app.services.local_firmware import is_firmware_name

logger = logging.getLogger(__name__)


class ReleaseClient:
    def __init__(
        self,
        release_url: str,
        timeout_seconds: float = 30.0,
        user_agent: str = "tern-site",
        token: str | None = None,
        prefix: str = "tern-fw-",
        suffix: str = ".bin",
        transport: httpx.BaseTransport | None = None,
    ):
        self.release_url = release_url
        self.timeout = httpx.Timeout(timeout_seconds)
        self.user_agent = user_agent
        self.token = token
        self.prefix = prefix
        self.suffix = suffix
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            follow_redirects=True,
            transport=self.transport,
        )

    def fetch_latest(self) -> ReleaseDescriptor:
        """Fetch the latest release document. ``fetched_at`` is left for the cache to stamp.

        Raises:
            UpstreamUnavailable: transport error, timeout or non-2xx status
            UpstreamUnparseable: body is not a release document
        """
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            with self._client() as client:
                response = client.get(self.release_url, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Release request to %s failed: %s", self.release_url, exc)
            raise UpstreamUnavailable("Release host unreachable") from exc

        if not response.is_success:
            logger.warning("Release host returned %s for %s", response.status_code, self.release_url)
            raise UpstreamUnavailable(f"Release host returned {response.status_code}")

        try:
            release = GithubRelease.model_validate_json(response.content)
        except ValidationError as exc:
            logger.error("Unparseable release document from %s: %s", self.release_url, exc)
            raise UpstreamUnparseable("Release document could not be decoded") from exc

        logger.info("Fetched release %s with %d assets", release.tag_name, len(release.assets))
        return ReleaseDescriptor(tag=release.tag_name, assets=release.assets)

    def download(self, asset: AssetDescriptor) -> bytes:
        """Download the bytes of ``asset``, following redirects."""
        try:
            with self._client() as client:
                response = client.get(asset.download_url)
        except httpx.HTTPError as exc:
            logger.error("Download of %s failed: %s", asset.name, exc)
            raise UpstreamUnavailable(f"Download of {asset.name} failed") from exc

        if not response.is_success:
            logger.warning("Download of %s returned %s", asset.name, response.status_code)
            raise UpstreamUnavailable(f"Download of {asset.name} returned {response.status_code}")

        data = response.content
        logger.info("Downloaded %s (%d bytes)", asset.name, len(data))
        return data

    def select_firmware_asset(self, release: ReleaseDescriptor) -> Optional[AssetDescriptor]:
        for asset in release.assets:
            if is_firmware_name(asset.name, self.prefix, self.suffix):
                return asset
        return None
