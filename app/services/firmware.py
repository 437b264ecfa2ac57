"""Resolution of the latest firmware: local override, cache or upstream."""
import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from app.schemas.firmware import AssetDescriptor, FirmwareRecord, ReleaseDescriptor
from app.services.cache_store import CacheStore
from app.services.errors import AssetNotFound
from app.services.firmware_cache import FirmwareBinaryCache
from app.services.local_firmware import LocalFirmwareCandidate, LocalOverrideScanner
from app.services.release_cache import ReleaseMetadataCache
from app.services.release_client import ReleaseClient

logger = logging.getLogger(__name__)


class FirmwareSource(str, enum.Enum):
    local = "local"
    cache = "cache"
    download = "download"


@dataclass(frozen=True)
class FirmwareDescription:
    tag: str
    asset_name: str
    size: int
    download_path: str


@dataclass(frozen=True)
class FirmwareBinary:
    """Firmware bytes ready to serve.

    ``cache_error`` is set when the bytes were downloaded but could not be
    stored; the request itself still succeeded.
    """

    filename: str
    data: bytes
    tag: str
    source: FirmwareSource
    cache_error: Optional[str] = None


class FirmwareResolver:
    def __init__(
        self,
        store: CacheStore,
        release_cache: ReleaseMetadataCache,
        firmware_cache: FirmwareBinaryCache,
        scanner: LocalOverrideScanner,
        client: ReleaseClient,
        download_path: str = "/api/firmware/app",
    ):
        self.store = store
        self.release_cache = release_cache
        self.firmware_cache = firmware_cache
        self.scanner = scanner
        self.client = client
        self.download_path = download_path

    def describe_latest(self) -> FirmwareDescription:
        """Describe the firmware that ``fetch_latest_binary`` would serve.

        Raises:
            UpstreamUnavailable, UpstreamUnparseable: release lookup failed
            AssetNotFound: the release has no firmware asset
        """
        local = self.find_override()
        if local is not None:
            return FirmwareDescription(
                tag=local.tag,
                asset_name=local.asset_name,
                size=local.size,
                download_path=self.download_path,
            )

        release, asset = self.resolve_release_asset()
        return FirmwareDescription(
            tag=release.tag,
            asset_name=asset.name,
            size=asset.size,
            download_path=self.download_path,
        )

    def fetch_latest_binary(self) -> FirmwareBinary:
        """Return the firmware bytes, downloading them when no usable copy exists."""
        local = self.find_override()
        if local is not None:
            try:
                data = Path(local.file_path).read_bytes()
            except OSError as exc:
                logger.warning(f"Local firmware {local.file_path} unreadable, falling back: {exc}")
            else:
                return FirmwareBinary(
                    filename=local.asset_name,
                    data=data,
                    tag=local.tag,
                    source=FirmwareSource.local,
                )

        release, asset = self.resolve_release_asset()

        cached = self.firmware_cache.read_matching(release.tag, asset.name)
        if cached is not None:
            logger.debug(f"Serving cached firmware {asset.name}")
            return FirmwareBinary(
                filename=asset.name,
                data=cached,
                tag=release.tag,
                source=FirmwareSource.cache,
            )

        data = self.client.download(asset)
        cache_error = self._store_download(release, asset, data)
        return FirmwareBinary(
            filename=asset.name,
            data=data,
            tag=release.tag,
            source=FirmwareSource.download,
            cache_error=cache_error,
        )

    def find_override(self) -> Optional[LocalFirmwareCandidate]:
        # Our own downloads share the naming convention; they are not overrides
        # unless someone replaced them after we wrote them.
        return self.scanner.scan(exclude=self.store.downloaded_paths())

    def resolve_release(self) -> ReleaseDescriptor:
        release = self.release_cache.get_fresh()
        if release is not None:
            logger.debug(f"Release cache hit for {release.tag}")
            return release
        return self.release_cache.put(self.client.fetch_latest())

    def resolve_release_asset(self) -> tuple[ReleaseDescriptor, AssetDescriptor]:
        release = self.resolve_release()
        asset = self.client.select_firmware_asset(release)
        if asset is None:
            logger.warning(f"Release {release.tag} has no firmware asset")
            raise AssetNotFound(f"No firmware asset in release {release.tag}")
        return release, asset

    def _store_download(
        self,
        release: ReleaseDescriptor,
        asset: AssetDescriptor,
        data: bytes,
    ) -> Optional[str]:
        if len(data) != asset.size:
            logger.warning(
                f"Downloaded {asset.name} is {len(data)} bytes, release lists {asset.size}"
            )

        path = self.store.write_download(asset.name, data)
        if path is None:
            return f"could not store {asset.name}"

        record = FirmwareRecord(
            tag=release.tag,
            asset_name=asset.name,
            size=len(data),
            downloaded_at=self.release_cache.now(),
            file_path=str(path),
        )
        if not self.firmware_cache.put(record):
            self.store.forget_download(path)
            return f"could not record {asset.name}"

        self.store.sweep_downloads(keep=path)
        return None
