import json
import os

import httpx
import pytest

from app.services.cache_store import CacheStore
from app.services.firmware import FirmwareResolver
from app.services.firmware_cache import FirmwareBinaryCache
from app.services.local_firmware import LocalOverrideScanner
from app.services.release_cache import ReleaseMetadataCache
from app.services.release_client import ReleaseClient

RELEASE_URL = "https://api.example.test/repos/azw413/TernReader/releases/latest"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """Release host double behind ``httpx.MockTransport``."""

    def __init__(self, release: dict | None = None, files: dict[str, bytes] | None = None):
        self.release = release
        self.files = files or {}
        self.release_status = 200
        self.release_body: bytes | None = None
        self.release_calls = 0
        self.download_calls = 0
        self.fail_with: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.fail_with is not None:
            raise self.fail_with
        if str(request.url) == RELEASE_URL:
            self.release_calls += 1
            if self.release_body is not None:
                return httpx.Response(self.release_status, content=self.release_body)
            return httpx.Response(self.release_status, content=json.dumps(self.release).encode())
        self.download_calls += 1
        data = self.files.get(str(request.url))
        if data is None:
            return httpx.Response(404)
        return httpx.Response(200, content=data)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def release_payload(tag: str, *assets: tuple[str, int]) -> dict:
    return {
        "tag_name": tag,
        "assets": [
            {"name": name, "browser_download_url": f"https://x/{name}", "size": size}
            for name, size in assets
        ],
    }


def write_override(cache_dir, name: str, data: bytes, mtime: float | None = None):
    cache_dir.mkdir(parents=True, exist_ok=True)
    path = cache_dir / name
    path.write_bytes(data)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def make_resolver(cache_dir, clock, upstream):
    def _make(**overrides) -> FirmwareResolver:
        store = CacheStore(cache_dir)
        parts = {
            "store": store,
            "release_cache": ReleaseMetadataCache(store, ttl_seconds=600, clock=clock),
            "firmware_cache": FirmwareBinaryCache(store),
            "scanner": LocalOverrideScanner(cache_dir),
            "client": ReleaseClient(RELEASE_URL, timeout_seconds=5, transport=upstream.transport()),
        }
        parts.update(overrides)
        return FirmwareResolver(**parts)

    return _make
