import httpx
import pytest

from app.schemas.firmware import AssetDescriptor, ReleaseDescriptor
from app.services.errors import UpstreamUnavailable, UpstreamUnparseable
from app.services.release_client import ReleaseClient

from conftest import RELEASE_URL, release_payload


def _client(upstream, **kwargs) -> ReleaseClient:
    return ReleaseClient(RELEASE_URL, transport=upstream.transport(), **kwargs)


def test_fetch_latest_parses_release(upstream):
    upstream.release = release_payload("v1.2.0", ("tern-fw-v1.2.0.bin", 524288))

    release = _client(upstream).fetch_latest()

    assert release.tag == "v1.2.0"
    assert release.assets == [
        AssetDescriptor(name="tern-fw-v1.2.0.bin", download_url="https://x/tern-fw-v1.2.0.bin", size=524288)
    ]


def test_fetch_latest_sends_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.headers)
        return httpx.Response(200, json=release_payload("v1"))

    client = ReleaseClient(
        RELEASE_URL,
        user_agent="tern-test",
        token="secret",
        transport=httpx.MockTransport(handler),
    )
    client.fetch_latest()

    assert seen["user-agent"] == "tern-test"
    assert seen["authorization"] == "Bearer secret"
    assert seen["accept"] == "application/vnd.github+json"


def test_non_success_status_is_unavailable(upstream):
    upstream.release = release_payload("v1")
    upstream.release_status = 503

    with pytest.raises(UpstreamUnavailable):
        _client(upstream).fetch_latest()


def test_transport_error_is_unavailable(upstream):
    upstream.fail_with = httpx.ConnectError("connection refused")

    with pytest.raises(UpstreamUnavailable):
        _client(upstream).fetch_latest()


def test_timeout_is_unavailable(upstream):
    upstream.fail_with = httpx.ReadTimeout("too slow")

    with pytest.raises(UpstreamUnavailable):
        _client(upstream).fetch_latest()


def test_invalid_json_is_unparseable(upstream):
    upstream.release_body = b"<html>rate limited</html>"

    with pytest.raises(UpstreamUnparseable):
        _client(upstream).fetch_latest()


def test_wrong_shape_is_unparseable(upstream):
    upstream.release = {"name": "no tag here", "assets": [{"name": "x"}]}

    with pytest.raises(UpstreamUnparseable):
        _client(upstream).fetch_latest()


def test_download_returns_bytes(upstream):
    upstream.files["https://x/tern-fw-v1.bin"] = b"\xaa" * 32
    asset = AssetDescriptor(name="tern-fw-v1.bin", download_url="https://x/tern-fw-v1.bin", size=32)

    assert _client(upstream).download(asset) == b"\xaa" * 32


def test_download_follows_redirects():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "github.example":
            return httpx.Response(302, headers={"Location": "https://objects.example/fw.bin"})
        return httpx.Response(200, content=b"firmware")

    client = ReleaseClient(RELEASE_URL, transport=httpx.MockTransport(handler))
    asset = AssetDescriptor(name="tern-fw-v1.bin", download_url="https://github.example/fw.bin", size=8)

    assert client.download(asset) == b"firmware"


def test_download_failure_is_unavailable(upstream):
    asset = AssetDescriptor(name="tern-fw-v1.bin", download_url="https://x/missing.bin", size=1)

    with pytest.raises(UpstreamUnavailable):
        _client(upstream).download(asset)


def test_select_firmware_asset_picks_first_match(upstream):
    release = ReleaseDescriptor(
        tag="v1",
        assets=[
            AssetDescriptor(name="tern-full-merged-v1.bin", download_url="https://x/a", size=1),
            AssetDescriptor(name="tern-fw-v1.bin", download_url="https://x/b", size=2),
            AssetDescriptor(name="tern-fw-v1-debug.bin", download_url="https://x/c", size=3),
        ],
    )

    assert _client(upstream).select_firmware_asset(release).download_url == "https://x/b"


def test_select_firmware_asset_none_matching(upstream):
    release = ReleaseDescriptor(
        tag="v1",
        assets=[AssetDescriptor(name="source.zip", download_url="https://x/a", size=1)],
    )

    assert _client(upstream).select_firmware_asset(release) is None
