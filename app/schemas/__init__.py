from app.schemas.firmware import (
    AssetDescriptor,
    FirmwareLatestResponse,
    FirmwareRecord,
    GithubRelease,
    InfoResponse,
    ReleaseDescriptor,
)

__all__ = [
    "AssetDescriptor",
    "ReleaseDescriptor",
    "FirmwareRecord",
    "GithubRelease",
    "FirmwareLatestResponse",
    "InfoResponse",
]
