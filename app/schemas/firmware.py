"""Pydantic schemas for firmware metadata and endpoints."""
from pydantic import BaseModel, ConfigDict, Field


class AssetDescriptor(BaseModel):
    """Single downloadable file attached to a release, as published upstream."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    download_url: str = Field(..., alias="browser_download_url")
    size: int = Field(..., ge=0)


class ReleaseDescriptor(BaseModel):
    """Last known state of the upstream latest release."""

    model_config = ConfigDict(populate_by_name=True)

    tag: str = Field(..., alias="tag_name")
    assets: list[AssetDescriptor] = Field(default_factory=list)
    fetched_at: int = 0  # unix seconds


class FirmwareRecord(BaseModel):
    """Memo of the firmware binary this service downloaded and stored."""

    tag: str
    asset_name: str
    size: int = Field(..., ge=0)
    downloaded_at: int
    file_path: str


# Upstream API payload
class GithubRelease(BaseModel):
    tag_name: str
    assets: list[AssetDescriptor]


class FirmwareLatestResponse(BaseModel):
    tag: str
    asset_name: str
    size: int
    download_path: str


class InfoResponse(BaseModel):
    name: str
    version: str
    device: str
    firmware_images: list[str]
