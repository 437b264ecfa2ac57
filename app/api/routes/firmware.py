"""Firmware metadata and download routes."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from app.api.deps import get_firmware_resolver
from app.api.responses import attachment_response, header_value
from app.schemas.firmware import FirmwareLatestResponse
from app.services.errors import AssetNotFound, UpstreamUnavailable, UpstreamUnparseable
from app.services.firmware import FirmwareResolver

router = APIRouter(prefix="/api/firmware", tags=["firmware"])

logger = logging.getLogger(__name__)


def _resolver_error(exc: Exception) -> HTTPException:
    if isinstance(exc, AssetNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Firmware asset not found")
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Release host unavailable")


@router.get("/latest", response_model=FirmwareLatestResponse)
def firmware_latest(resolver: FirmwareResolver = Depends(get_firmware_resolver)) -> FirmwareLatestResponse:
    """Describe the latest firmware without transferring it."""
    try:
        latest = resolver.describe_latest()
    except (AssetNotFound, UpstreamUnavailable, UpstreamUnparseable) as exc:
        raise _resolver_error(exc)

    return FirmwareLatestResponse(
        tag=latest.tag,
        asset_name=latest.asset_name,
        size=latest.size,
        download_path=latest.download_path,
    )


@router.get("/app")
def firmware_app(resolver: FirmwareResolver = Depends(get_firmware_resolver)) -> Response:
    """Download the latest application firmware binary."""
    try:
        firmware = resolver.fetch_latest_binary()
    except (AssetNotFound, UpstreamUnavailable, UpstreamUnparseable) as exc:
        raise _resolver_error(exc)

    if firmware.cache_error:
        logger.warning(f"Serving {firmware.filename} uncached: {firmware.cache_error}")

    return attachment_response(
        firmware.data,
        firmware.filename,
        headers={
            "X-Firmware-Tag": header_value(firmware.tag),
            "X-Firmware-Source": firmware.source.value,
        },
    )
