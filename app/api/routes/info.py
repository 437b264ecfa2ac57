from fastapi import APIRouter, Depends

from app.config import Settings, get_settings
from app.schemas import InfoResponse

router = APIRouter(prefix="/api", tags=["info"])

FIRMWARE_IMAGES = ["application", "full-merged"]


@router.get("/info", response_model=InfoResponse)
def info(settings: Settings = Depends(get_settings)) -> InfoResponse:
    return InfoResponse(
        name=settings.app_name,
        version=settings.service_version,
        device=settings.device_name,
        firmware_images=FIRMWARE_IMAGES,
    )
