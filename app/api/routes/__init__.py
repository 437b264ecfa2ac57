from app.api.routes.convert import router as convert_router
from app.api.routes.firmware import router as firmware_router
from app.api.routes.info import router as info_router

__all__ = ["convert_router", "firmware_router", "info_router"]
