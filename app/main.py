import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.api.routes import convert_router, firmware_router, info_router
from app.config import get_settings

settings = get_settings()

logging.basicConfig(level=settings.log_level)

app = FastAPI(title=settings.app_name, version=settings.service_version)

app.include_router(info_router)
app.include_router(firmware_router)
app.include_router(convert_router)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


# Mounted last so the API routes take precedence.
if Path(settings.static_dir).is_dir():
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
