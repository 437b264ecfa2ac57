"""Image and book conversion routes."""
import logging
import tempfile
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from app.api.deps import get_book_converter, get_image_converter
from app.api.responses import attachment_response
from app.config import Settings, get_settings
from app.services.convert import (
    BookConverter,
    ConversionError,
    ConversionInputError,
    FontPaths,
    ImageConverter,
    build_image_options,
    parse_sizes,
    resolve_font_paths,
    sanitize_filename,
)

router = APIRouter(prefix="/api/convert", tags=["convert"])

logger = logging.getLogger(__name__)


def _write_image_artifact(converter: ImageConverter, artifact) -> bytes:
    with tempfile.TemporaryDirectory(prefix="tern-tri-") as workdir:
        target = Path(workdir) / "converted.tri"
        converter.write_artifact(target, artifact)
        return target.read_bytes()


def _convert_book(converter: BookConverter, epub_bytes: bytes, sizes: list[int], fonts: FontPaths) -> bytes:
    with tempfile.TemporaryDirectory(prefix="tern-book-") as workdir:
        source = Path(workdir) / "input.epub"
        target = Path(workdir) / "converted.trbk"
        source.write_bytes(epub_bytes)
        converter.convert(source, target, sizes, fonts)
        return target.read_bytes()


async def _read_upload(file: UploadFile) -> bytes:
    try:
        return await file.read()
    except Exception as e:
        logger.error(f"Error reading upload {file.filename}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Could not read upload")


@router.post("/image")
async def convert_image(
    file: UploadFile = File(...),
    region: str = Form("auto"),
    fit: str = Form("width"),
    dither: str = Form("bayer"),
    invert: bool = Form(False),
    trimg_version: int = Form(2),
    output_name: str | None = Form(None),
    converter: ImageConverter = Depends(get_image_converter),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Convert an uploaded image into a device bitmap (.tri)."""
    data = await _read_upload(file)
    options = build_image_options(fit, dither, region, invert, trimg_version, settings.models_dir)

    try:
        artifact = await run_in_threadpool(converter.convert, data, options)
    except ConversionInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ConversionError as e:
        logger.error(f"Image conversion failed: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Image converter failed")

    try:
        payload = await run_in_threadpool(_write_image_artifact, converter, artifact)
    except (ConversionError, OSError) as e:
        logger.error(f"Could not write image artifact: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Could not write output")

    return attachment_response(payload, sanitize_filename(output_name, "converted.tri"))


@router.post("/book")
async def convert_book(
    file: UploadFile = File(...),
    sizes: str = Form("24"),
    font: str = Form("bookerly"),
    output_name: str | None = Form(None),
    converter: BookConverter = Depends(get_book_converter),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Convert an uploaded EPUB into the device book format (.trbk)."""
    epub_bytes = await _read_upload(file)

    font_paths = resolve_font_paths(font, settings.fonts_dir)
    if font_paths is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Font {font!r} not available")

    try:
        payload = await run_in_threadpool(_convert_book, converter, epub_bytes, parse_sizes(sizes), font_paths)
    except (ConversionError, ConversionInputError, OSError) as e:
        logger.error(f"Book conversion failed: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Book could not be converted")

    return attachment_response(payload, sanitize_filename(output_name, "converted.trbk"))
