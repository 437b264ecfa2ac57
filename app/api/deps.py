from fastapi import Depends

from app.config import Settings, get_settings
from app.services.cache_store import CacheStore
from app.services.convert import BookConverter, CommandBookConverter, CommandImageConverter, ImageConverter
from app.services.firmware import FirmwareResolver
from app.services.firmware_cache import FirmwareBinaryCache
from app.services.local_firmware import LocalOverrideScanner
from app.services.release_cache import ReleaseMetadataCache
from app.services.release_client import ReleaseClient


def build_firmware_resolver(settings: Settings) -> FirmwareResolver:
    store = CacheStore(settings.cache_dir)
    return FirmwareResolver(
        store=store,
        release_cache=ReleaseMetadataCache(store, ttl_seconds=settings.release_cache_ttl_seconds),
        firmware_cache=FirmwareBinaryCache(store),
        scanner=LocalOverrideScanner(
            settings.cache_dir,
            prefix=settings.firmware_prefix,
            suffix=settings.firmware_suffix,
        ),
        client=ReleaseClient(
            settings.release_api_url,
            timeout_seconds=settings.upstream_timeout_seconds,
            user_agent=settings.user_agent,
            token=settings.github_token,
            prefix=settings.firmware_prefix,
            suffix=settings.firmware_suffix,
        ),
        download_path=settings.firmware_download_path,
    )


def get_firmware_resolver(settings: Settings = Depends(get_settings)) -> FirmwareResolver:
    return build_firmware_resolver(settings)


def get_image_converter(settings: Settings = Depends(get_settings)) -> ImageConverter:
    return CommandImageConverter(
        settings.image_converter_command,
        timeout_seconds=settings.converter_timeout_seconds,
    )


def get_book_converter(settings: Settings = Depends(get_settings)) -> BookConverter:
    return CommandBookConverter(
        settings.book_converter_command,
        timeout_seconds=settings.converter_timeout_seconds,
    )
