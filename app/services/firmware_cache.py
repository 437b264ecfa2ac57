import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from app.schemas.firmware import FirmwareRecord
from app.services.cache_store import CacheStore

logger = logging.getLogger(__name__)

FIRMWARE_KEY = "firmware"


class FirmwareBinaryCache:
    """Record of the last downloaded firmware binary plus the file itself."""

    def __init__(self, store: CacheStore):
        self.store = store

    def get(self) -> Optional[FirmwareRecord]:
        data = self.store.load(FIRMWARE_KEY)
        if data is None:
            return None
        try:
            return FirmwareRecord.model_validate(data)
        except ValidationError as exc:
            logger.warning(f"Discarding malformed firmware cache record: {exc}")
            return None

    def put(self, record: FirmwareRecord) -> bool:
        return self.store.save(FIRMWARE_KEY, record.model_dump())

    def read_matching(self, tag: str, asset_name: str) -> Optional[bytes]:
        """Return the cached bytes for ``(tag, asset_name)``, or None on any miss.

        The file has to be readable and exactly ``record.size`` bytes long.
        """
        record = self.get()
        if record is None:
            return None
        if record.tag != tag or record.asset_name != asset_name:
            logger.debug(
                f"Firmware cache holds {record.tag}/{record.asset_name}, "
                f"wanted {tag}/{asset_name}"
            )
            return None

        try:
            data = Path(record.file_path).read_bytes()
        except OSError as exc:
            logger.warning(f"Cached firmware {record.file_path} unreadable: {exc}")
            return None

        if len(data) != record.size:
            logger.warning(
                f"Cached firmware {record.file_path} is {len(data)} bytes, "
                f"record says {record.size}"
            )
            return None
        return data
