"""Discovery of operator-placed firmware files in the cache directory."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalFirmwareCandidate:
    tag: str
    asset_name: str
    size: int
    file_path: str
    modified_at: float


def firmware_tag(file_name: str, prefix: str, suffix: str) -> Optional[str]:
    """Extract the tag from ``<prefix><tag><suffix>``; None if the name does not match."""
    if not file_name.startswith(prefix) or not file_name.endswith(suffix):
        return None
    tag = file_name[len(prefix):len(file_name) - len(suffix)]
    return tag or None


def is_firmware_name(file_name: str, prefix: str, suffix: str) -> bool:
    return firmware_tag(file_name, prefix, suffix) is not None


class LocalOverrideScanner:
    """Finds the newest ``<prefix><tag><suffix>`` file in the cache directory.

    Entries are visited in name order and a later entry only replaces the
    current pick when its modification time is strictly newer, so equal times
    resolve to the first name.
    """

    def __init__(self, cache_dir: str | Path, prefix: str = "tern-fw-", suffix: str = ".bin"):
        self.cache_dir = Path(cache_dir)
        self.prefix = prefix
        self.suffix = suffix

    def candidates(self, exclude: Iterable[str | Path] = ()) -> list[LocalFirmwareCandidate]:
        excluded = {os.path.abspath(path) for path in exclude}
        found: list[LocalFirmwareCandidate] = []
        try:
            with os.scandir(self.cache_dir) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except FileNotFoundError:
            return found
        except OSError as exc:
            logger.warning(f"Could not scan {self.cache_dir} for firmware overrides: {exc}")
            return found

        for entry in entries:
            tag = firmware_tag(entry.name, self.prefix, self.suffix)
            if tag is None:
                continue
            if os.path.abspath(entry.path) in excluded:
                continue
            try:
                if not entry.is_file():
                    continue
                stat = entry.stat()
            except OSError as exc:
                logger.debug(f"Skipping firmware candidate {entry.path}: {exc}")
                continue
            found.append(
                LocalFirmwareCandidate(
                    tag=tag,
                    asset_name=entry.name,
                    size=stat.st_size,
                    file_path=entry.path,
                    modified_at=stat.st_mtime,
                )
            )
        return found

    def scan(self, exclude: Iterable[str | Path] = ()) -> Optional[LocalFirmwareCandidate]:
        best: Optional[LocalFirmwareCandidate] = None
        for candidate in self.candidates(exclude):
            if best is None or candidate.modified_at > best.modified_at:
                best = candidate
        if best is not None:
            logger.debug(f"Using local firmware override {best.asset_name}")
        return best
