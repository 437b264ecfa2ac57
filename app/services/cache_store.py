"""On-disk cache for small JSON records and firmware blobs."""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

from app.services.errors import LocalIOFailure

logger = logging.getLogger(__name__)

DOWNLOAD_MARKER_SUFFIX = ".download.json"

RECORD_FILES = {
    "release": "latest_release.json",
    "firmware": "app_firmware.json",
}


def safe_file_name(name: Optional[str]) -> Optional[str]:
    """Return ``name`` if it is a single relative path component, else None."""
    if name is None:
        return None
    cleaned = name.strip()
    if not cleaned or cleaned in {".", ".."} or "\x00" in cleaned:
        return None
    if os.path.isabs(cleaned):
        return None
    for separator in (os.sep, os.altsep, "/", "\\"):
        if separator and separator in cleaned:
            return None
    return cleaned


class CacheStore:
    """JSON documents and binary files kept in a single cache directory.

    Reads never raise: missing or corrupt entries load as ``None``. Writes go
    through a temporary file in the same directory followed by ``os.replace``
    so concurrent readers see either the old or the new content. A failed
    write is logged and reported through the return value.
    """

    def __init__(self, cache_dir: str | Path):
        self.cache_dir = Path(cache_dir)

    def record_path(self, key: str) -> Path:
        return self.cache_dir / RECORD_FILES.get(key, f"{key}.json")

    def load(self, key: str) -> Optional[dict[str, Any]]:
        path = self.record_path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Could not read cache record %s: %s", path, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring cache record %s: not a JSON object", path)
            return None
        return data

    def save(self, key: str, record: dict[str, Any]) -> bool:
        path = self.record_path(key)
        try:
            payload = json.dumps(record, indent=2).encode("utf-8")
            self._write_atomic(path, payload)
        except (TypeError, ValueError, LocalIOFailure) as exc:
            logger.error("Could not save cache record %s: %s", path, exc)
            return False
        return True

    def marker_path(self, path: str | Path) -> Path:
        return Path(f"{path}{DOWNLOAD_MARKER_SUFFIX}")

    def write_download(self, name: str, data: bytes) -> Optional[Path]:
        """Store downloaded ``data`` as ``cache_dir/name`` and mark it as ours.

        The marker (size and mtime of the file) is written before the file is
        renamed into place, so a marked file never shows up unmarked. An
        existing file without a valid marker belongs to the operator and is
        not overwritten. Returns the path, or None on failure.
        """
        safe_name = safe_file_name(name)
        if safe_name is None:
            logger.error("Refusing to cache binary under unsafe name %r", name)
            return None
        path = self.cache_dir / safe_name
        if path.exists() and not self.is_download(path):
            logger.error("Refusing to overwrite operator-placed file %s", path)
            return None
        try:
            self._write_atomic(path, data, before_replace=lambda temp: self._mark(path, temp))
        except LocalIOFailure as exc:
            logger.error("Could not cache binary %s: %s", path, exc)
            return None
        return path

    def is_download(self, path: str | Path) -> bool:
        """True if ``path`` is a file this store downloaded and nobody changed since."""
        try:
            with open(self.marker_path(path), "r", encoding="utf-8") as f:
                marker = json.load(f)
            stat = os.stat(path)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            return False
        if not isinstance(marker, dict):
            return False
        return marker.get("size") == stat.st_size and marker.get("mtime_ns") == stat.st_mtime_ns

    def downloaded_paths(self) -> list[Path]:
        paths: list[Path] = []
        try:
            with os.scandir(self.cache_dir) as iterator:
                names = [entry.name for entry in iterator]
        except OSError:
            return paths
        for name in sorted(names):
            if not name.endswith(DOWNLOAD_MARKER_SUFFIX):
                continue
            path = self.cache_dir / name[: -len(DOWNLOAD_MARKER_SUFFIX)]
            if self.is_download(path):
                paths.append(path)
        return paths

    def forget_download(self, path: str | Path) -> bool:
        """Delete a marked download and its marker. Changed or foreign files are left alone."""
        if not self.is_download(path):
            return False
        # File first: a marker without its file is harmless, the reverse is an override.
        return self.remove(path) and self.remove(self.marker_path(path))

    def sweep_downloads(self, keep: str | Path) -> None:
        keep_path = os.path.abspath(keep)
        for path in self.downloaded_paths():
            if os.path.abspath(path) != keep_path:
                self.forget_download(path)

    def remove(self, path: str | Path) -> bool:
        try:
            Path(path).unlink()
        except FileNotFoundError:
            return True
        except OSError as exc:
            logger.warning("Could not remove cached file %s: %s", path, exc)
            return False
        return True

    def _mark(self, path: Path, temp_path: str) -> None:
        stat = os.stat(temp_path)
        marker = {"size": stat.st_size, "mtime_ns": stat.st_mtime_ns}
        self._write_atomic(self.marker_path(path), json.dumps(marker).encode("utf-8"))

    def _write_atomic(
        self,
        path: Path,
        data: bytes,
        before_replace: Optional[Callable[[str], None]] = None,
    ) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self.cache_dir, prefix="tmp-", suffix=".part")
        except OSError as exc:
            raise LocalIOFailure(f"cannot create temporary file in {self.cache_dir}: {exc}") from exc

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            if before_replace is not None:
                before_replace(temp_path)
            os.replace(temp_path, path)
        except OSError as exc:
            raise LocalIOFailure(f"cannot write {path}: {exc}") from exc
        finally:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass
