import logging
import time
from typing import Callable, Optional

from pydantic import ValidationError

from app.schemas.firmware import ReleaseDescriptor
from app.services.cache_store import CacheStore

logger = logging.getLogger(__name__)

RELEASE_KEY = "release"


class ReleaseMetadataCache:
    """Single-slot cache of the upstream latest release with a freshness window."""

    def __init__(
        self,
        store: CacheStore,
        ttl_seconds: int = 600,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def now(self) -> int:
        return int(self.clock())

    def get(self) -> Optional[ReleaseDescriptor]:
        """Return the stored descriptor, fresh or stale, or None."""
        data = self.store.load(RELEASE_KEY)
        if data is None:
            return None
        try:
            return ReleaseDescriptor.model_validate(data)
        except ValidationError as exc:
            logger.warning(f"Discarding malformed release cache record: {exc}")
            return None

    def is_fresh(self, descriptor: ReleaseDescriptor) -> bool:
        age = max(self.now() - descriptor.fetched_at, 0)
        return age < self.ttl_seconds

    def get_fresh(self) -> Optional[ReleaseDescriptor]:
        descriptor = self.get()
        if descriptor is None:
            return None
        if not self.is_fresh(descriptor):
            logger.debug(f"Release cache for {descriptor.tag} is stale")
            return None
        return descriptor

    def put(self, release: ReleaseDescriptor) -> ReleaseDescriptor:
        """Overwrite the slot with a newly fetched release, stamped now.

        The returned descriptor is valid whether or not persisting succeeded.
        """
        fetched_at = self.now()
        previous = self.get()
        if previous is not None and previous.fetched_at > fetched_at:
            fetched_at = previous.fetched_at

        descriptor = release.model_copy(update={"fetched_at": fetched_at})
        if not self.store.save(RELEASE_KEY, descriptor.model_dump(by_alias=True)):
            logger.warning(f"Release {descriptor.tag} fetched but not cached")
        return descriptor
