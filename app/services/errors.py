"""Failure categories of the firmware resolution path."""


class FirmwareError(Exception):
    pass


class UpstreamUnavailable(FirmwareError):
    """Release host unreachable, timed out or answered with a non-success status."""


class UpstreamUnparseable(FirmwareError):
    """Release host answered, but the body is not a release document."""


class AssetNotFound(FirmwareError):
    """No asset of the release follows the firmware naming convention."""


class LocalIOFailure(FirmwareError):
    """Best-effort cache write failed. Logged, never sent to clients."""
