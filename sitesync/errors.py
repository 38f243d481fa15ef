# SiteSync Errors
# Failure taxonomy shared by the bridge client, local store and orchestrator


class SyncError(Exception):
    """Base exception for all synchronization failures."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    @property
    def reason(self) -> str:
        """Human-readable reason suitable for showing to a user."""
        return self.message or self.__class__.__name__


class BridgeConnectionError(SyncError):
    """No response from the bridge (network failure or timeout)."""

    @property
    def reason(self) -> str:
        return f"Could not reach the bridge: {self.message}" if self.message else "Could not reach the bridge"


class TransportError(SyncError):
    """The bridge answered with an HTTP status outside 200-299."""

    def __init__(self, status_code: int, status_text: str = ""):
        super().__init__(f"HTTP {status_code} {status_text}".strip())
        self.status_code = status_code
        self.status_text = status_text

    @property
    def reason(self) -> str:
        return f"Bridge returned {self.message}"


class ProtocolError(SyncError):
    """The bridge response body is not the expected JSON shape."""

    MAX_RAW = 200

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text[: self.MAX_RAW]

    @property
    def reason(self) -> str:
        return f"Invalid bridge response: {self.message}"


class RemoteRejection(SyncError):
    """Well-formed response with success: false."""

    @property
    def reason(self) -> str:
        return f"Remote database error: {self.message or 'unknown error'}"


class LocalStoreError(SyncError):
    """Transaction or write failure in the local store."""

    @property
    def reason(self) -> str:
        return f"Local database error: {self.message}"


class NotConfigured(SyncError):
    """The remote connection profile is missing or incomplete."""

    def __init__(self, message: str = "", missing: tuple[str, ...] = ()):
        if not message and missing:
            message = f"missing {', '.join(missing)}"
        super().__init__(message)
        self.missing = missing

    @property
    def reason(self) -> str:
        if self.message:
            return f"Remote connection is not configured ({self.message})"
        return "Remote connection is not configured"


class SyncBusy(SyncError):
    """A pull or push is already in flight."""

    @property
    def reason(self) -> str:
        return "A synchronization is already in progress"


def describe_error(exc: BaseException) -> str:
    """
    Map any exception to the reason shown to the user.

    Args:
        exc: Exception raised during a sync operation.

    Returns:
        Human-readable reason.
    """
    if isinstance(exc, SyncError):
        return exc.reason
    return f"Unexpected error: {exc}"
