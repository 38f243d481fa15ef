# SiteSync Bridge Client
# JSON-over-HTTP client for the remote database bridge

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from sitesync.bridge.operations import BridgeOperation, FetchTable, Probe, ReplaceTable
from sitesync.config.schema import ConnectionProfile
from sitesync.errors import BridgeConnectionError, NotConfigured, ProtocolError, RemoteRejection, TransportError

logger = logging.getLogger(__name__)

MISSING_TABLE_MARKERS = ("doesn't exist", "no existe")


@dataclass
class BridgeResult:
    """Payload of a successful bridge response."""

    data: Any = None
    message: Optional[str] = None


class BridgeClient:
    """
    Speaks the bridge protocol: one POST per operation, JSON in, JSON out.

    Request body::

        {"action": ..., "host": ..., "user": ..., "password": ...,
         "database": ..., "port": ..., "sql": ...}

    Response body::

        {"success": bool, "data": ..., "message": ...}
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        push_timeout: float = 60.0,
        verify: bool = True,
        payload_warn_mb: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            timeout: Seconds allowed for probe and fetch requests.
            push_timeout: Seconds allowed for replace requests.
            verify: Verify TLS certificates.
            payload_warn_mb: Log a warning for request bodies above this size.
            transport: Optional httpx transport (tests inject a MockTransport).
        """
        self.timeout = timeout
        self.push_timeout = push_timeout
        self.verify = verify
        self.payload_warn_mb = payload_warn_mb
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                timeout=self.timeout,
                verify=self.verify,
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        """Release the underlying HTTP connection pool."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "BridgeClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _timeout_for(self, operation: BridgeOperation) -> float:
        return self.push_timeout if isinstance(operation, ReplaceTable) else self.timeout

    async def execute(self, profile: ConnectionProfile, operation: BridgeOperation) -> BridgeResult:
        """
        Send one operation to the bridge.

        Args:
            profile: Remote connection parameters.
            operation: Probe, FetchTable or ReplaceTable.

        Returns:
            BridgeResult with the response ``data`` and ``message``.

        Raises:
            NotConfigured: Required profile fields are empty; nothing is sent.
            BridgeConnectionError: No response (network failure or timeout).
            TransportError: HTTP status outside 200-299.
            ProtocolError: Body is not a JSON object with a boolean ``success``.
            RemoteRejection: ``success`` is false.
        """
        missing = profile.missing_fields(probe=operation.is_probe)
        if missing:
            raise NotConfigured(missing=missing)

        payload = {
            "action": operation.action,
            "host": profile.host,
            "user": profile.user,
            "password": profile.password,
            "database": profile.database,
            "port": profile.port,
            "sql": operation.sql,
        }
        body = json.dumps(payload, ensure_ascii=False, default=str).encode("utf-8")
        size_mb = len(body) / (1024 * 1024)
        if size_mb > self.payload_warn_mb:
            logger.warning(
                "Bridge payload for %s is %.2f MB; the server may reject it", operation.describe(), size_mb
            )

        client = await self._get_client()
        logger.debug("Bridge request: %s -> %s", operation.describe(), profile.api_url)
        try:
            response = await client.post(profile.api_url, content=body, timeout=self._timeout_for(operation))
        except httpx.TimeoutException as e:
            timeout = self._timeout_for(operation)
            raise BridgeConnectionError(f"timed out after {timeout:g}s ({operation.describe()})") from e
        except httpx.RequestError as e:
            raise BridgeConnectionError(f"{type(e).__name__}: {e}") from e
        except httpx.InvalidURL as e:
            raise BridgeConnectionError(f"invalid bridge URL {profile.api_url!r}: {e}") from e

        # A non-2xx body is usually an HTML error page; never try to parse it.
        if not response.is_success:
            raise TransportError(response.status_code, response.reason_phrase)

        try:
            parsed = response.json()
        except ValueError as e:
            raise ProtocolError("response body is not valid JSON", raw_text=response.text) from e

        if not isinstance(parsed, dict):
            raise ProtocolError(f"expected a JSON object, got {type(parsed).__name__}", raw_text=response.text)

        success = parsed.get("success")
        if not isinstance(success, bool):
            raise ProtocolError("response has no boolean 'success' flag", raw_text=response.text)

        message = parsed.get("message")
        if not success:
            raise RemoteRejection(str(message) if message is not None else "")

        return BridgeResult(data=parsed.get("data"), message=message)

    async def probe(self, profile: ConnectionProfile) -> None:
        """Run the connectivity probe; raises on any failure."""
        await self.execute(profile, Probe())

    async def fetch_table(self, profile: ConnectionProfile, table: str) -> list[dict[str, Any]]:
        """
        Fetch every row of a remote table.

        A remote table that does not exist yet is reported as empty.

        Returns:
            List of row dicts.
        """
        try:
            result = await self.execute(profile, FetchTable(table))
        except RemoteRejection as e:
            if any(marker in e.message for marker in MISSING_TABLE_MARKERS):
                logger.info("Remote table %s does not exist; treating it as empty", table)
                return []
            raise

        rows = result.data
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise ProtocolError(f"fetch of {table} did not return a list of rows")
        return rows

    async def replace_table(self, profile: ConnectionProfile, table: str, rows: list[dict[str, Any]]) -> None:
        """Make the remote table contain exactly ``rows``."""
        await self.execute(profile, ReplaceTable(table, rows))
