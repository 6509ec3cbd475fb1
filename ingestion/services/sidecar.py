"""HTTP client for the co-located pub/sub sidecar."""
from typing import Any, Dict
import httpx
import structlog
from ..config import Settings, get_settings

log = structlog.get_logger()


class SidecarClient:
    """
    Thin wrapper around a shared ``httpx.AsyncClient`` pointed at the sidecar.

    The underlying client is created on first use so building the app never
    opens connections.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            settings: Service settings (defaults to the cached settings)
            transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in tests
        """
        self.settings = settings or get_settings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self.settings.sidecar_base_url

    @property
    def health_url(self) -> str:
        return f"{self.base_url}/v1.0/healthz"

    @property
    def metadata_url(self) -> str:
        return f"{self.base_url}/v1.0/metadata"

    @property
    def publish_url(self) -> str:
        return (
            f"{self.base_url}/v1.0/publish/"
            f"{self.settings.PUBSUB_NAME}/{self.settings.QUEUE_NAME}"
        )

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.SIDECAR_TIMEOUT_SECONDS),
                transport=self._transport,
            )
        return self._client

    async def check_health(self) -> bool:
        """
        Single health check.

        Returns:
            True on a 2xx response. Transport errors mean "not ready yet" and
            return False.
        """
        try:
            response = await self._get_client().get(self.health_url)
        except httpx.TransportError:
            return False
        return response.is_success

    async def post_event(self, body: bytes) -> httpx.Response:
        """POST a serialized event to the publish endpoint. Transport errors propagate."""
        return await self._get_client().post(
            self.publish_url,
            content=body,
            headers={"Content-Type": "application/json"},
        )

    async def status(self) -> Dict[str, Any]:
        """
        Health plus loaded-component metadata, for the debug endpoint.

        Never raises; errors are reported in the result.
        """
        port = self.settings.SIDECAR_HTTP_PORT
        try:
            client = self._get_client()
            health = await client.get(self.health_url)
            metadata = await client.get(self.metadata_url)
            return {
                "sidecarHealthy": health.is_success,
                "sidecarPort": port,
                "metadata": metadata.json(),
            }
        except (httpx.HTTPError, ValueError) as e:
            log.warning("sidecar.status_failed", error=str(e))
            return {
                "sidecarHealthy": False,
                "sidecarPort": port,
                "error": str(e),
            }

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
