"""Analytics collaborator: ships usage events as JSON over HTTP."""

import httpx

from memory_gateway.core.base import ServiceErrorDetails
from memory_gateway.core.errors import ServiceError
from memory_gateway.core.logging import get_logger
from memory_gateway.domain.models import UsageEvent

logger = get_logger(__name__)


class AnalyticsClient:
    """Posts UsageEvents to an events endpoint with a bearer token.

    Without a token the client is disabled and ``send`` is a no-op.
    """

    def __init__(
        self,
        url: str,
        token: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.token = token
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    async def send(self, event: UsageEvent) -> bool:
        """Send one event. Returns False when analytics is disabled.

        Raises:
            ServiceError: The collaborator could not be reached or rejected the event
        """
        if not self.enabled:
            logger.debug("Analytics disabled, dropping usage event", model=event.model)
            return False

        try:
            response = await self.client.post(
                self.url,
                content=event.model_dump_json(),
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Content-Type": "application/json",
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            status = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
            raise ServiceError(
                f"Analytics event rejected: {e}",
                details=ServiceErrorDetails(
                    source="AnalyticsClient",
                    operation="send",
                    service_name="analytics",
                    endpoint=self.url,
                    status_code=status,
                ),
            ) from e

        logger.debug("Usage event sent", model=event.model, num_tokens=event.num_tokens)
        return True

    async def aclose(self) -> None:
        await self.client.aclose()
