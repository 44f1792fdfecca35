"""HTTP client for the API platform events service.

Events are best-effort: every send reports success as a bool and never
raises for transport or HTTP failures.
"""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

import httpx

from ..config import ApiPlatformEventsConfig
from ..models.state import Actor
from ..models.subscription import ApiIdentifier

logger = logging.getLogger(__name__)


class ApiPlatformEventsConnector:
    def __init__(self, config: ApiPlatformEventsConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            timeout=httpx.Timeout(config.timeout_seconds),
        )

    async def send_api_subscribed_event(
        self, application_id: str, api: ApiIdentifier, actor: Actor | None = None
    ) -> bool:
        return await self._send_subscription_event("subscribedToApi", application_id, api, actor)

    async def send_api_unsubscribed_event(
        self, application_id: str, api: ApiIdentifier, actor: Actor | None = None
    ) -> bool:
        return await self._send_subscription_event(
            "unsubscribedFromApi", application_id, api, actor
        )

    async def _send_subscription_event(
        self, event_type: str, application_id: str, api: ApiIdentifier, actor: Actor | None
    ) -> bool:
        payload = {
            "id": str(uuid.uuid4()),
            "applicationId": application_id,
            "eventDateTime": datetime.now(UTC).isoformat(),
            "context": api.context,
            "version": api.version,
        }
        if actor:
            payload["actor"] = {"id": actor.id, "actorType": actor.actor_type.value}
        return await self._post(f"/application-events/{event_type}", payload)

    async def _post(self, path: str, payload: dict[str, Any]) -> bool:
        if not self.config.enabled:
            logger.info(f"API platform events disabled, not sending {path}")
            return False

        try:
            response = await self._client.post(path, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to send API platform event {path}: {e}")
            return False

        return True

    async def close(self) -> None:
        await self._client.aclose()
