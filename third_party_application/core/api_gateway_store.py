"""Gateway registration of applications."""

import logging

from ..config import GatewayConfig
from ..connectors.aws_api_gateway import AwsApiGatewayConnector
from ..models.application import RateLimitTier

logger = logging.getLogger(__name__)


class ApiGatewayStore:
    """Registers applications with the API gateway unless gateway calls are disabled."""

    def __init__(self, connector: AwsApiGatewayConnector, config: GatewayConfig):
        self.connector = connector
        self.disabled = config.disable_gateway_calls

    async def create_or_update_application(
        self, gateway_id: str, server_token: str, tier: RateLimitTier
    ) -> None:
        if self.disabled:
            logger.debug(f"Gateway calls disabled, not registering {gateway_id} as {tier.value}")
            return
        await self.connector.create_or_update_application(gateway_id, server_token, tier)

    async def delete_application(self, gateway_id: str) -> None:
        if self.disabled:
            logger.debug(f"Gateway calls disabled, not deleting {gateway_id}")
            return
        await self.connector.delete_application(gateway_id)
