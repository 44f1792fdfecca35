"""Clients for the external services the core calls out to."""

from .api_platform_events import ApiPlatformEventsConnector
from .api_subscription_fields import ApiSubscriptionFieldsConnector
from .aws_api_gateway import AwsApiGatewayConnector
from .email import EmailConnector, EmailTemplates

__all__ = [
    "ApiPlatformEventsConnector",
    "ApiSubscriptionFieldsConnector",
    "AwsApiGatewayConnector",
    "EmailConnector",
    "EmailTemplates",
]
