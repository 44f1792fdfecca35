"""Core lifecycle services."""

from .access_service import AccessService
from .api_gateway_store import ApiGatewayStore
from .application_service import ApplicationService
from .collaborator_service import CollaboratorService
from .credential_service import CredentialService
from .gatekeeper_service import GatekeeperService
from .rate_limit_service import RateLimitService, ReconcileResult
from .secret_hasher import SecretHasher
from .subscription_service import SubscriptionService

__all__ = [
    "AccessService",
    "ApiGatewayStore",
    "ApplicationService",
    "CollaboratorService",
    "CredentialService",
    "GatekeeperService",
    "RateLimitService",
    "ReconcileResult",
    "SecretHasher",
    "SubscriptionService",
]
