"""Data models for the third-party application service."""

from .application import (
    Access,
    AccessType,
    Application,
    ApplicationNameValidationResult,
    ApplicationTokens,
    CheckInformation,
    ClientSecret,
    Collaborator,
    Environment,
    IpAllowlist,
    PrivilegedAccess,
    RateLimitTier,
    Role,
    RopcAccess,
    StandardAccess,
    TermsOfUseAgreement,
    normalise_name,
)
from .requests import CreateApplicationRequest
from .responses import (
    AddClientSecretResult,
    ApplicationTokensResponse,
    ApplicationWithHistory,
    ApplicationWithUpliftRequest,
    ClientSecretResponse,
    CreateApplicationResult,
)
from .state import Actor, ActorType, ApplicationState, State, StateHistory
from .subscription import ApiIdentifier, SubscriptionData

__all__ = [
    # Application models
    "Access",
    "AccessType",
    "Application",
    "ApplicationNameValidationResult",
    "ApplicationTokens",
    "CheckInformation",
    "ClientSecret",
    "Collaborator",
    "Environment",
    "IpAllowlist",
    "PrivilegedAccess",
    "RateLimitTier",
    "Role",
    "RopcAccess",
    "StandardAccess",
    "TermsOfUseAgreement",
    "normalise_name",
    # Request models
    "CreateApplicationRequest",
    # Response models
    "AddClientSecretResult",
    "ApplicationTokensResponse",
    "ApplicationWithHistory",
    "ApplicationWithUpliftRequest",
    "ClientSecretResponse",
    "CreateApplicationResult",
    # State models
    "Actor",
    "ActorType",
    "ApplicationState",
    "State",
    "StateHistory",
    # Subscription models
    "ApiIdentifier",
    "SubscriptionData",
]
