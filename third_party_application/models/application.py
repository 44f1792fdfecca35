"""Application data models."""

import re
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator

from ..errors import InvalidRateLimitTier
from .state import ApplicationState

_WHITESPACE = re.compile(r"\s+")


def normalise_name(name: str) -> str:
    """Lower-case a name and strip all whitespace for collision checks."""
    return _WHITESPACE.sub("", name).lower()


class Role(str, Enum):
    """Collaborator role."""

    ADMINISTRATOR = "ADMINISTRATOR"
    DEVELOPER = "DEVELOPER"


class Environment(str, Enum):
    """Environment an application is registered in."""

    PRODUCTION = "PRODUCTION"
    SANDBOX = "SANDBOX"


class RateLimitTier(str, Enum):
    """Gateway usage plan tier."""

    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"
    RHODIUM = "RHODIUM"

    @classmethod
    def parse(cls, value: str) -> "RateLimitTier":
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise InvalidRateLimitTier(value) from None


class AccessType(str, Enum):
    """Capability variant of an application."""

    STANDARD = "STANDARD"
    PRIVILEGED = "PRIVILEGED"
    ROPC = "ROPC"


class Collaborator(BaseModel):
    """A person who can manage an application."""

    model_config = {"frozen": True}

    email: str
    role: Role
    user_id: str | None = None

    @field_validator("email")
    @classmethod
    def lower_case_email(cls, value: str) -> str:
        return value.strip().lower()


class StandardAccess(BaseModel):
    access_type: Literal["STANDARD"] = "STANDARD"
    redirect_uris: list[str] = Field(default_factory=list)
    terms_and_conditions_url: str | None = None
    privacy_policy_url: str | None = None
    overrides: list[str] = Field(default_factory=list)


class PrivilegedAccess(BaseModel):
    access_type: Literal["PRIVILEGED"] = "PRIVILEGED"
    totp_ids: dict[str, str] | None = None
    scopes: list[str] = Field(default_factory=list)


class RopcAccess(BaseModel):
    access_type: Literal["ROPC"] = "ROPC"
    scopes: list[str] = Field(default_factory=list)


Access = Annotated[
    StandardAccess | PrivilegedAccess | RopcAccess, Field(discriminator="access_type")
]


class ClientSecret(BaseModel):
    """A stored client secret. Only the hash of the secret is ever kept."""

    id: str
    hint: str = Field(..., description="Last four characters of the secret")
    hashed_secret: str
    created_on: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_access: datetime | None = None


class ApplicationTokens(BaseModel):
    """Credentials of an application."""

    client_id: str
    access_token: str = Field(..., description="Server token used at the gateway")
    client_secrets: list[ClientSecret] = Field(default_factory=list)


class IpAllowlist(BaseModel):
    required: bool = False
    allowlist: list[str] = Field(default_factory=list)


class TermsOfUseAgreement(BaseModel):
    email_address: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    version: str


class CheckInformation(BaseModel):
    """Answers gathered during the production checklist."""

    contact_details: dict[str, str] | None = None
    confirmed_name: bool = False
    provided_privacy_policy_url: bool = False
    provided_terms_and_conditions_url: bool = False
    application_details: str | None = None
    terms_of_use_agreements: list[TermsOfUseAgreement] = Field(default_factory=list)


class Application(BaseModel):
    """A third-party application registration.

    ``version`` increases by one on every successful write and is used for
    version-matched updates.
    """

    id: str
    name: str
    normalised_name: str
    description: str | None = None
    collaborators: list[Collaborator]
    gateway_id: str
    tokens: ApplicationTokens
    state: ApplicationState = Field(default_factory=ApplicationState)
    access: Access = Field(default_factory=StandardAccess)
    environment: Environment = Environment.PRODUCTION
    rate_limit_tier: RateLimitTier | None = RateLimitTier.BRONZE
    ip_allowlist: IpAllowlist = Field(default_factory=IpAllowlist)
    check_information: CheckInformation | None = None
    blocked: bool = False
    created_on: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_access: datetime | None = None
    version: int = 0

    @property
    def admins(self) -> list[Collaborator]:
        return [c for c in self.collaborators if c.role == Role.ADMINISTRATOR]

    @property
    def requires_gatekeeper(self) -> bool:
        """Privileged and ROPC applications are only changed by gatekeepers."""
        return self.access.access_type in (AccessType.PRIVILEGED, AccessType.ROPC)

    def find_collaborator(self, email: str) -> Collaborator | None:
        email = email.strip().lower()
        for collaborator in self.collaborators:
            if collaborator.email == email:
                return collaborator
        return None


class ApplicationNameValidationResult(str, Enum):
    VALID = "VALID"
    INVALID = "INVALID"
    DUPLICATE = "DUPLICATE"
