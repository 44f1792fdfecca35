"""Result models returned by core operations."""

from datetime import datetime

from pydantic import BaseModel, Field

from .application import Application, ApplicationTokens
from .state import State, StateHistory


class ClientSecretResponse(BaseModel):
    """Client secret details safe to show (never the hash)."""

    id: str
    hint: str
    created_on: datetime
    last_access: datetime | None = None


class ApplicationTokensResponse(BaseModel):
    """Credentials of an application as shown to its collaborators."""

    client_id: str
    access_token: str
    client_secrets: list[ClientSecretResponse] = Field(default_factory=list)

    @classmethod
    def from_tokens(cls, tokens: ApplicationTokens) -> "ApplicationTokensResponse":
        return cls(
            client_id=tokens.client_id,
            access_token=tokens.access_token,
            client_secrets=[
                ClientSecretResponse(
                    id=secret.id,
                    hint=secret.hint,
                    created_on=secret.created_on,
                    last_access=secret.last_access,
                )
                for secret in tokens.client_secrets
            ],
        )


class AddClientSecretResult(BaseModel):
    """Result of issuing a client secret."""

    client_secret: str = Field(..., description="Plaintext secret - only returned once")
    secret_id: str
    tokens: ApplicationTokensResponse


class CreateApplicationResult(BaseModel):
    """Result of registering an application."""

    application: Application
    client_secret: str = Field(..., description="Plaintext secret - only returned once")
    tokens: ApplicationTokensResponse


class ApplicationWithHistory(BaseModel):
    application: Application
    history: list[StateHistory]


class ApplicationWithUpliftRequest(BaseModel):
    """Summary of a non-testing application for the gatekeeper queue."""

    id: str
    name: str
    submitted_on: datetime
    state: State
