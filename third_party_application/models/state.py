"""Lifecycle state models."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class State(str, Enum):
    """Application lifecycle state."""

    TESTING = "TESTING"
    PENDING_GATEKEEPER_APPROVAL = "PENDING_GATEKEEPER_APPROVAL"
    PENDING_REQUESTER_VERIFICATION = "PENDING_REQUESTER_VERIFICATION"
    PRODUCTION = "PRODUCTION"


class ActorType(str, Enum):
    """Kind of identity that triggered a change."""

    COLLABORATOR = "COLLABORATOR"
    GATEKEEPER = "GATEKEEPER"
    SCHEDULED_JOB = "SCHEDULED_JOB"


class Actor(BaseModel):
    """Identity attached to a request by the auth collaborator."""

    model_config = {"frozen": True}

    id: str = Field(..., description="Email, gatekeeper user id or job name")
    actor_type: ActorType

    @property
    def is_gatekeeper(self) -> bool:
        return self.actor_type == ActorType.GATEKEEPER

    @classmethod
    def collaborator(cls, email: str) -> "Actor":
        return cls(id=email, actor_type=ActorType.COLLABORATOR)

    @classmethod
    def gatekeeper(cls, user_id: str) -> "Actor":
        return cls(id=user_id, actor_type=ActorType.GATEKEEPER)

    @classmethod
    def scheduled_job(cls, job_id: str) -> "Actor":
        return cls(id=job_id, actor_type=ActorType.SCHEDULED_JOB)


class ApplicationState(BaseModel):
    """Current lifecycle state of an application.

    ``verification_code`` and its expiry are only set while the application
    is pending requester verification.
    """

    model_config = {"frozen": True}

    name: State = State.TESTING
    requested_by_email: str | None = None
    verification_code: str | None = None
    verification_code_expires_at: datetime | None = None
    updated_on: datetime = Field(default_factory=lambda: datetime.now(UTC))


class StateHistory(BaseModel):
    """One append-only record of a lifecycle transition."""

    application_id: str
    state: State
    previous_state: State | None = None
    actor: Actor
    notes: str | None = None
    changed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
