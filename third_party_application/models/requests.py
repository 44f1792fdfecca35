"""Request models accepted by core operations."""

from pydantic import BaseModel, Field

from .application import Access, Collaborator, Environment, StandardAccess


class CreateApplicationRequest(BaseModel):
    """Request to register a new application."""

    name: str = Field(..., min_length=1, description="Application name")
    description: str | None = None
    environment: Environment = Environment.PRODUCTION
    access: Access = Field(default_factory=StandardAccess)
    collaborators: list[Collaborator] = Field(..., min_length=1)

