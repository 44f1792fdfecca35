"""Subscription data models."""

from pydantic import BaseModel, Field


class ApiIdentifier(BaseModel):
    """An API context and version pair."""

    model_config = {"frozen": True}

    context: str = Field(..., description="API context, e.g. 'individual-benefits'")
    version: str = Field(..., description="API version, e.g. '1.0'")

    def __str__(self) -> str:
        return f"{self.context}:{self.version}"


class SubscriptionData(BaseModel):
    """All applications subscribed to one API."""

    api_identifier: ApiIdentifier
    applications: list[str] = Field(default_factory=list)
