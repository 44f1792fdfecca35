"""Audit trail of application changes, recorded as telemetry events."""

import logging
from enum import Enum
from typing import Any

from ..models.state import Actor
from ..telemetry import TelemetryEvents, track_event

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    APP_CREATED = TelemetryEvents.APPLICATION_CREATED
    APP_DELETED = TelemetryEvents.APPLICATION_DELETED
    APP_UPLIFT_REQUESTED = TelemetryEvents.APPLICATION_UPLIFT_REQUESTED
    APP_UPLIFT_APPROVED = TelemetryEvents.APPLICATION_UPLIFT_APPROVED
    APP_UPLIFT_REJECTED = TelemetryEvents.APPLICATION_UPLIFT_REJECTED
    APP_UPLIFT_VERIFIED = TelemetryEvents.APPLICATION_UPLIFT_VERIFIED
    APP_VERIFICATION_RESENT = TelemetryEvents.APPLICATION_VERIFICATION_RESENT
    APP_VERIFICATION_EXPIRED = TelemetryEvents.APPLICATION_VERIFICATION_EXPIRED
    APP_BLOCKED = TelemetryEvents.APPLICATION_BLOCKED
    APP_UNBLOCKED = TelemetryEvents.APPLICATION_UNBLOCKED
    CLIENT_SECRET_ADDED = TelemetryEvents.CLIENT_SECRET_ADDED
    CLIENT_SECRET_REMOVED = TelemetryEvents.CLIENT_SECRET_REMOVED
    COLLABORATOR_ADDED = TelemetryEvents.COLLABORATOR_ADDED
    COLLABORATOR_REMOVED = TelemetryEvents.COLLABORATOR_REMOVED
    SUBSCRIBED = TelemetryEvents.SUBSCRIBED
    UNSUBSCRIBED = TelemetryEvents.UNSUBSCRIBED
    RATE_LIMIT_TIER_CHANGED = TelemetryEvents.RATE_LIMIT_TIER_CHANGED
    IP_ALLOWLIST_CHANGED = TelemetryEvents.IP_ALLOWLIST_CHANGED
    SCOPES_CHANGED = TelemetryEvents.SCOPES_CHANGED


def record_audit(
    action: AuditAction,
    application_id: str,
    actor: Actor | None = None,
    data: dict[str, Any] | None = None,
) -> None:
    """Record an audit action. Failures are logged and never raised."""
    properties: dict[str, Any] = {"applicationId": application_id, **(data or {})}
    if actor:
        properties["actorId"] = actor.id
        properties["actorType"] = actor.actor_type.value

    try:
        track_event(action.value, properties)
    except Exception as e:
        logger.warning(f"Failed to record audit action {action.value} for {application_id}: {e}")
