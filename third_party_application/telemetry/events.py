"""
Telemetry Event Names

Event names follow the convention {entity}_{action}.
"""


class TelemetryEvents:
    """Centralized telemetry event names."""

    # Application lifecycle
    APPLICATION_CREATED = "application_created"
    APPLICATION_DELETED = "application_deleted"
    APPLICATION_UPLIFT_REQUESTED = "application_uplift_requested"
    APPLICATION_UPLIFT_APPROVED = "application_uplift_approved"
    APPLICATION_UPLIFT_REJECTED = "application_uplift_rejected"
    APPLICATION_UPLIFT_VERIFIED = "application_uplift_verified"
    APPLICATION_VERIFICATION_RESENT = "application_verification_resent"
    APPLICATION_VERIFICATION_EXPIRED = "application_verification_expired"
    APPLICATION_BLOCKED = "application_blocked"
    APPLICATION_UNBLOCKED = "application_unblocked"

    # Credentials
    CLIENT_SECRET_ADDED = "client_secret_added"
    CLIENT_SECRET_REMOVED = "client_secret_removed"

    # Collaborators
    COLLABORATOR_ADDED = "collaborator_added"
    COLLABORATOR_REMOVED = "collaborator_removed"

    # Subscriptions
    SUBSCRIBED = "api_subscribed"
    UNSUBSCRIBED = "api_unsubscribed"

    # Settings
    RATE_LIMIT_TIER_CHANGED = "rate_limit_tier_changed"
    IP_ALLOWLIST_CHANGED = "ip_allowlist_changed"
    SCOPES_CHANGED = "scopes_changed"

    # Jobs
    RATE_LIMITS_RECONCILED = "rate_limits_reconciled"

    # Side-effect failures
    EXTERNAL_SERVICE_ERROR = "external_service_error"
