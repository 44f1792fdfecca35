"""Bodies of the scheduled jobs."""

from .base import ScheduledJob
from .missing_fields_metrics import MissingFieldsMetricsJob
from .reconcile_rate_limits import ReconcileRateLimitsJob
from .uplift_verification_expiry import UpliftVerificationExpiryJob

__all__ = [
    "MissingFieldsMetricsJob",
    "ReconcileRateLimitsJob",
    "ScheduledJob",
    "UpliftVerificationExpiryJob",
]
