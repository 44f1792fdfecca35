"""Metrics on applications stored before optional fields existed."""

from ..config import JobConfig
from ..storage.database import Database
from ..telemetry import track_metric
from .base import ScheduledJob

# Stored field name -> metric name
MISSING_FIELD_METRICS = {
    "rate_limit_tier": "applicationsMissingRateLimitField",
    "last_access": "applicationsMissingLastAccessDateField",
}


class MissingFieldsMetricsJob(ScheduledJob[dict[str, int]]):
    """Count applications with unset optional fields and track each count as a metric."""

    name = "MissingFieldsMetricsJob"

    def __init__(self, config: JobConfig, db: Database):
        super().__init__(config)
        self.db = db

    async def execute(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for field_name, metric_name in MISSING_FIELD_METRICS.items():
            count = await self.db.count_applications_missing(field_name)
            track_metric(metric_name, count)
            counts[metric_name] = count
        return counts
