"""Re-assert gateway usage plans from stored rate-limit tiers."""

from ..config import JobConfig
from ..core.rate_limit_service import RateLimitService, ReconcileResult
from .base import ScheduledJob


class ReconcileRateLimitsJob(ScheduledJob[ReconcileResult]):
    name = "ReconcileRateLimitsJob"

    def __init__(self, config: JobConfig, rate_limits: RateLimitService):
        super().__init__(config)
        self.rate_limits = rate_limits

    async def execute(self) -> ReconcileResult:
        return await self.rate_limits.reconcile()
