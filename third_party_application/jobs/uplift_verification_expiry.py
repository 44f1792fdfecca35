"""Expire uplift approvals that were never verified."""

import logging

from ..config import JobConfig, UpliftVerificationConfig
from ..core.application_service import ApplicationService
from ..errors import ApplicationError
from .base import ScheduledJob

logger = logging.getLogger(__name__)


class UpliftVerificationExpiryJob(ScheduledJob[int]):
    """Send applications whose verification window elapsed back to TESTING.

    A failure on one application is logged and the sweep carries on.
    Returns the number of applications expired.
    """

    name = "UpliftVerificationExpiryJob"

    def __init__(
        self,
        config: JobConfig,
        applications: ApplicationService,
        uplift_verification: UpliftVerificationConfig,
    ):
        super().__init__(config)
        self.applications = applications
        self.validity = uplift_verification.validity

    async def execute(self) -> int:
        stale = await self.applications.find_applications_with_expired_verification(self.validity)
        logger.info(f"Found {len(stale)} application(s) with expired uplift verification")

        expired = 0
        for application in stale:
            try:
                await self.applications.expire(application.id)
                expired += 1
            except ApplicationError as e:
                logger.warning(f"Could not expire application {application.id}: {e.message}")
            except Exception:
                logger.exception(f"Unexpected error expiring application {application.id}")

        return expired
