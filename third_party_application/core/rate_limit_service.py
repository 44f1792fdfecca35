"""Rate-limit tiers and their gateway usage plans."""

import logging
from dataclasses import dataclass

from ..config import MutationConfig
from ..models.application import Application, RateLimitTier
from ..storage.database import Database
from ..telemetry import TelemetryEvents, track_event
from .api_gateway_store import ApiGatewayStore
from .audit import AuditAction, record_audit
from .mutations import mutate_application
from .side_effects import best_effort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    reconciled: int
    failed: int


class RateLimitService:
    """Keeps the gateway usage plan of each application in line with its stored tier.

    The stored tier is authoritative. A failed gateway call leaves the new
    tier in place and the next ``reconcile`` run repairs the gateway.
    """

    def __init__(self, db: Database, gateway: ApiGatewayStore, mutation_config: MutationConfig):
        self.db = db
        self.gateway = gateway
        self.mutation_config = mutation_config

    async def update_rate_limit_tier(
        self, application_id: str, tier: RateLimitTier | str
    ) -> Application:
        """Store a new tier and move the application's key to the matching usage plan.

        Raises:
            ApplicationNotFound: If the application does not exist
            InvalidRateLimitTier: If ``tier`` is not a known tier name
        """
        new_tier = tier if isinstance(tier, RateLimitTier) else RateLimitTier.parse(tier)

        def set_tier(application: Application) -> Application | None:
            if application.rate_limit_tier == new_tier:
                return None
            return application.model_copy(update={"rate_limit_tier": new_tier})

        updated, changed = await mutate_application(
            self.db, application_id, set_tier, self.mutation_config
        )

        if changed:
            record_audit(
                AuditAction.RATE_LIMIT_TIER_CHANGED, application_id, data={"tier": new_tier.value}
            )
        await best_effort(
            f"Gateway usage plan update for {application_id}",
            self.gateway.create_or_update_application(
                updated.gateway_id, updated.tokens.access_token, new_tier
            ),
        )
        return updated

    async def all_tiers_and_keys(self) -> list[tuple[str, str, RateLimitTier]]:
        """Get (gateway id, server token, tier) for every application.

        Applications that never had a tier are reported as BRONZE.
        """
        applications = await self.db.fetch_all_applications()
        return [
            (a.gateway_id, a.tokens.access_token, a.rate_limit_tier or RateLimitTier.BRONZE)
            for a in applications
        ]

    async def reconcile(self) -> ReconcileResult:
        """Re-assert the usage plan of every application at the gateway."""
        reconciled = 0
        failed = 0
        for gateway_id, server_token, tier in await self.all_tiers_and_keys():
            ok = await best_effort(
                f"Reconcile usage plan of {gateway_id}",
                self.gateway.create_or_update_application(gateway_id, server_token, tier),
            )
            if ok:
                reconciled += 1
            else:
                failed += 1

        logger.info(f"Rate limit reconciliation finished: {reconciled} ok, {failed} failed")
        track_event(
            TelemetryEvents.RATE_LIMITS_RECONCILED, {"reconciled": reconciled, "failed": failed}
        )
        return ReconcileResult(reconciled=reconciled, failed=failed)
