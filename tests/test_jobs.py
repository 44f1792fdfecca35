"""Tests for scheduled job bodies."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from third_party_application.config import JobConfig
from third_party_application.core import ReconcileResult
from third_party_application.errors import InvalidStateTransition
from third_party_application.jobs import (
    MissingFieldsMetricsJob,
    ReconcileRateLimitsJob,
    UpliftVerificationExpiryJob,
)
from third_party_application.models import ApplicationState, RateLimitTier, State
from third_party_application.telemetry import get_dev_logs


def job_config(enabled: bool = True) -> JobConfig:
    return JobConfig(initial_delay=timedelta(0), interval=timedelta(hours=1), enabled=enabled)


def stale_verification(code: str) -> ApplicationState:
    return ApplicationState(
        name=State.PENDING_REQUESTER_VERIFICATION,
        requested_by_email="admin@example.com",
        verification_code=code,
        verification_code_expires_at=datetime.now(UTC) - timedelta(days=1),
        updated_on=datetime.now(UTC) - timedelta(days=91),
    )


@pytest.mark.asyncio
class TestUpliftVerificationExpiryJob:
    """Test the sweep of expired uplift verifications."""

    async def test_expires_stale_verifications(
        self, applications, application_factory, db, uplift_verification
    ):
        stale = await application_factory(state=stale_verification("stale"))
        fresh = await application_factory(
            state=ApplicationState(
                name=State.PENDING_REQUESTER_VERIFICATION, verification_code="fresh"
            )
        )
        job = UpliftVerificationExpiryJob(job_config(), applications, uplift_verification)

        assert await job.run() == 1

        assert (await db.get_application(stale.id)).state.name == State.TESTING
        assert (await db.get_application(fresh.id)).state.name == (
            State.PENDING_REQUESTER_VERIFICATION
        )

    async def test_failure_does_not_stop_sweep(
        self, applications, application_factory, uplift_verification
    ):
        """Test one application failing to expire is skipped and the rest still expire."""
        first = await application_factory(state=stale_verification("one"))
        second = await application_factory(state=stale_verification("two"))
        real_expire = applications.expire

        async def expire(application_id):
            if application_id == first.id:
                raise InvalidStateTransition(
                    State.PRODUCTION, State.TESTING, State.PENDING_REQUESTER_VERIFICATION
                )
            return await real_expire(application_id)

        applications.expire = AsyncMock(side_effect=expire)
        job = UpliftVerificationExpiryJob(job_config(), applications, uplift_verification)

        assert await job.run() == 1
        applications.expire.assert_any_await(second.id)

    async def test_storage_error_does_not_stop_sweep(
        self, applications, application_factory, db, uplift_verification
    ):
        """Test an unexpected storage error on one application is logged and skipped."""
        first = await application_factory(state=stale_verification("one"))
        second = await application_factory(state=stale_verification("two"))
        real_expire = applications.expire

        async def expire(application_id):
            if application_id == first.id:
                raise ConnectionError("database connection lost")
            return await real_expire(application_id)

        applications.expire = AsyncMock(side_effect=expire)
        job = UpliftVerificationExpiryJob(job_config(), applications, uplift_verification)

        assert await job.run() == 1
        assert (await db.get_application(second.id)).state.name == State.TESTING

    async def test_disabled_job(self, applications, application_factory, db, uplift_verification):
        stale = await application_factory(state=stale_verification("stale"))
        job = UpliftVerificationExpiryJob(job_config(False), applications, uplift_verification)

        assert await job.run() is None
        assert (await db.get_application(stale.id)).state.name == (
            State.PENDING_REQUESTER_VERIFICATION
        )


@pytest.mark.asyncio
class TestReconcileRateLimitsJob:
    async def test_run(self, rate_limits, application_factory, gateway_connector):
        await application_factory(rate_limit_tier=RateLimitTier.SILVER)
        job = ReconcileRateLimitsJob(job_config(), rate_limits)

        assert await job.run() == ReconcileResult(reconciled=1, failed=0)
        gateway_connector.create_or_update_application.assert_awaited_once()

    async def test_disabled(self, rate_limits, application_factory, gateway_connector):
        await application_factory()
        job = ReconcileRateLimitsJob(job_config(False), rate_limits)

        assert await job.run() is None
        gateway_connector.create_or_update_application.assert_not_awaited()


@pytest.mark.asyncio
class TestMissingFieldsMetricsJob:
    """Test metrics on applications with unset optional fields."""

    async def test_counts_missing_fields(self, db, application_factory):
        await application_factory(rate_limit_tier=None)
        await application_factory(rate_limit_tier=None, last_access=datetime.now(UTC))
        await application_factory(last_access=datetime.now(UTC))
        job = MissingFieldsMetricsJob(job_config(), db)

        counts = await job.run()

        assert counts == {
            "applicationsMissingRateLimitField": 2,
            "applicationsMissingLastAccessDateField": 1,
        }
        metrics = {
            e["properties"]["metric_name"]: e["properties"]["metric_value"]
            for e in get_dev_logs("metric")
        }
        assert metrics == counts

    async def test_disabled(self, db):
        job = MissingFieldsMetricsJob(job_config(False), db)

        assert await job.run() is None
        assert get_dev_logs("metric") == []
