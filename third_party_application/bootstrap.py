"""Composition root: builds the core services from settings.

The adapter layer (HTTP controllers, job scheduler) opens the services once
at startup::

    configure_logging()
    async with open_services(settings) as services:
        await services.applications.create_application(request)
"""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from . import __version__
from .config import Settings
from .config import settings as default_settings
from .connectors import (
    ApiPlatformEventsConnector,
    ApiSubscriptionFieldsConnector,
    AwsApiGatewayConnector,
    EmailConnector,
)
from .core import (
    AccessService,
    ApiGatewayStore,
    ApplicationService,
    CollaboratorService,
    CredentialService,
    GatekeeperService,
    RateLimitService,
    SecretHasher,
    SubscriptionService,
)
from .jobs import MissingFieldsMetricsJob, ReconcileRateLimitsJob, UpliftVerificationExpiryJob
from .storage import Database
from .telemetry import flush_telemetry, initialize_telemetry

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the service process.

    Uses the configured log level unless one is given.
    """
    level = level or default_settings.log_level
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@dataclass
class Services:
    """Everything the adapter layer calls into."""

    db: Database
    applications: ApplicationService
    gatekeeper: GatekeeperService
    credentials: CredentialService
    subscriptions: SubscriptionService
    collaborators: CollaboratorService
    rate_limits: RateLimitService
    access: AccessService
    uplift_verification_expiry_job: UpliftVerificationExpiryJob
    reconcile_rate_limits_job: ReconcileRateLimitsJob
    missing_fields_metrics_job: MissingFieldsMetricsJob


@asynccontextmanager
async def open_services(settings: Settings) -> AsyncGenerator[Services, None]:
    """Connect storage and external clients, wire the services and close it all on exit."""
    logger.info(f"Starting third-party application core {__version__}...")

    initialize_telemetry()
    logger.info("Telemetry initialized")

    db = Database(
        settings.get_database_url(),
        min_size=settings.database_pool_min_size,
        max_size=settings.database_pool_max_size,
        command_timeout=settings.database_command_timeout,
    )
    await db.connect()
    logger.info("Database initialized")

    gateway_connector = AwsApiGatewayConnector(settings.gateway_config())
    email = EmailConnector(settings.email_config())
    events = ApiPlatformEventsConnector(settings.api_platform_events_config())
    subscription_fields = ApiSubscriptionFieldsConnector(settings.subscription_fields_config())
    hasher = SecretHasher(settings.credential_config())

    mutation_config = settings.mutation_config()
    uplift_verification = settings.uplift_verification_config()
    gateway = ApiGatewayStore(gateway_connector, settings.gateway_config())
    credentials = CredentialService(db, hasher, settings.credential_config(), mutation_config)
    applications = ApplicationService(
        db,
        credentials,
        gateway,
        subscription_fields,
        settings.name_validation_config(),
        mutation_config,
    )
    rate_limits = RateLimitService(db, gateway, mutation_config)

    services = Services(
        db=db,
        applications=applications,
        gatekeeper=GatekeeperService(
            db, applications, email, uplift_verification, mutation_config
        ),
        credentials=credentials,
        subscriptions=SubscriptionService(db, events),
        collaborators=CollaboratorService(db, email, mutation_config),
        rate_limits=rate_limits,
        access=AccessService(db, mutation_config),
        uplift_verification_expiry_job=UpliftVerificationExpiryJob(
            settings.uplift_verification_expiry_job_config(), applications, uplift_verification
        ),
        reconcile_rate_limits_job=ReconcileRateLimitsJob(
            settings.reconcile_rate_limits_job_config(), rate_limits
        ),
        missing_fields_metrics_job=MissingFieldsMetricsJob(settings.metrics_job_config(), db),
    )
    logger.info("Third-party application core started successfully")

    try:
        yield services
    finally:
        logger.info("Shutting down third-party application core...")

        flush_telemetry()
        logger.info("Telemetry flushed")

        for connector in (gateway_connector, email, events, subscription_fields):
            await connector.close()
        hasher.shutdown()
        await db.disconnect()
        logger.info("Third-party application core stopped")
