"""Pytest configuration and fixtures."""

import os
from unittest.mock import Mock

# Set test environment variables BEFORE importing anything that loads settings
# so that no test ever tries to reach Application Insights
os.environ["TELEMETRY_ENABLED"] = "false"
os.environ["TELEMETRY_APP_INSIGHTS_CONNECTION_STRING"] = ""

import pytest
import pytest_asyncio
from fakes import InMemoryDatabase, build_application

from third_party_application.config import (
    CredentialConfig,
    GatewayConfig,
    MutationConfig,
    NameValidationConfig,
    UpliftVerificationConfig,
)
from third_party_application.connectors import (
    ApiPlatformEventsConnector,
    ApiSubscriptionFieldsConnector,
    AwsApiGatewayConnector,
    EmailConnector,
)
from third_party_application.core import (
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
from third_party_application.models import Application
from third_party_application.telemetry import clear_dev_logs

GATEWAY_CONFIG = GatewayConfig(base_url="http://gateway.test", api_key="test-api-key")


@pytest.fixture(autouse=True)
def clean_telemetry():
    """Start every test with an empty telemetry buffer."""
    clear_dev_logs()
    yield
    clear_dev_logs()


@pytest.fixture
def db():
    return InMemoryDatabase()


@pytest.fixture
def application_factory(db):
    """Store applications built from ``build_application`` overrides.

    Usage:
        application = await application_factory(blocked=True)
    """

    async def create(**overrides) -> Application:
        return await db.insert_application(build_application(**overrides))

    return create


@pytest.fixture
def mutation_config():
    return MutationConfig(max_attempts=3)


@pytest.fixture
def credential_config():
    # Lowest bcrypt cost keeps hashing fast in tests
    return CredentialConfig(
        client_secret_limit=5, hash_function_work_factor=4, hash_pool_max_workers=2
    )


@pytest.fixture
def uplift_verification():
    return UpliftVerificationConfig()


@pytest.fixture
def hasher(credential_config):
    hasher = SecretHasher(credential_config)
    yield hasher
    hasher.shutdown()


@pytest.fixture
def email():
    """Email connector whose sends all succeed."""
    return Mock(spec=EmailConnector)


@pytest.fixture
def events():
    connector = Mock(spec=ApiPlatformEventsConnector)
    connector.send_api_subscribed_event.return_value = True
    connector.send_api_unsubscribed_event.return_value = True
    return connector


@pytest.fixture
def gateway_connector():
    return Mock(spec=AwsApiGatewayConnector)


@pytest.fixture
def subscription_fields():
    return Mock(spec=ApiSubscriptionFieldsConnector)


@pytest.fixture
def gateway(gateway_connector):
    return ApiGatewayStore(gateway_connector, GATEWAY_CONFIG)


@pytest.fixture
def credentials(db, hasher, credential_config, mutation_config):
    return CredentialService(db, hasher, credential_config, mutation_config)


@pytest.fixture
def applications(db, credentials, gateway, subscription_fields, mutation_config):
    return ApplicationService(
        db, credentials, gateway, subscription_fields, NameValidationConfig(), mutation_config
    )


@pytest.fixture
def gatekeeper(db, applications, email, uplift_verification, mutation_config):
    return GatekeeperService(db, applications, email, uplift_verification, mutation_config)


@pytest.fixture
def subscriptions(db, events):
    return SubscriptionService(db, events)


@pytest.fixture
def collaborators(db, email, mutation_config):
    return CollaboratorService(db, email, mutation_config)


@pytest.fixture
def rate_limits(db, gateway, mutation_config):
    return RateLimitService(db, gateway, mutation_config)


@pytest.fixture
def access(db, mutation_config):
    return AccessService(db, mutation_config)


@pytest_asyncio.fixture(scope="function")
async def testing_application(application_factory):
    """A standard application in TESTING."""
    return await application_factory()
