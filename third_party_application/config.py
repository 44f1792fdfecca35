"""Service configuration using pydantic-settings."""

from dataclasses import dataclass
from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class JobConfig:
    """Scheduling parameters for a background job."""

    initial_delay: timedelta
    interval: timedelta
    enabled: bool = True


@dataclass(frozen=True)
class CredentialConfig:
    """Client secret issuance limits and hashing parameters."""

    client_secret_limit: int = 5
    hash_function_work_factor: int = 12
    hash_pool_max_workers: int = 4
    allow_zero_client_secrets: bool = False


@dataclass(frozen=True)
class UpliftVerificationConfig:
    """Validity window of uplift verification codes."""

    validity: timedelta = timedelta(days=90)


@dataclass(frozen=True)
class NameValidationConfig:
    """Application name rules applied on uplift."""

    deny_list: tuple[str, ...] = ("HMRC", "HM Revenue", "Government Gateway")
    validate_for_duplicate_app_names: bool = True


@dataclass(frozen=True)
class GatewayConfig:
    """External API gateway connection settings."""

    base_url: str
    api_key: str
    timeout_seconds: float = 10.0
    disable_gateway_calls: bool = False


@dataclass(frozen=True)
class EmailConfig:
    """Email service connection settings."""

    base_url: str
    dev_hub_base_url: str
    dev_hub_title: str = "Developer Hub"
    environment_name: str = "unknown"
    timeout_seconds: float = 5.0


@dataclass(frozen=True)
class ApiPlatformEventsConfig:
    """API platform events service connection settings."""

    base_url: str
    enabled: bool = True
    timeout_seconds: float = 5.0


@dataclass(frozen=True)
class SubscriptionFieldsConfig:
    """API subscription fields service connection settings."""

    base_url: str
    timeout_seconds: float = 5.0


@dataclass(frozen=True)
class MutationConfig:
    """Optimistic concurrency retry policy for application writes."""

    max_attempts: int = 3


class Settings(BaseSettings):
    """Service settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="info", description="Logging level")
    environment_name: str = Field(default="unknown", description="Deployment environment name")

    # Database - PostgreSQL connection
    database_url: str | None = Field(
        default=None,
        description="Full database connection URL (overrides individual fields)",
    )
    database_user: str = Field(default="tpa_dev", description="Database username")
    database_password: str = Field(default="dev_password", description="Database password")
    database_host: str = Field(default="localhost", description="Database host")
    database_port: int = Field(default=5432, description="Database port")
    database_name: str = Field(default="third_party_application", description="Database name")
    database_pool_min_size: int = Field(default=10, description="Minimum pool size")
    database_pool_max_size: int = Field(default=20, description="Maximum pool size")
    database_command_timeout: float = Field(
        default=30.0, description="Timeout in seconds for a single database command"
    )
    database_ssl_mode: str = Field(
        default="prefer",
        description="SSL mode: disable, prefer, require",
    )

    # Credentials
    client_secret_limit: int = Field(
        default=5, description="Maximum client secrets per application"
    )
    hash_function_work_factor: int = Field(default=12, description="bcrypt cost factor")
    hash_pool_max_workers: int = Field(
        default=4, description="Threads available for client secret hashing"
    )
    allow_zero_client_secrets: bool = Field(
        default=False,
        description="Allow deleting the last remaining client secret of an application",
    )
    mutation_max_attempts: int = Field(
        default=3, description="Attempts for a version-matched application write"
    )

    # Uplift
    uplift_verification_validity_days: int = Field(
        default=90, description="Days an uplift verification code stays valid"
    )
    application_name_deny_list: str = Field(
        default="HMRC,HM Revenue,Government Gateway",
        description="Terms not allowed in application names (comma-separated)",
    )
    validate_for_duplicate_app_names: bool = Field(
        default=True, description="Reject uplift when the name is used by a live application"
    )

    # External services
    aws_gateway_url: str = Field(default="http://localhost:9607", description="API gateway URL")
    aws_api_key: str = Field(default="fake-api-key", description="API gateway key")
    aws_gateway_timeout: float = Field(default=10.0, description="API gateway timeout seconds")
    disable_aws_calls: bool = Field(default=False, description="Skip API gateway calls")
    email_url: str = Field(default="http://localhost:8300", description="Email service URL")
    email_timeout: float = Field(default=5.0, description="Email service timeout seconds")
    dev_hub_base_url: str = Field(
        default="http://localhost:9685", description="Developer hub base URL used in emails"
    )
    api_platform_events_url: str = Field(
        default="http://localhost:6700", description="API platform events service URL"
    )
    api_platform_events_enabled: bool = Field(default=True, description="Send platform events")
    api_platform_events_timeout: float = Field(
        default=5.0, description="API platform events timeout seconds"
    )
    api_subscription_fields_url: str = Field(
        default="http://localhost:9650", description="API subscription fields service URL"
    )
    api_subscription_fields_timeout: float = Field(
        default=5.0, description="API subscription fields timeout seconds"
    )

    # Jobs
    uplift_verification_expiry_job_enabled: bool = Field(default=True)
    uplift_verification_expiry_job_initial_delay_seconds: int = Field(default=60)
    uplift_verification_expiry_job_interval_seconds: int = Field(default=24 * 60 * 60)
    reconcile_rate_limits_job_enabled: bool = Field(default=True)
    reconcile_rate_limits_job_initial_delay_seconds: int = Field(default=5 * 60)
    reconcile_rate_limits_job_interval_seconds: int = Field(default=24 * 60 * 60)
    metrics_job_enabled: bool = Field(default=True)
    metrics_job_initial_delay_seconds: int = Field(default=2 * 60)
    metrics_job_interval_seconds: int = Field(default=60 * 60)

    def get_database_url(self) -> str:
        """
        Get PostgreSQL connection URL.

        If database_url is set, use it directly.
        Otherwise, construct from individual components.
        """
        from urllib.parse import quote_plus

        if self.database_url:
            return self.database_url

        # URL-encode username and password to handle special characters
        user = quote_plus(self.database_user)
        password = quote_plus(self.database_password)

        ssl_param = ""
        if self.database_ssl_mode == "require":
            ssl_param = "?sslmode=require"
        elif self.database_ssl_mode == "prefer":
            ssl_param = "?sslmode=prefer"

        return (
            f"postgresql://{user}:{password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}{ssl_param}"
        )

    def get_name_deny_list(self) -> tuple[str, ...]:
        """Get the application name deny list as a tuple."""
        return tuple(
            term.strip() for term in self.application_name_deny_list.split(",") if term.strip()
        )

    def credential_config(self) -> CredentialConfig:
        return CredentialConfig(
            client_secret_limit=self.client_secret_limit,
            hash_function_work_factor=self.hash_function_work_factor,
            hash_pool_max_workers=self.hash_pool_max_workers,
            allow_zero_client_secrets=self.allow_zero_client_secrets,
        )

    def uplift_verification_config(self) -> UpliftVerificationConfig:
        return UpliftVerificationConfig(
            validity=timedelta(days=self.uplift_verification_validity_days)
        )

    def name_validation_config(self) -> NameValidationConfig:
        return NameValidationConfig(
            deny_list=self.get_name_deny_list(),
            validate_for_duplicate_app_names=self.validate_for_duplicate_app_names,
        )

    def mutation_config(self) -> MutationConfig:
        return MutationConfig(max_attempts=self.mutation_max_attempts)

    def gateway_config(self) -> GatewayConfig:
        return GatewayConfig(
            base_url=self.aws_gateway_url,
            api_key=self.aws_api_key,
            timeout_seconds=self.aws_gateway_timeout,
            disable_gateway_calls=self.disable_aws_calls,
        )

    def email_config(self) -> EmailConfig:
        return EmailConfig(
            base_url=self.email_url,
            dev_hub_base_url=self.dev_hub_base_url,
            environment_name=self.environment_name,
            timeout_seconds=self.email_timeout,
        )

    def api_platform_events_config(self) -> ApiPlatformEventsConfig:
        return ApiPlatformEventsConfig(
            base_url=self.api_platform_events_url,
            enabled=self.api_platform_events_enabled,
            timeout_seconds=self.api_platform_events_timeout,
        )

    def subscription_fields_config(self) -> SubscriptionFieldsConfig:
        return SubscriptionFieldsConfig(
            base_url=self.api_subscription_fields_url,
            timeout_seconds=self.api_subscription_fields_timeout,
        )

    def uplift_verification_expiry_job_config(self) -> JobConfig:
        return JobConfig(
            initial_delay=timedelta(
                seconds=self.uplift_verification_expiry_job_initial_delay_seconds
            ),
            interval=timedelta(seconds=self.uplift_verification_expiry_job_interval_seconds),
            enabled=self.uplift_verification_expiry_job_enabled,
        )

    def reconcile_rate_limits_job_config(self) -> JobConfig:
        return JobConfig(
            initial_delay=timedelta(seconds=self.reconcile_rate_limits_job_initial_delay_seconds),
            interval=timedelta(seconds=self.reconcile_rate_limits_job_interval_seconds),
            enabled=self.reconcile_rate_limits_job_enabled,
        )

    def metrics_job_config(self) -> JobConfig:
        return JobConfig(
            initial_delay=timedelta(seconds=self.metrics_job_initial_delay_seconds),
            interval=timedelta(seconds=self.metrics_job_interval_seconds),
            enabled=self.metrics_job_enabled,
        )


# Global settings instance
settings = Settings()
