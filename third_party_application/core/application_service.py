"""Application creation, uplift requests, verification and deletion."""

import ipaddress
import logging
import secrets
import uuid
from datetime import UTC, datetime, timedelta

from ..config import MutationConfig, NameValidationConfig
from ..connectors.api_subscription_fields import ApiSubscriptionFieldsConnector
from ..errors import (
    ApplicationAlreadyExists,
    ApplicationNeedsAdmin,
    InvalidIpAllowlistException,
    InvalidUpliftVerificationCode,
    UserAlreadyExists,
)
from ..models.application import (
    AccessType,
    Application,
    ApplicationNameValidationResult,
    ApplicationTokens,
    CheckInformation,
    IpAllowlist,
    RateLimitTier,
    Role,
    TermsOfUseAgreement,
    normalise_name,
)
from ..models.requests import CreateApplicationRequest
from ..models.responses import ApplicationTokensResponse, CreateApplicationResult
from ..models.state import Actor, ApplicationState, State, StateHistory
from ..storage.database import Database
from . import state_machine
from .api_gateway_store import ApiGatewayStore
from .audit import AuditAction, record_audit
from .credential_service import CredentialService
from .mutations import commit_transition, fetch_application, mutate_application
from .side_effects import best_effort

logger = logging.getLogger(__name__)

EXPIRY_JOB_ACTOR = Actor.scheduled_job("UpliftVerificationExpiryJob")


def generate_client_id() -> str:
    return secrets.token_urlsafe(21)


def generate_server_token() -> str:
    return secrets.token_hex(16)


def generate_gateway_id() -> str:
    return secrets.token_hex(16)


class ApplicationService:
    """Lifecycle operations driven by collaborators and scheduled jobs.

    Gatekeeper moderation lives in ``GatekeeperService``.
    """

    def __init__(
        self,
        db: Database,
        credentials: CredentialService,
        gateway: ApiGatewayStore,
        subscription_fields: ApiSubscriptionFieldsConnector,
        name_validation: NameValidationConfig,
        mutation_config: MutationConfig,
    ):
        self.db = db
        self.credentials = credentials
        self.gateway = gateway
        self.subscription_fields = subscription_fields
        self.name_validation = name_validation
        self.mutation_config = mutation_config

    async def fetch(self, application_id: str) -> Application:
        """Get an application.

        Raises:
            ApplicationNotFound: If the application does not exist
        """
        return await fetch_application(self.db, application_id)

    async def create_application(
        self, request: CreateApplicationRequest, actor: Actor | None = None
    ) -> CreateApplicationResult:
        """Register a new application with one initial client secret.

        Standard applications start in TESTING. Privileged and ROPC applications
        are created by gatekeepers and go straight to PRODUCTION.

        Args:
            request: Name, access type and initial collaborators
            actor: Identity creating the application, defaults to the first admin

        Returns:
            The stored application and its plaintext client secret (only returned once)

        Raises:
            ApplicationNeedsAdmin: If no collaborator is an administrator
            UserAlreadyExists: If the same email is listed twice
            ApplicationAlreadyExists: If a privileged or ROPC name is already taken
        """
        emails = [c.email for c in request.collaborators]
        duplicates = {e for e in emails if emails.count(e) > 1}
        if duplicates:
            raise UserAlreadyExists(sorted(duplicates)[0])
        admins = [c for c in request.collaborators if c.role == Role.ADMINISTRATOR]
        if not admins:
            raise ApplicationNeedsAdmin()

        skips_uplift = request.access.access_type != AccessType.STANDARD
        if skips_uplift:
            validation = await self.validate_application_name(request.name)
            if validation == ApplicationNameValidationResult.DUPLICATE:
                raise ApplicationAlreadyExists(request.name)

        now = datetime.now(UTC)
        plaintext, client_secret = await self.credentials.new_client_secret()
        initial_state = State.PRODUCTION if skips_uplift else State.TESTING
        actor = actor or Actor.collaborator(admins[0].email)

        application = Application(
            id=str(uuid.uuid4()),
            name=request.name,
            normalised_name=normalise_name(request.name),
            description=request.description,
            collaborators=request.collaborators,
            gateway_id=generate_gateway_id(),
            tokens=ApplicationTokens(
                client_id=generate_client_id(),
                access_token=generate_server_token(),
                client_secrets=[client_secret],
            ),
            state=ApplicationState(
                name=initial_state, requested_by_email=admins[0].email, updated_on=now
            ),
            access=request.access,
            environment=request.environment,
            rate_limit_tier=RateLimitTier.BRONZE,
            created_on=now,
        )
        history = StateHistory(
            application_id=application.id,
            state=initial_state,
            previous_state=None,
            actor=actor,
            changed_at=now,
        )

        await self.db.insert_application(application, history)

        logger.info(
            f"Created application {application.id} ({application.name}) in {initial_state.value}"
        )
        record_audit(
            AuditAction.APP_CREATED,
            application.id,
            actor,
            {"applicationName": application.name, "accessType": application.access.access_type},
        )
        await best_effort(
            f"Gateway registration of {application.id}",
            self.gateway.create_or_update_application(
                application.gateway_id, application.tokens.access_token, RateLimitTier.BRONZE
            ),
        )

        return CreateApplicationResult(
            application=application,
            client_secret=plaintext,
            tokens=ApplicationTokensResponse.from_tokens(application.tokens),
        )

    async def delete_application(
        self, application_id: str, actor: Actor, requested_by_email: str | None = None
    ) -> Application:
        """Delete an application and everything hanging off it.

        Subscriptions and state history go first, then the subscription fields
        and gateway registrations (best-effort), then the application record.

        Raises:
            ApplicationNotFound: If the application does not exist
        """
        application = await fetch_application(self.db, application_id)

        await self.db.delete_subscriptions_for_application(application.id)
        await self.db.delete_state_history(application.id)
        await best_effort(
            f"Subscription fields deletion for {application.id}",
            self.subscription_fields.delete_subscriptions(application.tokens.client_id),
        )
        await best_effort(
            f"Gateway deletion of {application.id}",
            self.gateway.delete_application(application.gateway_id),
        )
        await self.db.delete_application(application.id)

        logger.info(f"Deleted application {application.id} ({application.name})")
        data = {"applicationName": application.name}
        if requested_by_email:
            data["requestedByEmail"] = requested_by_email
        record_audit(AuditAction.APP_DELETED, application.id, actor, data)
        return application

    async def validate_application_name(
        self, name: str, self_application_id: str | None = None
    ) -> ApplicationNameValidationResult:
        """Check a name against the deny list and the names of live applications.

        A name is a duplicate when another application past TESTING has the same
        name ignoring case and whitespace.
        """
        lowered = name.lower()
        if any(term.lower() in lowered for term in self.name_validation.deny_list):
            return ApplicationNameValidationResult.INVALID

        if self.name_validation.validate_for_duplicate_app_names:
            matches = await self.db.fetch_non_testing_applications_by_normalised_name(
                normalise_name(name)
            )
            if any(a.id != self_application_id for a in matches):
                return ApplicationNameValidationResult.DUPLICATE

        return ApplicationNameValidationResult.VALID

    async def request_uplift(
        self, application_id: str, application_name: str, requested_by_email: str
    ) -> Application:
        """Ask a gatekeeper to promote a testing application to production.

        Raises:
            ApplicationNotFound: If the application does not exist
            InvalidStateTransition: If the application is not in TESTING
            ApplicationAlreadyExists: If a live application already uses the name
        """
        application = await fetch_application(self.db, application_id)
        new_state = state_machine.request_uplift(application.state, requested_by_email)

        validation = await self.validate_application_name(application_name, application.id)
        if validation == ApplicationNameValidationResult.DUPLICATE:
            raise ApplicationAlreadyExists(application_name)

        updated = application.model_copy(
            update={
                "name": application_name,
                "normalised_name": normalise_name(application_name),
                "state": new_state,
            }
        )
        history = StateHistory(
            application_id=application.id,
            state=new_state.name,
            previous_state=application.state.name,
            actor=Actor.collaborator(requested_by_email),
            changed_at=new_state.updated_on,
        )
        result = await commit_transition(
            self.db, application, updated, history, expected_from=State.TESTING
        )

        logger.info(f"Uplift requested for application {application.id} by {requested_by_email}")
        record_audit(
            AuditAction.APP_UPLIFT_REQUESTED,
            application.id,
            history.actor,
            {"applicationName": application_name},
        )
        return result

    async def verify_uplift(self, verification_code: str) -> Application:
        """Complete an approved uplift with the code emailed to the requester.

        Verifying an application that is already in production with its code
        succeeds without changing anything while the code is still in date.

        Raises:
            InvalidUpliftVerificationCode: If the code is unknown or has expired
        """
        application = await self.db.fetch_by_verification_code(verification_code)
        if application is None:
            raise InvalidUpliftVerificationCode(verification_code)

        if state_machine.is_verification_expired(application.state):
            logger.info(f"Expired verification code used for application {application.id}")
            raise InvalidUpliftVerificationCode(verification_code)

        if application.state.name == State.PRODUCTION:
            logger.info(f"Application {application.id} already verified")
            return application

        if application.state.name != State.PENDING_REQUESTER_VERIFICATION:
            raise InvalidUpliftVerificationCode(verification_code)

        new_state = state_machine.verify(application.state)
        actor = Actor.collaborator(application.state.requested_by_email or "unknown")
        history = StateHistory(
            application_id=application.id,
            state=new_state.name,
            previous_state=application.state.name,
            actor=actor,
            changed_at=new_state.updated_on,
        )
        result = await commit_transition(
            self.db,
            application,
            application.model_copy(update={"state": new_state}),
            history,
            expected_from=State.PENDING_REQUESTER_VERIFICATION,
        )

        logger.info(f"Application {application.id} verified and moved to production")
        record_audit(AuditAction.APP_UPLIFT_VERIFIED, application.id, actor)
        return result

    async def find_applications_with_expired_verification(
        self, validity: timedelta
    ) -> list[Application]:
        """Get applications whose verification window has elapsed."""
        return await self.db.fetch_applications_by_state(
            State.PENDING_REQUESTER_VERIFICATION, updated_before=datetime.now(UTC) - validity
        )

    async def expire(self, application_id: str) -> Application:
        """Send an application whose verification expired back to TESTING.

        Raises:
            ApplicationNotFound: If the application does not exist
            InvalidStateTransition: If it is not pending requester verification
        """
        application = await fetch_application(self.db, application_id)
        new_state = state_machine.expire(application.state)
        history = StateHistory(
            application_id=application.id,
            state=new_state.name,
            previous_state=application.state.name,
            actor=EXPIRY_JOB_ACTOR,
            notes="Uplift verification expired",
            changed_at=new_state.updated_on,
        )
        result = await commit_transition(
            self.db,
            application,
            application.model_copy(update={"state": new_state}),
            history,
            expected_from=State.PENDING_REQUESTER_VERIFICATION,
        )

        logger.info(f"Uplift verification expired for application {application.id}")
        record_audit(AuditAction.APP_VERIFICATION_EXPIRED, application.id, EXPIRY_JOB_ACTOR)
        return result

    async def update_ip_allowlist(
        self, application_id: str, required: bool, allowlist: list[str]
    ) -> Application:
        """Replace the IP allowlist.

        Raises:
            InvalidIpAllowlistException: If an entry is not a valid CIDR block
        """
        for entry in allowlist:
            try:
                if "/" not in entry:
                    raise ValueError("missing prefix length")
                ipaddress.ip_network(entry, strict=True)
            except ValueError:
                raise InvalidIpAllowlistException(f"Not valid CIDR block: {entry}") from None

        new_allowlist = IpAllowlist(required=required, allowlist=list(dict.fromkeys(allowlist)))

        def set_allowlist(application: Application) -> Application | None:
            if application.ip_allowlist == new_allowlist:
                return None
            return application.model_copy(update={"ip_allowlist": new_allowlist})

        updated, changed = await mutate_application(
            self.db, application_id, set_allowlist, self.mutation_config
        )
        if changed:
            record_audit(
                AuditAction.IP_ALLOWLIST_CHANGED,
                application_id,
                data={"required": required, "allowlist": ",".join(new_allowlist.allowlist)},
            )
        return updated

    async def record_terms_of_use_agreement(
        self, application_id: str, email: str, version: str
    ) -> Application:
        agreement = TermsOfUseAgreement(email_address=email.strip().lower(), version=version)

        def append_agreement(application: Application) -> Application:
            check_information = application.check_information or CheckInformation()
            return application.model_copy(
                update={
                    "check_information": check_information.model_copy(
                        update={
                            "terms_of_use_agreements": [
                                *check_information.terms_of_use_agreements,
                                agreement,
                            ]
                        }
                    )
                }
            )

        updated, _ = await mutate_application(
            self.db, application_id, append_agreement, self.mutation_config
        )
        logger.info(f"Recorded terms of use {version} agreement for application {application_id}")
        return updated
