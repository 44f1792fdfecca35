"""Client secret issuance, removal and validation."""

import logging
import secrets
import uuid
from datetime import UTC, datetime

from ..config import CredentialConfig, MutationConfig
from ..errors import ClientSecretNotFound, ClientSecretRequired, ClientSecretsLimitExceeded
from ..models.application import Application, ClientSecret
from ..models.responses import AddClientSecretResult, ApplicationTokensResponse
from ..models.state import Actor
from ..storage.database import Database
from .audit import AuditAction, record_audit
from .mutations import fetch_application, mutate_application
from .secret_hasher import SecretHasher

logger = logging.getLogger(__name__)

HINT_LENGTH = 4


def generate_client_secret() -> str:
    """Generate a secure random client secret."""
    return secrets.token_urlsafe(32)


class CredentialService:
    """Manages the client secrets of applications.

    Only bcrypt hashes are stored. A plaintext secret leaves this service
    exactly once, in the result of the call that created it.
    """

    def __init__(
        self,
        db: Database,
        hasher: SecretHasher,
        config: CredentialConfig,
        mutation_config: MutationConfig,
    ):
        self.db = db
        self.hasher = hasher
        self.config = config
        self.mutation_config = mutation_config

    async def new_client_secret(self) -> tuple[str, ClientSecret]:
        """Generate a secret and its stored form.

        Returns:
            Tuple of (plaintext secret, ClientSecret holding only the hash)
        """
        plaintext = generate_client_secret()
        hashed = await self.hasher.hash_secret(plaintext)
        return plaintext, ClientSecret(
            id=str(uuid.uuid4()),
            hint=plaintext[-HINT_LENGTH:],
            hashed_secret=hashed,
            created_on=datetime.now(UTC),
        )

    async def fetch_credentials(self, application_id: str) -> ApplicationTokensResponse:
        application = await fetch_application(self.db, application_id)
        return ApplicationTokensResponse.from_tokens(application.tokens)

    def _check_limit(self, application: Application) -> None:
        if len(application.tokens.client_secrets) >= self.config.client_secret_limit:
            raise ClientSecretsLimitExceeded(self.config.client_secret_limit)

    async def add_client_secret(
        self, application_id: str, actor_email: str
    ) -> AddClientSecretResult:
        """Issue a new client secret.

        Args:
            application_id: Application to add the secret to
            actor_email: Collaborator requesting the secret

        Returns:
            The plaintext secret, its id and the updated token set

        Raises:
            ApplicationNotFound: If the application does not exist
            ClientSecretsLimitExceeded: If the application already has the maximum
        """
        self._check_limit(await fetch_application(self.db, application_id))

        plaintext, client_secret = await self.new_client_secret()

        def append_secret(application: Application) -> Application:
            self._check_limit(application)
            tokens = application.tokens.model_copy(
                update={"client_secrets": [*application.tokens.client_secrets, client_secret]}
            )
            return application.model_copy(update={"tokens": tokens})

        updated, _ = await mutate_application(
            self.db, application_id, append_secret, self.mutation_config
        )

        record_audit(
            AuditAction.CLIENT_SECRET_ADDED,
            application_id,
            Actor.collaborator(actor_email),
            {"clientSecretId": client_secret.id},
        )
        logger.info(f"Added client secret {client_secret.id} to application {application_id}")

        return AddClientSecretResult(
            client_secret=plaintext,
            secret_id=client_secret.id,
            tokens=ApplicationTokensResponse.from_tokens(updated.tokens),
        )

    async def delete_client_secret(
        self, application_id: str, secret_id: str, actor_email: str
    ) -> ApplicationTokensResponse:
        """Remove a client secret.

        Raises:
            ApplicationNotFound: If the application does not exist
            ClientSecretNotFound: If the application has no secret with this id
            ClientSecretRequired: If this is the last secret and zero secrets are not allowed
        """

        def remove_secret(application: Application) -> Application:
            remaining = [s for s in application.tokens.client_secrets if s.id != secret_id]
            if len(remaining) == len(application.tokens.client_secrets):
                raise ClientSecretNotFound(application_id, secret_id)
            if not remaining and not self.config.allow_zero_client_secrets:
                raise ClientSecretRequired(application_id)
            tokens = application.tokens.model_copy(update={"client_secrets": remaining})
            return application.model_copy(update={"tokens": tokens})

        updated, _ = await mutate_application(
            self.db, application_id, remove_secret, self.mutation_config
        )

        record_audit(
            AuditAction.CLIENT_SECRET_REMOVED,
            application_id,
            Actor.collaborator(actor_email),
            {"clientSecretId": secret_id},
        )
        logger.info(f"Removed client secret {secret_id} from application {application_id}")

        return ApplicationTokensResponse.from_tokens(updated.tokens)

    async def validate_credentials(self, client_id: str, client_secret: str) -> Application | None:
        """Return the application if the secret matches one of its stored hashes.

        Never reports whether the client id or the secret was wrong.
        """
        application = await self.db.fetch_by_client_id(client_id)
        if application is None:
            return None

        for stored in application.tokens.client_secrets:
            if await self.hasher.check_secret(client_secret, stored.hashed_secret):
                return application

        return None
