"""API subscriptions of applications."""

import logging

import asyncpg

from ..connectors.api_platform_events import ApiPlatformEventsConnector
from ..errors import SubscriptionAlreadyExists, Unauthorized
from ..models.application import Application
from ..models.state import Actor
from ..models.subscription import ApiIdentifier, SubscriptionData
from ..storage.database import Database
from .audit import AuditAction, record_audit
from .mutations import fetch_application
from .side_effects import best_effort

logger = logging.getLogger(__name__)


class SubscriptionService:
    """Adds and removes API subscriptions.

    The subscription row is the primary mutation. The audit action and the
    platform event that follow are best-effort and never undo it.
    """

    def __init__(self, db: Database, events: ApiPlatformEventsConnector):
        self.db = db
        self.events = events

    @staticmethod
    def _check_actor(application: Application, actor: Actor | None) -> None:
        if application.requires_gatekeeper and not (actor and actor.is_gatekeeper):
            raise Unauthorized(
                f"Subscriptions of {application.access.access_type} application "
                f"{application.id} can only be changed by a gatekeeper"
            )

    async def create_subscription(
        self, application_id: str, api: ApiIdentifier, actor: Actor | None = None
    ) -> None:
        """Subscribe an application to an API.

        Raises:
            ApplicationNotFound: If the application does not exist
            Unauthorized: If a privileged or ROPC application is changed without a gatekeeper
            SubscriptionAlreadyExists: If the application is already subscribed
        """
        application = await fetch_application(self.db, application_id)
        self._check_actor(application, actor)
        await self._subscribe(application, api, actor)

    async def create_subscription_minus_checks(
        self, application_id: str, api: ApiIdentifier, actor: Actor | None = None
    ) -> None:
        """Subscribe without the access type check (gatekeeper path)."""
        application = await fetch_application(self.db, application_id)
        await self._subscribe(application, api, actor)

    async def _subscribe(
        self, application: Application, api: ApiIdentifier, actor: Actor | None
    ) -> None:
        if await self.db.is_subscribed(application.id, api):
            raise SubscriptionAlreadyExists(application.name, api.context, api.version)

        try:
            await self.db.insert_subscription(application.id, api)
        except asyncpg.UniqueViolationError:
            # Lost a race with an identical concurrent subscribe
            raise SubscriptionAlreadyExists(application.name, api.context, api.version) from None

        logger.info(f"Application {application.id} subscribed to {api}")
        record_audit(
            AuditAction.SUBSCRIBED,
            application.id,
            actor,
            {"apiContext": api.context, "apiVersion": api.version},
        )
        await best_effort(
            f"Subscribed event for {application.id} to {api}",
            self.events.send_api_subscribed_event(application.id, api, actor),
        )

    async def remove_subscription(
        self, application_id: str, api: ApiIdentifier, actor: Actor | None = None
    ) -> None:
        """Unsubscribe an application from an API. Not being subscribed is not an error."""
        application = await fetch_application(self.db, application_id)
        self._check_actor(application, actor)

        if not await self.db.delete_subscription(application.id, api):
            logger.debug(f"Application {application.id} was not subscribed to {api}")
            return

        logger.info(f"Application {application.id} unsubscribed from {api}")
        record_audit(
            AuditAction.UNSUBSCRIBED,
            application.id,
            actor,
            {"apiContext": api.context, "apiVersion": api.version},
        )
        await best_effort(
            f"Unsubscribed event for {application.id} from {api}",
            self.events.send_api_unsubscribed_event(application.id, api, actor),
        )

    async def is_subscribed(self, application_id: str, api: ApiIdentifier) -> bool:
        return await self.db.is_subscribed(application_id, api)

    async def fetch_all_subscriptions_for_application(
        self, application_id: str
    ) -> list[ApiIdentifier]:
        """Get the APIs an application subscribes to.

        Raises:
            ApplicationNotFound: If the application does not exist
        """
        await fetch_application(self.db, application_id)
        return await self.db.fetch_subscriptions_for_applications([application_id])

    async def fetch_all_subscriptions(self) -> list[SubscriptionData]:
        return await self.db.fetch_all_subscriptions()

    async def search_collaborators(
        self, context: str, version: str, partial_email: str | None = None
    ) -> list[str]:
        return await self.db.search_collaborators(
            ApiIdentifier(context=context, version=version), partial_email
        )

    async def get_subscribers(self, api: ApiIdentifier) -> list[str]:
        return await self.db.fetch_subscribers(api)

    async def get_subscriptions_for_developer(self, user_id: str) -> list[ApiIdentifier]:
        applications = await self.db.fetch_applications_for_collaborator(user_id)
        if not applications:
            return []
        return await self.db.fetch_subscriptions_for_applications([a.id for a in applications])
