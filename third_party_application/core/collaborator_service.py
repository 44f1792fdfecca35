"""Collaborator management with the at-least-one-administrator guard."""

import logging

from ..config import MutationConfig
from ..connectors.email import EmailConnector
from ..errors import ApplicationNeedsAdmin, CollaboratorNotFound, Unauthorized, UserAlreadyExists
from ..models.application import Application, Collaborator, Role
from ..models.state import Actor
from ..storage.database import Database
from .audit import AuditAction, record_audit
from .mutations import mutate_application
from .side_effects import best_effort

logger = logging.getLogger(__name__)


class CollaboratorService:
    """Adds and removes collaborators.

    Both mutations are version-matched writes that re-check their rules
    against fresh data when they lose a race. Two concurrent deletes of the
    two administrators of an application therefore cannot both succeed.
    """

    def __init__(self, db: Database, email: EmailConnector, mutation_config: MutationConfig):
        self.db = db
        self.email = email
        self.mutation_config = mutation_config

    @staticmethod
    def _check_actor(application: Application, actor: Actor | None) -> None:
        if actor and not actor.is_gatekeeper and application.requires_gatekeeper:
            raise Unauthorized(
                f"Collaborators of {application.access.access_type} application "
                f"{application.id} can only be changed by a gatekeeper"
            )

    async def add_collaborator(
        self,
        application_id: str,
        collaborator: Collaborator,
        notify_existing: bool = True,
        admins_to_email: set[str] | None = None,
        actor: Actor | None = None,
    ) -> list[Collaborator]:
        """Add a collaborator. Re-adding with the same role changes nothing.

        Args:
            application_id: Application to add the collaborator to
            collaborator: Email and role to add
            notify_existing: Email ``admins_to_email`` about the new collaborator
            admins_to_email: Administrators to notify
            actor: Identity making the change

        Returns:
            The resulting collaborator set

        Raises:
            ApplicationNotFound: If the application does not exist
            UserAlreadyExists: If the email is present with a different role
            Unauthorized: If a non-gatekeeper changes a privileged or ROPC application
        """

        def add(application: Application) -> Application | None:
            self._check_actor(application, actor)
            existing = application.find_collaborator(collaborator.email)
            if existing is not None:
                if existing.role != collaborator.role:
                    raise UserAlreadyExists(collaborator.email)
                return None
            return application.model_copy(
                update={"collaborators": [*application.collaborators, collaborator]}
            )

        updated, added = await mutate_application(
            self.db, application_id, add, self.mutation_config
        )
        if not added:
            return updated.collaborators

        logger.info(f"Added collaborator {collaborator.email} to application {application_id}")
        record_audit(
            AuditAction.COLLABORATOR_ADDED,
            application_id,
            actor,
            {"collaboratorEmail": collaborator.email, "collaboratorRole": collaborator.role.value},
        )

        await best_effort(
            f"Added collaborator confirmation to {collaborator.email}",
            self.email.send_added_collaborator_confirmation(
                collaborator.role.value, updated.name, collaborator.email
            ),
        )
        if notify_existing and admins_to_email:
            await best_effort(
                f"Added collaborator notification for {application_id}",
                self.email.send_added_collaborator_notification(
                    collaborator.email, collaborator.role.value, updated.name, admins_to_email
                ),
            )

        return updated.collaborators

    async def delete_collaborator(
        self,
        application_id: str,
        email: str,
        admins_to_email: set[str] | None = None,
        notify_collaborator: bool = True,
        actor: Actor | None = None,
    ) -> list[Collaborator]:
        """Remove a collaborator, never leaving the application without an administrator.

        Removing an email that is not a collaborator returns the unchanged set.

        Raises:
            ApplicationNotFound: If the application does not exist
            ApplicationNeedsAdmin: If this would remove the last administrator
            Unauthorized: If a non-gatekeeper changes a privileged or ROPC application
        """
        email = email.strip().lower()

        def remove(application: Application) -> Application | None:
            self._check_actor(application, actor)
            remaining = [c for c in application.collaborators if c.email != email]
            if len(remaining) == len(application.collaborators):
                return None
            if not any(c.role == Role.ADMINISTRATOR for c in remaining):
                raise ApplicationNeedsAdmin()
            return application.model_copy(update={"collaborators": remaining})

        updated, removed = await mutate_application(
            self.db, application_id, remove, self.mutation_config
        )
        if not removed:
            return updated.collaborators

        logger.info(f"Removed collaborator {email} from application {application_id}")
        record_audit(
            AuditAction.COLLABORATOR_REMOVED,
            application_id,
            actor,
            {"collaboratorEmail": email},
        )

        if notify_collaborator:
            await best_effort(
                f"Removed collaborator confirmation to {email}",
                self.email.send_removed_collaborator_confirmation(updated.name, email),
            )
        if admins_to_email:
            await best_effort(
                f"Removed collaborator notification for {application_id}",
                self.email.send_removed_collaborator_notification(
                    email, updated.name, admins_to_email - {email}
                ),
            )

        return updated.collaborators

    async def fix_collaborator(self, application_id: str, email: str, user_id: str) -> Application:
        """Attach a user id to an existing collaborator record.

        Role and membership are unchanged, so the admin guard is not re-run.

        Raises:
            ApplicationNotFound: If the application does not exist
            CollaboratorNotFound: If the email is not a collaborator
        """

        def fix(application: Application) -> Application | None:
            existing = application.find_collaborator(email)
            if existing is None:
                raise CollaboratorNotFound(application_id, email)
            if existing.user_id == user_id:
                return None
            fixed = existing.model_copy(update={"user_id": user_id})
            return application.model_copy(
                update={
                    "collaborators": [
                        fixed if c.email == existing.email else c for c in application.collaborators
                    ]
                }
            )

        updated, _ = await mutate_application(self.db, application_id, fix, self.mutation_config)
        return updated
