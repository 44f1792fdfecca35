"""Gatekeeper moderation: uplift approval, rejection, blocking and deletion."""

import logging

from ..config import MutationConfig, UpliftVerificationConfig
from ..connectors.email import EmailConnector
from ..errors import InvalidStateTransition
from ..models.application import Application
from ..models.responses import ApplicationWithHistory, ApplicationWithUpliftRequest
from ..models.state import Actor, State, StateHistory
from ..storage.database import Database
from . import state_machine
from .application_service import ApplicationService
from .audit import AuditAction, record_audit
from .mutations import commit_transition, fetch_application, mutate_application
from .side_effects import best_effort

logger = logging.getLogger(__name__)


def _admin_emails(application: Application) -> set[str]:
    return {c.email for c in application.admins}


class GatekeeperService:
    """Operations only a gatekeeper may perform.

    Approve, reject and resend are refused for blocked applications.
    """

    def __init__(
        self,
        db: Database,
        applications: ApplicationService,
        email: EmailConnector,
        uplift_verification: UpliftVerificationConfig,
        mutation_config: MutationConfig,
    ):
        self.db = db
        self.applications = applications
        self.email = email
        self.uplift_verification = uplift_verification
        self.mutation_config = mutation_config

    async def approve_uplift(self, application_id: str, gatekeeper_user_id: str) -> Application:
        """Approve an uplift and email a verification code to the requester.

        The code expires after the configured validity window.

        Raises:
            ApplicationNotFound: If the application does not exist
            ApplicationBlocked: If the application is blocked
            InvalidStateTransition: If it is not pending gatekeeper approval,
                including when a concurrent approval won
        """
        application = await fetch_application(self.db, application_id)
        state_machine.check_not_blocked(application, State.PENDING_REQUESTER_VERIFICATION)
        new_state = state_machine.approve(application.state, self.uplift_verification.validity)

        actor = Actor.gatekeeper(gatekeeper_user_id)
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
            expected_from=State.PENDING_GATEKEEPER_APPROVAL,
        )

        logger.info(f"Uplift of application {application.id} approved by {gatekeeper_user_id}")
        record_audit(AuditAction.APP_UPLIFT_APPROVED, application.id, actor)

        if new_state.requested_by_email and new_state.verification_code:
            await best_effort(
                f"Verification email for {application.id}",
                self.email.send_application_verification(
                    new_state.requested_by_email, new_state.verification_code, result.name
                ),
            )
        await best_effort(
            f"Approval notification for {application.id}",
            self.email.send_application_approved_notification(
                result.name, _admin_emails(result) - {new_state.requested_by_email}
            ),
        )
        return result

    async def reject_uplift(
        self, application_id: str, gatekeeper_user_id: str, reason: str
    ) -> Application:
        """Reject an uplift and send the application back to TESTING.

        Raises:
            ApplicationNotFound: If the application does not exist
            ApplicationBlocked: If the application is blocked
            InvalidStateTransition: If it is not pending gatekeeper approval
        """
        application = await fetch_application(self.db, application_id)
        state_machine.check_not_blocked(application, State.TESTING)
        new_state = state_machine.reject(application.state)

        actor = Actor.gatekeeper(gatekeeper_user_id)
        history = StateHistory(
            application_id=application.id,
            state=new_state.name,
            previous_state=application.state.name,
            actor=actor,
            notes=reason,
            changed_at=new_state.updated_on,
        )
        result = await commit_transition(
            self.db,
            application,
            application.model_copy(update={"state": new_state}),
            history,
            expected_from=State.PENDING_GATEKEEPER_APPROVAL,
        )

        logger.info(f"Uplift of application {application.id} rejected by {gatekeeper_user_id}")
        record_audit(AuditAction.APP_UPLIFT_REJECTED, application.id, actor, {"reason": reason})
        await best_effort(
            f"Rejection email for {application.id}",
            self.email.send_application_rejected(result.name, reason, _admin_emails(result)),
        )
        return result

    async def resend_verification(self, application_id: str, gatekeeper_user_id: str) -> None:
        """Email the existing verification code to the requester again.

        The code is not rotated and its expiry is unchanged.

        Raises:
            ApplicationNotFound: If the application does not exist
            ApplicationBlocked: If the application is blocked
            InvalidStateTransition: If it is not pending requester verification
        """
        application = await fetch_application(self.db, application_id)
        state_machine.check_not_blocked(application, State.PENDING_REQUESTER_VERIFICATION)

        state = application.state
        if state.name != State.PENDING_REQUESTER_VERIFICATION:
            raise InvalidStateTransition(
                state.name,
                State.PENDING_REQUESTER_VERIFICATION,
                State.PENDING_REQUESTER_VERIFICATION,
            )

        actor = Actor.gatekeeper(gatekeeper_user_id)
        record_audit(AuditAction.APP_VERIFICATION_RESENT, application.id, actor)
        if state.requested_by_email and state.verification_code:
            await best_effort(
                f"Verification email resend for {application.id}",
                self.email.send_application_verification(
                    state.requested_by_email, state.verification_code, application.name
                ),
            )

    async def block_application(self, application_id: str) -> bool:
        """Block an application. Blocking twice is allowed.

        Returns:
            The resulting blocked flag
        """
        return await self._set_blocked(application_id, True, AuditAction.APP_BLOCKED)

    async def unblock_application(self, application_id: str) -> bool:
        """Unblock an application. Unblocking twice is allowed.

        Returns:
            The resulting blocked flag
        """
        return await self._set_blocked(application_id, False, AuditAction.APP_UNBLOCKED)

    async def _set_blocked(self, application_id: str, blocked: bool, action: AuditAction) -> bool:
        def set_flag(application: Application) -> Application | None:
            if application.blocked == blocked:
                return None
            return application.model_copy(update={"blocked": blocked})

        updated, changed = await mutate_application(
            self.db, application_id, set_flag, self.mutation_config
        )
        if changed:
            logger.info(f"Application {application_id} blocked={blocked}")
            record_audit(action, application_id)
        return updated.blocked

    async def fetch_app_state_history(self, application_id: str) -> list[StateHistory]:
        await fetch_application(self.db, application_id)
        return await self.db.fetch_state_history(application_id)

    async def fetch_app_with_history(self, application_id: str) -> ApplicationWithHistory:
        application = await fetch_application(self.db, application_id)
        history = await self.db.fetch_state_history(application_id)
        return ApplicationWithHistory(application=application, history=history)

    async def fetch_non_testing_apps_with_submitted_date(
        self,
    ) -> list[ApplicationWithUpliftRequest]:
        """List applications past TESTING with the date their latest uplift was submitted."""
        applications = await self.db.fetch_non_testing_applications()
        submitted_on = {
            h.application_id: h.changed_at
            for h in await self.db.fetch_state_history_by_state(State.PENDING_GATEKEEPER_APPROVAL)
        }
        return [
            ApplicationWithUpliftRequest(
                id=a.id,
                name=a.name,
                submitted_on=submitted_on.get(a.id, a.created_on),
                state=a.state.name,
            )
            for a in applications
        ]

    async def delete_application_by_gatekeeper(
        self, application_id: str, gatekeeper_user_id: str, requested_by_email: str
    ) -> None:
        """Delete an application on request of one of its collaborators.

        Raises:
            ApplicationNotFound: If the application does not exist
        """
        deleted = await self.applications.delete_application(
            application_id, Actor.gatekeeper(gatekeeper_user_id), requested_by_email
        )
        await best_effort(
            f"Deletion notification for {application_id}",
            self.email.send_application_deleted_notification(
                deleted.name, requested_by_email, _admin_emails(deleted)
            ),
        )
