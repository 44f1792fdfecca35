"""HTTP client for the templated email service."""

import logging
from typing import Any

import httpx

from ..config import EmailConfig

logger = logging.getLogger(__name__)


class EmailTemplates:
    """Template ids known to the email service."""

    APPLICATION_VERIFICATION = "apiApplicationApprovedAdminConfirmation"
    APPLICATION_APPROVED_NOTIFICATION = "apiApplicationApprovedNotification"
    APPLICATION_REJECTED = "apiApplicationRejectedNotification"
    COLLABORATOR_ADDED_CONFIRMATION = "apiAddedDeveloperAsCollaboratorConfirmation"
    COLLABORATOR_ADDED_NOTIFICATION = "apiAddedDeveloperAsCollaboratorNotification"
    COLLABORATOR_REMOVED_CONFIRMATION = "apiRemovedCollaboratorConfirmation"
    COLLABORATOR_REMOVED_NOTIFICATION = "apiRemovedCollaboratorNotification"
    APPLICATION_DELETED = "apiApplicationDeletedNotification"


class EmailConnector:
    """Sends templated emails.

    Every send raises ``httpx.HTTPError`` on failure. Callers treat email as a
    best-effort side effect and decide whether to log or propagate.
    """

    def __init__(self, config: EmailConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            timeout=httpx.Timeout(config.timeout_seconds),
        )

    def _common_parameters(self) -> dict[str, str]:
        return {
            "developerHubTitle": self.config.dev_hub_title,
            "environmentName": self.config.environment_name,
        }

    async def send_application_verification(
        self, recipient: str, verification_code: str, application_name: str
    ) -> None:
        link = (
            f"{self.config.dev_hub_base_url.rstrip('/')}"
            f"/developer/application-verification?code={verification_code}"
        )
        await self._send(
            EmailTemplates.APPLICATION_VERIFICATION,
            {recipient},
            {"applicationName": application_name, "developerHubLink": link},
        )

    async def send_application_approved_notification(
        self, application_name: str, recipients: set[str]
    ) -> None:
        await self._send(
            EmailTemplates.APPLICATION_APPROVED_NOTIFICATION,
            recipients,
            {"applicationName": application_name},
        )

    async def send_application_rejected(
        self, application_name: str, reason: str, recipients: set[str]
    ) -> None:
        await self._send(
            EmailTemplates.APPLICATION_REJECTED,
            recipients,
            {
                "applicationName": application_name,
                "guidelinesUrl": f"{self.config.dev_hub_base_url.rstrip('/')}/api-documentation",
                "supportUrl": f"{self.config.dev_hub_base_url.rstrip('/')}/developer/support",
                "reason": reason,
            },
        )

    async def send_added_collaborator_confirmation(
        self, role: str, application_name: str, recipient: str
    ) -> None:
        article = "an" if role.lower()[0] in "aeiou" else "a"
        await self._send(
            EmailTemplates.COLLABORATOR_ADDED_CONFIRMATION,
            {recipient},
            {"article": article, "role": role.lower(), "applicationName": application_name},
        )

    async def send_added_collaborator_notification(
        self, email: str, role: str, application_name: str, recipients: set[str]
    ) -> None:
        await self._send(
            EmailTemplates.COLLABORATOR_ADDED_NOTIFICATION,
            recipients,
            {"email": email, "role": role.lower(), "applicationName": application_name},
        )

    async def send_removed_collaborator_confirmation(
        self, application_name: str, recipient: str
    ) -> None:
        await self._send(
            EmailTemplates.COLLABORATOR_REMOVED_CONFIRMATION,
            {recipient},
            {"applicationName": application_name},
        )

    async def send_removed_collaborator_notification(
        self, email: str, application_name: str, recipients: set[str]
    ) -> None:
        await self._send(
            EmailTemplates.COLLABORATOR_REMOVED_NOTIFICATION,
            recipients,
            {"email": email, "applicationName": application_name},
        )

    async def send_application_deleted_notification(
        self, application_name: str, requester: str, recipients: set[str]
    ) -> None:
        await self._send(
            EmailTemplates.APPLICATION_DELETED,
            recipients,
            {"applicationName": application_name, "requestor": requester},
        )

    async def _send(
        self, template_id: str, recipients: set[str], parameters: dict[str, Any]
    ) -> None:
        if not recipients:
            return

        response = await self._client.post(
            "/hmrc/email",
            json={
                "to": sorted(recipients),
                "templateId": template_id,
                "parameters": {**self._common_parameters(), **parameters},
                "force": False,
            },
        )
        response.raise_for_status()
        logger.info(f"Sent email {template_id} to {len(recipients)} recipient(s)")

    async def close(self) -> None:
        await self._client.aclose()
