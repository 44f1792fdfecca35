"""Scopes of privileged and ROPC applications."""

import logging

from ..config import MutationConfig
from ..errors import InvalidAccessType, ScopeNotFoundException
from ..models.application import Application, PrivilegedAccess, RopcAccess
from ..storage.database import Database
from .audit import AuditAction, record_audit
from .mutations import fetch_application, mutate_application

logger = logging.getLogger(__name__)


def _scoped_access(application: Application) -> PrivilegedAccess | RopcAccess:
    if isinstance(application.access, (PrivilegedAccess, RopcAccess)):
        return application.access
    raise InvalidAccessType(
        f"Application {application.id} has {application.access.access_type} access "
        "which has no scopes"
    )


class AccessService:
    def __init__(self, db: Database, mutation_config: MutationConfig):
        self.db = db
        self.mutation_config = mutation_config

    async def read_scopes(self, application_id: str) -> list[str]:
        application = await fetch_application(self.db, application_id)
        return list(_scoped_access(application).scopes)

    async def add_scopes(self, application_id: str, scopes: list[str]) -> list[str]:
        def add(application: Application) -> Application | None:
            access = _scoped_access(application)
            new_scopes = [s for s in dict.fromkeys(scopes) if s not in access.scopes]
            if not new_scopes:
                return None
            scoped = access.model_copy(update={"scopes": [*access.scopes, *new_scopes]})
            return application.model_copy(update={"access": scoped})

        updated, changed = await mutate_application(
            self.db, application_id, add, self.mutation_config
        )
        if changed:
            record_audit(
                AuditAction.SCOPES_CHANGED, application_id, data={"added": ",".join(scopes)}
            )
        return list(_scoped_access(updated).scopes)

    async def remove_scopes(self, application_id: str, scopes: list[str]) -> list[str]:
        """Remove scopes.

        Raises:
            ScopeNotFoundException: If any of the scopes is not held by the application
        """

        def remove(application: Application) -> Application:
            access = _scoped_access(application)
            missing = [s for s in scopes if s not in access.scopes]
            if missing:
                raise ScopeNotFoundException(
                    f"Scopes {', '.join(missing)} not found for application {application_id}"
                )
            remaining = [s for s in access.scopes if s not in scopes]
            return application.model_copy(
                update={"access": access.model_copy(update={"scopes": remaining})}
            )

        updated, _ = await mutate_application(
            self.db, application_id, remove, self.mutation_config
        )
        record_audit(
            AuditAction.SCOPES_CHANGED, application_id, data={"removed": ",".join(scopes)}
        )
        logger.info(f"Removed scopes {scopes} from application {application_id}")
        return list(_scoped_access(updated).scopes)
