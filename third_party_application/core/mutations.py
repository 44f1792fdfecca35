"""Version-matched application writes.

Every change to an application record goes through one of two helpers:

- ``mutate_application`` re-reads, re-validates and retries on a lost write,
  for changes whose rules can be re-checked against fresh data.
- ``commit_transition`` writes a lifecycle move once and turns a lost write
  into ``InvalidStateTransition``, so a losing concurrent writer never
  silently overwrites the winner.
"""

import logging
from collections.abc import Callable

from ..config import MutationConfig
from ..errors import ApplicationNotFound, ConcurrentModification, InvalidStateTransition
from ..models.application import Application
from ..models.state import State, StateHistory
from ..storage.database import Database

logger = logging.getLogger(__name__)

# Returns the changed application, or None when nothing needs writing
Change = Callable[[Application], Application | None]


async def fetch_application(db: Database, application_id: str) -> Application:
    """Get an application or raise ``ApplicationNotFound``."""
    application = await db.get_application(application_id)
    if application is None:
        raise ApplicationNotFound(application_id)
    return application


async def mutate_application(
    db: Database, application_id: str, change: Change, config: MutationConfig
) -> tuple[Application, bool]:
    """Apply ``change`` to the latest stored application with a version-matched write.

    ``change`` runs against freshly loaded data on each attempt and may raise
    a domain error, which propagates unchanged.

    Returns:
        Tuple of (latest application, whether a write happened)

    Raises:
        ApplicationNotFound: If the application does not exist
        ConcurrentModification: If every attempt lost to a concurrent writer
    """
    for attempt in range(1, config.max_attempts + 1):
        current = await fetch_application(db, application_id)
        updated = change(current)
        if updated is None:
            return current, False

        if await db.update_application(updated, current.version):
            return updated.model_copy(update={"version": current.version + 1}), True

        logger.info(
            f"Concurrent write on application {application_id}, "
            f"attempt {attempt} of {config.max_attempts}"
        )

    raise ConcurrentModification(application_id, config.max_attempts)


async def commit_transition(
    db: Database,
    current: Application,
    updated: Application,
    history: StateHistory,
    expected_from: State,
) -> Application:
    """Persist a lifecycle move and its history record in one write.

    Raises:
        InvalidStateTransition: If a concurrent writer changed the application first
    """
    if await db.update_application(updated, current.version, history):
        return updated.model_copy(update={"version": current.version + 1})

    latest = await fetch_application(db, current.id)
    logger.info(
        f"Lost transition race on application {current.id}: "
        f"now in {latest.state.name.value}, wanted {history.state.value}"
    )
    raise InvalidStateTransition(latest.state.name, history.state, expected_from)
