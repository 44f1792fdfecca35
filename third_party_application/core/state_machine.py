"""Application lifecycle state machine.

Pure functions that compute the next ``ApplicationState`` for each lifecycle
move. They never touch storage; callers persist the result with a
version-matched write so that concurrent transitions cannot both succeed.
"""

import secrets
from datetime import UTC, datetime, timedelta

from ..errors import ApplicationBlocked, InvalidStateTransition
from ..models.application import Application
from ..models.state import ApplicationState, State

# Legal edges of the lifecycle graph
TRANSITIONS: dict[State, frozenset[State]] = {
    State.TESTING: frozenset({State.PENDING_GATEKEEPER_APPROVAL}),
    State.PENDING_GATEKEEPER_APPROVAL: frozenset(
        {State.PENDING_REQUESTER_VERIFICATION, State.TESTING}
    ),
    State.PENDING_REQUESTER_VERIFICATION: frozenset({State.PRODUCTION, State.TESTING}),
    State.PRODUCTION: frozenset(),
}


def is_legal(current: State, to: State) -> bool:
    return to in TRANSITIONS[current]


def check_transition(current: State, to: State, expected_from: State) -> None:
    """Ensure ``current`` is ``expected_from`` and the edge to ``to`` exists.

    Raises:
        InvalidStateTransition: If the move is not allowed
    """
    if current != expected_from or not is_legal(current, to):
        raise InvalidStateTransition(current, to, expected_from)


def check_not_blocked(application: Application, to: State) -> None:
    """Gatekeeper-mediated moves are refused on blocked applications."""
    if application.blocked:
        raise ApplicationBlocked(application.id, application.state.name, to)


def new_verification_code() -> str:
    return secrets.token_urlsafe(32)


def request_uplift(
    state: ApplicationState, requested_by_email: str, now: datetime | None = None
) -> ApplicationState:
    check_transition(state.name, State.PENDING_GATEKEEPER_APPROVAL, State.TESTING)
    return ApplicationState(
        name=State.PENDING_GATEKEEPER_APPROVAL,
        requested_by_email=requested_by_email,
        updated_on=now or datetime.now(UTC),
    )


def approve(
    state: ApplicationState,
    validity: timedelta,
    verification_code: str | None = None,
    now: datetime | None = None,
) -> ApplicationState:
    """Move to pending requester verification with a fresh verification code.

    The code expires ``validity`` after issuance.
    """
    check_transition(
        state.name, State.PENDING_REQUESTER_VERIFICATION, State.PENDING_GATEKEEPER_APPROVAL
    )
    issued = now or datetime.now(UTC)
    return ApplicationState(
        name=State.PENDING_REQUESTER_VERIFICATION,
        requested_by_email=state.requested_by_email,
        verification_code=verification_code or new_verification_code(),
        verification_code_expires_at=issued + validity,
        updated_on=issued,
    )


def reject(state: ApplicationState, now: datetime | None = None) -> ApplicationState:
    check_transition(state.name, State.TESTING, State.PENDING_GATEKEEPER_APPROVAL)
    return ApplicationState(name=State.TESTING, updated_on=now or datetime.now(UTC))


def verify(state: ApplicationState, now: datetime | None = None) -> ApplicationState:
    check_transition(state.name, State.PRODUCTION, State.PENDING_REQUESTER_VERIFICATION)
    return state.model_copy(
        update={"name": State.PRODUCTION, "updated_on": now or datetime.now(UTC)}
    )


def expire(state: ApplicationState, now: datetime | None = None) -> ApplicationState:
    """Revert an unverified approval back to testing."""
    check_transition(state.name, State.TESTING, State.PENDING_REQUESTER_VERIFICATION)
    return ApplicationState(name=State.TESTING, updated_on=now or datetime.now(UTC))


def is_verification_expired(state: ApplicationState, now: datetime | None = None) -> bool:
    if state.verification_code_expires_at is None:
        return False
    return state.verification_code_expires_at <= (now or datetime.now(UTC))
