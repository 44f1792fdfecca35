"""Database management with PostgreSQL via asyncpg."""

import json
import logging
from datetime import datetime
from typing import Any

import asyncpg

from ..config import settings
from ..models.application import Application
from ..models.state import Actor, ActorType, State, StateHistory
from ..models.subscription import ApiIdentifier, SubscriptionData

logger = logging.getLogger(__name__)

# Columns the field-presence audit is allowed to count
_AUDITABLE_FIELDS = {
    "rate_limit_tier": "rate_limit_tier",
    "last_access": "last_access",
}


def _json(value: Any) -> Any:
    return json.loads(value) if isinstance(value, str) else value


def _escape_like(value: str) -> str:
    """Make LIKE wildcards in user input match literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_application(row: asyncpg.Record) -> Application:
    return Application.model_validate(
        {
            "id": row["id"],
            "name": row["name"],
            "normalised_name": row["normalised_name"],
            "description": row["description"],
            "environment": row["environment"],
            "gateway_id": row["gateway_id"],
            "rate_limit_tier": row["rate_limit_tier"],
            "blocked": row["blocked"],
            "collaborators": _json(row["collaborators"]),
            "access": _json(row["access"]),
            "tokens": _json(row["tokens"]),
            "state": _json(row["state"]),
            "ip_allowlist": _json(row["ip_allowlist"]),
            "check_information": _json(row["check_information"]),
            "created_on": row["created_on"],
            "last_access": row["last_access"],
            "version": row["version"],
        }
    )


def _row_to_history(row: asyncpg.Record) -> StateHistory:
    return StateHistory(
        application_id=row["application_id"],
        state=State(row["state"]),
        previous_state=State(row["previous_state"]) if row["previous_state"] else None,
        actor=Actor(id=row["actor_id"], actor_type=ActorType(row["actor_type"])),
        notes=row["notes"],
        changed_at=row["changed_at"],
    )


def _application_values(application: Application) -> list[Any]:
    data = application.model_dump(mode="json")
    return [
        application.name,
        application.normalised_name,
        application.description,
        application.environment.value,
        application.gateway_id,
        application.tokens.client_id,
        application.state.name.value,
        application.state.verification_code,
        application.state.updated_on,
        application.rate_limit_tier.value if application.rate_limit_tier else None,
        application.blocked,
        json.dumps(data["collaborators"]),
        json.dumps(data["access"]),
        json.dumps(data["tokens"]),
        json.dumps(data["state"]),
        json.dumps(data["ip_allowlist"]),
        json.dumps(data["check_information"]) if application.check_information else None,
        application.last_access,
    ]


class Database:
    """Async PostgreSQL database manager using asyncpg."""

    def __init__(
        self,
        db_url: str,
        min_size: int | None = None,
        max_size: int | None = None,
        command_timeout: float | None = None,
    ):
        """Initialize database with connection URL and pool limits."""
        self.db_url = db_url
        self.min_size = min_size or settings.database_pool_min_size
        self.max_size = max_size or settings.database_pool_max_size
        self.command_timeout = command_timeout or settings.database_command_timeout
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Establish database connection pool and initialize schema."""
        if self._pool is not None:
            return

        self._pool = await asyncpg.create_pool(
            self.db_url,
            min_size=self.min_size,
            max_size=self.max_size,
            command_timeout=self.command_timeout,
        )

        from .schema import INIT_SCHEMA

        async with self._pool.acquire() as conn:
            await conn.execute(INIT_SCHEMA)

        logger.info(f"Database connected: {self.db_url.split('@')[-1]}")  # Don't log password

    async def disconnect(self) -> None:
        """Close database connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database disconnected")

    def _require_pool(self) -> asyncpg.Pool:
        if not self._pool:
            raise RuntimeError("Database not connected")
        return self._pool

    # Application operations
    async def insert_application(
        self, application: Application, history: StateHistory | None = None
    ) -> Application:
        """Insert a new application, optionally with its first history record."""
        pool = self._require_pool()

        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    """
                    INSERT INTO applications (
                        id, name, normalised_name, description, environment, gateway_id,
                        client_id, state_name, verification_code, state_updated_on,
                        rate_limit_tier, blocked, collaborators, access, tokens, state,
                        ip_allowlist, check_information, last_access, created_on, version
                    )
                    VALUES (
                        $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12,
                        $13::jsonb, $14::jsonb, $15::jsonb, $16::jsonb, $17::jsonb,
                        $18::jsonb, $19, $20, $21
                    )
                    """,
                    application.id,
                    *_application_values(application),
                    application.created_on,
                    application.version,
                )
                if history:
                    await self._insert_history(conn, history)

        logger.debug(f"Created application: {application.id}")
        return application

    async def update_application(
        self,
        application: Application,
        expected_version: int,
        history: StateHistory | None = None,
    ) -> bool:
        """Write an application only if its stored version still matches.

        The stored version becomes ``expected_version + 1``. When ``history``
        is given it is appended in the same transaction as the update.

        Returns:
            True if the write won, False if a concurrent writer got there first
        """
        pool = self._require_pool()

        async with pool.acquire() as conn:
            async with conn.transaction():
                result = await conn.execute(
                    """
                    UPDATE applications SET
                        name = $2, normalised_name = $3, description = $4, environment = $5,
                        gateway_id = $6, client_id = $7, state_name = $8,
                        verification_code = $9, state_updated_on = $10, rate_limit_tier = $11,
                        blocked = $12, collaborators = $13::jsonb, access = $14::jsonb,
                        tokens = $15::jsonb, state = $16::jsonb, ip_allowlist = $17::jsonb,
                        check_information = $18::jsonb, last_access = $19,
                        version = version + 1
                    WHERE id = $1 AND version = $20
                    """,
                    application.id,
                    *_application_values(application),
                    expected_version,
                )
                updated = result.split()[-1] != "0" if result else False
                if updated and history:
                    await self._insert_history(conn, history)

        if not updated:
            logger.debug(
                f"Version conflict writing application {application.id} "
                f"(expected version {expected_version})"
            )
        return updated

    async def get_application(self, application_id: str) -> Application | None:
        """Get application by ID."""
        pool = self._require_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM applications WHERE id = $1", application_id)

        return _row_to_application(row) if row else None

    async def fetch_by_client_id(self, client_id: str) -> Application | None:
        pool = self._require_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM applications WHERE client_id = $1", client_id)

        return _row_to_application(row) if row else None

    async def fetch_by_verification_code(self, verification_code: str) -> Application | None:
        pool = self._require_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM applications WHERE verification_code = $1", verification_code
            )

        return _row_to_application(row) if row else None

    async def fetch_non_testing_applications_by_normalised_name(
        self, normalised_name: str
    ) -> list[Application]:
        """Get applications past TESTING that use the given normalised name."""
        pool = self._require_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT * FROM applications
                WHERE normalised_name = $1 AND state_name <> $2
                """,
                normalised_name,
                State.TESTING.value,
            )

        return [_row_to_application(row) for row in rows]

    async def fetch_applications_by_state(
        self, state: State, updated_before: datetime | None = None
    ) -> list[Application]:
        """Get applications in a state, optionally last changed before a time."""
        pool = self._require_pool()

        query = "SELECT * FROM applications WHERE state_name = $1"
        params: list[Any] = [state.value]
        if updated_before is not None:
            query += " AND state_updated_on < $2"
            params.append(updated_before)
        query += " ORDER BY state_updated_on"

        async with pool.acquire() as conn:
            rows = await conn.fetch(query, *params)

        return [_row_to_application(row) for row in rows]

    async def fetch_non_testing_applications(self) -> list[Application]:
        pool = self._require_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT * FROM applications WHERE state_name <> $1 ORDER BY name",
                State.TESTING.value,
            )

        return [_row_to_application(row) for row in rows]

    async def fetch_all_applications(self) -> list[Application]:
        pool = self._require_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch("SELECT * FROM applications ORDER BY created_on")

        return [_row_to_application(row) for row in rows]

    async def fetch_applications_for_collaborator(self, user_id: str) -> list[Application]:
        """Get every application the user collaborates on."""
        pool = self._require_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT * FROM applications WHERE collaborators @> $1::jsonb",
                json.dumps([{"user_id": user_id}]),
            )

        return [_row_to_application(row) for row in rows]

    async def delete_application(self, application_id: str) -> bool:
        """Delete application."""
        pool = self._require_pool()

        async with pool.acquire() as conn:
            result = await conn.execute("DELETE FROM applications WHERE id = $1", application_id)

        deleted = result.split()[-1] != "0" if result else False
        if deleted:
            logger.debug(f"Deleted application: {application_id}")
        return deleted

    async def count_applications_missing(self, field_name: str) -> int:
        """Count applications where an optional field has never been set."""
        column = _AUDITABLE_FIELDS.get(field_name)
        if column is None:
            raise ValueError(f"Field '{field_name}' cannot be audited")

        pool = self._require_pool()

        async with pool.acquire() as conn:
            count = await conn.fetchval(f"SELECT COUNT(*) FROM applications WHERE {column} IS NULL")

        return count or 0

    # State history operations
    async def _insert_history(self, conn: asyncpg.Connection, history: StateHistory) -> None:
        await conn.execute(
            """
            INSERT INTO state_history (
                application_id, state, previous_state, actor_id, actor_type, notes, changed_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            """,
            history.application_id,
            history.state.value,
            history.previous_state.value if history.previous_state else None,
            history.actor.id,
            history.actor.actor_type.value,
            history.notes,
            history.changed_at,
        )

    async def fetch_state_history(self, application_id: str) -> list[StateHistory]:
        """Get the transition log of an application, oldest first."""
        pool = self._require_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT * FROM state_history WHERE application_id = $1 ORDER BY changed_at, id",
                application_id,
            )

        return [_row_to_history(row) for row in rows]

    async def fetch_state_history_by_state(self, state: State) -> list[StateHistory]:
        pool = self._require_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT * FROM state_history WHERE state = $1 ORDER BY changed_at, id", state.value
            )

        return [_row_to_history(row) for row in rows]

    async def delete_state_history(self, application_id: str) -> None:
        pool = self._require_pool()

        async with pool.acquire() as conn:
            await conn.execute(
                "DELETE FROM state_history WHERE application_id = $1", application_id
            )

    # Subscription operations
    async def insert_subscription(self, application_id: str, api: ApiIdentifier) -> None:
        """Insert a subscription.

        Raises:
            asyncpg.UniqueViolationError: If the application is already subscribed
        """
        pool = self._require_pool()

        async with pool.acquire() as conn:
            await conn.execute(
                "INSERT INTO subscriptions (application_id, context, version) VALUES ($1, $2, $3)",
                application_id,
                api.context,
                api.version,
            )

        logger.debug(f"Subscribed application {application_id} to {api}")

    async def delete_subscription(self, application_id: str, api: ApiIdentifier) -> bool:
        pool = self._require_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                """
                DELETE FROM subscriptions
                WHERE application_id = $1 AND context = $2 AND version = $3
                """,
                application_id,
                api.context,
                api.version,
            )

        return result.split()[-1] != "0" if result else False

    async def is_subscribed(self, application_id: str, api: ApiIdentifier) -> bool:
        pool = self._require_pool()

        async with pool.acquire() as conn:
            found = await conn.fetchval(
                """
                SELECT EXISTS(
                    SELECT 1 FROM subscriptions
                    WHERE application_id = $1 AND context = $2 AND version = $3
                )
                """,
                application_id,
                api.context,
                api.version,
            )

        return bool(found)

    async def fetch_subscriptions_for_applications(
        self, application_ids: list[str]
    ) -> list[ApiIdentifier]:
        """Get the distinct APIs any of the given applications subscribe to."""
        pool = self._require_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT DISTINCT context, version FROM subscriptions
                WHERE application_id = ANY($1::text[])
                ORDER BY context, version
                """,
                application_ids,
            )

        return [ApiIdentifier(context=row["context"], version=row["version"]) for row in rows]

    async def fetch_all_subscriptions(self) -> list[SubscriptionData]:
        pool = self._require_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT context, version, array_agg(application_id ORDER BY application_id) AS apps
                FROM subscriptions
                GROUP BY context, version
                ORDER BY context, version
                """
            )

        return [
            SubscriptionData(
                api_identifier=ApiIdentifier(context=row["context"], version=row["version"]),
                applications=list(row["apps"]),
            )
            for row in rows
        ]

    async def fetch_subscribers(self, api: ApiIdentifier) -> list[str]:
        pool = self._require_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT application_id FROM subscriptions
                WHERE context = $1 AND version = $2
                ORDER BY application_id
                """,
                api.context,
                api.version,
            )

        return [row["application_id"] for row in rows]

    async def delete_subscriptions_for_application(self, application_id: str) -> int:
        pool = self._require_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM subscriptions WHERE application_id = $1", application_id
            )

        return int(result.split()[-1]) if result else 0

    async def search_collaborators(
        self, api: ApiIdentifier, partial_email: str | None = None
    ) -> list[str]:
        """Get collaborator emails of applications subscribed to an API."""
        pool = self._require_pool()

        query = """
            SELECT DISTINCT collaborator->>'email' AS email
            FROM subscriptions s
            JOIN applications a ON a.id = s.application_id
            CROSS JOIN LATERAL jsonb_array_elements(a.collaborators) AS collaborator
            WHERE s.context = $1 AND s.version = $2
        """
        params: list[Any] = [api.context, api.version]
        if partial_email:
            query += " AND collaborator->>'email' ILIKE $3 ESCAPE '\\'"
            params.append(f"%{_escape_like(partial_email.lower())}%")
        query += " ORDER BY email"

        async with pool.acquire() as conn:
            rows = await conn.fetch(query, *params)

        return [row["email"] for row in rows]
