"""
PostgreSQL repository adapter - Implements MembershipStore protocol.

This module provides the PostgreSQL implementation of the domain's
persistence ports using psycopg3 with raw SQL.

Transaction Design:
------------------
PostgresStore.transaction() checks a connection out of the pool and opens
a single database transaction. Every repository in the yielded session
shares that connection, so a domain operation (register, confirm, follow,
edit status) commits all of its writes together or none of them.

Race Closure:
------------
1. **members_email_key**: concurrent registrations of the same email are
   serialized by the unique constraint; the loser's UniqueViolation is
   translated to DuplicateEmailError.

2. **Conditional confirmation**: the token row is read FOR UPDATE and
   confirmed with ``UPDATE ... WHERE confirmed_at IS NULL``. Only one
   caller can see rowcount == 1.

3. **relations_owner_friend_key**: identical concurrent follow requests
   are serialized by the (owner_id, friend_id) unique constraint.

Connection loss and pool exhaustion are raised as StorageError, never as
a domain error.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import psycopg
from psycopg import errors
from psycopg_pool import ConnectionPool, PoolTimeout

from src.domain.exceptions import DuplicateEmailError, DuplicateRelationError, StorageError
from src.domain.models import Audit, ConfirmationToken, Member, PersonalBanDate, Relation
from src.domain.ports import DateStatus, MemberStatus

logger = logging.getLogger(__name__)

_MEMBER_COLUMNS = "id, email, name, password, telephone, role, status, created_at, updated_at"
_TOKEN_COLUMNS = "id, token, member_id, created_at, expires_at, confirmed_at"
_BAN_DATE_COLUMNS = "id, member_id, date, date_status, created_at, updated_at"


def _member_from_row(row: tuple) -> Member:
    return Member(
        id=row[0],
        email=row[1],
        name=row[2],
        password=row[3],
        telephone=row[4],
        role=row[5],
        status=row[6],
        audit=Audit(created_at=row[7], updated_at=row[8]),
    )


def _token_from_row(row: tuple) -> ConfirmationToken:
    return ConfirmationToken(
        id=row[0],
        token=row[1],
        member_id=row[2],
        created_at=row[3],
        expires_at=row[4],
        confirmed_at=row[5],
    )


def _ban_date_from_row(row: tuple) -> PersonalBanDate:
    return PersonalBanDate(
        id=row[0],
        member_id=row[1],
        date=row[2],
        status=row[3],
        audit=Audit(created_at=row[4], updated_at=row[5]),
    )


class PostgresMemberRepository:
    """Implements MemberRepository on a connection with an open transaction."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def find_by_email(self, email: str) -> Member | None:
        sql = f"SELECT {_MEMBER_COLUMNS} FROM members WHERE email = %s"
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()
        return _member_from_row(row) if row is not None else None

    def find_by_id(self, member_id: int) -> Member | None:
        sql = f"SELECT {_MEMBER_COLUMNS} FROM members WHERE id = %s"
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (member_id,))
            row = cursor.fetchone()
        return _member_from_row(row) if row is not None else None

    def add(self, member: Member) -> Member:
        """
        Insert a member row.

        Raises:
            DuplicateEmailError: If members_email_key is violated
        """
        sql = f"""
            INSERT INTO members (email, name, password, telephone, role, status, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {_MEMBER_COLUMNS}
        """
        params = (
            member.email,
            member.name,
            member.password,
            member.telephone,
            member.role.value,
            member.status.value,
            member.audit.created_at,
            member.audit.updated_at,
        )
        try:
            with self._conn.cursor() as cursor:
                cursor.execute(sql, params)
                row = cursor.fetchone()
        except errors.UniqueViolation as e:
            logger.debug("Unique violation on members: %s", e.diag.constraint_name)
            raise DuplicateEmailError(member.email) from e
        return _member_from_row(row)

    def set_status(
        self, member_id: int, status: MemberStatus, expected: MemberStatus, updated_at: datetime
    ) -> bool:
        sql = """
            UPDATE members
            SET status = %s, updated_at = %s
            WHERE id = %s AND status = %s
        """
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (status.value, updated_at, member_id, expected.value))
            return cursor.rowcount == 1


class PostgresConfirmationTokenRepository:
    """Implements ConfirmationTokenRepository on a connection with an open transaction."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def add(self, token: ConfirmationToken) -> ConfirmationToken:
        sql = f"""
            INSERT INTO confirmation_tokens (token, member_id, created_at, expires_at, confirmed_at)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {_TOKEN_COLUMNS}
        """
        with self._conn.cursor() as cursor:
            cursor.execute(
                sql,
                (token.token, token.member_id, token.created_at, token.expires_at, token.confirmed_at),
            )
            row = cursor.fetchone()
        return _token_from_row(row)

    def find(self, token: str, for_update: bool = False) -> ConfirmationToken | None:
        sql = f"SELECT {_TOKEN_COLUMNS} FROM confirmation_tokens WHERE token = %s"
        if for_update:
            sql += " FOR UPDATE"
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (token,))
            row = cursor.fetchone()
        return _token_from_row(row) if row is not None else None

    def mark_confirmed(self, token: str, confirmed_at: datetime) -> bool:
        sql = """
            UPDATE confirmation_tokens
            SET confirmed_at = %s
            WHERE token = %s AND confirmed_at IS NULL
        """
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (confirmed_at, token))
            return cursor.rowcount == 1


class PostgresRelationRepository:
    """Implements RelationRepository on a connection with an open transaction."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def exists(self, owner_id: int, friend_id: int) -> bool:
        sql = "SELECT 1 FROM relations WHERE owner_id = %s AND friend_id = %s"
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (owner_id, friend_id))
            return cursor.fetchone() is not None

    def add(self, relation: Relation) -> Relation:
        """
        Insert a directed edge.

        Raises:
            DuplicateRelationError: If relations_owner_friend_key is violated
        """
        sql = """
            INSERT INTO relations (owner_id, friend_id)
            VALUES (%s, %s)
            RETURNING id
        """
        try:
            with self._conn.cursor() as cursor:
                cursor.execute(sql, (relation.owner_id, relation.friend_id))
                row = cursor.fetchone()
        except errors.UniqueViolation as e:
            logger.debug("Unique violation on relations: %s", e.diag.constraint_name)
            raise DuplicateRelationError(str(relation.owner_id), str(relation.friend_id)) from e
        return Relation(owner_id=relation.owner_id, friend_id=relation.friend_id, id=row[0])

    def friends_of(self, owner_id: int) -> list[Member]:
        sql = """
            SELECT m.id, m.email, m.name, m.password, m.telephone, m.role, m.status,
                   m.created_at, m.updated_at
            FROM relations r
            JOIN members m ON m.id = r.friend_id
            WHERE r.owner_id = %s
            ORDER BY r.id
        """
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (owner_id,))
            return [_member_from_row(row) for row in cursor.fetchall()]


class PostgresBanDateRepository:
    """Implements BanDateRepository on a connection with an open transaction."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def add(self, ban_date: PersonalBanDate) -> PersonalBanDate:
        sql = f"""
            INSERT INTO personal_ban_date (member_id, date, date_status, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {_BAN_DATE_COLUMNS}
        """
        with self._conn.cursor() as cursor:
            cursor.execute(
                sql,
                (
                    ban_date.member_id,
                    ban_date.date,
                    ban_date.status.value,
                    ban_date.audit.created_at,
                    ban_date.audit.updated_at,
                ),
            )
            row = cursor.fetchone()
        return _ban_date_from_row(row)

    def find(self, ban_date_id: int) -> PersonalBanDate | None:
        sql = f"SELECT {_BAN_DATE_COLUMNS} FROM personal_ban_date WHERE id = %s FOR UPDATE"
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (ban_date_id,))
            row = cursor.fetchone()
        return _ban_date_from_row(row) if row is not None else None

    def list_for_member(self, member_id: int) -> list[PersonalBanDate]:
        sql = f"""
            SELECT {_BAN_DATE_COLUMNS} FROM personal_ban_date
            WHERE member_id = %s
            ORDER BY date, id
        """
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (member_id,))
            return [_ban_date_from_row(row) for row in cursor.fetchall()]

    def update_status(self, ban_date_id: int, status: DateStatus, updated_at: datetime) -> None:
        sql = """
            UPDATE personal_ban_date
            SET date_status = %s, updated_at = %s
            WHERE id = %s
        """
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (status.value, updated_at, ban_date_id))


class PostgresSession:
    """Repositories sharing one connection and one transaction."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self.members = PostgresMemberRepository(conn)
        self.tokens = PostgresConfirmationTokenRepository(conn)
        self.relations = PostgresRelationRepository(conn)
        self.ban_dates = PostgresBanDateRepository(conn)


class PostgresStore:
    """
    Implements MembershipStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    @contextmanager
    def transaction(self) -> Iterator[PostgresSession]:
        """
        Open a transaction and yield repositories bound to it.

        Commits when the block exits normally, rolls back when it raises.

        Raises:
            StorageError: If the database cannot be reached
        """
        try:
            with self._pool.connection() as conn, conn.transaction():
                yield PostgresSession(conn)
        except (psycopg.OperationalError, PoolTimeout) as e:
            logger.error("Database unavailable: %s", e)
            raise StorageError("Database unavailable") from e


MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"


def run_migrations(pool: ConnectionPool, migrations_dir: Path = MIGRATIONS_DIR) -> None:
    """
    Apply every ``*.sql`` file of the migrations directory, by file name order.

    Files must be idempotent (CREATE ... IF NOT EXISTS): they run on every startup.

    Raises:
        RuntimeError: If a migration fails; the failing file is named
    """
    sql_files = sorted(migrations_dir.glob("*.sql"))
    if not sql_files:
        logger.warning("No migrations found in %s", migrations_dir)
        return

    for sql_file in sql_files:
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
        except psycopg.Error as e:
            logger.error("Migration %s failed: %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
        logger.info("Applied migration %s", sql_file.name)
