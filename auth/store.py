"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper.
Route, dependency and service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Atomicity:
  The reset-token hash and its expiry live in two columns but are always
  written by the same UPDATE statement, so no reader can observe one without
  the other. Every mutation that depends on the current reset token
  (consumption, compensating clear) is a conditional UPDATE -- the WHERE
  clause re-checks the hash (and expiry) so a concurrent consumer or a newer
  reset request makes the statement match zero rows instead of clobbering
  state. Callers look at the returned bool.

Timestamps are stored as fixed-width UTC ISO 8601 strings (microsecond
precision), which makes lexicographic comparison in SQL equal to
chronological comparison.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, case, create_engine, event
from sqlalchemy.engine import Engine

from auth.models import Role, User

_DEFAULT_DB_URL = "sqlite:///natours_users.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.USER.value),
    Column("password_changed_at", String(32)),
    Column("password_reset_token", String(64), index=True),  # sha256 hex
    Column("password_reset_expires", String(32)),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _not_before(changed_at: datetime):
    """SQL expression for max(stored password_changed_at, changed_at)."""
    changed_iso = _to_iso(changed_at)
    return case(
        (_users.c.password_changed_at > changed_iso, _users.c.password_changed_at),
        else_=changed_iso,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        uid = store.create_user(User(name="Jonas", email="jonas@example.com", hashed_password=digest))
        user = store.get_by_email("jonas@example.com")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=user.name,
                    email=user.email.lower(),
                    hashed_password=user.hashed_password,
                    role=user.role.value,
                    created_at=_to_iso(_now()),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email.lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_user(self, user_id: int, **fields) -> bool:
        """Update plain profile fields on an existing user.

        Accepted fields: name, email, role. Password and reset-token columns
        have dedicated methods below because they must change together with
        other columns. Unknown keys raise ValueError.

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - {"name", "email", "role"}
        if unknown:
            raise ValueError(f"Unsupported user fields: {unknown!r}")
        if "role" in fields:
            fields["role"] = Role(fields["role"]).value
        if "email" in fields:
            fields["email"] = fields["email"].lower()
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Password
    # ------------------------------------------------------------------

    def update_password(
        self,
        user_id: int,
        hashed_password: str,
        changed_at: datetime,
        expected_hash: str | None = None,
    ) -> bool:
        """Store a new password digest and stamp password_changed_at.

        changed_at never moves backwards: the stored value is
        max(current, changed_at). Any outstanding reset token is cleared in
        the same statement. When expected_hash is given the update only
        applies if the stored digest still equals it, so two concurrent
        password changes cannot both win.
        """
        condition = _users.c.id == user_id
        if expected_hash is not None:
            condition = condition & (_users.c.hashed_password == expected_hash)
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(condition)
                .values(
                    hashed_password=hashed_password,
                    password_changed_at=_not_before(changed_at),
                    password_reset_token=None,
                    password_reset_expires=None,
                )
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Password reset tokens
    # ------------------------------------------------------------------

    def set_reset_token(self, user_id: int, token_hash: str, expires: datetime) -> bool:
        """Record a freshly issued reset token, replacing any previous one."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(password_reset_token=token_hash, password_reset_expires=_to_iso(expires))
            )
            conn.commit()
        return result.rowcount > 0

    def clear_reset_token(self, user_id: int, token_hash: str) -> bool:
        """Compensating clear after a failed delivery.

        Only clears if the stored hash is still the one we issued -- a newer
        reset request that raced ahead keeps its token.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == user_id) & (_users.c.password_reset_token == token_hash))
                .values(password_reset_token=None, password_reset_expires=None)
            )
            conn.commit()
        return result.rowcount > 0

    def get_by_reset_token(self, token_hash: str, now: datetime) -> User | None:
        """Return the user holding this reset token if it has not expired yet."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where(
                    (_users.c.password_reset_token == token_hash) & (_users.c.password_reset_expires > _to_iso(now))
                )
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def consume_reset_token(
        self,
        user_id: int,
        token_hash: str,
        now: datetime,
        hashed_password: str,
    ) -> bool:
        """Set the new password and clear the reset token in one conditional UPDATE.

        Matches only while the token hash is unchanged and still unexpired,
        so of two concurrent consumers exactly one gets True.
        """
        condition = (
            (_users.c.id == user_id)
            & (_users.c.password_reset_token == token_hash)
            & (_users.c.password_reset_expires > _to_iso(now))
        )
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(condition)
                .values(
                    hashed_password=hashed_password,
                    password_changed_at=_not_before(now),
                    password_reset_token=None,
                    password_reset_expires=None,
                )
            )
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        role=Role(row.role),
        password_changed_at=_from_iso(row.password_changed_at),
        password_reset_token=row.password_reset_token,
        password_reset_expires=_from_iso(row.password_reset_expires),
        created_at=_from_iso(row.created_at),
    )
