"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper (same as content/store.py).
AccountStore is the repository; _row_to_account is the mapper.
Route, dependency and service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  users.email carries a UNIQUE index. AccountService checks existence before
  creating, but two concurrent registrations can both pass that check; the
  index is the real backstop. The resulting IntegrityError propagates to the
  error translator in api/main.py, which reports "email must be unique".

Nested profile documents (identity, social_media) are stored as JSON text.

DB URL: Settings.database_url (SQLite file next to the project by default).

Layer rule: no imports from api/, content/, or storage/.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import asdict, fields
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import ROLE_SUPER_ADMIN, Account, Identity, SocialMedia
from core.query import ListQuery, build_list_statements

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
    Column("gender", String(10), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(20), nullable=False, server_default="user"),
    Column("is_verified", Integer, nullable=False, server_default="0"),
    Column("is_banned", Integer, nullable=False, server_default="0"),
    Column("approved", Integer, nullable=False, server_default="0"),
    Column("trash", Integer, nullable=False, server_default="0"),
    Column("mobile", String(30)),
    Column("user_photo", String(255)),
    Column("blood_group", String(3)),
    Column("age", Integer),
    Column("location", String(255)),
    Column("feedback", Text),
    Column("identity", Text),  # JSON object
    Column("social_media", Text),  # JSON object
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("last_login", String(32)),
    sqlite_autoincrement=True,
)

SEARCH_COLUMNS = ("name", "email", "mobile", "role")
FILTER_COLUMNS = ("role", "gender", "is_verified", "is_banned", "approved", "blood_group")

_BOOL_FIELDS = {"is_verified", "is_banned", "approved", "trash"}
_JSON_FIELDS = {"identity", "social_media"}
_WRITABLE_FIELDS = {f.name for f in fields(Account)} - {"id", "created_at", "updated_at"}


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety (SQLite only)."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _to_column_value(name: str, value):
    if name in _BOOL_FIELDS:
        return 1 if value else 0
    if name in _JSON_FIELDS:
        if value is None:
            return None
        if not isinstance(value, dict):
            value = asdict(value)
        return json.dumps(value)
    if name == "email" and value is not None:
        return normalize_email(value)
    return value


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore("sqlite:///:memory:")
        account_id = store.create_account(Account(name="Rafi", email="r@x.com", gender="male",
                                                   hashed_password=hash_password("secret")))
        account = store.get_by_email("R@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
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

    def has_users(self) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (result or 0) > 0

    def get_by_id(self, account_id: int) -> Account | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_email(self, email: str) -> Account | None:
        """Case-insensitive lookup -- emails are stored lower-cased."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_account(row) if row is not None else None

    def exists(self, **filters) -> bool:
        """Return True if any account matches all equality filters.

        exists(email="a@x.com"), exists(role="superAdmin", is_banned=False)
        """
        unknown = set(filters) - set(_users.c.keys())
        if unknown:
            raise ValueError(f"Unknown account filter fields: {unknown!r}")
        stmt = select(_users.c.id)
        for name, value in filters.items():
            stmt = stmt.where(_users.c[name] == _to_column_value(name, value))
        with self.engine.connect() as conn:
            row = conn.execute(stmt.limit(1)).fetchone()
        return row is not None

    def list_accounts(self, query: ListQuery) -> tuple[list[Account], int]:
        """Return one page of accounts plus the total number of matches."""
        stmt, count_stmt = build_list_statements(_users, query, SEARCH_COLUMNS)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
            total = conn.execute(count_stmt).scalar() or 0
        return [_row_to_account(r) for r in rows], total

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_account(self, account: Account) -> int:
        """Insert a new account and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        now = _now_iso()
        values = {name: _to_column_value(name, getattr(account, name)) for name in _WRITABLE_FIELDS}
        values["created_at"] = now
        values["updated_at"] = now
        with self.engine.connect() as conn:
            result = conn.execute(_users.insert().values(**values))
            conn.commit()
            return result.inserted_primary_key[0]

    def update_account(self, account_id: int, **changes) -> bool:
        """Update mutable fields on an existing account.

        Accepts any Account field except id/created_at. Booleans, nested
        documents and email are converted to their column form here.
        Unknown keys raise ValueError rather than being silently ignored.

        Returns True if a row was updated, False if account_id was not found.
        """
        unknown = set(changes) - _WRITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown account fields: {unknown!r}")
        values = {name: _to_column_value(name, value) for name, value in changes.items()}
        values["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == account_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    def update_last_login(self, account_id: int) -> None:
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == account_id).values(last_login=_now_iso()))
            conn.commit()

    def delete_account(self, account_id: int) -> bool:
        """Permanently delete an account. Returns True if deleted, False if not found.

        Callers must enforce the superAdmin protection (auth.policy.ensure_deletable)
        before calling this method.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == account_id))
            conn.commit()
        return result.rowcount > 0

    def delete_many(self, account_ids: Iterable[int]) -> list[Account]:
        """Delete the given accounts, skipping every superAdmin.

        Returns the deleted accounts so the caller can clean up their photos.
        """
        ids = list(set(account_ids))
        if not ids:
            return []
        with self.engine.connect() as conn:
            rows = conn.execute(
                _users.select().where(_users.c.id.in_(ids) & (_users.c.role != ROLE_SUPER_ADMIN))
            ).fetchall()
            doomed = [r.id for r in rows]
            if doomed:
                conn.execute(_users.delete().where(_users.c.id.in_(doomed)))
                conn.commit()
        return [_row_to_account(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _load_json(raw: str | None) -> dict:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        return {}
    return value if isinstance(value, dict) else {}


def _row_to_account(row) -> Account:
    identity = _load_json(row.identity)
    social = _load_json(row.social_media)
    return Account(
        id=row.id,
        name=row.name,
        email=row.email,
        gender=row.gender,
        hashed_password=row.hashed_password,
        role=row.role,
        is_verified=bool(row.is_verified),
        is_banned=bool(row.is_banned),
        approved=bool(row.approved),
        trash=bool(row.trash),
        mobile=row.mobile,
        user_photo=row.user_photo,
        blood_group=row.blood_group,
        age=row.age,
        location=row.location,
        feedback=row.feedback,
        identity=Identity(**{k: v for k, v in identity.items() if k in Identity.__dataclass_fields__}),
        social_media=SocialMedia(**{k: v for k, v in social.items() if k in SocialMedia.__dataclass_fields__}),
        created_at=row.created_at,
        updated_at=row.updated_at,
        last_login=row.last_login,
    )
