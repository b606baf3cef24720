"""
content/store.py -- SQLAlchemy-backed persistence for site content.

Uses SQLAlchemy Core (not ORM) so the dataclasses in content/models.py remain
the authoritative domain representation.

Pattern: Repository + Data Mapper. ContentStore is the repository. The five
flat resources (posts, programs, sliders, subscribers, advisors) share one set
of generic helpers keyed by a Resource descriptor; committees and their
members have dedicated methods because a committee is loaded together with
its roster.

Security: all queries use bound parameters. No f-strings in SQL.

Uniqueness (ec_committees.name, posts.slug, subscribers.email, advisors.email)
is enforced by UNIQUE indexes. Routes check first for a friendly message; a
racing insert surfaces as IntegrityError, which api/main.py turns into a 409.

Usage:
    store = ContentStore("sqlite:///:memory:")
    post_id = store.create(POSTS, Post(title="Blood drive", slug="blood-drive", post_photo="a.png"))
    posts, total = store.list_page(POSTS, parse_list_query({"search": "blood"}))
    store.close()
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, UniqueConstraint, create_engine, event, select
from sqlalchemy.engine import Engine

from content.models import Advisor, Committee, CommitteeMember, Post, Program, Slider, Subscriber
from core.query import ListQuery, build_list_statements

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()


def _audit_columns() -> list[Column]:
    return [
        Column("created_at", String(32), nullable=False),
        Column("updated_at", String(32), nullable=False),
    ]


_committees = Table(
    "ec_committees",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("year", Integer, nullable=False),
    *_audit_columns(),
    sqlite_autoincrement=True,
)

_members = Table(
    "ec_members",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("committee_id", Integer, nullable=False),
    Column("user_id", Integer, nullable=False),
    Column("designation", String(255)),
    Column("index", Integer),
    UniqueConstraint("committee_id", "user_id", name="uq_committee_user"),
    sqlite_autoincrement=True,
)

_posts = Table(
    "posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("slug", String(255), nullable=False, unique=True),
    Column("post_photo", String(255), nullable=False),
    Column("banner", String(255)),
    Column("details", Text),
    Column("date", String(32)),
    Column("comments", Text),  # JSON array
    *_audit_columns(),
    sqlite_autoincrement=True,
)

_programs = Table(
    "programs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("program_photo", String(255), nullable=False),
    Column("venue", String(255), nullable=False),
    Column("start_date", String(32)),
    Column("start_time", String(32)),
    Column("end_date", String(32)),
    Column("end_time", String(32)),
    Column("fb_url", String(500)),
    *_audit_columns(),
    sqlite_autoincrement=True,
)

_sliders = Table(
    "sliders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("link", String(500), nullable=False),
    Column("slider_photo", String(255), nullable=False),
    Column("url", String(500)),
    Column("index", Integer, nullable=False, server_default="99"),
    *_audit_columns(),
    sqlite_autoincrement=True,
)

_subscribers = Table(
    "subscribers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(255)),
    *_audit_columns(),
    sqlite_autoincrement=True,
)

_advisors = Table(
    "advisors",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("designation", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("advisor_photo", String(255), nullable=False),
    Column("institute", String(255)),
    Column("cell", String(30)),
    Column("website", String(500)),
    Column("index", Integer, nullable=False, server_default="99"),
    *_audit_columns(),
    sqlite_autoincrement=True,
)


# ---------------------------------------------------------------------------
# Resource descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Resource:
    """Binds a table to its dataclass and list behaviour."""

    table: Table
    model: type
    search_columns: tuple[str, ...] = ()
    filter_columns: tuple[str, ...] = ()
    json_columns: tuple[str, ...] = ()
    lower_columns: tuple[str, ...] = ()
    default_sort: str | None = None
    image_field: str | None = None
    image_folder: str | None = None


POSTS = Resource(
    _posts,
    Post,
    search_columns=("title", "details"),
    filter_columns=("slug", "date"),
    json_columns=("comments",),
    image_field="post_photo",
    image_folder="posts",
)
PROGRAMS = Resource(
    _programs,
    Program,
    search_columns=("title", "venue"),
    filter_columns=("venue", "start_date"),
    image_field="program_photo",
    image_folder="programs",
)
SLIDERS = Resource(_sliders, Slider, default_sort="index,id", image_field="slider_photo", image_folder="sliders")
SUBSCRIBERS = Resource(
    _subscribers,
    Subscriber,
    search_columns=("email", "name"),
    filter_columns=("email",),
    lower_columns=("email",),
)
ADVISORS = Resource(
    _advisors,
    Advisor,
    search_columns=("name", "designation", "institute", "email"),
    filter_columns=("designation", "institute"),
    lower_columns=("email",),
    default_sort="index,id",
    image_field="advisor_photo",
    image_folder="advisors",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety (SQLite only)."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _to_columns(resource: Resource, values: dict) -> dict:
    out = {}
    for name, value in values.items():
        if name in resource.json_columns:
            value = json.dumps(value if value is not None else [])
        elif name in resource.lower_columns and isinstance(value, str):
            value = value.strip().lower()
        out[name] = value
    return out


def _row_to(resource: Resource, row):
    data = dict(row._mapping)
    for name in resource.json_columns:
        raw = data.get(name)
        data[name] = json.loads(raw) if raw else []
    return resource.model(**data)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ContentStore:
    """Repository for committees, posts, programs, sliders, subscribers, advisors."""

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Flat resources
    # ------------------------------------------------------------------

    def create(self, resource: Resource, obj) -> int:
        """Insert a dataclass instance and return its new ID."""
        values = dataclasses.asdict(obj)
        for name in ("id", "created_at", "updated_at"):
            values.pop(name, None)
        now = _now_iso()
        values["created_at"] = now
        values["updated_at"] = now
        with self.engine.connect() as conn:
            result = conn.execute(resource.table.insert().values(**_to_columns(resource, values)))
            conn.commit()
            return result.inserted_primary_key[0]

    def get(self, resource: Resource, record_id: int):
        with self.engine.connect() as conn:
            row = conn.execute(resource.table.select().where(resource.table.c.id == record_id)).fetchone()
        return _row_to(resource, row) if row is not None else None

    def find_one(self, resource: Resource, **filters):
        """Return the first record matching all equality filters, or None."""
        stmt = resource.table.select()
        for name, value in _to_columns(resource, filters).items():
            stmt = stmt.where(resource.table.c[name] == value)
        with self.engine.connect() as conn:
            row = conn.execute(stmt.limit(1)).fetchone()
        return _row_to(resource, row) if row is not None else None

    def exists(self, resource: Resource, **filters) -> bool:
        return self.find_one(resource, **filters) is not None

    def list_page(self, resource: Resource, query: ListQuery) -> tuple[list, int]:
        """Return one page of records plus the total number of matches."""
        if query.sort is None and resource.default_sort:
            query = dataclasses.replace(query, sort=resource.default_sort)
        stmt, count_stmt = build_list_statements(resource.table, query, resource.search_columns)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
            total = conn.execute(count_stmt).scalar() or 0
        return [_row_to(resource, r) for r in rows], total

    def list_all(self, resource: Resource) -> list:
        stmt = resource.table.select()
        if resource.default_sort:
            stmt = stmt.order_by(*(resource.table.c[name] for name in resource.default_sort.split(",")))
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to(resource, r) for r in rows]

    def update(self, resource: Resource, record_id: int, **changes) -> bool:
        """Update columns on one record. Unknown keys raise ValueError."""
        unknown = set(changes) - set(resource.table.c.keys()) | ({"id", "created_at"} & set(changes))
        if unknown:
            raise ValueError(f"Unknown {resource.table.name} fields: {unknown!r}")
        values = _to_columns(resource, changes)
        values["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(resource.table.update().where(resource.table.c.id == record_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    def delete(self, resource: Resource, record_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(resource.table.delete().where(resource.table.c.id == record_id))
            conn.commit()
        return result.rowcount > 0

    def add_comment(self, post_id: int, text: str, author: str | None = None) -> bool:
        """Append a comment to a post's comment list."""
        post = self.get(POSTS, post_id)
        if post is None:
            return False
        comment = {"text": text, "created_at": _now_iso()}
        if author:
            comment["author"] = author
        return self.update(POSTS, post_id, comments=[*post.comments, comment])

    # ------------------------------------------------------------------
    # Committees
    # ------------------------------------------------------------------

    def create_committee(self, name: str, year: int) -> int:
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _committees.insert().values(name=name.strip(), year=year, created_at=now, updated_at=now)
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def committee_name_taken(self, name: str, exclude_id: int | None = None) -> bool:
        stmt = select(_committees.c.id).where(_committees.c.name == name.strip())
        if exclude_id is not None:
            stmt = stmt.where(_committees.c.id != exclude_id)
        with self.engine.connect() as conn:
            return conn.execute(stmt.limit(1)).fetchone() is not None

    def list_committees(self) -> list[Committee]:
        """All committees, newest year first, each with its roster."""
        with self.engine.connect() as conn:
            rows = conn.execute(_committees.select().order_by(_committees.c.year.desc(), _committees.c.id.desc())).fetchall()
            member_rows = conn.execute(_members.select().order_by(_members.c["index"], _members.c.id)).fetchall()
        by_committee: dict[int, list[CommitteeMember]] = {}
        for m in member_rows:
            by_committee.setdefault(m.committee_id, []).append(_row_to_member(m))
        return [_row_to_committee(r, by_committee.get(r.id, [])) for r in rows]

    def get_committee(self, committee_id: int) -> Committee | None:
        with self.engine.connect() as conn:
            row = conn.execute(_committees.select().where(_committees.c.id == committee_id)).fetchone()
            if row is None:
                return None
            member_rows = conn.execute(
                _members.select().where(_members.c.committee_id == committee_id).order_by(_members.c["index"], _members.c.id)
            ).fetchall()
        return _row_to_committee(row, [_row_to_member(m) for m in member_rows])

    def update_committee(self, committee_id: int, **changes) -> bool:
        unknown = set(changes) - {"name", "year"}
        if unknown:
            raise ValueError(f"Unknown committee fields: {unknown!r}")
        changes["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_committees.update().where(_committees.c.id == committee_id).values(**changes))
            conn.commit()
        return result.rowcount > 0

    def delete_committee(self, committee_id: int) -> bool:
        with self.engine.connect() as conn:
            conn.execute(_members.delete().where(_members.c.committee_id == committee_id))
            result = conn.execute(_committees.delete().where(_committees.c.id == committee_id))
            conn.commit()
        return result.rowcount > 0

    def has_member(self, committee_id: int, user_id: int) -> bool:
        stmt = select(_members.c.id).where((_members.c.committee_id == committee_id) & (_members.c.user_id == user_id))
        with self.engine.connect() as conn:
            return conn.execute(stmt.limit(1)).fetchone() is not None

    def add_member(self, committee_id: int, member: CommitteeMember) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                _members.insert().values(
                    committee_id=committee_id,
                    user_id=member.user_id,
                    designation=member.designation,
                    index=member.index,
                )
            )
            conn.execute(_committees.update().where(_committees.c.id == committee_id).values(updated_at=_now_iso()))
            conn.commit()
            return result.inserted_primary_key[0]

    def get_member(self, member_id: int) -> CommitteeMember | None:
        with self.engine.connect() as conn:
            row = conn.execute(_members.select().where(_members.c.id == member_id)).fetchone()
        return _row_to_member(row) if row is not None else None

    def update_member(self, member_id: int, **changes) -> bool:
        unknown = set(changes) - {"designation", "index"}
        if unknown:
            raise ValueError(f"Unknown member fields: {unknown!r}")
        if not changes:
            return self.get_member(member_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(_members.update().where(_members.c.id == member_id).values(**changes))
            conn.commit()
        return result.rowcount > 0

    def remove_member(self, member_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_members.delete().where(_members.c.id == member_id))
            conn.commit()
        return result.rowcount > 0

    def remove_memberships(self, user_ids: Iterable[int]) -> int:
        """Drop every committee seat held by the given accounts."""
        ids = list(user_ids)
        if not ids:
            return 0
        with self.engine.connect() as conn:
            result = conn.execute(_members.delete().where(_members.c.user_id.in_(ids)))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_member(row) -> CommitteeMember:
    return CommitteeMember(
        id=row.id,
        committee_id=row.committee_id,
        user_id=row.user_id,
        designation=row.designation,
        index=row._mapping["index"],
    )


def _row_to_committee(row, members: list[CommitteeMember]) -> Committee:
    return Committee(
        id=row.id,
        name=row.name,
        year=row.year,
        members=members,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
