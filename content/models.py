"""
content/models.py -- Domain dataclasses for the public site content.

Pattern: Data class (pure data container, zero logic). content/store.py maps
rows to these types; route handlers serialize them with jsonable_encoder.

Every record carries id/created_at/updated_at, filled in by the store.
Uploaded image fields hold a bare filename under public/images/<folder>/.

Layer rule: no imports from api/, auth/, or storage/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class CommitteeMember:
    user_id: int
    designation: str | None = None
    index: int | None = None
    id: int | None = None
    committee_id: int | None = None


@dataclass
class Committee:
    """An executive committee roster, e.g. "17th Executive Committee" for 2023."""

    name: str
    year: int
    id: int | None = None
    members: list[CommitteeMember] = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Post:
    title: str
    slug: str
    post_photo: str
    banner: str | None = None
    details: str | None = None
    date: str | None = None
    comments: list[dict] = field(default_factory=list)
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Program:
    title: str
    program_photo: str
    venue: str
    start_date: str | None = None
    start_time: str | None = None
    end_date: str | None = None
    end_time: str | None = None
    fb_url: str | None = None
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Slider:
    title: str
    link: str
    slider_photo: str
    url: str | None = None
    index: int = 99
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Subscriber:
    email: str
    name: str | None = None
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Advisor:
    name: str
    designation: str
    email: str
    advisor_photo: str
    institute: str | None = None
    cell: str | None = None
    website: str | None = None
    index: int = 99
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
