"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost zero logic). Stores and
services do the work; the only behaviour here is the derived account state.

Layer rule: no imports from api/, content/, or storage/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "superAdmin"

ROLES = (ROLE_USER, ROLE_ADMIN, ROLE_SUPER_ADMIN)
STAFF_ROLES = frozenset({ROLE_ADMIN, ROLE_SUPER_ADMIN})


class AccountState(str, Enum):
    PENDING_VERIFICATION = "pending_verification"
    ACTIVE = "active"
    BANNED = "banned"


@dataclass
class Identity:
    """Affiliation details. University members fill department/session,
    everyone else profession/organization."""

    department: str | None = None
    session: str | None = None
    profession: str | None = None
    organization: str | None = None


@dataclass
class SocialMedia:
    fb: str | None = None
    instagram: str | None = None
    linkedin: str | None = None


@dataclass
class Account:
    """A registered member of the site.

    email is stored trimmed and lower-cased; the store normalizes it on every
    write and lookup. hashed_password is a bcrypt hash and is never projected
    into an API response (see auth/visibility.py).

    id is None before the record is written to the database.
    """

    name: str
    email: str
    gender: str  # "male" | "female"
    role: str = ROLE_USER
    id: int | None = None
    hashed_password: str | None = None
    is_verified: bool = False
    is_banned: bool = False
    approved: bool = False
    trash: bool = False
    mobile: str | None = None
    user_photo: str | None = None
    blood_group: str | None = None
    age: int | None = None
    location: str | None = None
    feedback: str | None = None
    identity: Identity = field(default_factory=Identity)
    social_media: SocialMedia = field(default_factory=SocialMedia)
    created_at: str | None = None
    updated_at: str | None = None
    last_login: str | None = None

    @property
    def state(self) -> AccountState:
        if not self.is_verified:
            return AccountState.PENDING_VERIFICATION
        if self.is_banned:
            return AccountState.BANNED
        return AccountState.ACTIVE

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES
