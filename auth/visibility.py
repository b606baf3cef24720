"""
auth/visibility.py -- Role-based projection of Account records.

Every account that leaves the API passes through project(). The projection is
an explicit allow-list: a field added to Account stays private until it is
listed here. hashed_password is in no list and can never be projected.
"""

from __future__ import annotations

from dataclasses import asdict

from auth.models import STAFF_ROLES, Account

PUBLIC_FIELDS = (
    "id",
    "name",
    "email",
    "gender",
    "mobile",
    "user_photo",
    "blood_group",
    "age",
    "location",
    "feedback",
    "identity",
    "social_media",
)

STAFF_FIELDS = PUBLIC_FIELDS + (
    "role",
    "is_verified",
    "is_banned",
    "approved",
    "trash",
    "created_at",
    "updated_at",
    "last_login",
)


def visible_fields(requester_role: str | None) -> tuple[str, ...]:
    return STAFF_FIELDS if requester_role in STAFF_ROLES else PUBLIC_FIELDS


def project(account: Account, requester_role: str | None) -> dict:
    """Return the fields of `account` that a requester with `requester_role` may see.

    requester_role is None for anonymous requests.
    """
    doc = asdict(account)
    return {name: doc[name] for name in visible_fields(requester_role)}
