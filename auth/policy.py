"""
auth/policy.py -- Pure authorization rules for account management.

No I/O and no FastAPI: every function takes the acting account (and the target
where relevant) and either returns or raises a core.errors exception. The
route layer calls these after loading both accounts from the store.
"""

from __future__ import annotations

from collections.abc import Iterable

from auth.models import ROLE_SUPER_ADMIN, ROLES, Account
from core.errors import ForbiddenError, ValidationError

# Fields only changed through the dedicated role/ban/credential endpoints.
PROTECTED_FIELDS = frozenset(
    {
        "role",
        "email",
        "hashed_password",
        "is_verified",
        "is_banned",
        "approved",
        "trash",
        "created_at",
        "updated_at",
        "last_login",
    }
)


def authorize(account: Account, allowed_roles: Iterable[str]) -> Account:
    """Return `account` if its stored role is allowed, else raise ForbiddenError."""
    if account.role not in set(allowed_roles):
        raise ForbiddenError()
    return account


def ensure_can_edit_profile(actor: Account, target: Account, fields: Iterable[str] = ()) -> None:
    """Members edit their own profile; staff may edit anyone's.

    Protected fields are rejected for everyone on this path.
    """
    if not actor.is_staff and actor.id != target.id:
        raise ForbiddenError("You can only update your own profile.")
    touched = PROTECTED_FIELDS.intersection(fields)
    if touched:
        raise ForbiddenError(f"You are not allowed to change: {', '.join(sorted(touched))}.")


def ensure_role_change_allowed(actor: Account, target: Account, new_role: str) -> None:
    if new_role not in ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(ROLES)}.")
    if actor.role != ROLE_SUPER_ADMIN:
        raise ForbiddenError("Only a super admin can change roles.")
    if actor.id == target.id and new_role != ROLE_SUPER_ADMIN:
        raise ForbiddenError("You can't change your own role.")


def ensure_deletable(target: Account) -> None:
    if target.role == ROLE_SUPER_ADMIN:
        raise ForbiddenError("Can't delete this account.")


def ensure_bannable(actor: Account, target: Account) -> None:
    if target.role == ROLE_SUPER_ADMIN or actor.id == target.id:
        raise ForbiddenError("Can't ban this account.")
    if target.is_banned:
        raise ValidationError("This account is already banned.")


def ensure_unbannable(target: Account) -> None:
    if not target.is_banned:
        raise ValidationError("This account is not banned.")
