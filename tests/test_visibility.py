"""
tests/test_visibility.py -- Role-based projection of accounts.

Covers:
  - anonymous and member requesters see only public fields
  - staff requesters additionally see role and status flags
  - hashed_password never appears in any projection
"""

from __future__ import annotations

import pytest

from auth.models import Account, Identity
from auth.visibility import PUBLIC_FIELDS, STAFF_FIELDS, project


@pytest.fixture
def account() -> Account:
    return Account(
        name="Nadia Rahman",
        email="nadia@kin.org",
        gender="female",
        id=7,
        hashed_password="$2b$12$not-a-real-hash",
        is_verified=True,
        identity=Identity(department="CSE", session="2018-19"),
    )


@pytest.mark.parametrize("role", [None, "user"])
def test_public_projection(account: Account, role) -> None:
    doc = project(account, role)
    assert tuple(doc) == PUBLIC_FIELDS
    assert "role" not in doc
    assert "is_banned" not in doc
    assert doc["identity"]["department"] == "CSE"


@pytest.mark.parametrize("role", ["admin", "superAdmin"])
def test_staff_projection(account: Account, role: str) -> None:
    doc = project(account, role)
    assert tuple(doc) == STAFF_FIELDS
    assert doc["role"] == "user"
    assert doc["is_verified"] is True


@pytest.mark.parametrize("role", [None, "user", "admin", "superAdmin"])
def test_password_hash_is_never_projected(account: Account, role) -> None:
    assert "hashed_password" not in project(account, role)
