"""
auth/codes.py -- Short numeric verification codes.

Activation and password-reset flows mail the user an N-digit code. Only the
bcrypt hash of the code travels in the signed token (and therefore in the
cookie); the plaintext exists only in the email.

Digits are drawn with secrets.randbelow, never random.
"""

from __future__ import annotations

import secrets

import bcrypt

from auth.tokens import hash_password


def generate_code(length: int = 4) -> tuple[str, str]:
    """Return (plaintext, bcrypt_hash) for a fresh `length`-digit code."""
    if length < 1:
        raise ValueError("Code length must be at least 1.")
    code = "".join(str(secrets.randbelow(10)) for _ in range(length))
    return code, hash_password(code)


def verify_code(plain: str, hashed: str) -> bool:
    """Return True if `plain` matches the stored code hash."""
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.strip().encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False
