"""Unit tests for auth/codes.py -- numeric verification codes."""

from __future__ import annotations

import pytest

from auth.codes import generate_code, verify_code


def test_code_has_requested_number_of_digits() -> None:
    for length in (4, 6):
        code, _hashed = generate_code(length)
        assert len(code) == length
        assert code.isdigit()


def test_hash_verifies_only_its_own_code() -> None:
    code, hashed = generate_code(4)
    assert verify_code(code, hashed)
    wrong = "0000" if code != "0000" else "1111"
    assert not verify_code(wrong, hashed)


def test_plaintext_is_not_stored_in_hash() -> None:
    code, hashed = generate_code(6)
    assert code not in hashed


def test_empty_or_malformed_inputs_are_rejected() -> None:
    _code, hashed = generate_code(4)
    assert verify_code("", hashed) is False
    assert verify_code("1234", "") is False
    assert verify_code("1234", "garbage") is False


def test_zero_length_is_rejected() -> None:
    with pytest.raises(ValueError):
        generate_code(0)
