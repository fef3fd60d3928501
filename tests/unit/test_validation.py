from __future__ import annotations

import pytest

from common.validation import validate_login, validate_registration


def test_login_requires_both_fields():
    assert validate_login("a@b.com", "pw") is None
    assert validate_login("   ", "pw") == "Please fill in all fields"
    assert validate_login("a@b.com", "") == "Please fill in all fields"


def test_registration_accepts_valid_form():
    assert validate_registration("Ana", "a@b.com", "secret", "secret") is None


@pytest.mark.parametrize(
    "args,expected",
    [
        (("Ana", "a@b.com", "secret", ""), "Please fill in all fields"),
        (("  ", "a@b.com", "secret", "secret"), "Please fill in all fields"),
        # Mismatch is reported before length
        (("Ana", "a@b.com", "abc", "abd"), "Passwords do not match"),
        (("Ana", "a@b.com", "abcde", "abcde"), "Password must be at least 6 characters"),
        # Length is reported before email format
        (("Ana", "nope", "abc", "abc"), "Password must be at least 6 characters"),
        (("Ana", "nope", "secret", "secret"), "Please enter a valid email"),
    ],
)
def test_registration_errors_in_form_order(args, expected):
    assert validate_registration(*args) == expected
