from __future__ import annotations

from typing import Optional


MIN_PASSWORD_LENGTH = 6


def validate_login(email: str, password: str) -> Optional[str]:
    """Return an error message for the login form, or None if it can be submitted."""
    if not (email or "").strip() or not password:
        return "Please fill in all fields"
    return None


def validate_registration(name: str, email: str, password: str, confirm_password: str) -> Optional[str]:
    """Return the first registration-form error, or None if the form is valid.

    Checks run in the order the form reports them:
    - all fields present
    - password confirmation matches
    - password has at least 6 characters
    - email contains "@"
    """
    if not (name or "").strip() or not (email or "").strip() or not password or not confirm_password:
        return "Please fill in all fields"
    if password != confirm_password:
        return "Passwords do not match"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if "@" not in email:
        return "Please enter a valid email"
    return None
