"""Registration input checks: email shape and password policy."""

import os
import re

from backend.auth_service.services.auth_service import BCRYPT_MAX_PASSWORD_BYTES

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PASSWORD_MIN_LENGTH = int(os.environ.get("PASSWORD_MIN_LENGTH", "8"))
PASSWORD_REQUIRE_SPECIAL = os.environ.get("PASSWORD_REQUIRE_SPECIAL", "false").lower() == "true"

ROLES = ("renter", "owner", "both")
STATUSES = ("active", "suspended")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def password_problem(password: str) -> str | None:
    """Return the first violated password rule as a user-facing message, else None."""
    if len(password) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
    if len(password.encode()) > BCRYPT_MAX_PASSWORD_BYTES:
        return f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes"
    if not re.search(r"[A-Z]", password):
        return "Password must contain an uppercase letter"
    if not re.search(r"[a-z]", password):
        return "Password must contain a lowercase letter"
    if not re.search(r"\d", password):
        return "Password must contain a number"
    if PASSWORD_REQUIRE_SPECIAL and not re.search(r"[^A-Za-z0-9]", password):
        return "Password must contain a special character"
    return None
