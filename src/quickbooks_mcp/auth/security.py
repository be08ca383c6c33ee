"""Security utilities for the OAuth authorization flow."""

from __future__ import annotations

import secrets
import string

from quickbooks_mcp.errors import StateValidationError


def generate_state() -> str:
    """Generate cryptographically secure state parameter.

    The state parameter provides CSRF protection by ensuring the callback
    matches the original authorization request.

    Returns:
        Cryptographically secure random state string (32 characters)
    """
    alphabet = string.ascii_letters + string.digits + "-._~"
    return "".join(secrets.choice(alphabet) for _ in range(32))


def validate_state(expected: str, actual: str | None) -> None:
    """Validate state parameter matches expected value.

    Raises:
        StateValidationError: If the callback carried no state or a different one
    """
    if actual is None:
        raise StateValidationError(
            "Authorization callback missing required state parameter"
        )
    if not secrets.compare_digest(expected.encode(), actual.encode()):
        raise StateValidationError("State parameter mismatch - possible CSRF attack")
