from __future__ import annotations

from typing import Any

from flask import g, request

from app.dms.errors import ValidationError
from app.dms.models import User


def json_body() -> dict[str, Any]:
    """Parse the JSON request body; an absent body is an empty object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        # require_user should prevent this, but keep defensive.
        raise RuntimeError("No current user")
    return u
