from __future__ import annotations

import uuid

from flask import g, request

from app.dms.runtime import reference_data

USER_HEADER = "X-User-Id"


def load_current_user() -> None:
    """
    Loads g.current_user from the X-User-Id header.
    The caller is trusted as supplied; it only has to exist in the reference users.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
    if request.path.startswith(("/health", "/healthz")):
        g.current_user = None
        return

    g.current_user = reference_data().user(request.headers.get(USER_HEADER))
