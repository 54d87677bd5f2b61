"""
Role value type and the authorization rules for each lifecycle operation.

All role checks in the engine go through the predicates below; roles are
compared by exact (whitespace-trimmed) equality.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import wraps
from typing import TYPE_CHECKING, Any

from flask import g, jsonify

if TYPE_CHECKING:
    from app.dms.models import User
    from app.dms.modules.workflow_templates.models import Stage


@dataclass(frozen=True)
class Role:
    name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", (self.name or "").strip())

    @classmethod
    def of(cls, value: "Role | str | None") -> "Role":
        if isinstance(value, Role):
            return value
        return cls(value or "")

    def __bool__(self) -> bool:
        return bool(self.name)

    def __str__(self) -> str:
        return self.name


def can_act_on_stage(role: Role | str, stage: Stage) -> bool:
    r = Role.of(role)
    return bool(r) and r == Role.of(stage.role)


def can_archive(role: Role | str, archive_roles: Iterable[str]) -> bool:
    r = Role.of(role)
    return bool(r) and r in {Role.of(a) for a in archive_roles}


def require_user(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Reject requests without a resolved caller (see `auth.load_current_user`)."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        if not user:
            return jsonify({"error": "unauthorized", "message": "Unknown or missing X-User-Id."}), 401
        return fn(*args, **kwargs)

    return wrapped
