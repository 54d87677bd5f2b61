"""
Static reference data the engine needs but does not own: users and document types.

Loaded from a JSON file when REFERENCE_DATA_PATH is set:

    {
      "users": [{"id": "u-1", "name": "...", "role": "...", "can_sign": true}],
      "document_types": [{"id": "sop", "type": "Standard Operating Procedure", "prefix": "SOP"}]
    }

Otherwise the built-in demo set is used.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from app.dms.constants import SYSTEM_ADMINISTRATOR
from app.dms.models import DocumentType, User

DEMO_USERS = (
    User(id="u-author", name="Dana Whitfield", role="Document Author", can_sign=True),
    User(id="u-reviewer", name="Priya Raman", role="QA Reviewer", can_sign=True),
    User(id="u-qa", name="Marcus Lind", role="QA Manager", can_sign=True),
    User(id="u-admin", name="Elena Sorokina", role=SYSTEM_ADMINISTRATOR, can_sign=True),
    User(id="u-viewer", name="Tom Becker", role="Production Operator", can_sign=False),
)

DEMO_DOCUMENT_TYPES = (
    DocumentType(id="sop", type="Standard Operating Procedure", prefix="SOP"),
    DocumentType(id="wi", type="Work Instruction", prefix="WI"),
    DocumentType(id="spec", type="Specification", prefix="SPEC"),
    DocumentType(id="form", type="Form", prefix="FRM"),
    DocumentType(id="policy", type="Policy", prefix="POL"),
)


@dataclass(frozen=True)
class ReferenceData:
    users: tuple[User, ...]
    document_types: tuple[DocumentType, ...]

    def user(self, user_id: str | None) -> User | None:
        uid = (user_id or "").strip()
        if not uid:
            return None
        return next((u for u in self.users if u.id == uid), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "users": [u.to_dict() for u in self.users],
            "document_types": [t.to_dict() for t in self.document_types],
        }


def _parse_reference_data(data: dict[str, Any]) -> ReferenceData:
    users = tuple(
        User(
            id=str(u["id"]).strip(),
            name=str(u.get("name") or u["id"]).strip(),
            role=str(u.get("role") or "").strip(),
            can_sign=bool(u.get("can_sign", False)),
        )
        for u in data.get("users") or []
    )
    types = tuple(
        DocumentType(
            id=str(t["id"]).strip(),
            type=str(t.get("type") or t["id"]).strip(),
            prefix=str(t.get("prefix") or "").strip(),
        )
        for t in data.get("document_types") or []
    )
    return ReferenceData(users=users, document_types=types)


def load_reference_data(path: str | Path | None = None) -> ReferenceData:
    if not path:
        return ReferenceData(users=DEMO_USERS, document_types=DEMO_DOCUMENT_TYPES)
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise RuntimeError(f"Cannot load reference data from {p}: {e}") from e
    if not isinstance(data, dict):
        raise RuntimeError(f"Reference data in {p} must be a JSON object.")
    try:
        return _parse_reference_data(data)
    except (KeyError, TypeError) as e:
        raise RuntimeError(f"Malformed reference data in {p}: {e}") from e
