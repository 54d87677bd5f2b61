from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from app.dms.errors import ValidationError


@dataclass(frozen=True)
class Stage:
    id: str
    name: str
    role: str  # the single role allowed to act on (and sign) this stage
    instructions: str = ""
    requires_signature: bool = False
    # Optional status shown while this stage is current; falls back to the derivation table.
    status: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "instructions": self.instructions,
            "requires_signature": self.requires_signature,
            "status": self.status,
        }


@dataclass(frozen=True)
class WorkflowTemplate:
    id: str
    name: str
    description: str = ""
    compliant_standards: frozenset[str] = frozenset()
    stages: tuple[Stage, ...] = field(default_factory=tuple)

    def stage_index(self, stage_id: str) -> int | None:
        for i, stage in enumerate(self.stages):
            if stage.id == stage_id:
                return i
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "compliant_standards": sorted(self.compliant_standards),
            "stages": [s.to_dict() for s in self.stages],
        }


_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"", "0", "false", "no", "off"}


def _parse_flag(value: Any, field_name: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        v = value.strip().lower()
        if v in _TRUE_STRINGS:
            return True
        if v in _FALSE_STRINGS:
            return False
    raise ValidationError(f"{field_name} must be a boolean.")


def stage_from_dict(data: dict[str, Any]) -> Stage:
    return Stage(
        id=str(data.get("id") or "").strip(),
        name=str(data.get("name") or "").strip(),
        role=str(data.get("role") or "").strip(),
        instructions=str(data.get("instructions") or "").strip(),
        requires_signature=_parse_flag(data.get("requires_signature"), "requires_signature"),
        status=(str(data["status"]).strip() or None) if data.get("status") else None,
    )


def template_from_dict(data: dict[str, Any]) -> WorkflowTemplate:
    raw_stages: Iterable[Any] = data.get("stages") or []
    if not all(isinstance(s, dict) for s in raw_stages):
        raise ValidationError("Each stage must be an object.")
    return WorkflowTemplate(
        id=str(data.get("id") or "").strip(),
        name=str(data.get("name") or "").strip(),
        description=str(data.get("description") or "").strip(),
        compliant_standards=frozenset(str(s).strip() for s in (data.get("compliant_standards") or []) if str(s).strip()),
        stages=tuple(stage_from_dict(s) for s in raw_stages),
    )
