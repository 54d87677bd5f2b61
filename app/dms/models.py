from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class User:
    """
    External identity supplied by the caller.
    The engine trusts `role` and `can_sign` as given; there is no authentication here.
    """

    id: str
    name: str
    role: str
    can_sign: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "role": self.role, "can_sign": self.can_sign}


@dataclass(frozen=True)
class DocumentType:
    id: str
    type: str  # display label, e.g. "Standard Operating Procedure"
    prefix: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "prefix": self.prefix}


@dataclass(frozen=True)
class AuditEntry:
    """
    Append-only audit trail entry.
    Keep this record intentionally generic; `context` carries action-specific detail.
    """

    id: str
    sequence: int
    timestamp: datetime
    actor: str
    actor_role: str
    action: str  # e.g. "doc.advance"
    target: str  # document id or workflow template id
    context: Mapping[str, str] = field(default_factory=dict)
    regulatory_mapping: frozenset[str] = frozenset()
    signature_captured: bool = False
    request_id: str | None = None

    def __post_init__(self) -> None:
        # Freeze the context so an entry can never be edited after creation.
        object.__setattr__(self, "context", MappingProxyType(dict(self.context)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sequence": self.sequence,
            "timestamp": self.timestamp.isoformat(),
            "actor": self.actor,
            "actor_role": self.actor_role,
            "action": self.action,
            "target": self.target,
            "context": dict(self.context),
            "regulatory_mapping": sorted(self.regulatory_mapping),
            "signature_captured": self.signature_captured,
            "request_id": self.request_id,
        }
