from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.dms.constants import (
    CATEGORIES,
    DEFAULT_CONTENT_SUMMARY,
    DEFAULT_VERSION,
    LIFECYCLE_DRAFT,
    SECURITY_LEVELS,
    STANDARD_PART_11,
    STATUS_DRAFT,
)


@dataclass(frozen=True)
class VersionRecord:
    version: str
    effective_from: str
    signed_off_by: str
    signed_off_role: str
    change_summary: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "effective_from": self.effective_from,
            "signed_off_by": self.signed_off_by,
            "signed_off_role": self.signed_off_role,
            "change_summary": self.change_summary,
        }


@dataclass(frozen=True)
class SignatureRecord:
    stage_id: str
    signed_by: str
    signed_by_role: str
    rationale: str
    signed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage_id": self.stage_id,
            "signed_by": self.signed_by,
            "signed_by_role": self.signed_by_role,
            "rationale": self.rationale,
            "signed_at": self.signed_at.isoformat(),
        }


@dataclass(frozen=True)
class DocumentDraft:
    """Caller-supplied payload for creating a controlled document."""

    title: str
    number: str
    type_id: str
    workflow_id: str
    version: str = DEFAULT_VERSION
    category: str = CATEGORIES[0]
    security: str = SECURITY_LEVELS[0]
    date_of_issue: str = ""
    effective_from: str = ""
    next_issue_date: str = ""
    issuer_role: str = ""
    linked_standards: tuple[str, ...] = (STANDARD_PART_11,)
    tags: tuple[str, ...] = ()
    related_documents: tuple[str, ...] = ()
    content_summary: str = DEFAULT_CONTENT_SUMMARY


@dataclass(frozen=True)
class DocumentRecord:
    """
    Immutable snapshot of a controlled document.
    Every engine operation produces a new record; nothing edits one in place.
    """

    id: str
    title: str
    number: str  # external identifier, e.g. "QMS-SOP-034"
    type_id: str
    workflow_id: str
    version: str
    date_created: datetime
    created_by: str
    current_stage_index: int = 0
    status: str = STATUS_DRAFT
    lifecycle_state: str = LIFECYCLE_DRAFT
    effective_from: str = ""
    previous_versions: tuple[VersionRecord, ...] = ()
    signatures: tuple[SignatureRecord, ...] = ()
    category: str = CATEGORIES[0]
    security: str = SECURITY_LEVELS[0]
    date_of_issue: str = ""
    issued_by: str = ""
    issuer_role: str = ""
    next_issue_date: str = ""
    issued_to_sites: tuple[str, ...] = ()
    linked_standards: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    related_documents: tuple[str, ...] = ()
    content_summary: str = ""

    def signature_for(self, stage_id: str) -> SignatureRecord | None:
        for sig in self.signatures:
            if sig.stage_id == stage_id:
                return sig
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "number": self.number,
            "type_id": self.type_id,
            "workflow_id": self.workflow_id,
            "current_stage_index": self.current_stage_index,
            "version": self.version,
            "effective_from": self.effective_from,
            "previous_versions": [v.to_dict() for v in self.previous_versions],
            "status": self.status,
            "lifecycle_state": self.lifecycle_state,
            "signatures": [s.to_dict() for s in self.signatures],
            "category": self.category,
            "security": self.security,
            "date_created": self.date_created.isoformat(),
            "created_by": self.created_by,
            "date_of_issue": self.date_of_issue,
            "issued_by": self.issued_by,
            "issuer_role": self.issuer_role,
            "next_issue_date": self.next_issue_date,
            "issued_to_sites": list(self.issued_to_sites),
            "linked_standards": list(self.linked_standards),
            "tags": list(self.tags),
            "related_documents": list(self.related_documents),
            "content_summary": self.content_summary,
        }


def _str_tuple(raw: Any) -> tuple[str, ...]:
    if not raw:
        return ()
    if isinstance(raw, str):
        raw = raw.split(",")
    return tuple(str(x).strip() for x in raw if str(x).strip())


def draft_from_dict(data: dict[str, Any]) -> DocumentDraft:
    def _s(key: str, default: str = "") -> str:
        return str(data.get(key) or default).strip()

    return DocumentDraft(
        title=_s("title"),
        number=_s("number"),
        type_id=_s("type_id"),
        workflow_id=_s("workflow_id"),
        version=_s("version", DEFAULT_VERSION),
        category=_s("category", CATEGORIES[0]),
        security=_s("security", SECURITY_LEVELS[0]),
        date_of_issue=_s("date_of_issue"),
        effective_from=_s("effective_from"),
        next_issue_date=_s("next_issue_date"),
        issuer_role=_s("issuer_role"),
        linked_standards=_str_tuple(data.get("linked_standards")) or (STANDARD_PART_11,),
        tags=_str_tuple(data.get("tags")),
        related_documents=_str_tuple(data.get("related_documents")),
        content_summary=_s("content_summary", DEFAULT_CONTENT_SUMMARY),
    )
