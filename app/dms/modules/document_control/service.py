"""
Pure helpers for document control: status derivation, filtering and
read-only projections. Nothing here mutates state.
"""
from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from app.dms.constants import (
    FILTER_ALL,
    FRAMEWORKS,
    LIFECYCLE_ACTIVE,
    LIFECYCLE_ARCHIVED,
    LIFECYCLE_DRAFT,
    STATUS_ARCHIVED,
    STATUS_DRAFT,
    STATUS_EFFECTIVE,
    STATUS_PENDING_QA_APPROVAL,
    STATUS_PENDING_RELEASE,
    STATUS_SUPERSEDED,
    STATUS_UNDER_REVIEW,
)
from app.dms.models import DocumentType
from app.dms.modules.workflow_templates.models import Stage, WorkflowTemplate

from .models import DocumentRecord


def derive_status(stage_index: int, total_stages: int) -> str:
    """
    Map a stage position to a document status.

    Order matters: a one-stage template goes straight from Draft (index 0)
    to Effective (index 1) without the QA/Release labels.
    """
    if stage_index >= total_stages:
        return STATUS_EFFECTIVE
    if stage_index == 0:
        return STATUS_DRAFT
    if stage_index == total_stages - 1:
        return STATUS_PENDING_RELEASE
    if stage_index == total_stages - 2:
        return STATUS_PENDING_QA_APPROVAL
    return STATUS_UNDER_REVIEW


def status_for_stage(stage_index: int, stages: Sequence[Stage]) -> str:
    """Stage's own status label when it declares one, else the derivation table."""
    if 0 <= stage_index < len(stages) and stages[stage_index].status:
        return stages[stage_index].status  # type: ignore[return-value]
    return derive_status(stage_index, len(stages))


def lifecycle_state_for(status: str) -> str:
    if status in (STATUS_SUPERSEDED, STATUS_ARCHIVED):
        return LIFECYCLE_ARCHIVED
    if status == STATUS_DRAFT:
        return LIFECYCLE_DRAFT
    return LIFECYCLE_ACTIVE


def is_archived(doc: DocumentRecord) -> bool:
    return doc.lifecycle_state == LIFECYCLE_ARCHIVED


def parse_effective_date(s: str | None) -> date | None:
    if not s:
        return None
    s = s.strip()
    if not s:
        return None
    # HTML <input type="date"> uses YYYY-MM-DD.
    return date.fromisoformat(s)


@dataclass(frozen=True)
class DocumentFilter:
    status: str = FILTER_ALL
    security: str = FILTER_ALL
    search: str = ""

    @classmethod
    def from_args(cls, args: Any) -> "DocumentFilter":
        return cls(
            status=(args.get("status") or FILTER_ALL).strip(),
            security=(args.get("security") or FILTER_ALL).strip(),
            search=(args.get("search") or "").strip(),
        )


def matches(doc: DocumentRecord, f: DocumentFilter) -> bool:
    if f.status != FILTER_ALL and doc.status != f.status:
        return False
    if f.security != FILTER_ALL and doc.security != f.security:
        return False
    needle = (f.search or "").strip().lower()
    if not needle:
        return True
    haystack = [doc.title, doc.number, *doc.tags]
    return any(needle in (value or "").lower() for value in haystack)


def filter_documents(docs: Iterable[DocumentRecord], f: DocumentFilter) -> list[DocumentRecord]:
    return [d for d in docs if matches(d, f)]


def compliance_snapshot(docs: Iterable[DocumentRecord]) -> dict[str, Any]:
    docs = list(docs)
    total = len(docs)
    effective = sum(1 for d in docs if d.status == STATUS_EFFECTIVE)
    under_review = sum(1 for d in docs if d.status == STATUS_UNDER_REVIEW)
    superseded = sum(1 for d in docs if d.status == STATUS_SUPERSEDED)
    ratio = (effective + under_review) / max(total, 1)
    # Round half up, never above 100.
    score = min(100, math.floor(ratio * 100 + 0.5))
    return {
        "total": total,
        "effective": effective,
        "under_review": under_review,
        "superseded": superseded,
        "compliance_score": score,
        "frameworks": [
            {"id": fw["id"], "label": fw["label"], "controls": list(fw["controls"])} for fw in FRAMEWORKS
        ],
    }


def stage_timeline(doc: DocumentRecord, template: WorkflowTemplate) -> list[dict[str, Any]]:
    out = []
    for i, stage in enumerate(template.stages):
        sig = doc.signature_for(stage.id)
        if sig is not None:
            note = sig.rationale
        elif not stage.requires_signature:
            note = "Stage does not require electronic sign-off."
        else:
            note = "Awaiting compliant Part 11 signature."
        out.append(
            {
                "position": i + 1,
                "stage": stage.to_dict(),
                "completed": i < doc.current_stage_index,
                "current": i == doc.current_stage_index,
                "signature": sig.to_dict() if sig else None,
                "note": note,
            }
        )
    return out


def document_detail(
    doc: DocumentRecord,
    template: WorkflowTemplate,
    document_types: Iterable[DocumentType] = (),
) -> dict[str, Any]:
    """Document enriched with its type label, workflow and per-stage progress."""
    doc_type = next((t for t in document_types if t.id == doc.type_id), None)
    stages = template.stages
    current = stages[doc.current_stage_index] if doc.current_stage_index < len(stages) else None
    return {
        "document": doc.to_dict(),
        "type": doc_type.to_dict() if doc_type else None,
        "workflow": {"id": template.id, "name": template.name},
        "current_stage": current.to_dict() if current else None,
        "workflow_complete": doc.current_stage_index >= len(stages),
        "archived": is_archived(doc),
        "timeline": stage_timeline(doc, template),
    }
