"""
Document registry.

Owns every DocumentRecord. Records are immutable; `update` swaps in a new
record under the document's lock so readers only ever see whole snapshots.
Only the lifecycle engine should call `update`.
"""
from __future__ import annotations

import threading
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from app.dms.constants import CATEGORIES, LIFECYCLE_DRAFT, SECURITY_LEVELS, STATUS_DRAFT
from app.dms.errors import NotFound, ValidationError
from app.dms.modules.workflow_templates.service import WorkflowTemplateStore

from .models import DocumentDraft, DocumentRecord


def _new_document_id() -> str:
    return f"doc-{uuid.uuid4().hex[:8]}"


class DocumentRegistry:
    def __init__(self, templates: WorkflowTemplateStore) -> None:
        self._templates = templates
        self._docs: dict[str, DocumentRecord] = {}
        self._index_lock = threading.Lock()
        self._doc_locks: dict[str, threading.RLock] = {}

    def validate_draft(self, draft: DocumentDraft) -> None:
        missing = [
            name
            for name in ("title", "number", "type_id", "workflow_id")
            if not (getattr(draft, name) or "").strip()
        ]
        if missing:
            raise ValidationError(f"Missing required field(s): {', '.join(missing)}.")
        if not self._templates.exists(draft.workflow_id):
            raise ValidationError(f"Workflow template {draft.workflow_id!r} does not exist.")
        if draft.category not in CATEGORIES:
            raise ValidationError(f"Unknown category {draft.category!r}.")
        if draft.security not in SECURITY_LEVELS:
            raise ValidationError(f"Unknown security level {draft.security!r}.")

    def create(
        self,
        draft: DocumentDraft,
        *,
        created_by: str,
        issuer_role: str,
        created_at: datetime,
    ) -> DocumentRecord:
        self.validate_draft(draft)
        with self._index_lock:
            doc_id = _new_document_id()
            while doc_id in self._docs:
                doc_id = _new_document_id()
            doc = DocumentRecord(
                id=doc_id,
                title=draft.title.strip(),
                number=draft.number.strip(),
                type_id=draft.type_id.strip(),
                workflow_id=draft.workflow_id.strip(),
                version=(draft.version or "").strip(),
                date_created=created_at,
                created_by=created_by,
                current_stage_index=0,
                status=STATUS_DRAFT,
                lifecycle_state=LIFECYCLE_DRAFT,
                effective_from=draft.effective_from,
                category=draft.category,
                security=draft.security,
                date_of_issue=draft.date_of_issue,
                issued_by=created_by,
                issuer_role=(draft.issuer_role or "").strip() or issuer_role,
                next_issue_date=draft.next_issue_date,
                linked_standards=tuple(draft.linked_standards),
                tags=tuple(draft.tags),
                related_documents=tuple(draft.related_documents),
                content_summary=draft.content_summary,
            )
            self._docs[doc_id] = doc
            self._doc_locks[doc_id] = threading.RLock()
        return doc

    def get(self, document_id: str) -> DocumentRecord:
        doc = self._docs.get(document_id)
        if doc is None:
            raise NotFound(f"Document {document_id!r} not found.")
        return doc

    def list(self) -> list[DocumentRecord]:
        with self._index_lock:
            return list(self._docs.values())

    @contextmanager
    def lock(self, document_id: str) -> Iterator[None]:
        """Serialize mutations of one document; other documents are unaffected."""
        with self._index_lock:
            lk = self._doc_locks.get(document_id)
        if lk is None:
            raise NotFound(f"Document {document_id!r} not found.")
        with lk:
            yield

    def update(self, document_id: str, mutator: Callable[[DocumentRecord], DocumentRecord]) -> DocumentRecord:
        with self.lock(document_id):
            current = self.get(document_id)
            new = mutator(current)
            if new.id != current.id:
                raise ValueError("Mutator must not change the document id.")
            with self._index_lock:
                self._docs[document_id] = new
            return new

    def __len__(self) -> int:
        return len(self._docs)
