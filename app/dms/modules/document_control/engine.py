"""
Lifecycle engine.

Every mutating operation follows the same shape:
  1. take the document's lock,
  2. check every precondition against the current snapshot,
  3. swap in a new record,
  4. write exactly one audit entry.
Nothing is written before all checks pass.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from app.dms.audit import AuditRecorder
from app.dms.constants import (
    CHANGE_CONTROL_STANDARDS,
    DEFAULT_ARCHIVE_CHANGE_SUMMARY,
    DEFAULT_SIGNATURE_RATIONALE,
    DEFAULT_VERSION_CHANGE_SUMMARY,
    LIFECYCLE_ARCHIVED,
    STANDARD_PART_11,
    STATUS_SUPERSEDED,
    SYSTEM_ADMINISTRATOR,
)
from app.dms.errors import PreconditionFailed, ValidationError
from app.dms.models import AuditEntry, DocumentType, User
from app.dms.modules.workflow_templates.models import WorkflowTemplate
from app.dms.modules.workflow_templates.service import WorkflowTemplateStore
from app.dms.rbac import Role, can_act_on_stage, can_archive

from .models import DocumentDraft, DocumentRecord, SignatureRecord, VersionRecord
from .registry import DocumentRegistry
from .service import (
    DocumentFilter,
    compliance_snapshot,
    document_detail,
    filter_documents,
    is_archived,
    lifecycle_state_for,
    parse_effective_date,
    status_for_stage,
)

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = User(id="system", name="system", role="System", can_sign=False)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LifecycleEngine:
    def __init__(
        self,
        *,
        templates: WorkflowTemplateStore | None = None,
        registry: DocumentRegistry | None = None,
        audit: AuditRecorder | None = None,
        archive_roles: Iterable[str] = (SYSTEM_ADMINISTRATOR,),
        passcode_min_length: int = 6,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        # Stores define __len__, so an empty one is falsy.
        self.templates = templates if templates is not None else WorkflowTemplateStore()
        self.registry = registry if registry is not None else DocumentRegistry(self.templates)
        self.audit = audit if audit is not None else AuditRecorder(clock=clock)
        self.archive_roles = tuple(archive_roles)
        self.passcode_min_length = passcode_min_length
        self._clock = clock

    # ----------------------------------------------------------------- helpers
    def _reject(self, doc: DocumentRecord, action: str, message: str) -> PreconditionFailed:
        logger.warning("Rejected %s document=%s: %s", action, doc.id, message)
        return PreconditionFailed(message)

    def _commit(self, doc: DocumentRecord, **changes: Any) -> DocumentRecord:
        return self.registry.update(doc.id, lambda current: replace(current, **changes))

    def _template_for(self, doc: DocumentRecord) -> WorkflowTemplate:
        return self.templates.get(doc.workflow_id)

    # ---------------------------------------------------------------- creation
    def create_workflow_template(self, template: WorkflowTemplate, actor: User | None = None) -> WorkflowTemplate:
        actor = actor or SYSTEM_ACTOR
        if not (actor.name or "").strip():
            raise ValidationError("Actor name is required.")
        t = self.templates.create(template)
        self.audit.record(
            actor=actor.name,
            actor_role=actor.role,
            action="workflow.create",
            target=t.id,
            context={"name": t.name, "stages": len(t.stages)},
            regulatory_mapping=t.compliant_standards,
        )
        return t

    def create_document(self, draft: DocumentDraft, actor: User) -> DocumentRecord:
        if not (actor.name or "").strip():
            raise ValidationError("Actor name is required.")
        doc = self.registry.create(
            draft,
            created_by=actor.name,
            issuer_role=actor.role,
            created_at=self._clock(),
        )
        self.audit.record(
            actor=actor.name,
            actor_role=actor.role,
            action="doc.create",
            target=doc.id,
            context={"number": doc.number, "title": doc.title, "version": doc.version, "workflow_id": doc.workflow_id},
            regulatory_mapping={STANDARD_PART_11, *doc.linked_standards},
        )
        logger.info("Document created id=%s number=%s workflow=%s", doc.id, doc.number, doc.workflow_id)
        return doc

    # ------------------------------------------------------------ transitions
    def capture_signature(
        self,
        document_id: str,
        stage_id: str,
        signer: User,
        rationale: str = "",
        passcode: str = "",
    ) -> SignatureRecord:
        """
        Record an e-signature for the current stage. Does not advance.
        The passcode is an attestation factor only; just its length is checked.
        """
        action = "doc.signature"
        if not (signer.name or "").strip():
            raise ValidationError("Signer name is required.")
        with self.registry.lock(document_id):
            doc = self.registry.get(document_id)
            template = self._template_for(doc)
            stages = template.stages

            if is_archived(doc):
                raise self._reject(doc, action, "Document is archived; no further signatures can be captured.")
            if doc.signature_for(stage_id) is not None:
                raise self._reject(doc, action, f"Stage {stage_id!r} is already signed.")
            if doc.current_stage_index >= len(stages):
                raise self._reject(doc, action, "Workflow is complete; there is no stage awaiting signature.")
            stage = stages[doc.current_stage_index]
            if stage.id != stage_id:
                raise self._reject(doc, action, f"Stage {stage_id!r} is not the current stage ({stage.id!r}).")
            if not stage.requires_signature:
                raise self._reject(doc, action, f"Stage {stage.name!r} does not require an electronic signature.")
            if not signer.can_sign:
                raise self._reject(doc, action, f"User {signer.name!r} is not authorized to sign.")
            if not can_act_on_stage(signer.role, stage):
                raise self._reject(doc, action, f"Stage {stage.name!r} must be signed by role {stage.role!r}.")
            if len((passcode or "").strip()) < self.passcode_min_length:
                raise self._reject(
                    doc, action, f"A passcode of at least {self.passcode_min_length} characters is required."
                )

            sig = SignatureRecord(
                stage_id=stage.id,
                signed_by=signer.name,
                signed_by_role=signer.role,
                rationale=(rationale or "").strip() or DEFAULT_SIGNATURE_RATIONALE,
                signed_at=self._clock(),
            )
            self._commit(doc, signatures=doc.signatures + (sig,))
            self.audit.record(
                actor=signer.name,
                actor_role=signer.role,
                action=action,
                target=doc.id,
                context={"stage_id": stage.id, "stage": stage.name, "rationale": sig.rationale},
                regulatory_mapping=template.compliant_standards,
                signature_captured=True,
            )
        logger.info("Signature captured document=%s stage=%s by=%s", doc.id, stage.id, signer.name)
        return sig

    def advance(
        self,
        document_id: str,
        actor_role: Role | str,
        comment: str = "",
        *,
        actor_name: str | None = None,
    ) -> DocumentRecord:
        action = "doc.advance"
        role = Role.of(actor_role)
        with self.registry.lock(document_id):
            doc = self.registry.get(document_id)
            template = self._template_for(doc)
            stages = template.stages

            if is_archived(doc):
                raise self._reject(doc, action, "Document is archived; the workflow cannot advance.")
            if doc.current_stage_index >= len(stages):
                raise self._reject(doc, action, "Workflow is complete; there is no current stage to advance from.")
            stage = stages[doc.current_stage_index]
            if not can_act_on_stage(role, stage):
                raise self._reject(doc, action, f"Stage {stage.name!r} can only be advanced by role {stage.role!r}.")
            if stage.requires_signature and doc.signature_for(stage.id) is None:
                raise self._reject(doc, action, f"Stage {stage.name!r} requires an electronic signature first.")

            next_index = doc.current_stage_index + 1
            status = status_for_stage(next_index, stages)
            updated = self._commit(
                doc,
                current_stage_index=next_index,
                status=status,
                lifecycle_state=lifecycle_state_for(status),
            )
            next_stage = stages[next_index] if next_index < len(stages) else None
            self.audit.record(
                actor=(actor_name or "").strip() or role.name,
                actor_role=role.name,
                action=action,
                target=doc.id,
                context={
                    "from_stage": stage.id,
                    "to_stage": next_stage.id if next_stage else "",
                    "status": status,
                    "comment": (comment or "").strip(),
                },
                regulatory_mapping=template.compliant_standards,
            )
        logger.info("Document advanced id=%s stage=%s status=%s", doc.id, next_index, status)
        return updated

    def promote_version(
        self,
        document_id: str,
        new_version: str,
        effective_from: str,
        signer: User,
        change_summary: str = "",
    ) -> DocumentRecord:
        """
        Archive the outgoing (version, effective_from) pair into the version
        history and make `new_version` current. Stage and status are untouched.
        """
        new_version = (new_version or "").strip()
        effective_from = (effective_from or "").strip()
        if not new_version:
            raise ValidationError("New version identifier is required.")
        if not effective_from:
            raise ValidationError("Effective-from date is required.")
        try:
            parse_effective_date(effective_from)
        except ValueError:
            raise ValidationError(f"Effective-from date must be YYYY-MM-DD, got {effective_from!r}.") from None
        if not (signer.name or "").strip():
            raise ValidationError("Signer name is required.")
        summary = (change_summary or "").strip() or DEFAULT_VERSION_CHANGE_SUMMARY

        with self.registry.lock(document_id):
            doc = self.registry.get(document_id)
            outgoing = VersionRecord(
                version=doc.version,
                effective_from=doc.effective_from,
                signed_off_by=signer.name,
                signed_off_role=signer.role,
                change_summary=summary,
            )
            updated = self._commit(
                doc,
                previous_versions=doc.previous_versions + (outgoing,),
                version=new_version,
                effective_from=effective_from,
            )
            self.audit.record(
                actor=signer.name,
                actor_role=signer.role,
                action="doc.version.promote",
                target=doc.id,
                context={
                    "from_version": outgoing.version,
                    "to_version": new_version,
                    "effective_from": effective_from,
                    "change_summary": summary,
                },
                regulatory_mapping=CHANGE_CONTROL_STANDARDS,
            )
        logger.info("Version promoted id=%s %s -> %s", doc.id, outgoing.version, new_version)
        return updated

    def archive(
        self,
        document_id: str,
        actor_role: Role | str,
        change_summary: str = "",
        *,
        actor_name: str | None = None,
    ) -> DocumentRecord:
        action = "doc.archive"
        role = Role.of(actor_role)
        summary = (change_summary or "").strip() or DEFAULT_ARCHIVE_CHANGE_SUMMARY
        with self.registry.lock(document_id):
            doc = self.registry.get(document_id)
            if not can_archive(role, self.archive_roles):
                raise self._reject(doc, action, f"Role {role.name!r} is not allowed to archive documents.")
            if doc.status == STATUS_SUPERSEDED:
                raise self._reject(doc, action, "Document is already superseded.")

            updated = self._commit(doc, status=STATUS_SUPERSEDED, lifecycle_state=LIFECYCLE_ARCHIVED)
            self.audit.record(
                actor=(actor_name or "").strip() or role.name,
                actor_role=role.name,
                action=action,
                target=doc.id,
                context={"previous_status": doc.status, "change_summary": summary},
                regulatory_mapping=CHANGE_CONTROL_STANDARDS,
            )
        logger.info("Document archived id=%s previous_status=%s", doc.id, doc.status)
        return updated

    # ------------------------------------------------------------------ reads
    def get_document(self, document_id: str) -> DocumentRecord:
        return self.registry.get(document_id)

    def list_documents(self, filter: DocumentFilter | None = None) -> list[DocumentRecord]:
        return filter_documents(self.registry.list(), filter or DocumentFilter())

    def audit_trail(self, limit: int | None = None) -> list[AuditEntry]:
        return self.audit.trail(limit)

    def document_detail(self, document_id: str, document_types: Iterable[DocumentType] = ()) -> dict[str, Any]:
        doc = self.registry.get(document_id)
        return document_detail(doc, self._template_for(doc), document_types)

    def compliance_snapshot(self) -> dict[str, Any]:
        return compliance_snapshot(self.registry.list())
