"""
Workflow template store.
Templates are validated once at creation and never updated or deleted, so a
document bound to a template always sees the same stage sequence.
"""
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace

from app.dms.constants import (
    DEFAULT_STAGE_INSTRUCTIONS,
    DEFAULT_TEMPLATE_DESCRIPTION,
    STANDARD_PART_11,
    STATUS_DRAFT,
    WORKFLOW_STATUSES,
)
from app.dms.errors import NotFound, ValidationError

from .models import Stage, WorkflowTemplate

logger = logging.getLogger(__name__)


def _short_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:6]}"


def _normalize_stage(stage: Stage, position: int) -> Stage:
    name = (stage.name or "").strip()
    role = (stage.role or "").strip()
    if not name:
        raise ValidationError(f"Stage {position} requires a name.")
    if not role:
        raise ValidationError(f"Stage {position} ({name}) requires a responsible role.")
    if stage.status is not None and stage.status not in WORKFLOW_STATUSES:
        raise ValidationError(f"Stage {position} ({name}) has unsupported status {stage.status!r}.")
    # The first stage is always Draft and later stages never return to it.
    if position == 1 and stage.status not in (None, STATUS_DRAFT):
        raise ValidationError(f"Stage 1 ({name}) cannot carry status {stage.status!r}; documents start as Draft.")
    if position > 1 and stage.status == STATUS_DRAFT:
        raise ValidationError(f"Stage {position} ({name}) cannot carry status {STATUS_DRAFT!r}.")
    return replace(
        stage,
        id=(stage.id or "").strip() or _short_id("stage"),
        name=name,
        role=role,
        instructions=(stage.instructions or "").strip() or DEFAULT_STAGE_INSTRUCTIONS,
    )


def normalize_template(template: WorkflowTemplate) -> WorkflowTemplate:
    """Validate a template and fill in generated ids and default texts."""
    name = (template.name or "").strip()
    if not name:
        raise ValidationError("Workflow template requires a name.")
    if not template.stages:
        raise ValidationError("Workflow template requires at least one stage.")

    stages = tuple(_normalize_stage(s, i + 1) for i, s in enumerate(template.stages))
    seen: set[str] = set()
    for s in stages:
        if s.id in seen:
            raise ValidationError(f"Duplicate stage id {s.id!r} in workflow template.")
        seen.add(s.id)

    return replace(
        template,
        id=(template.id or "").strip() or _short_id("wf"),
        name=name,
        description=(template.description or "").strip() or DEFAULT_TEMPLATE_DESCRIPTION,
        compliant_standards=frozenset(template.compliant_standards) or frozenset({STANDARD_PART_11}),
        stages=stages,
    )


class WorkflowTemplateStore:
    def __init__(self) -> None:
        self._templates: dict[str, WorkflowTemplate] = {}
        self._lock = threading.Lock()

    def create(self, template: WorkflowTemplate) -> WorkflowTemplate:
        t = normalize_template(template)
        with self._lock:
            if t.id in self._templates:
                raise ValidationError(f"Workflow template id {t.id!r} already exists.")
            self._templates[t.id] = t
        logger.info("Workflow template created id=%s stages=%s", t.id, len(t.stages))
        return t

    def get(self, template_id: str) -> WorkflowTemplate:
        t = self._templates.get((template_id or "").strip())
        if t is None:
            raise NotFound(f"Workflow template {template_id!r} not found.")
        return t

    def exists(self, template_id: str) -> bool:
        return (template_id or "").strip() in self._templates

    def list(self) -> list[WorkflowTemplate]:
        with self._lock:
            return list(self._templates.values())
