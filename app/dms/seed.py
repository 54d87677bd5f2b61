from __future__ import annotations

import logging

from app.dms.constants import STANDARD_GMP, STANDARD_ICH_Q7, STANDARD_ISO_9001, STANDARD_PART_11, SYSTEM_ADMINISTRATOR
from app.dms.modules.document_control.engine import LifecycleEngine
from app.dms.modules.document_control.models import DocumentDraft
from app.dms.modules.workflow_templates.models import Stage, WorkflowTemplate
from app.dms.reference import ReferenceData

logger = logging.getLogger(__name__)

DEMO_TEMPLATES = (
    WorkflowTemplate(
        id="wf-sop-standard",
        name="SOP Standard Review",
        description="Author drafting, technical review, QA approval and controlled release.",
        compliant_standards=frozenset({STANDARD_PART_11, STANDARD_ISO_9001, STANDARD_GMP}),
        stages=(
            Stage(id="stage-draft", name="Drafting", role="Document Author",
                  instructions="Prepare the draft using the approved SOP template."),
            Stage(id="stage-review", name="Technical Review", role="QA Reviewer",
                  instructions="Verify technical content against current practice.", requires_signature=True),
            Stage(id="stage-qa", name="QA Approval", role="QA Manager",
                  instructions="Confirm GMP impact assessment and training needs.", requires_signature=True),
            Stage(id="stage-release", name="Release Preparation", role=SYSTEM_ADMINISTRATOR,
                  instructions="Publish to controlled distribution."),
        ),
    ),
    WorkflowTemplate(
        id="wf-api-batch",
        name="API Batch Record Approval",
        description="ICH Q7 master batch record approval.",
        compliant_standards=frozenset({STANDARD_PART_11, STANDARD_ICH_Q7}),
        stages=(
            Stage(id="stage-mbr-draft", name="Master Record Drafting", role="Document Author",
                  instructions="Draft the master production record."),
            Stage(id="stage-mbr-qa", name="QA Approval", role="QA Manager",
                  instructions="Approve the master production record.", requires_signature=True),
        ),
    ),
)


def seed_demo_data(engine: LifecycleEngine, reference: ReferenceData) -> None:
    """
    Seed demo workflow templates and documents in an idempotent way.
    Templates that already exist are left untouched; documents are only
    seeded into an empty registry.
    """
    for t in DEMO_TEMPLATES:
        if not engine.templates.exists(t.id):
            engine.create_workflow_template(t)

    if len(engine.registry):
        return

    author = reference.user("u-author")
    if author is None:
        logger.info("Demo author not in reference data; skipping demo documents.")
        return

    engine.create_document(
        DocumentDraft(
            title="Cleaning and Sanitization of Filling Line 2",
            number="QMS-SOP-034",
            type_id="sop",
            workflow_id="wf-sop-standard",
            category="Manufacturing",
            security="Internal",
            effective_from="2024-01-01",
            linked_standards=(STANDARD_PART_11, STANDARD_GMP),
            tags=("cleaning", "line-2"),
        ),
        author,
    )
    engine.create_document(
        DocumentDraft(
            title="Intermediate Batch Record Template",
            number="QMS-SPEC-011",
            type_id="spec",
            workflow_id="wf-api-batch",
            category="Quality",
            security="Confidential",
            linked_standards=(STANDARD_PART_11, STANDARD_ICH_Q7),
            tags=("batch-record",),
        ),
        author,
    )
    logger.info("Seeded %s demo templates and %s demo documents", len(DEMO_TEMPLATES), len(engine.registry))
