import pytest

from app.dms.audit import AuditRecorder
from app.dms.errors import NotFound, PreconditionFailed, ValidationError
from app.dms.models import User
from app.dms.modules.document_control.engine import LifecycleEngine
from app.dms.modules.document_control.models import DocumentDraft
from app.dms.modules.document_control.registry import DocumentRegistry
from app.dms.modules.document_control.service import derive_status, status_for_stage
from app.dms.modules.workflow_templates.models import Stage, WorkflowTemplate
from app.dms.modules.workflow_templates.service import WorkflowTemplateStore

R1 = User(id="u-r1", name="Rita One", role="R1", can_sign=True)
R2 = User(id="u-r2", name="Ralf Two", role="R2", can_sign=True)
ADMIN = User(id="u-admin", name="Ada Admin", role="System Administrator", can_sign=True)


def _three_stage_template() -> WorkflowTemplate:
    return WorkflowTemplate(
        id="wf-abc",
        name="Three stage",
        compliant_standards=frozenset({"21 CFR Part 11", "ISO 9001"}),
        stages=(
            Stage(id="s1", name="Draft", role="R1"),
            Stage(id="s2", name="Review", role="R1", requires_signature=True),
            Stage(id="s3", name="Release", role="R2"),
        ),
    )


@pytest.fixture()
def engine():
    e = LifecycleEngine()
    e.create_workflow_template(_three_stage_template())
    return e


def _create(engine, workflow_id="wf-abc", **kw):
    draft = DocumentDraft(title="Line clearance", number="QMS-SOP-001", type_id="sop", workflow_id=workflow_id, **kw)
    return engine.create_document(draft, R1)


def test_derivation_table():
    assert derive_status(0, 5) == "Draft"
    assert derive_status(1, 5) == "Under Review"
    assert derive_status(2, 5) == "Under Review"
    assert derive_status(3, 5) == "Pending QA Approval"
    assert derive_status(4, 5) == "Pending Release"
    assert derive_status(5, 5) == "Effective"
    assert derive_status(7, 5) == "Effective"


def test_derivation_single_stage_skips_qa_and_release():
    assert derive_status(0, 1) == "Draft"
    assert derive_status(1, 1) == "Effective"


def test_derivation_two_stages_draft_wins_over_qa():
    assert derive_status(0, 2) == "Draft"
    assert derive_status(1, 2) == "Pending Release"
    assert derive_status(2, 2) == "Effective"


def test_create_document_initial_state(engine):
    doc = _create(engine)
    assert doc.id.startswith("doc-")
    assert doc.current_stage_index == 0
    assert doc.status == "Draft"
    assert doc.lifecycle_state == "Draft"
    assert doc.signatures == ()
    assert doc.previous_versions == ()
    assert doc.version == "0.1-draft"
    assert doc.created_by == "Rita One"
    assert doc.issuer_role == "R1"


@pytest.mark.parametrize("field", ["title", "number", "type_id", "workflow_id"])
def test_create_document_requires_fields(engine, field):
    values = {"title": "T", "number": "N-1", "type_id": "sop", "workflow_id": "wf-abc"}
    values[field] = "  "
    with pytest.raises(ValidationError):
        engine.create_document(DocumentDraft(**values), R1)
    assert engine.list_documents() == []
    assert len(engine.audit) == 1  # template creation only


def test_create_document_rejects_unknown_workflow(engine):
    with pytest.raises(ValidationError):
        _create(engine, workflow_id="wf-missing")


def test_create_document_rejects_unknown_security(engine):
    with pytest.raises(ValidationError):
        _create(engine, security="Top Secret")


def test_scenario_a_full_progression(engine):
    doc = _create(engine)

    doc = engine.advance(doc.id, "R1")
    assert doc.current_stage_index == 1
    # Stage 1 of 3 is the second-to-last stage.
    assert doc.status == "Pending QA Approval"
    assert doc.lifecycle_state == "Active"

    with pytest.raises(PreconditionFailed, match="signature"):
        engine.advance(doc.id, "R1")
    assert engine.get_document(doc.id).current_stage_index == 1

    sig = engine.capture_signature(doc.id, "s2", R1, "Looks right", passcode="123456")
    assert sig.stage_id == "s2"
    assert sig.signed_by == "Rita One"
    assert engine.get_document(doc.id).current_stage_index == 1

    doc = engine.advance(doc.id, "R1")
    assert doc.current_stage_index == 2
    assert doc.status == "Pending Release"

    doc = engine.advance(doc.id, "R2")
    assert doc.current_stage_index == 3
    assert doc.status == "Effective"
    assert doc.lifecycle_state == "Active"


def test_under_review_for_middle_stages():
    e = LifecycleEngine()
    e.create_workflow_template(
        WorkflowTemplate(
            id="wf-5",
            name="Five",
            stages=tuple(Stage(id=f"s{i}", name=f"Stage {i}", role="R1") for i in range(5)),
        )
    )
    doc = _create(e, workflow_id="wf-5")
    statuses = []
    for _ in range(5):
        statuses.append(e.advance(doc.id, "R1").status)
    assert statuses == ["Under Review", "Under Review", "Pending QA Approval", "Pending Release", "Effective"]


def test_single_stage_template_goes_draft_to_effective():
    e = LifecycleEngine()
    e.create_workflow_template(WorkflowTemplate(id="wf-1", name="One", stages=(Stage(id="only", name="Only", role="R1"),)))
    doc = _create(e, workflow_id="wf-1")
    assert doc.status == "Draft"
    doc = e.advance(doc.id, "R1")
    assert doc.status == "Effective"
    assert doc.current_stage_index == 1


def test_advance_past_last_stage_fails(engine):
    doc = _create(engine)
    engine.advance(doc.id, "R1")
    engine.capture_signature(doc.id, "s2", R1, "", passcode="abcdef")
    engine.advance(doc.id, "R1")
    engine.advance(doc.id, "R2")
    before = len(engine.audit)
    with pytest.raises(PreconditionFailed, match="complete"):
        engine.advance(doc.id, "R2")
    after = engine.get_document(doc.id)
    assert after.current_stage_index == 3
    assert after.status == "Effective"
    assert len(engine.audit) == before


def test_advance_wrong_role_fails(engine):
    doc = _create(engine)
    with pytest.raises(PreconditionFailed, match="R1"):
        engine.advance(doc.id, "R2")
    assert engine.get_document(doc.id).current_stage_index == 0


def test_advance_unknown_document(engine):
    with pytest.raises(NotFound):
        engine.advance("doc-nope", "R1")


def test_scenario_b_duplicate_signature_rejected(engine):
    doc = _create(engine)
    engine.advance(doc.id, "R1")
    engine.capture_signature(doc.id, "s2", R1, "first", passcode="secret1")
    with pytest.raises(PreconditionFailed, match="already signed"):
        engine.capture_signature(doc.id, "s2", R1, "second", passcode="secret1")
    sigs = engine.get_document(doc.id).signatures
    assert len(sigs) == 1
    assert sigs[0].rationale == "first"


def test_signature_preconditions(engine):
    doc = _create(engine)
    # Stage s1 is current and needs no signature.
    with pytest.raises(PreconditionFailed, match="does not require"):
        engine.capture_signature(doc.id, "s1", R1, "", passcode="123456")
    # s2 is not current yet.
    with pytest.raises(PreconditionFailed, match="not the current stage"):
        engine.capture_signature(doc.id, "s2", R1, "", passcode="123456")

    engine.advance(doc.id, "R1")
    with pytest.raises(PreconditionFailed, match="must be signed by role"):
        engine.capture_signature(doc.id, "s2", R2, "", passcode="123456")
    no_sign = User(id="u-x", name="No Sign", role="R1", can_sign=False)
    with pytest.raises(PreconditionFailed, match="not authorized to sign"):
        engine.capture_signature(doc.id, "s2", no_sign, "", passcode="123456")
    with pytest.raises(PreconditionFailed, match="passcode"):
        engine.capture_signature(doc.id, "s2", R1, "", passcode="  12345  ")

    assert engine.get_document(doc.id).signatures == ()


def test_signature_default_rationale_and_audit_tags(engine):
    doc = _create(engine)
    engine.advance(doc.id, "R1")
    sig = engine.capture_signature(doc.id, "s2", R1, "", passcode="123456")
    assert sig.rationale == "Reviewed and confirmed."

    entry = engine.audit_trail(1)[0]
    assert entry.action == "doc.signature"
    assert entry.target == doc.id
    assert entry.signature_captured is True
    assert entry.regulatory_mapping == frozenset({"21 CFR Part 11", "ISO 9001"})
    assert entry.context["stage_id"] == "s2"


def test_scenario_c_archive(engine):
    doc = _create(engine)
    before = len(engine.audit)
    with pytest.raises(PreconditionFailed):
        engine.archive(doc.id, "R1", "no authority")
    assert len(engine.audit) == before

    archived = engine.archive(doc.id, ADMIN.role, "Replaced by QMS-SOP-002", actor_name=ADMIN.name)
    assert archived.status == "Superseded"
    assert archived.lifecycle_state == "Archived"
    assert len(engine.audit) == before + 1
    entry = engine.audit_trail(1)[0]
    assert entry.action == "doc.archive"
    assert entry.target == doc.id
    assert entry.actor == "Ada Admin"

    with pytest.raises(PreconditionFailed, match="already superseded"):
        engine.archive(doc.id, ADMIN.role, "again")


def test_archived_document_blocks_workflow(engine):
    doc = _create(engine)
    engine.archive(doc.id, ADMIN.role)
    with pytest.raises(PreconditionFailed, match="archived"):
        engine.advance(doc.id, "R1")
    assert engine.get_document(doc.id).status == "Superseded"


def test_scenario_d_promote_version(engine):
    doc = _create(engine, effective_from="2023-06-01")
    assert doc.version == "0.1-draft"

    updated = engine.promote_version(doc.id, "1.0", "2024-01-01", R1, "Initial release")
    assert updated.version == "1.0"
    assert updated.effective_from == "2024-01-01"
    assert len(updated.previous_versions) == 1
    prev = updated.previous_versions[0]
    assert prev.version == "0.1-draft"
    assert prev.effective_from == "2023-06-01"
    assert prev.signed_off_by == "Rita One"
    assert prev.change_summary == "Initial release"
    # Orthogonal to workflow progression.
    assert updated.current_stage_index == doc.current_stage_index
    assert updated.status == doc.status

    again = engine.promote_version(doc.id, "1.1", "2024-06-01", R2)
    assert [v.version for v in again.previous_versions] == ["0.1-draft", "1.0"]
    assert again.previous_versions[0] == prev


@pytest.mark.parametrize(
    "version,effective_from",
    [("", "2024-01-01"), ("1.0", ""), ("1.0", "01/01/2024")],
)
def test_promote_version_validation(engine, version, effective_from):
    doc = _create(engine)
    before = len(engine.audit)
    with pytest.raises(ValidationError):
        engine.promote_version(doc.id, version, effective_from, R1)
    assert engine.get_document(doc.id).previous_versions == ()
    assert len(engine.audit) == before


def test_every_mutation_writes_one_audit_entry_for_its_target(engine):
    doc = _create(engine)
    ops = [
        lambda: engine.advance(doc.id, "R1", "submitted"),
        lambda: engine.capture_signature(doc.id, "s2", R1, "ok", passcode="123456"),
        lambda: engine.advance(doc.id, "R1"),
        lambda: engine.promote_version(doc.id, "1.0", "2024-01-01", R1),
        lambda: engine.advance(doc.id, "R2"),
        lambda: engine.archive(doc.id, ADMIN.role),
    ]
    for op in ops:
        before = len(engine.audit)
        op()
        assert len(engine.audit) == before + 1
        assert engine.audit_trail(1)[0].target == doc.id


def test_stage_index_bounds_and_monotonic(engine):
    doc = _create(engine)
    total = len(engine.templates.get("wf-abc").stages)
    seen = [doc.current_stage_index]

    def attempt(fn):
        try:
            fn()
        except PreconditionFailed:
            pass
        seen.append(engine.get_document(doc.id).current_stage_index)

    attempt(lambda: engine.advance(doc.id, "R2"))
    attempt(lambda: engine.advance(doc.id, "R1"))
    attempt(lambda: engine.advance(doc.id, "R1"))
    attempt(lambda: engine.capture_signature(doc.id, "s2", R1, "", passcode="123456"))
    attempt(lambda: engine.advance(doc.id, "R1"))
    attempt(lambda: engine.advance(doc.id, "R2"))
    attempt(lambda: engine.advance(doc.id, "R2"))

    assert all(0 <= i <= total for i in seen)
    assert seen == sorted(seen)
    assert seen[-1] == total


def test_records_are_replaced_not_mutated(engine):
    doc = _create(engine)
    advanced = engine.advance(doc.id, "R1")
    assert doc.current_stage_index == 0
    assert doc.status == "Draft"
    assert advanced is not doc
    assert engine.get_document(doc.id) is advanced


def test_stage_status_label_overrides_derivation():
    e = LifecycleEngine()
    e.create_workflow_template(
        WorkflowTemplate(
            id="wf-labels",
            name="Labelled",
            stages=(
                Stage(id="a", name="Author", role="R1"),
                Stage(id="b", name="Peer review", role="R1", status="Under Review"),
                Stage(id="c", name="QA", role="R1"),
            ),
        )
    )
    doc = _create(e, workflow_id="wf-labels")
    assert e.advance(doc.id, "R1").status == "Under Review"
    assert e.advance(doc.id, "R1").status == "Pending Release"
    assert e.advance(doc.id, "R1").status == "Effective"


def test_document_detail_timeline(engine):
    doc = _create(engine)
    engine.advance(doc.id, "R1")
    engine.capture_signature(doc.id, "s2", R1, "Verified", passcode="123456")

    detail = engine.document_detail(doc.id)
    assert detail["workflow"] == {"id": "wf-abc", "name": "Three stage"}
    assert detail["current_stage"]["id"] == "s2"
    assert detail["workflow_complete"] is False
    timeline = detail["timeline"]
    assert [t["completed"] for t in timeline] == [True, False, False]
    assert timeline[1]["signature"]["rationale"] == "Verified"
    assert timeline[2]["note"] == "Stage does not require electronic sign-off."


def test_engine_keeps_injected_collaborators():
    templates = WorkflowTemplateStore()
    registry = DocumentRegistry(templates)
    audit = AuditRecorder(request_id_provider=lambda: "req-1")
    e = LifecycleEngine(templates=templates, registry=registry, audit=audit)
    assert e.templates is templates
    assert e.registry is registry
    assert e.audit is audit

    e.create_workflow_template(_three_stage_template())
    doc = _create(e)
    assert len(registry) == 1
    assert [a.request_id for a in audit.query()] == ["req-1", "req-1"]
    assert registry.get(doc.id).status == "Draft"


def test_blank_signer_name_leaves_no_signature(engine):
    doc = _create(engine)
    engine.advance(doc.id, "R1")
    before = len(engine.audit)
    blank = User(id="u-blank", name="  ", role="R1", can_sign=True)
    with pytest.raises(ValidationError, match="Signer name"):
        engine.capture_signature(doc.id, "s2", blank, "", passcode="123456")
    assert engine.get_document(doc.id).signatures == ()
    assert len(engine.audit) == before

    # The stage is still open for a valid signer.
    engine.capture_signature(doc.id, "s2", R1, "", passcode="123456")
    assert len(engine.get_document(doc.id).signatures) == 1


def test_first_stage_draft_label_matches_creation():
    e = LifecycleEngine()
    e.create_workflow_template(
        WorkflowTemplate(
            id="wf-draft-label",
            name="Labelled draft",
            stages=(
                Stage(id="a", name="Author", role="R1", status="Draft"),
                Stage(id="b", name="Release", role="R1"),
            ),
        )
    )
    doc = _create(e, workflow_id="wf-draft-label")
    assert doc.status == status_for_stage(0, e.templates.get("wf-draft-label").stages) == "Draft"
    advanced = e.advance(doc.id, "R1")
    assert (advanced.status, advanced.lifecycle_state) == ("Pending Release", "Active")
