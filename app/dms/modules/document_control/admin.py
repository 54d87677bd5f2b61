from __future__ import annotations

from flask import Blueprint, request

from app.dms.rbac import require_user
from app.dms.runtime import lifecycle_engine, reference_data
from app.dms.utils import current_user, json_body

from .models import draft_from_dict
from .service import DocumentFilter

bp = Blueprint("doc_control", __name__)


def _text(data: dict, key: str) -> str:
    return str(data.get(key) or "").strip()


@bp.get("/")
@require_user
def list_documents():
    f = DocumentFilter.from_args(request.args)
    docs = lifecycle_engine().list_documents(f)
    return {"count": len(docs), "documents": [d.to_dict() for d in docs]}


@bp.post("/")
@require_user
def create_document():
    draft = draft_from_dict(json_body())
    doc = lifecycle_engine().create_document(draft, current_user())
    return doc.to_dict(), 201


@bp.get("/<document_id>")
@require_user
def document_detail(document_id: str):
    return lifecycle_engine().document_detail(document_id, reference_data().document_types)


@bp.post("/<document_id>/signatures")
@require_user
def capture_signature(document_id: str):
    data = json_body()
    sig = lifecycle_engine().capture_signature(
        document_id,
        _text(data, "stage_id"),
        current_user(),
        rationale=_text(data, "rationale"),
        passcode=str(data.get("passcode") or ""),
    )
    return sig.to_dict(), 201


@bp.post("/<document_id>/advance")
@require_user
def advance(document_id: str):
    data = json_body()
    u = current_user()
    doc = lifecycle_engine().advance(document_id, u.role, _text(data, "comment"), actor_name=u.name)
    return doc.to_dict()


@bp.post("/<document_id>/versions")
@require_user
def promote_version(document_id: str):
    data = json_body()
    doc = lifecycle_engine().promote_version(
        document_id,
        _text(data, "version"),
        _text(data, "effective_from"),
        current_user(),
        _text(data, "change_summary"),
    )
    return doc.to_dict()


@bp.post("/<document_id>/archive")
@require_user
def archive(document_id: str):
    data = json_body()
    u = current_user()
    doc = lifecycle_engine().archive(document_id, u.role, _text(data, "change_summary"), actor_name=u.name)
    return doc.to_dict()
