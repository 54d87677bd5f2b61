from __future__ import annotations

from flask import Blueprint

from app.dms.rbac import require_user
from app.dms.runtime import lifecycle_engine
from app.dms.utils import current_user, json_body

from .models import template_from_dict

bp = Blueprint("workflows", __name__)


@bp.get("/")
@require_user
def list_templates():
    templates = lifecycle_engine().templates.list()
    return {"workflows": [t.to_dict() for t in templates]}


@bp.get("/<template_id>")
@require_user
def template_detail(template_id: str):
    return lifecycle_engine().templates.get(template_id).to_dict()


@bp.post("/")
@require_user
def create_template():
    template = template_from_dict(json_body())
    created = lifecycle_engine().create_workflow_template(template, current_user())
    return created.to_dict(), 201
