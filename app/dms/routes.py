from flask import Blueprint, current_app, request

from app.dms.constants import CATEGORIES, DOCUMENT_STATUSES, SECURITY_LEVELS, STANDARDS
from app.dms.rbac import require_user
from app.dms.runtime import lifecycle_engine, reference_data

bp = Blueprint("routes", __name__)


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for k8s probes. No engine access, minimal overhead.
    """
    return "ok", 200


@bp.get("/reference")
def reference():
    """Static data the presentation layer needs to render forms and pickers."""
    data = reference_data().to_dict()
    data.update(
        {
            "statuses": list(DOCUMENT_STATUSES),
            "categories": list(CATEGORIES),
            "security_levels": list(SECURITY_LEVELS),
            "standards": list(STANDARDS),
        }
    )
    return data


@bp.get("/compliance")
@require_user
def compliance():
    return lifecycle_engine().compliance_snapshot()


@bp.get("/audit")
@require_user
def audit_trail():
    default_limit = current_app.config["AUDIT_TRAIL_LIMIT"]
    limit = request.args.get("limit", default=default_limit, type=int)
    entries = lifecycle_engine().audit_trail(limit)
    return {"entries": [e.to_dict() for e in entries]}
