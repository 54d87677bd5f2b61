from __future__ import annotations

from flask import Flask, current_app, g, has_request_context

from app.dms.audit import AuditRecorder
from app.dms.modules.document_control.engine import LifecycleEngine
from app.dms.modules.document_control.registry import DocumentRegistry
from app.dms.modules.workflow_templates.service import WorkflowTemplateStore
from app.dms.reference import ReferenceData, load_reference_data


def _current_request_id() -> str | None:
    if not has_request_context():
        return None
    return getattr(g, "request_id", None)


def init_engine(app: Flask) -> LifecycleEngine:
    """
    Build the process-wide lifecycle engine and its collaborators.
    One engine per app; everything lives in memory for the life of the process.
    """
    templates = WorkflowTemplateStore()
    engine = LifecycleEngine(
        templates=templates,
        registry=DocumentRegistry(templates),
        audit=AuditRecorder(request_id_provider=_current_request_id),
        archive_roles=app.config["ARCHIVE_ROLES"],
        passcode_min_length=app.config["PASSCODE_MIN_LENGTH"],
    )
    app.extensions["dms_engine"] = engine
    app.extensions["dms_reference"] = load_reference_data(app.config.get("REFERENCE_DATA_PATH") or None)
    return engine


def lifecycle_engine(app: Flask | None = None) -> LifecycleEngine:
    app = app or current_app
    return app.extensions["dms_engine"]


def reference_data(app: Flask | None = None) -> ReferenceData:
    app = app or current_app
    return app.extensions["dms_reference"]
