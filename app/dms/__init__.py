import logging

from flask import Flask, jsonify
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from app.dms.auth import load_current_user
from app.dms.config import load_config
from app.dms.errors import DmsError, NotFound, PreconditionFailed, ValidationError
from app.dms.modules.document_control.admin import bp as doc_control_bp
from app.dms.modules.workflow_templates.admin import bp as workflows_bp
from app.dms.routes import bp as routes_bp
from app.dms.runtime import init_engine, reference_data
from app.dms.seed import seed_demo_data

_ERROR_STATUS = {
    ValidationError: 400,
    NotFound: 404,
    PreconditionFailed: 409,
}


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.json.sort_keys = False
    app.logger.setLevel(app.config["LOG_LEVEL"])
    logging.getLogger("app.dms").setLevel(app.config["LOG_LEVEL"])

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if not app.config.get("ARCHIVE_ROLES"):
            raise RuntimeError("ARCHIVE_ROLES must name at least one role in production.")

    engine = init_engine(app)
    if app.config.get("SEED_DEMO_DATA"):
        seed_demo_data(engine, reference_data(app))

    app.register_blueprint(routes_bp)
    app.register_blueprint(workflows_bp, url_prefix="/workflows")
    app.register_blueprint(doc_control_bp, url_prefix="/documents")

    app.before_request(load_current_user)

    @app.errorhandler(DmsError)
    def _err_dms(e: DmsError):  # type: ignore[no-redef]
        status = _ERROR_STATUS.get(type(e), 400)
        return jsonify({"error": e.kind, "message": e.message}), status

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        return jsonify({"error": (e.name or "error").lower().replace(" ", "_"), "message": e.description}), e.code

    @app.errorhandler(Exception)
    def _err_500(e):  # type: ignore[no-redef]
        # Ensure stack trace shows in logs.
        from flask import g as _g

        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(_g, "request_id", None))
        return jsonify({"error": "internal_error", "message": "Internal server error."}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
