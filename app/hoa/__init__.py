import logging
from datetime import timedelta

from flask import Flask, g, request, session
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

# Models first: module blueprints import their models, which need the shared Base.
from app.hoa import models  # noqa: F401
from app.hoa.config import load_config
from app.hoa.db import init_db, teardown_db_session
from app.hoa.routes import bp as routes_bp
from app.hoa.auth import bp as auth_bp, load_current_user
from app.hoa.modules.accounts.admin import bp as accounts_bp
from app.hoa.modules.residents.admin import bp as residents_bp
from app.hoa.modules.vehicle_registrations.admin import bp as vehicle_registrations_bp
from app.hoa.modules.amenity_reservations.admin import bp as amenity_reservations_bp
from app.hoa.modules.monthly_dues.admin import bp as monthly_dues_bp
from app.hoa.modules.announcements.admin import bp as announcements_bp
from app.hoa.modules.contact.admin import bp as contact_bp
from app.hoa.modules.feedback.admin import bp as feedback_bp
from app.hoa.modules.system_logs.admin import bp as system_logs_bp
from app.hoa.modules.dashboard.admin import bp as dashboard_bp
from app.hoa.modules.whats_new.admin import bp as whats_new_bp
from app.hoa.modules.maps.admin import bp as maps_bp
from app.hoa.modules.portal.routes import bp as portal_bp

# Mutating endpoints reachable without a session-bound token.
CSRF_EXEMPT_ENDPOINTS = frozenset(
    {
        "auth.login",
        "auth.logout",
        "auth.sign_up",
        "contact.contact_submit",
        "feedback.feedback_submit",
    }
)


def _error_payload(e: HTTPException) -> dict:
    return {"error": (e.name or "error").lower().replace(" ", "_"), "message": e.description}


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    logging.basicConfig(level=app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # CSRF protection (double-submit token kept in the signed session)
    from app.hoa.security import ensure_csrf_token, validate_csrf

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/static/", "/health", "/healthz")):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.endpoint in CSRF_EXEMPT_ENDPOINTS:
                return None
            if not validate_csrf(request):
                return {"error": "bad_request", "message": "CSRF token missing or invalid."}, 400

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        import os

        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    for module_bp in (
        accounts_bp,
        residents_bp,
        vehicle_registrations_bp,
        amenity_reservations_bp,
        monthly_dues_bp,
        announcements_bp,
        contact_bp,
        feedback_bp,
        system_logs_bp,
        dashboard_bp,
        whats_new_bp,
        maps_bp,
        portal_bp,
    ):
        app.register_blueprint(module_bp, url_prefix="/api")

    def _load_user_wrapper():
        if request.path.startswith(("/static/", "/health", "/healthz")):
            g.current_user = None
            return None
        return load_current_user()

    app.before_request(_load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        user = getattr(g, "current_user", None)
        app.logger.warning(
            "Forbidden: path=%s user_id=%s request_id=%s",
            request.path,
            getattr(user, "id", None),
            getattr(g, "request_id", None),
        )
        return _error_payload(e), 403

    @app.errorhandler(HTTPException)
    def _err_http(e):  # type: ignore[no-redef]
        return _error_payload(e), e.code or 500

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return {"error": "internal_server_error", "message": "An unexpected error occurred."}, 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
