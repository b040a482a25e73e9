import os

from flask import Flask, jsonify
from sqlalchemy import text

from kycdesk.config import Config, current_env, is_production
from kycdesk.extensions import db, migrate, cors, login_manager


def create_app(overrides: dict | None = None):
    app = Flask(__name__)

    env = current_env()

    # Production safety checks
    if is_production(env):
        secret = (os.getenv("SECRET_KEY") or "").strip()
        if not secret or len(secret) < 16:
            raise RuntimeError("SECRET_KEY must be set and at least 16 chars in production")
        if not (os.getenv("DATABASE_URL") or "").strip() and not (os.getenv("SQLALCHEMY_DATABASE_URI") or "").strip():
            raise RuntimeError("DATABASE_URL (or SQLALCHEMY_DATABASE_URI) must be set in production")

    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)
    app.config["KYCDESK_ENV"] = env

    # Ensure instance dir exists for SQLite paths
    os.makedirs(Config.INSTANCE_DIR, exist_ok=True)
    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    # CORS configuration
    origins = list(app.config.get("CORS_ORIGINS") or [])
    if not origins and not is_production(env):
        origins = ["*"]
    cors.init_app(app, resources={r"/api/*": {"origins": origins}})

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=os.path.join(Config.BACKEND_DIR, "migrations"))
    login_manager.init_app(app)

    from kycdesk import models  # noqa: F401
    from kycdesk.segments.segment_auth import api_auth
    from kycdesk.segments.segment_kyc import kyc_bp
    from kycdesk.cli import kyc_cli
    from kycdesk.utils.watchlists import load_watchlists

    app.register_blueprint(api_auth)
    app.register_blueprint(kyc_bp)
    app.cli.add_command(kyc_cli)

    @app.errorhandler(413)
    def too_large(_e):
        limit_mb = int(app.config.get("MAX_CONTENT_LENGTH") or 0) // (1024 * 1024)
        return jsonify({"message": f"File too large (max {limit_mb}MB)"}), 413

    # Health check
    @app.get("/api/health")
    def health():
        db_state = "ok"
        try:
            db.session.execute(text("SELECT 1"))
        except Exception:
            app.logger.exception("Health check database probe failed")
            db_state = "fail"
        return jsonify({
            "ok": True,
            "service": "kycdesk-backend",
            "env": env,
            "db": db_state,
        })

    app.extensions["kyc_watchlists"] = load_watchlists(app)

    return app
