import os
from flask import Flask, jsonify
from sqlalchemy import text

from vybraa.config import Config
from vybraa.errors import PaymentError
from vybraa.extensions import db, migrate, cors
from vybraa.listeners import register_listeners
from vybraa.utils.events import init_bus
from vybraa.segments.segment_payment_webhooks import payments_bp
from vybraa.segments.segment_reconciliation_admin import recon_bp
from vybraa.segments.segment_wallets import wallets_bp


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    env = (app.config.get("ENV") or "dev").strip().lower()

    # Production safety checks
    if env in ("prod", "production"):
        secret = (app.config.get("SECRET_KEY") or "").strip()
        if not secret or secret == "change-me" or len(secret) < 16:
            raise RuntimeError("SECRET_KEY must be set and at least 16 chars in production")
        if not (os.getenv("DATABASE_URL") or "").strip() and not (config_overrides or {}).get("SQLALCHEMY_DATABASE_URI"):
            raise RuntimeError("DATABASE_URL must be set in production")

    # Ensure instance dir exists for SQLite paths
    os.makedirs(Config.INSTANCE_DIR, exist_ok=True)

    # CORS configuration
    cors_origins = (app.config.get("CORS_ORIGINS") or "").strip()
    origins = [o.strip() for o in cors_origins.split(",") if o.strip()]
    if not origins and env not in ("prod", "production"):
        origins = ["*"]
    cors.init_app(app, resources={r"/api/*": {"origins": origins}})

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Domain events
    init_bus(app)
    register_listeners(app)

    # Register API routes
    app.register_blueprint(payments_bp)
    app.register_blueprint(recon_bp)
    app.register_blueprint(wallets_bp)

    @app.errorhandler(PaymentError)
    def payment_error(e):
        app.logger.warning("%s: %s %s", e.code, e.message, e.context)
        return jsonify(e.to_dict()), e.http_status

    # Health check
    @app.get("/api/health")
    def health():
        db_state = "ok"
        try:
            db.session.execute(text("SELECT 1"))
        except Exception:
            db_state = "fail"
        return jsonify({
            "ok": True,
            "service": "vybraa-escrow",
            "env": env,
            "db": db_state,
        })

    if app.config.get("ENABLE_SCHEDULER"):
        from vybraa.jobs.scheduler import start_scheduler
        start_scheduler(app)

    return app
