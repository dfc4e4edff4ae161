# FILE: rhodesign/__init__.py
# DESCRIPTION: Initializes the RhodeSign Flask app and registers routes and error handlers.

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from rhodesign.api.context import Services
from rhodesign.api.ratelimit import limiter
from rhodesign.api.routes_rhodesign import rhodesign_bp
from rhodesign.api.routes_signing import signing_bp
from rhodesign.config import Settings
from rhodesign.core.storage import MemoryStorage
from rhodesign.core.store import SigningSessionStore
from rhodesign.core.sweeper import SessionSweeper
from rhodesign.core.tracking import SignatureTracker
from rhodesign.integrations.notifier import Notifier
from rhodesign.logging_config import configure_logging

logger = configure_logging(
    name="rhodesign",
    logfile="rhodesign.log",
    level=None  # Uses LOG_LEVEL from environment if set
)


def build_storage(settings: Settings):
    """Pick the session storage backend named by SIGNING_STORE."""
    if settings.signing_store == "sql":
        from rhodesign.db.session import get_session_factory, init_engine
        from rhodesign.db.storage import SqlStorage

        init_engine(settings.database_url)
        return SqlStorage(get_session_factory())
    if settings.signing_store != "memory":
        raise ValueError(f"Unknown SIGNING_STORE: {settings.signing_store}")
    return MemoryStorage()


def create_app(settings=None, store=None, tracker=None, notifier=None):
    """Create and configure the RhodeSign Flask application."""
    settings = settings or Settings.from_env()
    app = Flask(__name__)

    store = store or SigningSessionStore(build_storage(settings), ttl=settings.session_ttl)
    services = Services(
        settings=settings,
        store=store,
        tracker=tracker or SignatureTracker(clock=store.clock),
        notifier=notifier or Notifier(settings.notify_webhook_url, disabled=settings.disable_webhooks),
    )

    if settings.sweep_interval_seconds > 0:
        services.sweeper = SessionSweeper(store, settings.sweep_interval_seconds)
        services.sweeper.start()

    app.extensions["rhodesign"] = services

    # Workflow and webhook rate limits
    app.config["RATELIMIT_STORAGE_URI"] = settings.ratelimit_storage_uri
    limiter.init_app(app)

    # Register blueprints
    app.register_blueprint(signing_bp)
    app.register_blueprint(rhodesign_bp)

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok", "store": settings.signing_store}, 200

    # Global error handler
    @app.errorhandler(Exception)
    def handle_error(error):
        if isinstance(error, HTTPException):
            # Werkzeug HTTP errors (404 for unknown routes, 405, ...) keep their status.
            return jsonify({"error": error.description}), error.code
        logger.error("Unhandled error occurred", exc_info=True)
        return jsonify({"error": "Internal server error"}), 500

    logger.info("RhodeSign application initialized successfully")
    return app
