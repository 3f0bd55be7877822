"""
Flask application factory.

Creates and configures the Flask app, registers all blueprints.
"""
from flask import Flask, g, jsonify, request


def create_app(redis_client=None):
    """Create and configure the Flask application.

    redis_client backs the rate limiter; defaults to the shared client from
    buyerleads.extensions.
    """
    from buyerleads.config import (
        AUTH_USER_ID_HEADER, AUTH_USER_EMAIL_HEADER, AUTH_USER_NAME_HEADER,
        RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SECONDS,
    )
    from buyerleads.logging_config import configure_logging
    from buyerleads.services.users import ActingUser

    app = Flask(__name__)

    configure_logging(app)

    # ── Identity forwarded by the auth provider ──────────────────────────────
    OPEN_PATHS = {'/health'}

    @app.before_request
    def require_user():
        if request.path in OPEN_PATHS:
            return
        user_id = (request.headers.get(AUTH_USER_ID_HEADER) or '').strip()
        email = (request.headers.get(AUTH_USER_EMAIL_HEADER) or '').strip()
        if not user_id or not email:
            return jsonify({'error': 'Unauthorized'}), 401
        full_name = (request.headers.get(AUTH_USER_NAME_HEADER) or '').strip() or None
        g.user = ActingUser(id=user_id, email=email, full_name=full_name)

    # Register blueprints
    from buyerleads.routes.health import bp as health_bp
    from buyerleads.routes.buyers import bp as buyers_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(buyers_bp)

    # Per-user rate limiter for mutating endpoints
    if redis_client is None:
        from buyerleads.extensions import redis_client
    from buyerleads.services.rate_limit import init_rate_limiter
    init_rate_limiter(
        app, redis_client,
        max_requests=RATE_LIMIT_MAX_REQUESTS,
        window_seconds=RATE_LIMIT_WINDOW_SECONDS,
    )

    # Import models so Base.metadata knows about them (required for SQLAlchemy).
    # Schema is managed by Alembic — no init_db() call.
    import importlib
    importlib.import_module('buyerleads.models.user')
    importlib.import_module('buyerleads.models.buyer')
    importlib.import_module('buyerleads.models.buyer_history')

    return app
