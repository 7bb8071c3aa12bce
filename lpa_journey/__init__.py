"""
LPA Journey Application

A stepped journey for making a Lasting Power of Attorney.

Enhanced with:
- CSRF protection
- Rate limiting
- Security headers
- Audit logging
- Single-use payment tokens
"""

import os
from datetime import datetime
from flask import Flask, request, g
from flask_sqlalchemy import SQLAlchemy

# Initialize extensions
db = SQLAlchemy()


def _env_flag(name, default='false'):
    return os.environ.get(name, default).lower() == 'true'


def create_app(test_config=None, lookup=None):
    """
    Application factory pattern.

    Args:
        test_config: Mapping applied instead of the instance config.py
        lookup: Address lookup provider; the static fixture provider
            is used when none is given
    """
    app = Flask(__name__, instance_relative_config=True)

    # Default configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production'),
        SQLALCHEMY_DATABASE_URI=os.environ.get('DATABASE_URL', 'sqlite:///lpa_journey.db'),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        PERMANENT_SESSION_LIFETIME=3600,  # 1 hour

        # CSRF settings
        WTF_CSRF_ENABLED=True,
        WTF_CSRF_TIME_LIMIT=3600,  # 1 hour
        WTF_CSRF_SSL_STRICT=False,  # Disabled for development

        # Rate limiting settings
        RATELIMIT_STORAGE_URI=os.environ.get('REDIS_URL', 'memory://'),
        RATELIMIT_STRATEGY='fixed-window',
        RATELIMIT_DEFAULT='100 per minute',
        RATELIMIT_HEADERS_ENABLED=True,

        # Payment settings
        PAYMENT_URL=os.environ.get('PAYMENT_URL', ''),
        PAYMENT_COOKIE_MAX_AGE=int(os.environ.get('PAYMENT_COOKIE_MAX_AGE', 90 * 60)),
        PAYMENT_COOKIE_SECURE=_env_flag('PAYMENT_COOKIE_SECURE', 'true'),

        APP_PUBLIC_URL=os.environ.get('APP_PUBLIC_URL', 'http://localhost:5000'),
        ALLOW_TESTING_START=_env_flag('ALLOW_TESTING_START'),
    )

    if test_config is None:
        # Load instance config if it exists
        app.config.from_pyfile('config.py', silent=True)
    else:
        # Load test config
        app.config.from_mapping(test_config)

    # Ensure instance folder exists
    try:
        os.makedirs(app.instance_path)
    except OSError:
        pass

    # Initialize extensions with app
    db.init_app(app)

    # Import and initialize security (after db init to avoid circular imports)
    from lpa_journey.security import add_security_headers, init_security
    init_security(app)

    from lpa_journey.address_lookup import StaticAddressLookup
    from lpa_journey.routes import journey_bp, auth_bp, init_journey
    init_journey(app, lookup=lookup if lookup is not None else StaticAddressLookup())

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(journey_bp)

    # Add security headers to all responses
    @app.after_request
    def after_request(response):
        """Add security headers to all responses."""
        return add_security_headers(response)

    # Request logging
    @app.before_request
    def before_request():
        """Log request start."""
        g.request_start_time = datetime.utcnow()

    @app.after_request
    def log_request(response):
        """Log request completion."""
        if hasattr(g, 'request_start_time'):
            duration = (datetime.utcnow() - g.request_start_time).total_seconds()
            app.logger.info(
                f'{request.method} {request.path} - {response.status_code} - {duration:.3f}s'
            )
        return response

    # Create database tables
    with app.app_context():
        from lpa_journey import models  # noqa: F401
        db.create_all()

    # Error handlers
    @app.errorhandler(500)
    def internal_error(error):
        """Handle internal errors."""
        db.session.rollback()
        app.logger.error(f'Internal error: {str(error)}')
        return {'ok': False, 'error': 'Internal server error'}, 500

    return app
