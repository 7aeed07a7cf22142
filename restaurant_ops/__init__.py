"""Flask application factory."""
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from restaurant_ops.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize Sentry for error tracking in production
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Flask-Mail for quote emails
    from restaurant_ops.services.email_service import init_mail
    init_mail(app)

    # Prometheus metrics instrumentation
    from restaurant_ops.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind Nginx reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # Error Handlers
    from restaurant_ops.exceptions import OpsError

    @app.errorhandler(OpsError)
    def handle_ops_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"OpsError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"OpsError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from restaurant_ops.blueprints.main import main_bp
    from restaurant_ops.blueprints.inquiries import inquiries_bp
    from restaurant_ops.blueprints.quotes import quotes_bp
    from restaurant_ops.blueprints.metrics import metrics_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(inquiries_bp)
    app.register_blueprint(quotes_bp)
    app.register_blueprint(metrics_bp)

    # CLI commands
    from restaurant_ops.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
