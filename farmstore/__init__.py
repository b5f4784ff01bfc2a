"""Flask application factory."""
from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect, CSRFError
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException
from farmstore.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    
    # CSRF protection for cookie-session requests (JSON clients send X-CSRFToken)
    csrf = CSRFProtect(app)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'message': 'Session expired, reload and try again.'}), 400
    
    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        
        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            profiles_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )
    
    # Operator notifications
    from farmstore.services.email_service import init_mail
    init_mail(app)
    
    # Redis cache for order read models
    from farmstore.services.cache_service import init_cache
    init_cache(app)
    
    # Prometheus metrics instrumentation
    from farmstore.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)
    
    # Production: Enable ProxyFix for HTTPS behind Nginx reverse proxy
    if app.config.get('ENV') == 'production' or app.config.get('FLASK_ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=1,
            x_proto=1,
            x_host=1,
            x_port=1,
            x_prefix=0
        )
    
    # Initialize database
    init_db(app)
    
    # Payment gateway client (None when keys are not configured)
    from farmstore.services.razorpay_client import init_payments
    init_payments(app)
    
    # Shopper and cart session context
    from farmstore.middleware import load_current_user, load_cart_session, echo_cart_session

    @app.before_request
    def before_request_handler():
        load_current_user()
        load_cart_session()

    @app.after_request
    def after_request_handler(response):
        return echo_cart_session(response)

    # Error Handlers
    from farmstore.exceptions import StoreError

    @app.errorhandler(StoreError)
    def handle_store_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"StoreError [{error.status_code}]: {error.message}")
        else:
            app.logger.info(f"StoreError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(PydanticValidationError)
    def handle_request_validation_error(error):
        app.logger.info(f"Invalid request body on {request.path}: {error.error_count()} error(s)")
        return jsonify({
            'status': 'error',
            'message': 'Invalid request',
            'errors': error.errors(include_url=False, include_context=False, include_input=False),
        }), 400

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'status': 'error', 'message': 'Not Found'}), 404

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({'status': 'error', 'message': error.description}), error.code

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        import traceback
        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500
    
    # Register blueprints
    from farmstore.blueprints.auth import auth_bp
    from farmstore.blueprints.cart import cart_bp
    from farmstore.blueprints.payments import payments_bp
    from farmstore.blueprints.orders import orders_bp
    from farmstore.blueprints.discounts import discounts_bp
    from farmstore.blueprints.shipping import shipping_bp
    from farmstore.blueprints.admin import admin_bp
    from farmstore.blueprints.metrics import metrics_bp
    from farmstore.blueprints.webhooks import webhooks_bp
    
    app.register_blueprint(auth_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(discounts_bp)
    app.register_blueprint(shipping_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(metrics_bp)
    
    # Webhooks must be exempt from CSRF
    csrf.exempt(webhooks_bp)
    app.register_blueprint(webhooks_bp)
    
    # CLI commands
    from farmstore.cli_commands import init_cli_commands
    init_cli_commands(app)
    
    app.logger.info(f"MAIL_SERVER={app.config.get('MAIL_SERVER')}")
    
    return app
