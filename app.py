# app.py

from flask import Flask, g, request, jsonify
from flask_migrate import Migrate
from config import get_config
from extensions import db, login_manager, bcrypt
import os
import uuid
from werkzeug.middleware.proxy_fix import ProxyFix
from logging_config import setup_logging, get_logger

# Configure logging as early as possible
setup_logging(app_name="clientdesk", log_level=os.environ.get('LOG_LEVEL', 'INFO'))
logger = get_logger(__name__)


# Configure Sentry for production error tracking
def init_sentry():
    """Initialize Sentry error tracking in production."""
    sentry_dsn = os.environ.get('SENTRY_DSN')
    if sentry_dsn and os.environ.get('FLASK_ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
        from sentry_sdk.integrations.celery import CeleryIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[
                FlaskIntegration(transaction_style='endpoint'),
                SqlalchemyIntegration(),
                CeleryIntegration()
            ],
            traces_sample_rate=0.1,
            environment=os.environ.get('FLASK_ENV', 'development'),
            release=os.environ.get('GIT_SHA', 'unknown')
        )
        logger.info("Sentry error tracking initialized")


init_sentry()


def create_app(config_name=None, test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__)

    config_class = get_config(config_name)
    app.config.from_object(config_class)

    config_class.init_app(app)

    if test_config:
        app.config.update(test_config)

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    db.init_app(app)
    Migrate(app, db)

    app.services = _build_service_registry(app)

    # Initialize authentication
    bcrypt.init_app(app)
    login_manager.init_app(app)

    from crm_database import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Unauthorized'}), 401

    # Add request tracking middleware
    @app.before_request
    def before_request():
        g.request_id = str(uuid.uuid4())
        logger.info("Request started",
                    request_id=g.request_id,
                    method=request.method,
                    path=request.path)

    @app.after_request
    def after_request(response):
        logger.info("Request completed",
                    request_id=getattr(g, 'request_id', None),
                    status_code=response.status_code)
        return response

    # Global error handlers
    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        logger.error("Internal server error",
                     request_id=getattr(g, 'request_id', None),
                     error=str(error))
        return jsonify({'error': 'Internal server error'}), 500

    @app.errorhandler(404)
    def not_found_error(error):
        logger.warning("Not found",
                       request_id=getattr(g, 'request_id', None),
                       path=request.path)
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(403)
    def forbidden_error(error):
        return jsonify({'error': 'Forbidden'}), 403

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    # Health check endpoint, no auth required
    @app.route('/health')
    def health_check():
        """Health check endpoint for monitoring"""
        from sqlalchemy import text
        health_status = {
            'status': 'healthy',
            'service': 'clientdesk'
        }

        try:
            db.session.execute(text('SELECT 1'))
            health_status['database'] = 'connected'
        except Exception as e:
            health_status['database'] = 'error'
            health_status['status'] = 'degraded'
            logger.error(f"Health check database error: {e}")

        return jsonify(health_status), 200 if health_status['status'] == 'healthy' else 503

    # Register blueprints for routes
    from routes.api_routes import api_bp
    from routes.auth_routes import auth_bp
    from routes.client_routes import client_bp
    from routes.faq_routes import faq_bp
    from routes.label_routes import label_bp
    from routes.message_routes import message_bp
    from routes.settings_routes import settings_bp

    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(faq_bp, url_prefix='/api')
    app.register_blueprint(message_bp, url_prefix='/api')
    app.register_blueprint(client_bp, url_prefix='/api')
    app.register_blueprint(label_bp, url_prefix='/api')
    app.register_blueprint(settings_bp, url_prefix='/api')
    app.register_blueprint(auth_bp, url_prefix='/auth')

    # Register CLI commands
    from scripts import commands
    commands.init_app(app)

    return app


def _build_service_registry(app):
    """Register repositories and services as lazy factories."""
    from services.service_registry import create_registry, ServiceLifecycle
    registry = create_registry()

    # Flask-SQLAlchemy's scoped session resolves to the right session per context
    registry.register_singleton('db_session', lambda: db.session)

    repositories = {
        'user_repository': _create_user_repository,
        'client_repository': _create_client_repository,
        'message_repository': _create_message_repository,
        'faq_repository': _create_faq_repository,
        'label_repository': _create_label_repository,
        'client_label_repository': _create_client_label_repository,
        'auto_reply_settings_repository': _create_auto_reply_settings_repository,
    }
    for name, factory in repositories.items():
        registry.register_factory(name, factory, dependencies=['db_session'])

    config = app.config
    registry.register_singleton(
        'twilio',
        lambda: _create_twilio_service(config),
    )
    registry.register_factory(
        'auto_label',
        _create_auto_label_service,
        dependencies=['client_repository', 'label_repository', 'client_label_repository', 'message_repository']
    )
    registry.register_factory(
        'inbound_message',
        _create_inbound_message_service,
        dependencies=['user_repository', 'client_repository', 'message_repository', 'faq_repository',
                      'auto_reply_settings_repository', 'auto_label', 'twilio']
    )
    registry.register_factory(
        'faq',
        _create_faq_service,
        dependencies=['faq_repository']
    )
    registry.register_factory(
        'auto_reply_settings',
        _create_auto_reply_settings_service,
        dependencies=['auto_reply_settings_repository']
    )
    registry.register_factory(
        'client',
        lambda client_repository, label_repository: _create_client_service(
            client_repository, label_repository, config.get('DEFAULT_TIMEZONE', 'America/Montevideo')
        ),
        dependencies=['client_repository', 'label_repository']
    )
    registry.register_factory(
        'message',
        lambda message_repository, client_repository, user_repository, twilio: _create_message_service(
            message_repository, client_repository, user_repository, twilio,
            config.get('DEFAULT_TIMEZONE', 'America/Montevideo')
        ),
        dependencies=['message_repository', 'client_repository', 'user_repository', 'twilio']
    )
    registry.register_factory(
        'label',
        _create_label_service,
        dependencies=['label_repository']
    )
    registry.register_factory(
        'auth',
        _create_auth_service,
        dependencies=['user_repository'],
        lifecycle=ServiceLifecycle.TRANSIENT
    )

    errors = registry.validate_dependencies()
    if errors:
        for error in errors:
            logger.error(f"Service registry error: {error}")
        raise RuntimeError(f"Invalid service registry: {errors}")
    logger.debug(f"Service initialization order: {registry.get_initialization_order()}")

    return registry


# Service Factory Functions
# These are only called when the service is first requested

def _create_user_repository(db_session):
    from repositories.user_repository import UserRepository
    return UserRepository(db_session)


def _create_client_repository(db_session):
    from repositories.client_repository import ClientRepository
    return ClientRepository(db_session)


def _create_message_repository(db_session):
    from repositories.message_repository import MessageRepository
    return MessageRepository(db_session)


def _create_faq_repository(db_session):
    from repositories.faq_repository import FAQRepository
    return FAQRepository(db_session)


def _create_label_repository(db_session):
    from repositories.label_repository import LabelRepository
    return LabelRepository(db_session)


def _create_client_label_repository(db_session):
    from repositories.client_label_repository import ClientLabelRepository
    return ClientLabelRepository(db_session)


def _create_auto_reply_settings_repository(db_session):
    from repositories.auto_reply_settings_repository import AutoReplySettingsRepository
    return AutoReplySettingsRepository(db_session)


def _create_twilio_service(config):
    from services.twilio_service import TwilioService
    logger.info("Initializing TwilioService")
    return TwilioService(
        account_sid=config.get('TWILIO_ACCOUNT_SID'),
        auth_token=config.get('TWILIO_AUTH_TOKEN'),
        default_from=config.get('TWILIO_PHONE_NUMBER'),
        base_url=config.get('TWILIO_API_BASE_URL', 'https://api.twilio.com/2010-04-01')
    )


def _create_auto_label_service(client_repository, label_repository, client_label_repository, message_repository):
    from services.auto_label_service import AutoLabelService
    return AutoLabelService(
        client_repository=client_repository,
        label_repository=label_repository,
        client_label_repository=client_label_repository,
        message_repository=message_repository
    )


def _create_inbound_message_service(user_repository, client_repository, message_repository, faq_repository,
                                    auto_reply_settings_repository, auto_label, twilio):
    from services.inbound_message_service import InboundMessageService
    return InboundMessageService(
        user_repository=user_repository,
        client_repository=client_repository,
        message_repository=message_repository,
        faq_repository=faq_repository,
        settings_repository=auto_reply_settings_repository,
        auto_label_service=auto_label,
        twilio_service=twilio
    )


def _create_faq_service(faq_repository):
    from services.faq_service import FAQService
    return FAQService(faq_repository)


def _create_auto_reply_settings_service(auto_reply_settings_repository):
    from services.auto_reply_settings_service import AutoReplySettingsService
    return AutoReplySettingsService(auto_reply_settings_repository)


def _create_client_service(client_repository, label_repository, timezone):
    from services.client_service import ClientService
    return ClientService(client_repository, label_repository, timezone=timezone)


def _create_message_service(message_repository, client_repository, user_repository, twilio, timezone):
    from services.message_service import MessageService
    return MessageService(
        message_repository=message_repository,
        client_repository=client_repository,
        user_repository=user_repository,
        twilio_service=twilio,
        timezone=timezone
    )


def _create_label_service(label_repository):
    from services.label_service import LabelService
    return LabelService(label_repository)


def _create_auth_service(user_repository):
    from services.auth_service import AuthService
    return AuthService(user_repository)


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True)
