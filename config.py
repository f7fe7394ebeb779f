import os
import secrets
from dotenv import load_dotenv
from typing import Optional

# Find the absolute path of the root directory
basedir = os.path.abspath(os.path.dirname(__file__))

# Load the .env file from the root directory
load_dotenv(os.path.join(basedir, '.env'))


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid"""
    pass


class Config:
    """
    Base configuration class. Contains default configuration settings
    and settings applicable to all environments.
    """
    SECRET_KEY = os.environ.get('SECRET_KEY') or secrets.token_hex(32)
    FLASK_ENV = os.environ.get('FLASK_ENV')

    @classmethod
    def validate_required_config(cls) -> None:
        """Validate that all required configuration is present"""
        if os.environ.get('FLASK_ENV') == 'testing' or os.environ.get('SKIP_ENV_VALIDATION'):
            return

        required_vars = [
            'SECRET_KEY',
            'TWILIO_ACCOUNT_SID',
            'TWILIO_AUTH_TOKEN',
        ]
        if not (os.environ.get('DATABASE_URL') or os.environ.get('POSTGRES_URI')):
            required_vars.append('DATABASE_URL')

        missing_vars = [var for var in required_vars if not os.environ.get(var)]
        if missing_vars:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing_vars)}"
            )

    @staticmethod
    def get_required_env(key: str) -> str:
        """Get required environment variable or raise error"""
        value = os.environ.get(key)
        if not value:
            raise ConfigurationError(f"Required environment variable {key} is not set")
        return value

    # Database settings
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or os.environ.get('POSTGRES_URI') or \
        'sqlite:///' + os.path.join(basedir, 'clientdesk.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Twilio (WhatsApp) API
    TWILIO_ACCOUNT_SID = os.environ.get('TWILIO_ACCOUNT_SID')
    TWILIO_AUTH_TOKEN = os.environ.get('TWILIO_AUTH_TOKEN')
    TWILIO_PHONE_NUMBER = os.environ.get('TWILIO_PHONE_NUMBER')
    TWILIO_API_BASE_URL = os.environ.get('TWILIO_API_BASE_URL', 'https://api.twilio.com/2010-04-01')

    # Public base URL, used to rebuild the URL Twilio signs webhooks with
    APP_BASE_URL = os.environ.get('NEXTAUTH_URL') or os.environ.get('APP_BASE_URL') or 'http://localhost:3000'
    TWILIO_WEBHOOK_PATH = '/api/twilio/webhook'

    # Timezone used for calendar based statistics ("new this month")
    DEFAULT_TIMEZONE = os.environ.get('DEFAULT_TIMEZONE', 'America/Montevideo')

    # Celery reads the uppercase keys from the Flask config
    CELERY_BROKER_URL = os.environ.get('REDIS_URL') or 'redis://redis:6379/0'
    CELERY_RESULT_BACKEND = os.environ.get('REDIS_URL') or 'redis://redis:6379/0'

    # Application settings
    MAX_CONTENT_LENGTH = 1 * 1024 * 1024
    JSON_SORT_KEYS = False
    JSON_AS_ASCII = False

    BCRYPT_LOG_ROUNDS = 12

    # Session configuration - Redis backed so several workers share sessions
    SESSION_TYPE = 'redis'
    SESSION_PERMANENT = False
    SESSION_KEY_PREFIX = 'clientdesk:'
    SESSION_COOKIE_NAME = 'clientdesk_session'
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours

    @classmethod
    def init_app(cls, app):
        """Initialize application with this config"""
        import logging
        import redis
        from flask_session import Session

        logger = logging.getLogger(__name__)

        redis_url = (
            os.environ.get('REDIS_URL') or
            app.config.get('CELERY_BROKER_URL') or
            'redis://localhost:6379/0'
        )

        try:
            if redis_url.startswith('rediss://'):
                # Managed Redis/Valkey over TLS
                app.config['SESSION_REDIS'] = redis.from_url(
                    redis_url,
                    ssl_cert_reqs=None,
                    decode_responses=False
                )
            else:
                app.config['SESSION_REDIS'] = redis.from_url(redis_url, decode_responses=False)

            app.config['SESSION_REDIS'].ping()
            logger.info("Redis connection successful for Flask-Session")
        except redis.exceptions.RedisError as e:
            logger.error(f"Failed to connect to Redis for sessions: {e}")
            app.config['SESSION_TYPE'] = 'filesystem'
            logger.warning("Falling back to filesystem sessions")

        Session(app)


class DevelopmentConfig(Config):
    """Development environment configuration"""
    DEBUG = True
    TESTING = False

    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or \
        Config.SQLALCHEMY_DATABASE_URI

    SESSION_COOKIE_SECURE = False
    BCRYPT_LOG_ROUNDS = 8


class TestingConfig(Config):
    """Testing environment configuration"""
    TESTING = True
    DEBUG = True

    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

    # Requests run as the seeded account without a login
    LOGIN_DISABLED = True
    LOGIN_DISABLED_ACCOUNT_ID = 1

    TWILIO_ACCOUNT_SID = 'ACtest00000000000000000000000000'
    TWILIO_AUTH_TOKEN = 'test_auth_token'
    TWILIO_PHONE_NUMBER = '+59899000000'
    APP_BASE_URL = 'http://localhost:3000'

    CELERY_BROKER_URL = 'redis://localhost:6379/1'
    CELERY_RESULT_BACKEND = 'redis://localhost:6379/1'

    BCRYPT_LOG_ROUNDS = 4

    @classmethod
    def init_app(cls, app):
        """Testing-specific initialization"""
        # Config.init_app would try to reach Redis
        import tempfile
        from flask_session import Session
        from cachelib import FileSystemCache

        app.config['SESSION_TYPE'] = 'cachelib'
        app.config['SESSION_PERMANENT'] = False
        app.config['SESSION_KEY_PREFIX'] = 'test_session:'
        app.config['SESSION_COOKIE_SECURE'] = False

        temp_dir = os.path.join(tempfile.gettempdir(), 'clientdesk_test_sessions')
        os.makedirs(temp_dir, exist_ok=True)
        app.config['SESSION_CACHELIB'] = FileSystemCache(temp_dir, threshold=500, default_timeout=300)

        Session(app)


class ProductionConfig(Config):
    """Production environment configuration"""
    DEBUG = False
    TESTING = False

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', '')

    BCRYPT_LOG_ROUNDS = 14

    REDIS_URL = os.environ.get('REDIS_URL', '')
    CELERY_BROKER_URL = os.environ.get('REDIS_URL', '')
    CELERY_RESULT_BACKEND = os.environ.get('REDIS_URL', '')

    # rediss:// URLs need the cert requirement spelled out for Celery
    if CELERY_BROKER_URL.startswith('rediss://') and 'ssl_cert_reqs' not in CELERY_BROKER_URL:
        separator = '&' if '?' in CELERY_BROKER_URL else '?'
        CELERY_BROKER_URL += f"{separator}ssl_cert_reqs=CERT_NONE"
        CELERY_RESULT_BACKEND += f"{separator}ssl_cert_reqs=CERT_NONE"

    @classmethod
    def init_app(cls, app):
        """Production-specific initialization"""
        if not app.config.get('SQLALCHEMY_DATABASE_URI'):
            app.config['SQLALCHEMY_DATABASE_URI'] = cls.get_required_env('POSTGRES_URI')

        cls.validate_required_config()
        Config.init_app(app)


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(config_name: Optional[str] = None) -> type[Config]:
    """Get configuration class based on environment"""
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    return config.get(config_name, DevelopmentConfig)
