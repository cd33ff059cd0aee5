import os
from datetime import timedelta

from dotenv import load_dotenv

from nailstudio.errors import ConfigError

# Load environment variables
load_dotenv()


def _int_or_none(value):
    if value is None or value.strip() == '':
        return None
    return int(value)


class Config:
    # Storage endpoint and signing key, both required at startup
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')
    SECRET_KEY = os.environ.get('SECRET_KEY')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    PERMANENT_SESSION_LIFETIME = timedelta(days=7)

    # Booking rules
    CLOSED_WEEKDAY = _int_or_none(os.environ.get('CLOSED_WEEKDAY', '6'))  # 6 = Sunday
    BOOKING_WINDOW_DAYS = int(os.environ.get('BOOKING_WINDOW_DAYS', '60'))

    # Bearer tokens for the privileged JSON endpoints
    API_TOKEN_MAX_AGE = int(os.environ.get('API_TOKEN_MAX_AGE', '3600'))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    AUTO_CREATE_TABLES = os.environ.get('AUTO_CREATE_TABLES', 'true').lower() == 'true'


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SECRET_KEY = 'test-secret-key'
    WTF_CSRF_ENABLED = False
    CLOSED_WEEKDAY = 6
    BOOKING_WINDOW_DAYS = 60
    API_TOKEN_MAX_AGE = 3600
    AUTO_CREATE_TABLES = True


REQUIRED_SETTINGS = {
    'SQLALCHEMY_DATABASE_URI': 'DATABASE_URL',
    'SECRET_KEY': 'SECRET_KEY',
}


def check_required_settings(config):
    """Raise ConfigError naming every required setting that is missing"""
    missing = [env_name for key, env_name in REQUIRED_SETTINGS.items() if not config.get(key)]
    if missing:
        raise ConfigError(f"Missing required configuration: {', '.join(missing)}. "
                          f"Set them in the environment or in a .env file.")
