# melbox/core/config.py

import os # read settings from environment variables (.env is loaded in melbox/__init__.py)
from datetime import timedelta

class Config:
    """Base settings shared by every environment."""
    # Signs and verifies the JWTs issued by /api/auth
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=14)

    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')

    # Stripe hosted checkout / refunds
    STRIPE_SECRET_KEY = os.getenv('STRIPE_SECRET_KEY')
    STRIPE_WEBHOOK_SECRET = os.getenv('STRIPE_WEBHOOK_SECRET')
    CURRENCY = os.getenv('CURRENCY', 'usd')
    # Front-end origin used to build checkout success/cancel URLs
    BASE_URL = os.getenv('BASE_URL', 'http://localhost:3000')

    # Comma separated, e.g. ADMIN_EMAILS=admin@example.com,another.admin@example.com
    ADMIN_EMAILS = os.getenv('ADMIN_EMAILS', '')

    # Social feed
    FEED_PAGE_SIZE = int(os.getenv('FEED_PAGE_SIZE', 10))
    COMMENT_FETCH_SIZE = int(os.getenv('COMMENT_FETCH_SIZE', 50))
    FEED_CACHE_DIR = os.getenv('FEED_CACHE_DIR', os.path.join(os.path.expanduser('~'), '.melbox', 'feed-cache'))

class DevelopmentConfig(Config):
    """Local development: debug mode and the development Firebase project."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')

class TestingConfig(Config):
    """Test runs. Services are injected, so Firebase is never initialized."""
    TESTING = True
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'testing-secret-key-with-enough-length')
    STRIPE_WEBHOOK_SECRET = 'whsec_test'
    BASE_URL = 'http://testserver'
    ADMIN_EMAILS = 'admin@example.com'

class ProductionConfig(Config):
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')

# Maps FLASK_ENV to a settings class; used by create_app in melbox/__init__.py.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)

def parse_admin_emails(raw: str) -> set:
    """'A@x.com, b@y.com' -> {'a@x.com', 'b@y.com'}"""
    return {e.strip().lower() for e in (raw or '').split(',') if e.strip()}
