import os
from dotenv import load_dotenv

load_dotenv()


def _env_list(name, default):
    raw = os.environ.get(name)
    if not raw:
        return default
    return tuple(x.strip() for x in raw.split(',') if x.strip())


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or (
        'dev-secret-key-change-in-production'
    )
    # Connection string of the storefront's hosted Postgres.
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or (
        'sqlite:///rupsadmin.db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Hosted auth / storage / functions project.
    SUPABASE_URL = (os.environ.get('SUPABASE_URL') or '').rstrip('/')
    SUPABASE_ANON_KEY = os.environ.get('SUPABASE_ANON_KEY', '')

    # Public URL of this console, used as the OAuth redirect target.
    SITE_URL = (
        os.environ.get('SITE_URL')
        or os.environ.get('VERCEL_URL')
        or 'http://localhost:5000'
    )

    # Seconds before a stuck auth initialization is force-unblocked.
    AUTH_INIT_TIMEOUT_SECONDS = float(
        os.environ.get('AUTH_INIT_TIMEOUT_SECONDS', '5'))
    HTTP_TIMEOUT_SECONDS = float(os.environ.get('HTTP_TIMEOUT_SECONDS', '15'))

    # Image uploads
    IMAGE_MAX_DIMENSION = int(os.environ.get('IMAGE_MAX_DIMENSION', '1200'))
    IMAGE_JPEG_QUALITY = int(os.environ.get('IMAGE_JPEG_QUALITY', '85'))
    STORAGE_BUCKETS = _env_list(
        'STORAGE_BUCKETS', ('categories', 'products', 'banners'))

    # Dashboard
    DASHBOARD_RECENT_LIMIT = 5
    DASHBOARD_WORKERS = 7


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SUPABASE_URL = 'https://project.supabase.test'
    SUPABASE_ANON_KEY = 'anon-key'
    SITE_URL = 'http://localhost:5000'
    AUTH_INIT_TIMEOUT_SECONDS = 5.0
