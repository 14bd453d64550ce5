from flask import current_app, jsonify, request
from sqlalchemy.exc import IntegrityError
from datetime import datetime, timezone
import logging
import re

logger = logging.getLogger(__name__)

# Postgres SQLSTATE codes the console translates into specific messages.
FOREIGN_KEY_VIOLATION = '23503'
UNIQUE_VIOLATION = '23505'

_SQLITE_MESSAGES = {
    'FOREIGN KEY constraint failed': FOREIGN_KEY_VIOLATION,
    'UNIQUE constraint failed': UNIQUE_VIOLATION,
}


def wants_json_response() -> bool:
    accept = request.headers.get('Accept', '') or ''
    xrw = request.headers.get('X-Requested-With')
    return (
        request.path.startswith('/api/')
        or request.is_json
        or ('application/json' in accept)
        or (xrw == 'XMLHttpRequest')
    )


def constraint_code(exc):
    """SQLSTATE of a database integrity error, or None."""
    if not isinstance(exc, IntegrityError):
        return None
    orig = exc.orig
    # psycopg2 exposes pgcode, psycopg 3 sqlstate.
    code = getattr(orig, 'pgcode', None) or getattr(orig, 'sqlstate', None)
    if code:
        return code
    message = str(orig)
    for text, sqlstate in _SQLITE_MESSAGES.items():
        if text in message:
            return sqlstate
    return None


def storage_error_response(exc, default_message):
    message = str(getattr(exc, 'orig', None) or exc) or default_message
    logger.error("%s: %s", default_message, message)
    return jsonify({'error': message or default_message}), 500


def get_site_url():
    """Public base URL of the console with scheme and trailing slash."""
    url = current_app.config.get('SITE_URL') or 'http://localhost:5000'
    url = url if 'http' in url else f'https://{url}'
    return url if url.endswith('/') else f'{url}/'


def slugify(name):
    slug = (name or '').lower().replace(' ', '-')
    return re.sub(r'[^\w-]+', '', slug)


def parse_datetime(value):
    """Parse an ISO date-time form value; blank values become None."""
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise ValueError(f'Invalid date: {value}')
    # Stored as naive UTC.
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def search_term():
    return (request.args.get('q') or '').strip().lower()


def matches(term, *values):
    if not term:
        return True
    return any(term in (v or '').lower() for v in values)
