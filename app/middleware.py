from flask import request, redirect, url_for, jsonify
from flask_login import current_user, logout_user
from functools import wraps
from app.services.flask_session import current_access_token
import logging

logger = logging.getLogger(__name__)

# Exact paths that never require login
LOGIN_WHITELIST = [
    '/login',
    '/logout',
    '/favicon.ico',
    '/api/auth/session',
    '/api/auth/logout',
]


def is_static_file(path):
    return path.startswith('/static/')


def _not_logged_in():
    # API requests return 401, page requests redirect to login
    if request.path.startswith('/api/'):
        return jsonify({'error': 'Not logged in',
                        'login_required': True}), 401
    return redirect(url_for('auth.login'))


def access_denied_response():
    logger.warning(
        "Profile %s (%s) attempted to access %s without admin rights",
        current_user.id,
        current_user.email,
        request.path,
    )
    return jsonify({
        'error': 'Access denied',
        'message': (
            f'You are signed in as {current_user.email}, '
            'but you do not have admin privileges.'
        ),
        'email': current_user.email,
        'sign_out_url': url_for('auth.logout'),
    }), 403


def setup_auth_middleware(app):

    @app.before_request
    def require_login():
        path = request.path

        # Allow static files
        if is_static_file(path):
            return None

        # Allow whitelist paths
        if path in LOGIN_WHITELIST:
            return None

        # Check login status
        if not current_user.is_authenticated:
            return _not_logged_in()

        # A console login without provider tokens is stale.
        if not current_access_token():
            logger.warning(
                "Profile %s has no provider session, signing out",
                current_user.id)
            logout_user()
            return _not_logged_in()

        return None


def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return _not_logged_in()

        # current_user is re-read from the profiles table on every request.
        if not current_user.is_admin:
            return access_denied_response()

        return f(*args, **kwargs)
    return decorated_function
