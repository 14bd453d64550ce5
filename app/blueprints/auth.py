from flask import (
    Blueprint,
    current_app,
    jsonify,
    redirect,
    request,
    url_for,
)
from flask_login import (
    login_user,
    logout_user,
    current_user,
)
from app.extensions import db
from app.middleware import access_denied_response
from app.models import Profile
from app.services.audit_service import log_audit
from app.services.flask_session import (
    FlaskSessionCache,
    FlaskSessionIdentity,
    clear_tokens,
    store_tokens,
)
from app.services.profile_service import ProfileService
from app.services.session_resolver import SessionResolver
from app.services.supabase_client import AuthError, auth_client
from app.utils import get_site_url, wants_json_response
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__)

AUTH_EVENTS = (
    'INITIAL_SESSION',
    'SIGNED_IN',
    'TOKEN_REFRESHED',
    'USER_UPDATED',
    'SIGNED_OUT',
)


def _build_resolver(pending_event=None):
    identity = FlaskSessionIdentity(auth_client(), pending_event)
    return SessionResolver(
        identity,
        ProfileService(),
        FlaskSessionCache(),
        timeout=current_app.config['AUTH_INIT_TIMEOUT_SECONDS'],
    )


def _sync_login(state):
    """Mirror the resolved session into Flask-Login."""
    if state.user is None:
        if current_user.is_authenticated:
            logout_user()
        return
    profile = db.session.get(Profile, state.user.get('id'))
    if profile is None:
        # Verification failed before a profile existed.
        logout_user()
        return
    login_user(profile)


@bp.route('/login', methods=['GET'])
def login():
    if current_user.is_authenticated:
        if current_user.is_admin:
            return redirect(url_for('admin.dashboard'))
        return access_denied_response()

    authorize_url = auth_client().authorize_url('google', get_site_url())
    if wants_json_response():
        return jsonify({'authorize_url': authorize_url})
    return redirect(authorize_url)


@bp.route('/api/auth/session', methods=['GET'])
def get_session_state():
    resolver = _build_resolver()
    try:
        state = resolver.start()
    finally:
        resolver.stop()
    _sync_login(state)
    return jsonify(state.to_dict())


@bp.route('/api/auth/session', methods=['POST'])
def auth_state_change():
    data = request.get_json(silent=True) or {}
    event = (data.get('event') or 'SIGNED_IN').strip().upper()
    if event not in AUTH_EVENTS:
        return jsonify({'error': 'Invalid auth event'}), 400

    access_token = data.get('access_token')
    refresh_token = data.get('refresh_token')

    identity_error = None
    auth_session = None
    if event == 'SIGNED_OUT' or not access_token:
        clear_tokens()
    else:
        try:
            auth_session = FlaskSessionIdentity(auth_client()).session_for(
                access_token, refresh_token)
        except AuthError as e:
            logger.warning("Auth event %s carried a bad token: %s", event, e)
            identity_error = str(e)
            clear_tokens()
        else:
            store_tokens(access_token, refresh_token)

    resolver = _build_resolver(pending_event=(event, auth_session))
    try:
        state = resolver.start()
    finally:
        resolver.stop()
    _sync_login(state)

    if auth_session is not None and event == 'SIGNED_IN':
        log_audit(
            actor_id=auth_session.user_id,
            actor_email=auth_session.email,
            action='LOGIN_SUCCESS',
            target_type='PROFILE',
            target_id=auth_session.user_id,
            payload={'is_admin': state.is_admin},
        )

    if identity_error:
        body = state.to_dict()
        body['error'] = identity_error
        return jsonify(body), 401
    return jsonify(state.to_dict())


@bp.route('/api/auth/logout', methods=['POST'])
@bp.route('/logout', methods=['POST'])
def logout():
    user_id = current_user.id if current_user.is_authenticated else None
    email = current_user.email if current_user.is_authenticated else None

    resolver = _build_resolver()
    try:
        resolver.sign_out()
    except AuthError as e:
        # The local session is cleared regardless.
        logger.warning("Provider sign out failed: %s", e)

    log_audit(
        actor_id=user_id,
        actor_email=email,
        action='LOGOUT',
        target_type='PROFILE',
        target_id=user_id,
    )

    logout_user()
    clear_tokens()
    return jsonify({'ok': True, 'login_url': url_for('auth.login')})
