from flask import session
from app.services.session_resolver import AuthSession
from app.services.supabase_client import AuthError
import logging

logger = logging.getLogger(__name__)

ADMIN_CACHE_KEY = 'rupsadmin_is_admin'
TOKENS_KEY = 'auth_tokens'


class FlaskSessionCache:
    """Admin flag cache kept in the signed session cookie."""

    def get(self):
        value = session.get(ADMIN_CACHE_KEY)
        if value is None:
            return None
        return value == 'true'

    def set(self, is_admin):
        session[ADMIN_CACHE_KEY] = 'true' if is_admin else 'false'

    def clear(self):
        session.pop(ADMIN_CACHE_KEY, None)


def store_tokens(access_token, refresh_token=None):
    session[TOKENS_KEY] = {
        'access_token': access_token,
        'refresh_token': refresh_token,
    }


def clear_tokens():
    session.pop(TOKENS_KEY, None)


def current_access_token():
    tokens = session.get(TOKENS_KEY) or {}
    return tokens.get('access_token')


class FlaskSessionIdentity:
    """Identity provider view for one request.

    The stored tokens are the initial session. An event posted by the
    browser is handed to the first subscriber as soon as it subscribes,
    the way the hosted auth client fires its first change notification, so
    it can overtake the initial session fetch.
    """

    def __init__(self, auth_client, pending_event=None):
        self.auth_client = auth_client
        self._callbacks = []
        self._pending = pending_event

    def session_for(self, access_token, refresh_token=None):
        if not access_token:
            return None
        user = self.auth_client.get_user(access_token)
        provider = (user.get('app_metadata') or {}).get('provider')
        return AuthSession(
            user=user,
            access_token=access_token,
            refresh_token=refresh_token,
            provider=provider,
        )

    def get_session(self):
        tokens = session.get(TOKENS_KEY) or {}
        try:
            return self.session_for(
                tokens.get('access_token'), tokens.get('refresh_token'))
        except AuthError as e:
            logger.warning("Stored session rejected: %s", e)
            clear_tokens()
            return None

    def on_auth_state_change(self, callback):
        self._callbacks.append(callback)
        if self._pending is not None:
            event, auth_session = self._pending
            self._pending = None
            callback(event, auth_session)

        def unsubscribe():
            if callback in self._callbacks:
                self._callbacks.remove(callback)
        return unsubscribe

    def sign_out(self, auth_session):
        token = auth_session.access_token if auth_session else (
            current_access_token())
        self.auth_client.sign_out(token)
