"""Thin HTTP clients for the hosted auth, storage and functions endpoints.

The console never talks to these services through anything but these
classes; the app factory builds one of each and stores it in
``app.extensions`` so views and tests can swap them.
"""
from urllib.parse import urlencode, quote
import logging

from flask import current_app
import requests

logger = logging.getLogger(__name__)

STATUS_FUNCTION_PATH = '/functions/v1/order-status-change'


class SupabaseError(Exception):
    def __init__(self, message, status_code=None, detail=None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class AuthError(SupabaseError):
    pass


class StorageError(SupabaseError):
    pass


class StatusFunctionError(SupabaseError):
    pass


class _BaseClient:

    def __init__(self, base_url, api_key, timeout=15.0, session=None):
        self.base_url = (base_url or '').rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.http = session or requests.Session()

    def _headers(self, access_token=None, **extra):
        headers = {'apikey': self.api_key}
        token = access_token or self.api_key
        headers['Authorization'] = f'Bearer {token}'
        headers.update(extra)
        return headers


class AuthClient(_BaseClient):

    def authorize_url(self, provider, redirect_to):
        query = urlencode({'provider': provider, 'redirect_to': redirect_to})
        return f'{self.base_url}/auth/v1/authorize?{query}'

    def get_user(self, access_token):
        """Return the user the access token belongs to.

        Raises ``AuthError`` when the token is missing, expired or the auth
        service cannot be reached.
        """
        if not access_token:
            raise AuthError('No access token', status_code=401)
        try:
            resp = self.http.get(
                f'{self.base_url}/auth/v1/user',
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise AuthError(f'Auth service unreachable: {e}') from e

        if resp.status_code != 200:
            raise AuthError(
                'Session is invalid or expired',
                status_code=resp.status_code,
                detail=resp.text,
            )
        return resp.json()

    def sign_out(self, access_token):
        if not access_token:
            return
        try:
            resp = self.http.post(
                f'{self.base_url}/auth/v1/logout',
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise AuthError(f'Auth service unreachable: {e}') from e
        # 401 means the token was already revoked.
        if resp.status_code not in (200, 204, 401):
            raise AuthError(
                'Sign out failed',
                status_code=resp.status_code,
                detail=resp.text,
            )


class StorageClient(_BaseClient):

    def public_url(self, bucket, path):
        return (
            f'{self.base_url}/storage/v1/object/public/'
            f'{quote(bucket)}/{quote(path)}'
        )

    def upload(self, bucket, path, data, content_type='image/jpeg',
               access_token=None):
        try:
            resp = self.http.post(
                f'{self.base_url}/storage/v1/object/'
                f'{quote(bucket)}/{quote(path)}',
                data=data,
                headers=self._headers(
                    access_token, **{'Content-Type': content_type}),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise StorageError(f'Storage unreachable: {e}') from e

        if not resp.ok:
            raise StorageError(
                f'Upload failed: {resp.text}',
                status_code=resp.status_code,
                detail=resp.text,
            )
        logger.info("Uploaded %s bytes to %s/%s", len(data), bucket, path)
        return self.public_url(bucket, path)


class StatusFunctionClient(_BaseClient):

    def change_status(self, access_token, payload):
        """POST to the order-status-change function.

        Non-2xx answers and transport failures both raise
        ``StatusFunctionError``; the response body text is kept as the
        detail. Never retried here: the remote side may have applied part
        of its effects.
        """
        try:
            resp = self.http.post(
                f'{self.base_url}{STATUS_FUNCTION_PATH}',
                json=payload,
                headers=self._headers(
                    access_token, **{'Content-Type': 'application/json'}),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise StatusFunctionError(
                f'Status function unreachable: {e}', detail=str(e)) from e

        if not resp.ok:
            raise StatusFunctionError(
                resp.text,
                status_code=resp.status_code,
                detail=resp.text,
            )
        try:
            return resp.json()
        except ValueError:
            return {}


def init_app(app):
    base_url = app.config.get('SUPABASE_URL')
    api_key = app.config.get('SUPABASE_ANON_KEY')
    timeout = app.config.get('HTTP_TIMEOUT_SECONDS', 15.0)
    if not base_url:
        logger.warning("SUPABASE_URL is not set; hosted calls will fail")

    app.extensions['supabase_auth'] = AuthClient(base_url, api_key, timeout)
    app.extensions['supabase_storage'] = StorageClient(
        base_url, api_key, timeout)
    app.extensions['status_function'] = StatusFunctionClient(
        base_url, api_key, timeout)


def auth_client():
    return current_app.extensions['supabase_auth']


def storage_client():
    return current_app.extensions['supabase_storage']


def status_function():
    return current_app.extensions['status_function']
