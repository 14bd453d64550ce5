import json

import pytest
import requests

from app.services.supabase_client import (
    AuthClient,
    AuthError,
    StatusFunctionClient,
    StatusFunctionError,
    StorageClient,
    StorageError,
)

BASE_URL = 'https://project.supabase.test'


def _response(status_code, body=None):
    resp = requests.Response()
    resp.status_code = status_code
    if body is None:
        resp._content = b''
    elif isinstance(body, (dict, list)):
        resp._content = json.dumps(body).encode()
    else:
        resp._content = body.encode()
    resp.encoding = 'utf-8'
    return resp


class StubHTTP:
    """Stands in for ``requests.Session``; records each call."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def _call(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        return self._call('GET', url, **kwargs)

    def post(self, url, **kwargs):
        return self._call('POST', url, **kwargs)


def test_status_function_posts_payload_with_bearer_token():
    http = StubHTTP(_response(200, {'success': True}))
    client = StatusFunctionClient(
        BASE_URL + '/', 'anon-key', timeout=7, session=http)
    payload = {'order_id': 'ORD123', 'status': 'delivered', 'note': 'ok'}

    assert client.change_status('user-token', payload) == {'success': True}

    method, url, kwargs = http.calls[0]
    assert method == 'POST'
    assert url == BASE_URL + '/functions/v1/order-status-change'
    assert kwargs['json'] == payload
    assert kwargs['timeout'] == 7
    assert kwargs['headers']['Authorization'] == 'Bearer user-token'
    assert kwargs['headers']['apikey'] == 'anon-key'
    assert kwargs['headers']['Content-Type'] == 'application/json'


def test_status_function_non_2xx_keeps_body_as_detail():
    http = StubHTTP(_response(500, 'Order not found in shipment table'))
    client = StatusFunctionClient(BASE_URL, 'anon-key', session=http)

    with pytest.raises(StatusFunctionError) as exc:
        client.change_status('user-token', {'order_id': 'x'})

    assert exc.value.status_code == 500
    assert exc.value.detail == 'Order not found in shipment table'
    assert str(exc.value) == 'Order not found in shipment table'


def test_status_function_transport_failure():
    http = StubHTTP(error=requests.exceptions.ConnectionError('refused'))
    client = StatusFunctionClient(BASE_URL, 'anon-key', session=http)

    with pytest.raises(StatusFunctionError) as exc:
        client.change_status('user-token', {'order_id': 'x'})

    assert exc.value.status_code is None
    assert 'refused' in exc.value.detail


def test_status_function_empty_body_is_success():
    http = StubHTTP(_response(204))
    client = StatusFunctionClient(BASE_URL, 'anon-key', session=http)
    assert client.change_status('user-token', {}) == {}


def test_get_user_returns_profile_json():
    user = {'id': 'u1', 'email': 'owner@example.com'}
    http = StubHTTP(_response(200, user))
    client = AuthClient(BASE_URL, 'anon-key', session=http)

    assert client.get_user('user-token') == user
    method, url, kwargs = http.calls[0]
    assert (method, url) == ('GET', BASE_URL + '/auth/v1/user')
    assert kwargs['headers']['Authorization'] == 'Bearer user-token'


def test_get_user_errors():
    client = AuthClient(BASE_URL, 'anon-key', session=StubHTTP())
    with pytest.raises(AuthError):
        client.get_user(None)
    assert client.http.calls == []

    client.http.response = _response(401, '{"msg":"JWT expired"}')
    with pytest.raises(AuthError) as exc:
        client.get_user('expired')
    assert exc.value.status_code == 401

    client.http.error = requests.exceptions.Timeout('slow')
    with pytest.raises(AuthError):
        client.get_user('user-token')


@pytest.mark.parametrize('status_code', [200, 204, 401])
def test_sign_out_accepts_revoked_tokens(status_code):
    http = StubHTTP(_response(status_code))
    client = AuthClient(BASE_URL, 'anon-key', session=http)

    client.sign_out('user-token')

    method, url, _ = http.calls[0]
    assert (method, url) == ('POST', BASE_URL + '/auth/v1/logout')


def test_sign_out_failure_and_missing_token():
    http = StubHTTP(_response(500, 'boom'))
    client = AuthClient(BASE_URL, 'anon-key', session=http)

    client.sign_out(None)
    assert http.calls == []

    with pytest.raises(AuthError):
        client.sign_out('user-token')


def test_authorize_url():
    client = AuthClient(BASE_URL, 'anon-key', session=StubHTTP())
    url = client.authorize_url('google', 'https://admin.example.com/')
    assert url == (
        BASE_URL + '/auth/v1/authorize?provider=google'
        '&redirect_to=https%3A%2F%2Fadmin.example.com%2F'
    )


def test_storage_upload_returns_public_url():
    http = StubHTTP(_response(200, {'Key': 'products/abc.jpg'}))
    client = StorageClient(BASE_URL, 'anon-key', session=http)

    url = client.upload(
        'products', 'abc.jpg', b'jpeg-bytes', access_token='user-token')

    assert url == BASE_URL + '/storage/v1/object/public/products/abc.jpg'
    method, post_url, kwargs = http.calls[0]
    assert post_url == BASE_URL + '/storage/v1/object/products/abc.jpg'
    assert kwargs['data'] == b'jpeg-bytes'
    assert kwargs['headers']['Content-Type'] == 'image/jpeg'
    assert kwargs['headers']['Authorization'] == 'Bearer user-token'


def test_storage_upload_without_token_uses_api_key():
    http = StubHTTP(_response(200, {}))
    client = StorageClient(BASE_URL, 'anon-key', session=http)
    client.upload('banners', 'x.jpg', b'x')
    assert http.calls[0][2]['headers']['Authorization'] == 'Bearer anon-key'


def test_storage_upload_errors():
    http = StubHTTP(_response(400, 'Bucket not found'))
    client = StorageClient(BASE_URL, 'anon-key', session=http)
    with pytest.raises(StorageError) as exc:
        client.upload('missing', 'x.jpg', b'x')
    assert exc.value.status_code == 400
    assert exc.value.detail == 'Bucket not found'

    http.error = requests.exceptions.ConnectionError('down')
    with pytest.raises(StorageError):
        client.upload('products', 'x.jpg', b'x')


def test_public_url_quotes_path():
    client = StorageClient(BASE_URL, 'anon-key', session=StubHTTP())
    assert client.public_url('products', 'a b.jpg') == (
        BASE_URL + '/storage/v1/object/public/products/a%20b.jpg')
