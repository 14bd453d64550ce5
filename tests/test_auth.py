from app.extensions import db
from app.models import Profile
from conftest import USERS, sign_in


def test_api_requires_login(client):
    resp = client.get('/api/admin/orders')
    assert resp.status_code == 401
    assert resp.get_json() == {
        'error': 'Not logged in',
        'login_required': True,
    }


def test_pages_redirect_to_login(client):
    resp = client.get('/')
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/login')


def test_login_returns_provider_url(client):
    resp = client.get('/login', headers={'Accept': 'application/json'})
    assert resp.status_code == 200
    url = resp.get_json()['authorize_url']
    assert 'provider=google' in url
    assert 'redirect_to=http://localhost:5000/' in url


def test_login_redirects_to_provider(client):
    resp = client.get('/login')
    assert resp.status_code == 302
    assert '/auth/v1/authorize' in resp.headers['Location']


def test_first_sign_in_bootstraps_admin(admin_client):
    resp = admin_client.get('/api/auth/session')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['phase'] == 'RESOLVED'
    assert body['is_admin'] is True
    assert body['loading'] is False
    assert body['user']['email'] == 'owner@example.com'

    resp = admin_client.get('/login')
    assert resp.status_code == 302
    assert 'authorize' not in resp.headers['Location']


def test_non_admin_is_denied(customer_client):
    resp = customer_client.get('/api/admin/products')
    assert resp.status_code == 403
    body = resp.get_json()
    assert body['error'] == 'Access denied'
    assert body['email'] == 'customer@example.com'
    assert 'admin privileges' in body['message']

    resp = customer_client.get('/login')
    assert resp.status_code == 403


def test_bad_token_is_rejected(client):
    resp = sign_in(client, 'expired-token')
    assert resp.status_code == 401
    body = resp.get_json()
    assert body['user'] is None
    assert body['is_admin'] is False
    assert 'error' in body

    assert client.get('/api/admin/orders').status_code == 401


def test_signed_out_event_clears_session(admin_client):
    resp = admin_client.post(
        '/api/auth/session', json={'event': 'SIGNED_OUT'})
    assert resp.status_code == 200
    assert resp.get_json()['user'] is None
    assert admin_client.get('/api/admin/orders').status_code == 401


def test_unknown_event_is_rejected(client):
    resp = client.post('/api/auth/session', json={'event': 'HACKED'})
    assert resp.status_code == 400


def test_logout_signs_out_with_provider(admin_client, auth_api):
    resp = admin_client.post('/api/auth/logout')
    assert resp.status_code == 200
    assert resp.get_json() == {'ok': True, 'login_url': '/login'}
    assert auth_api.signed_out == ['admin-token']

    assert admin_client.get('/api/admin/orders').status_code == 401
    state = admin_client.get('/api/auth/session').get_json()
    assert state['user'] is None


def test_revoked_admin_loses_access_on_next_request(app, admin_client):
    owner_id = USERS['admin-token']['id']
    with app.app_context():
        db.session.get(Profile, owner_id).is_admin = False
        db.session.commit()

    assert admin_client.get('/api/admin/orders').status_code == 403
    state = admin_client.get('/api/auth/session').get_json()
    assert state['is_admin'] is False


def test_lost_session_cookie_requires_sign_in_again(admin_client):
    admin_client.delete_cookie('session')

    assert admin_client.get_cookie('remember_token') is None
    assert admin_client.get('/api/admin/orders').status_code == 401


def test_login_without_provider_tokens_is_signed_out(admin_client):
    with admin_client.session_transaction() as sess:
        sess.pop('auth_tokens')

    resp = admin_client.get('/api/admin/orders')
    assert resp.status_code == 401
    assert resp.get_json()['login_required'] is True

    with admin_client.session_transaction() as sess:
        assert '_user_id' not in sess
