from decimal import Decimal

import pytest

from app import create_app
from app.config import TestingConfig
from app.extensions import db
from app.models import (
    Category,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ReturnRequest,
    ReturnStatus,
)
from app.services.supabase_client import (
    AuthError,
    StatusFunctionError,
    StorageError,
)

USERS = {
    'admin-token': {
        'id': '11111111-1111-1111-1111-111111111111',
        'email': 'owner@example.com',
        'user_metadata': {
            'full_name': 'Shop Owner',
            'avatar_url': 'https://example.com/owner.png',
        },
        'app_metadata': {'provider': 'google'},
    },
    'customer-token': {
        'id': '22222222-2222-2222-2222-222222222222',
        'email': 'customer@example.com',
        'user_metadata': {},
        'app_metadata': {'provider': 'google'},
    },
}


class FakeAuthClient:

    def __init__(self, users):
        self.users = users
        self.signed_out = []

    def authorize_url(self, provider, redirect_to):
        return (
            'https://project.supabase.test/auth/v1/authorize'
            f'?provider={provider}&redirect_to={redirect_to}'
        )

    def get_user(self, access_token):
        if access_token not in self.users:
            raise AuthError('Session is invalid or expired', status_code=401)
        return self.users[access_token]

    def sign_out(self, access_token):
        self.signed_out.append(access_token)


class FakeStorageClient:

    def __init__(self):
        self.uploads = []
        self.fail = False

    def upload(self, bucket, path, data, content_type='image/jpeg',
               access_token=None):
        if self.fail:
            raise StorageError('Upload failed: bucket not found', 404)
        self.uploads.append((bucket, path, len(data), access_token))
        return f'https://project.supabase.test/storage/v1/object/public/' \
               f'{bucket}/{path}'


class FakeStatusFunction:
    """Records calls and applies order statuses like the hosted function."""

    def __init__(self):
        self.calls = []
        self.fail = False

    def change_status(self, access_token, payload):
        self.calls.append((access_token, payload))
        if self.fail:
            raise StatusFunctionError(
                'Edge function crashed', 500, 'Edge function crashed')
        if 'order_item_id' not in payload:
            order = db.session.get(Order, payload['order_id'])
            order.status = OrderStatus(payload['status'])
            db.session.commit()
        return {'success': True}


@pytest.fixture
def app(tmp_path):
    # File-backed so the dashboard's worker threads see the same data.
    class Config(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{tmp_path / "test.db"}'

    app = create_app(Config)
    app.extensions['supabase_auth'] = FakeAuthClient(USERS)
    app.extensions['supabase_storage'] = FakeStorageClient()
    app.extensions['status_function'] = FakeStatusFunction()

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_api(app):
    return app.extensions['supabase_auth']


@pytest.fixture
def status_api(app):
    return app.extensions['status_function']


@pytest.fixture
def storage_api(app):
    return app.extensions['supabase_storage']


def sign_in(client, token, event='SIGNED_IN'):
    return client.post('/api/auth/session', json={
        'event': event,
        'access_token': token,
        'refresh_token': 'refresh-' + token,
    })


@pytest.fixture
def admin_client(client):
    resp = sign_in(client, 'admin-token')
    assert resp.status_code == 200
    assert resp.get_json()['is_admin'] is True
    return client


@pytest.fixture
def customer_client(app, admin_client):
    # The owner signs in first so the customer is not bootstrapped as admin.
    other = app.test_client()
    resp = sign_in(other, 'customer-token')
    assert resp.status_code == 200
    assert resp.get_json()['is_admin'] is False
    return other


@pytest.fixture
def catalog(app):
    with app.app_context():
        category = Category(name='Sarees', slug='sarees', sort_order=1)
        db.session.add(category)
        db.session.flush()
        product = Product(
            name='Banarasi Silk Saree',
            slug='banarasi-silk-saree',
            price=Decimal('4999.00'),
            stock=10,
            category_id=category.id,
            images=[],
            sizes=['Free Size'],
        )
        db.session.add(product)
        db.session.commit()
        return {'category_id': category.id, 'product_id': product.id}


@pytest.fixture
def order(app, catalog):
    with app.app_context():
        order = Order(
            order_code='ORD123',
            user_id=USERS['customer-token']['id'],
            name='Priya Sharma',
            phone='9876543210',
            address='12 MG Road, Bengaluru',
            amount=Decimal('4999.00'),
            status=OrderStatus.PENDING,
            payment_method='cod',
        )
        order.items.append(OrderItem(
            product_id=catalog['product_id'],
            quantity=1,
            price=Decimal('4999.00'),
            size='Free Size',
        ))
        db.session.add(order)
        db.session.commit()
        return {'order_id': order.id, 'order_item_id': order.items[0].id}


@pytest.fixture
def return_request(app, order):
    with app.app_context():
        rr = ReturnRequest(
            order_id=order['order_id'],
            order_item_id=order['order_item_id'],
            user_id=USERS['customer-token']['id'],
            reason_type='damaged',
            reason='Torn pallu',
            status=ReturnStatus.REQUESTED,
        )
        db.session.add(rr)
        db.session.commit()
        return {'return_id': rr.id, **order}
