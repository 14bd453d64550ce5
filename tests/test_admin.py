import pytest

from app.extensions import db
from app.models import Profile, Review, ReviewStatus, WishlistItem
from conftest import USERS


@pytest.fixture
def reviews(app, catalog, customer_client):
    customer_id = USERS['customer-token']['id']
    with app.app_context():
        pending = Review(
            product_id=catalog['product_id'],
            user_id=customer_id,
            rating=5,
            comment='Beautiful weave',
        )
        approved = Review(
            product_id=catalog['product_id'],
            user_id=customer_id,
            rating=3,
            comment='Colour was off',
            status=ReviewStatus.APPROVED,
        )
        db.session.add_all([pending, approved])
        db.session.commit()
        return {'pending': pending.id, 'approved': approved.id}


def test_reviews_are_enriched_and_filtered(admin_client, reviews):
    body = admin_client.get('/api/admin/reviews?status=pending').get_json()
    assert body['total'] == 1
    review = body['items'][0]
    assert review['product']['name'] == 'Banarasi Silk Saree'
    assert review['profile']['email'] == 'customer@example.com'

    everything = admin_client.get('/api/admin/reviews').get_json()
    assert everything['total'] == 2

    searched = admin_client.get('/api/admin/reviews?q=colour').get_json()
    assert [r['id'] for r in searched['items']] == [reviews['approved']]

    assert admin_client.get(
        '/api/admin/reviews?status=bogus').status_code == 400


def test_review_moderation(app, admin_client, reviews):
    resp = admin_client.patch(
        f"/api/admin/reviews/{reviews['pending']}/status",
        json={'status': 'approved'})
    assert resp.status_code == 200
    assert resp.get_json()['status'] == 'approved'
    with app.app_context():
        assert db.session.get(Review, reviews['pending']).status == (
            ReviewStatus.APPROVED)

    resp = admin_client.patch(
        f"/api/admin/reviews/{reviews['pending']}/status",
        json={'status': 'pending'})
    assert resp.status_code == 400


def test_users_listing_and_admin_toggle(app, admin_client, customer_client):
    body = admin_client.get('/api/admin/users?q=customer').get_json()
    assert body['total'] == 1
    customer_id = body['items'][0]['id']

    resp = admin_client.patch(
        f'/api/admin/users/{customer_id}/admin', json={'is_admin': True})
    assert resp.get_json() == {'ok': True, 'is_admin': True}
    assert customer_client.get('/api/admin/products').status_code == 200

    owner_id = USERS['admin-token']['id']
    resp = admin_client.patch(
        f'/api/admin/users/{owner_id}/admin', json={'is_admin': False})
    assert resp.status_code == 400
    with app.app_context():
        assert db.session.get(Profile, owner_id).is_admin is True


def test_wishlists(app, admin_client, customer_client, catalog):
    with app.app_context():
        item = WishlistItem(
            user_id=USERS['customer-token']['id'],
            product_id=catalog['product_id'],
        )
        db.session.add(item)
        db.session.commit()
        item_id = item.id

    body = admin_client.get('/api/admin/wishlists?q=saree').get_json()
    assert body['total'] == 1
    assert body['items'][0]['profile']['email'] == 'customer@example.com'

    assert admin_client.delete(
        f'/api/admin/wishlists/{item_id}').status_code == 200
    assert admin_client.get('/api/admin/wishlists').get_json()['total'] == 0


def test_dashboard_counts(admin_client, return_request, reviews):
    body = admin_client.get('/api/admin/dashboard').get_json()
    stats = body['stats']
    assert stats['products'] == 1
    assert stats['categories'] == 1
    assert stats['users'] == 2
    assert stats['orders'] == 1
    assert stats['returns'] == 1
    assert stats['reviews'] == 2
    assert stats['pincodes'] == 0
    assert body['recent']['orders'][0]['order_code'] == 'ORD123'
    assert 'items' not in body['recent']['orders'][0]
