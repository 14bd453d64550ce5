from flask import Blueprint, request, jsonify
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
from app.extensions import db
from app.models import Profile, WishlistItem
from app.middleware import admin_required
from app.serializers import profile_to_dict, wishlist_item_to_dict
from app.services.audit_service import log_audit
from app.services.dashboard_service import get_dashboard_stats
from app.utils import matches, search_term, storage_error_response
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('admin', __name__)


@bp.route('/', methods=['GET'])
@bp.route('/api/admin/dashboard', methods=['GET'])
@admin_required
def dashboard():
    try:
        data = get_dashboard_stats()
    except SQLAlchemyError as e:
        return storage_error_response(e, 'Failed to load dashboard')
    return jsonify(data)


@bp.route('/api/admin/users', methods=['GET'])
@admin_required
def list_users():
    term = search_term()
    profiles = Profile.query.order_by(Profile.created_at.desc()).all()
    items = [
        profile_to_dict(p) for p in profiles
        if matches(term, p.full_name, p.email)
    ]
    return jsonify({'items': items, 'total': len(items)})


@bp.route('/api/admin/users/<user_id>/admin', methods=['PATCH'])
@admin_required
def update_admin_flag(user_id):
    if user_id == current_user.id:
        return jsonify(
            {'error': 'You cannot change your own admin status'}), 400

    profile = db.session.get(Profile, user_id)
    if profile is None:
        return jsonify({'error': 'User not found'}), 404

    data = request.get_json(silent=True) or {}
    if 'is_admin' not in data:
        return jsonify({'error': 'is_admin is required'}), 400

    profile.is_admin = bool(data.get('is_admin'))
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        return storage_error_response(e, 'Error updating user')

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action='USER_ADMIN_TOGGLE',
        target_type='PROFILE',
        target_id=profile.id,
        payload={'is_admin': profile.is_admin}
    )

    return jsonify({'ok': True, 'is_admin': profile.is_admin})


@bp.route('/api/admin/wishlists', methods=['GET'])
@admin_required
def list_wishlists():
    term = search_term()
    rows = WishlistItem.query.order_by(WishlistItem.created_at.desc()).all()
    items = []
    for w in rows:
        profile_name = w.profile.full_name if w.profile else None
        profile_email = w.profile.email if w.profile else None
        product_name = w.product.name if w.product else None
        if matches(term, profile_name, profile_email, product_name):
            items.append(wishlist_item_to_dict(w))
    return jsonify({'items': items, 'total': len(items)})


@bp.route('/api/admin/wishlists/<item_id>', methods=['DELETE'])
@admin_required
def delete_wishlist_item(item_id):
    item = db.session.get(WishlistItem, item_id)
    if item is None:
        return jsonify({'error': 'Wishlist item not found'}), 404

    db.session.delete(item)
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        return storage_error_response(e, 'Error removing item')

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action='WISHLIST_ITEM_DELETE',
        target_type='WISHLIST',
        target_id=item_id,
    )
    return jsonify({'ok': True})
