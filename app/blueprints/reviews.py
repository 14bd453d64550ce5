import logging
from datetime import datetime

from flask import Blueprint, request, jsonify
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from app.extensions import db
from app.middleware import admin_required
from app.models import Product, Profile, Review, ReviewStatus
from app.serializers import review_to_dict
from app.services.audit_service import log_audit
from app.utils import matches, search_term, storage_error_response

logger = logging.getLogger(__name__)
bp = Blueprint('reviews', __name__)

MODERATION_STATUSES = (ReviewStatus.APPROVED, ReviewStatus.REJECTED)


@bp.route('/api/admin/reviews', methods=['GET'])
@admin_required
def list_reviews():
    status_filter = (request.args.get('status') or 'all').strip().lower()
    term = search_term()

    query = Review.query
    if status_filter != 'all':
        try:
            query = query.filter(Review.status == ReviewStatus(status_filter))
        except ValueError:
            return jsonify({'error': 'Invalid status filter'}), 400

    reviews = query.order_by(Review.created_at.desc()).all()
    if not reviews:
        return jsonify({'items': [], 'total': 0})

    # Enrich with products and reviewers in two batched lookups.
    product_ids = {r.product_id for r in reviews}
    user_ids = {r.user_id for r in reviews}
    products = {
        p.id: p for p in Product.query.filter(Product.id.in_(product_ids))
    }
    profiles = {
        p.id: p for p in Profile.query.filter(Profile.id.in_(user_ids))
    }

    items = []
    for r in reviews:
        product = products.get(r.product_id)
        profile = profiles.get(r.user_id)
        if not matches(
                term,
                r.comment,
                product.name if product else None,
                profile.full_name if profile else None,
                profile.email if profile else None):
            continue
        items.append(review_to_dict(r, product, profile))

    return jsonify({'items': items, 'total': len(items)})


@bp.route('/api/admin/reviews/<review_id>/status', methods=['POST', 'PATCH'])
@admin_required
def update_review_status(review_id):
    review = db.session.get(Review, review_id)
    if review is None:
        return jsonify({'error': 'Review not found'}), 404

    data = request.get_json(silent=True) or {}
    try:
        new_status = ReviewStatus((data.get('status') or '').strip().lower())
    except ValueError:
        new_status = None
    if new_status not in MODERATION_STATUSES:
        return jsonify(
            {'error': 'Status must be approved or rejected'}), 400
    if review.status == new_status:
        return jsonify({'error': f'Review is already {new_status.value}'}), 400

    review.status = new_status
    review.updated_at = datetime.utcnow()
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        return storage_error_response(e, 'Error updating review status')

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action=f'REVIEW_{new_status.value.upper()}',
        target_type='REVIEW',
        target_id=review.id,
    )

    return jsonify({
        'ok': True,
        'status': new_status.value,
        'message': f'Review {new_status.value} successfully',
    })
