from flask import Blueprint, request, jsonify
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
from app.extensions import db
from app.models import Banner
from app.middleware import admin_required
from app.serializers import banner_to_dict
from app.services.audit_service import log_audit
from app.utils import parse_bool, parse_datetime, storage_error_response
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('banners', __name__)

OPTIONAL_TEXT_FIELDS = (
    'subtitle',
    'mobile_image_url',
    'cta_text',
    'cta_link',
)


def _apply_banner(banner, data, creating):
    if creating or 'title' in data:
        title = (data.get('title') or '').strip()
        if not title:
            raise ValueError('Title is required')
        banner.title = title
    if creating or 'image_url' in data:
        image_url = (data.get('image_url') or '').strip()
        if not image_url:
            raise ValueError('Desktop image is required')
        banner.image_url = image_url
    for field in OPTIONAL_TEXT_FIELDS:
        if field in data:
            setattr(banner, field, (data.get(field) or '').strip() or None)
    if 'position' in data:
        position = data.get('position')
        try:
            banner.position = 1 if position in (None, '') else int(position)
        except (TypeError, ValueError):
            raise ValueError('Position must be a number')
    if 'is_active' in data:
        banner.is_active = parse_bool(data.get('is_active'), True)
    # Blank dates clear the schedule.
    if 'start_date' in data:
        banner.start_date = parse_datetime(data.get('start_date'))
    if 'end_date' in data:
        banner.end_date = parse_datetime(data.get('end_date'))
    if banner.start_date and banner.end_date and (
            banner.end_date < banner.start_date):
        raise ValueError('End date must be after start date')
    banner.updated_at = datetime.utcnow()


def _save(default_message):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        return storage_error_response(e, default_message)
    return None


@bp.route('/api/admin/banners', methods=['GET'])
@admin_required
def list_banners():
    banners = Banner.query.order_by(Banner.position.asc()).all()
    return jsonify({'items': [banner_to_dict(b) for b in banners]})


@bp.route('/api/admin/banners', methods=['POST'])
@admin_required
def create_banner():
    data = request.get_json(silent=True) or {}
    banner = Banner(position=1, is_active=True, created_at=datetime.utcnow())
    try:
        _apply_banner(banner, data, creating=True)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    db.session.add(banner)
    failure = _save('Error saving banner')
    if failure:
        return failure

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action='BANNER_CREATE',
        target_type='BANNER',
        target_id=banner.id,
    )
    return jsonify({'ok': True, 'banner': banner_to_dict(banner)}), 201


@bp.route('/api/admin/banners/<banner_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_banner(banner_id):
    banner = db.session.get(Banner, banner_id)
    if banner is None:
        return jsonify({'error': 'Banner not found'}), 404

    data = request.get_json(silent=True) or {}
    try:
        _apply_banner(banner, data, creating=False)
    except ValueError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400

    failure = _save('Error saving banner')
    if failure:
        return failure
    return jsonify({'ok': True, 'banner': banner_to_dict(banner)})


@bp.route('/api/admin/banners/<banner_id>/toggle', methods=['POST'])
@admin_required
def toggle_banner(banner_id):
    banner = db.session.get(Banner, banner_id)
    if banner is None:
        return jsonify({'error': 'Banner not found'}), 404

    banner.is_active = not banner.is_active
    banner.updated_at = datetime.utcnow()
    failure = _save('Error updating status')
    if failure:
        return failure
    return jsonify({'ok': True, 'is_active': banner.is_active})


@bp.route('/api/admin/banners/<banner_id>', methods=['DELETE'])
@admin_required
def delete_banner(banner_id):
    banner = db.session.get(Banner, banner_id)
    if banner is None:
        return jsonify({'error': 'Banner not found'}), 404

    db.session.delete(banner)
    failure = _save('Error deleting banner')
    if failure:
        return failure

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action='BANNER_DELETE',
        target_type='BANNER',
        target_id=banner_id,
    )
    return jsonify({'ok': True})
