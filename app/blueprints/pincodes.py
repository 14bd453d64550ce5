from flask import Blueprint, request, jsonify
from flask_login import current_user
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from app.extensions import db
from app.models import ServiceablePincode
from app.middleware import admin_required
from app.serializers import pincode_to_dict
from app.services.audit_service import log_audit
from app.utils import (
    UNIQUE_VIOLATION,
    constraint_code,
    matches,
    parse_bool,
    search_term,
    storage_error_response,
)
import logging
import re

logger = logging.getLogger(__name__)

bp = Blueprint('pincodes', __name__)

DUPLICATE_PINCODE = 'This pincode is already in the list'


def _clean_pincode(value):
    # Non-digits are dropped and the code is capped at 6 digits.
    return re.sub(r'\D', '', str(value or ''))[:6]


def _apply_pincode(pincode, data, creating):
    if creating or 'pincode' in data:
        code = _clean_pincode(data.get('pincode'))
        if len(code) != 6:
            raise ValueError('Pincode must be 6 digits')
        pincode.pincode = code
    for field in ('city', 'state'):
        if creating or field in data:
            value = (data.get(field) or '').strip()
            if not value:
                raise ValueError(f'{field.capitalize()} is required')
            setattr(pincode, field, value)
    if 'is_active' in data:
        pincode.is_active = parse_bool(data.get('is_active'), True)


def _commit(default_message):
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if constraint_code(e) == UNIQUE_VIOLATION:
            return jsonify({'error': DUPLICATE_PINCODE}), 409
        return storage_error_response(e, default_message)
    except SQLAlchemyError as e:
        db.session.rollback()
        return storage_error_response(e, default_message)
    return None


@bp.route('/api/admin/pincodes', methods=['GET'])
@admin_required
def list_pincodes():
    term = search_term()
    rows = ServiceablePincode.query.order_by(
        ServiceablePincode.created_at.desc()).all()
    items = [
        pincode_to_dict(p) for p in rows
        if matches(term, p.pincode, p.city, p.state)
    ]
    return jsonify({'items': items, 'total': len(items)})


@bp.route('/api/admin/pincodes', methods=['POST'])
@admin_required
def create_pincode():
    data = request.get_json(silent=True) or {}
    pincode = ServiceablePincode(is_active=True)
    try:
        _apply_pincode(pincode, data, creating=True)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    db.session.add(pincode)
    failure = _commit('An error occurred')
    if failure:
        return failure

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action='PINCODE_CREATE',
        target_type='PINCODE',
        target_id=pincode.id,
        payload={'pincode': pincode.pincode}
    )
    return jsonify({
        'ok': True,
        'message': 'Pincode added successfully',
        'pincode': pincode_to_dict(pincode),
    }), 201


@bp.route('/api/admin/pincodes/<pincode_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_pincode(pincode_id):
    pincode = db.session.get(ServiceablePincode, pincode_id)
    if pincode is None:
        return jsonify({'error': 'Pincode not found'}), 404

    data = request.get_json(silent=True) or {}
    try:
        _apply_pincode(pincode, data, creating=False)
    except ValueError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400

    failure = _commit('An error occurred')
    if failure:
        return failure
    return jsonify({
        'ok': True,
        'message': 'Pincode updated successfully',
        'pincode': pincode_to_dict(pincode),
    })


@bp.route('/api/admin/pincodes/<pincode_id>', methods=['DELETE'])
@admin_required
def delete_pincode(pincode_id):
    pincode = db.session.get(ServiceablePincode, pincode_id)
    if pincode is None:
        return jsonify({'error': 'Pincode not found'}), 404

    db.session.delete(pincode)
    failure = _commit('Error deleting pincode')
    if failure:
        return failure

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action='PINCODE_DELETE',
        target_type='PINCODE',
        target_id=pincode_id,
    )
    return jsonify({'ok': True})
