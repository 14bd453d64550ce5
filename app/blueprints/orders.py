from flask import Blueprint, request, jsonify
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from app.extensions import db
from app.models import Order, OrderItem, ReturnRequest
from app.middleware import admin_required
from app.serializers import order_to_dict, return_to_dict
from app.services.audit_service import log_audit
from app.services.flask_session import current_access_token
from app.services.status_service import StatusCoordinator, StatusUpdateError
from app.services.supabase_client import status_function
from app.utils import matches, search_term, storage_error_response
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('orders', __name__)


def _coordinator():
    return StatusCoordinator(status_function())


@bp.route('/api/admin/orders', methods=['GET'])
@admin_required
def list_orders():
    term = search_term()
    status = (request.args.get('status') or '').strip().lower()

    orders = Order.query.options(
        selectinload(Order.items).selectinload(OrderItem.product)
    ).order_by(Order.created_at.desc()).all()

    items = [
        order_to_dict(o) for o in orders
        if matches(term, o.name, o.order_code, o.id)
        and (not status or o.status.value == status)
    ]
    return jsonify({'items': items, 'total': len(items)})


@bp.route('/api/admin/orders/<order_id>', methods=['GET'])
@admin_required
def get_order(order_id):
    order = db.session.get(Order, order_id)
    if order is None:
        return jsonify({'error': 'Order not found'}), 404
    return jsonify(order_to_dict(order))


@bp.route('/api/admin/orders/<order_id>/status', methods=['POST', 'PATCH'])
@admin_required
def update_order_status(order_id):
    data = request.get_json(silent=True) or {}
    note = (data.get('note') or '').strip() or None

    try:
        result = _coordinator().update_order_status(
            order_id,
            data.get('status'),
            note=note,
            access_token=current_access_token(),
        )
    except StatusUpdateError as e:
        return jsonify({'error': e.message}), e.status_code

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action='ORDER_STATUS_UPDATE',
        target_type='ORDER',
        target_id=order_id,
        payload={'to': result.status, 'note': note}
    )

    return jsonify({
        'ok': True,
        'status': result.status,
        'message': f'Order status updated to {result.status}',
        'order': order_to_dict(result.record) if result.record else None,
    })


@bp.route('/api/admin/returns', methods=['GET'])
@admin_required
def list_returns():
    term = search_term()
    status = (request.args.get('status') or '').strip().lower()

    rows = ReturnRequest.query.order_by(
        ReturnRequest.requested_at.desc()).all()
    items = [
        return_to_dict(r) for r in rows
        if matches(term, r.id, r.order_id, r.reason, r.reason_type)
        and (not status or r.status.value == status)
    ]
    return jsonify({'items': items, 'total': len(items)})


@bp.route('/api/admin/returns/<return_id>', methods=['GET'])
@admin_required
def get_return(return_id):
    return_request = db.session.get(ReturnRequest, return_id)
    if return_request is None:
        return jsonify({'error': 'Return request not found'}), 404

    data = return_to_dict(return_request)
    # Order details are optional: the return is still shown without them.
    order = db.session.get(Order, return_request.order_id)
    if order is None:
        logger.error(
            "Order %s of return %s not found",
            return_request.order_id,
            return_request.id,
        )
    data['order_details'] = order_to_dict(order) if order else None
    return jsonify(data)


@bp.route('/api/admin/returns/<return_id>/status', methods=['POST', 'PATCH'])
@admin_required
def update_return_status(return_id):
    data = request.get_json(silent=True) or {}
    remark = data.get('admin_remark')

    try:
        result = _coordinator().update_return_status(
            return_id,
            data.get('status'),
            admin_remark=remark,
            access_token=current_access_token(),
        )
    except StatusUpdateError as e:
        return jsonify({'error': e.message}), e.status_code
    except SQLAlchemyError as e:
        return storage_error_response(e, 'Error updating status')

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action='RETURN_STATUS_UPDATE',
        target_type='RETURN',
        target_id=return_id,
        payload={'to': result.status, 'synced': result.warning is None}
    )

    body = {
        'ok': True,
        'status': result.status,
        'return': return_to_dict(result.record),
    }
    if result.warning:
        body['warning'] = result.warning
    else:
        body['message'] = f'Return request updated to {result.status}'
    return jsonify(body)
