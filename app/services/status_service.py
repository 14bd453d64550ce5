"""Order and return status transitions.

Orders are never written here: the remote status function owns the order
row and its notifications. Returns are written first and the remote
function is then called best-effort, so a notification outage never loses
an admin's decision.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import logging

from app.extensions import db
from app.models import Order, OrderStatus, ReturnRequest, ReturnStatus
from app.services.supabase_client import StatusFunctionError

logger = logging.getLogger(__name__)

RETURN_SYNC_WARNING = 'Return updated, but order status sync may have failed.'


# Every status may move to any other one; only re-selecting the current
# status is refused.
ORDER_TRANSITIONS = {
    status: frozenset(s for s in OrderStatus if s != status)
    for status in OrderStatus
}

RETURN_TRANSITIONS = {
    status: frozenset(s for s in ReturnStatus if s != status)
    for status in ReturnStatus
}


class StatusUpdateError(Exception):
    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class StatusUpdateResult:
    record: object
    status: str
    warning: Optional[str] = None


def parse_status(enum_class, raw):
    value = (raw or '').strip().lower()
    try:
        return enum_class(value)
    except ValueError:
        raise StatusUpdateError('Invalid status')


def is_selectable(transitions, current, target):
    """True when ``target`` can be chosen while the record is ``current``."""
    return target in transitions.get(current, frozenset())


def available_statuses(transitions, current):
    return [s.value for s in type(current) if s in transitions[current]]


class StatusCoordinator:

    def __init__(self, status_function):
        self.status_function = status_function

    def update_order_status(self, order_id, status, note=None,
                            access_token=None):
        order = db.session.get(Order, order_id)
        if order is None:
            raise StatusUpdateError('Order not found', 404)

        new_status = parse_status(OrderStatus, status)
        if not is_selectable(ORDER_TRANSITIONS, order.status, new_status):
            raise StatusUpdateError(f'Order is already {new_status.value}')

        if not access_token:
            raise StatusUpdateError(
                'You must be logged in to update order status', 401)

        payload = {
            'order_id': order.id,
            'status': new_status.value,
            'note': note or f'Status updated to {new_status.value} by admin',
        }
        try:
            self.status_function.change_status(access_token, payload)
        except StatusFunctionError as e:
            logger.error("Order status update error for %s: %s", order.id, e)
            raise StatusUpdateError(
                f'Failed to update order status: {e.detail or e}', 502)

        # The remote function persisted the change; read it back.
        db.session.expire(order)
        order = db.session.get(Order, order_id)
        return StatusUpdateResult(
            record=order,
            status=order.status.value if order else new_status.value,
        )

    def update_return_status(self, return_id, status, admin_remark=None,
                             access_token=None):
        return_request = db.session.get(ReturnRequest, return_id)
        if return_request is None:
            raise StatusUpdateError('Return request not found', 404)

        new_status = parse_status(ReturnStatus, status)
        if not is_selectable(
                RETURN_TRANSITIONS, return_request.status, new_status):
            raise StatusUpdateError(
                f'Return is already {new_status.value}')

        if not access_token:
            raise StatusUpdateError(
                'You must be logged in to update return status', 401)

        remark = (admin_remark or '').strip() or None

        return_request.status = new_status
        return_request.admin_remark = remark
        return_request.updated_at = datetime.utcnow()
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        payload = {
            'order_id': return_request.order_id,
            'order_item_id': return_request.order_item_id,
            'status': new_status.value,
            'note': remark or (
                f'Return status updated to {new_status.value} by admin'),
        }
        warning = None
        try:
            self.status_function.change_status(access_token, payload)
        except StatusFunctionError as e:
            logger.error(
                "Failed to trigger order status change for return %s: %s",
                return_request.id,
                e.detail or e,
            )
            warning = RETURN_SYNC_WARNING

        return StatusUpdateResult(
            record=return_request,
            status=new_status.value,
            warning=warning,
        )
