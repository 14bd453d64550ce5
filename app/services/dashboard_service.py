from concurrent.futures import ThreadPoolExecutor
import logging

from flask import current_app

from app.models import (
    Category,
    Order,
    Product,
    Profile,
    ReturnRequest,
    Review,
    ServiceablePincode,
)
from app.serializers import (
    order_to_dict,
    pincode_to_dict,
    return_to_dict,
    review_to_dict,
)

logger = logging.getLogger(__name__)


def _count(model):
    def query():
        return model.query.count()
    return query


def _recent(model, column, serialize, limit):
    def query():
        rows = model.query.order_by(column.desc()).limit(limit).all()
        return {
            'count': model.query.count(),
            'items': [serialize(r) for r in rows],
        }
    return query


def _run_in_context(app, fn):
    # Each worker gets its own app context and therefore its own session.
    with app.app_context():
        return fn()


def get_dashboard_stats(limit=None):
    """Counts and recent rows for the dashboard, queried concurrently."""
    app = current_app._get_current_object()
    limit = limit or app.config.get('DASHBOARD_RECENT_LIMIT', 5)

    queries = {
        'products': _count(Product),
        'categories': _count(Category),
        'users': _count(Profile),
        'orders': _recent(
            Order, Order.created_at,
            lambda o: order_to_dict(o, with_items=False), limit),
        'reviews': _recent(Review, Review.created_at, review_to_dict, limit),
        'returns': _recent(
            ReturnRequest, ReturnRequest.requested_at, return_to_dict, limit),
        'pincodes': _recent(
            ServiceablePincode, ServiceablePincode.created_at,
            pincode_to_dict, limit),
    }

    workers = app.config.get('DASHBOARD_WORKERS', len(queries))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {
            name: pool.submit(_run_in_context, app, fn)
            for name, fn in queries.items()
        }
        results = {name: f.result() for name, f in futures.items()}

    stats = {}
    recent = {}
    for name, value in results.items():
        if isinstance(value, dict):
            stats[name] = value['count']
            recent[name] = value['items']
        else:
            stats[name] = value

    logger.info("Dashboard stats loaded: %s", stats)
    return {'stats': stats, 'recent': recent}
