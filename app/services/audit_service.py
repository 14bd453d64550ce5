from flask import has_request_context, request
import logging
import json

logger = logging.getLogger(__name__)
major_logger = logging.getLogger('major_events')
if not major_logger.handlers:
    handler = logging.FileHandler('major_events.log')
    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    major_logger.addHandler(handler)
    major_logger.setLevel(logging.INFO)
    major_logger.propagate = False

# The hosted schema has no audit table; admin actions go to the logs.
MAJOR_ACTION_PREFIXES = (
    'LOGIN',
    'LOGOUT',
    'ORDER_',
    'RETURN_',
    'USER_',
)


def _should_log_major(action: str) -> bool:
    if not action:
        return False
    return action.startswith(MAJOR_ACTION_PREFIXES)


def _payload_brief(payload):
    if payload is None:
        return None
    try:
        brief = json.dumps(
            payload, ensure_ascii=False, separators=(',', ':'), default=str)
    except (TypeError, ValueError):
        return None
    if len(brief) > 600:
        brief = brief[:600] + '...'
    return brief


def log_audit(
        actor_id=None,
        actor_email=None,
        action='',
        target_type=None,
        target_id=None,
        payload=None):
    path = None
    method = None
    ip = None
    if has_request_context():
        path = request.path
        method = request.method
        ip = request.remote_addr

    payload_brief = _payload_brief(payload)

    logger.info(
        "AUDIT action=%s actor_id=%s actor_email=%s target_type=%s "
        "target_id=%s method=%s path=%s ip=%s payload=%s",
        action,
        actor_id,
        actor_email,
        target_type,
        target_id,
        method,
        path,
        ip,
        payload_brief,
    )

    if _should_log_major(action):
        major_logger.info(
            "action=%s actor_id=%s target_type=%s target_id=%s "
            "method=%s path=%s payload=%s",
            action,
            actor_id,
            target_type,
            target_id,
            method,
            path,
            payload_brief,
        )
