# logbridge/audit.py

import logging
from datetime import datetime, timezone
from functools import wraps
from typing import Optional, Dict, Any

from flask import g, request
from pymongo.errors import PyMongoError

from logbridge.extensions import mongo

audit_logger = logging.getLogger('logbridge.audit')

MESSAGE_INPUT_CREATE = 'message_input:create'


def record_audit_event(
    event_type: str,
    success: bool,
    status_code: int,
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Write an audit entry to the audit log and, when configured, MongoDB.

    Only request metadata is recorded, never the request body.
    """
    user = getattr(g, 'user', None) or {}
    entry = {
        "event_type": event_type,
        "actor": user.get("username"),
        "method": request.method,
        "path": request.path,
        "remote_addr": request.remote_addr,
        "success": success,
        "status_code": status_code,
        "timestamp": datetime.now(timezone.utc),
        "details": dict(details or {})
    }

    audit_logger.info(
        f"{event_type} by {entry['actor']} on {entry['method']} {entry['path']}: "
        f"{'success' if success else 'failure'} ({status_code})"
    )

    if mongo.db is not None:
        try:
            mongo.db.audit_logs.insert_one(dict(entry))
        except PyMongoError as e:
            audit_logger.error(f"Error writing audit entry for {event_type}: {str(e)}")

    return entry


def audit_event(event_type: str):
    """Record the outcome of the wrapped view as an audit entry"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                response, status_code = f(*args, **kwargs)
            except Exception as e:
                record_audit_event(event_type, False, getattr(e, 'status_code', 500),
                                   {"error_type": type(e).__name__})
                raise
            details = {}
            if isinstance(response, dict) and response.get('id'):
                details["object_id"] = response['id']
            record_audit_event(event_type, True, status_code, details)
            return response, status_code
        return decorated_function
    return decorator
