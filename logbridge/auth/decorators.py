from functools import wraps
from flask import g

from logbridge.errors import NotAuthenticatedError, PermissionDeniedError
from logbridge.models.user import User


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not getattr(g, 'user', None):
            raise NotAuthenticatedError('A valid API token is required.')
        return f(*args, **kwargs)
    return decorated_function


def permission_required(*permissions):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            missing = [p for p in permissions if not User.has_permission(g.user, p)]
            if missing:
                raise PermissionDeniedError(f'Access denied. Required permission: {", ".join(missing)}')
            return f(*args, **kwargs)
        return decorated_function
    return decorator
