from flask import g, request

from logbridge.models.user import User


def _bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def set_user_context():
    """Resolve the API token on the request to a user document"""
    token = _bearer_token()
    g.user = User.get_by_api_token(token) if token else None
