# logbridge/models/user.py

import hashlib
import secrets
import uuid
from datetime import datetime, timezone

from logbridge.extensions import mongo


def hash_token(token):
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


class User:
    @staticmethod
    def create(username, permissions):
        """Create an API user and return (uuid, plain token). Only the hash is stored."""
        token = secrets.token_urlsafe(32)
        user = {
            "uuid": str(uuid.uuid4()),
            "username": username,
            "permissions": list(permissions),
            "api_token_hash": hash_token(token),
            "created_at": datetime.now(timezone.utc),
            "status": "active"
        }
        mongo.db.users.insert_one(user)
        return user["uuid"], token

    @staticmethod
    def get_by_api_token(token):
        if not token or mongo.db is None:
            return None
        return mongo.db.users.find_one(
            {"api_token_hash": hash_token(token), "status": "active"},
            {"_id": 0, "api_token_hash": 0}
        )

    @staticmethod
    def get_by_username(username):
        return mongo.db.users.find_one({"username": username}, {"_id": 0, "api_token_hash": 0})

    @staticmethod
    def has_permission(user, permission):
        if not user:
            return False
        granted = user.get("permissions", [])
        return "*" in granted or permission in granted
