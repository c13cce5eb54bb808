"""Decorators for the auth blueprint."""

from functools import wraps

from firebase_admin import auth
from flask import current_app, g, request

from loglynx.errors import ForbiddenError, UnauthorizedError


def get_bearer_token():
    """Return the bearer token from the Authorization header, if any."""
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer ") :].strip() or None


def login_required(f):
    """Reject the request unless it carries a valid Firebase ID token.

    On success the caller is available as ``g.user`` with ``uid``, ``email``
    and ``displayName`` keys.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            raise UnauthorizedError("No token provided", "NO_TOKEN")
        try:
            decoded = auth.verify_id_token(token)
        except Exception as e:
            current_app.logger.error(f"Firebase token verification failed: {e}")
            raise UnauthorizedError("Invalid token", "INVALID_TOKEN") from e
        g.user = {
            "uid": decoded["uid"],
            "email": decoded.get("email") or "",
            "displayName": decoded.get("name"),
        }
        return f(*args, **kwargs)

    return decorated_function


def ensure_same_user(uid, action="access this resource"):
    """Raise unless the authenticated caller is ``uid``."""
    if uid != g.user["uid"]:
        raise ForbiddenError(f"Unauthorized to {action}")
