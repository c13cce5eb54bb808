"""Routes for token exchange and the current session."""

from __future__ import annotations

from typing import Any

from firebase_admin import auth, firestore
from flask import current_app, g, jsonify, request
from google.api_core.exceptions import GoogleAPIError

from loglynx.constants import FIREBASE_TOKEN_TTL_SECONDS
from loglynx.errors import UnauthorizedError, ValidationError
from loglynx.user.services import UserService

from . import bp
from .decorators import login_required


@bp.route("/firebase-exchange", methods=["POST"])
def firebase_exchange() -> Any:
    """Verify a Firebase ID token and make sure the user has a profile.

    The ID token itself is handed back as the API access token; clients
    refresh it through the Firebase SDK.
    """
    body = request.get_json(silent=True) or {}
    firebase_token = body.get("firebaseToken")
    if not firebase_token:
        raise ValidationError("Firebase token is required", "MISSING_TOKEN")

    try:
        decoded = auth.verify_id_token(firebase_token)
    except Exception as e:
        current_app.logger.error(f"Firebase token verification failed: {e}")
        raise UnauthorizedError("Invalid token", "INVALID_TOKEN") from e

    user_data = body.get("userData") or {}
    display_name = user_data.get("displayName") or decoded.get("name") or ""
    email = decoded.get("email") or ""

    db = firestore.client()
    try:
        UserService.create_or_update_profile(db, decoded["uid"], email, display_name)
    except GoogleAPIError as e:
        # Authentication still succeeds; profile features degrade until next login.
        current_app.logger.error(f"Failed to create/update user profile: {e}")

    return jsonify(
        {
            "accessToken": firebase_token,
            "expiresIn": FIREBASE_TOKEN_TTL_SECONDS,
            "user": {
                "uid": decoded["uid"],
                "email": decoded.get("email"),
                "displayName": decoded.get("name"),
            },
        }
    )


@bp.route("/refresh", methods=["POST"])
def refresh() -> Any:
    """Firebase tokens are refreshed client-side; this only explains that."""
    body = request.get_json(silent=True) or {}
    if not body.get("refreshToken"):
        raise ValidationError("Refresh token is required", "MISSING_TOKEN")
    raise ValidationError(
        "Please get a fresh Firebase ID token from the client",
        "REFRESH_NOT_SUPPORTED",
    )


@bp.route("/logout", methods=["POST"])
def logout() -> Any:
    """Logout is handled by the Firebase client SDK."""
    return jsonify({"message": "Logout successful", "code": "LOGOUT_SUCCESS"})


@bp.route("/me", methods=["GET"])
@login_required
def me() -> Any:
    """Return the authenticated user."""
    return jsonify({"user": g.user})
