"""Routes for the user blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import current_app, g, jsonify, request

from loglynx.auth.decorators import login_required
from loglynx.constants import DARK_MODE_OPTIONS
from loglynx.errors import NotFoundError, ValidationError
from loglynx.utils import serialize_document

from . import bp
from .services import UserService


@bp.route("/profile", methods=["GET"])
@login_required
def get_profile() -> Any:
    """Return the authenticated user's profile."""
    uid = g.user["uid"]
    current_app.logger.info(f"Getting profile for authenticated user: {uid}")
    profile = UserService.get_profile(firestore.client(), uid)
    if profile is None:
        raise NotFoundError("User profile not found", "PROFILE_NOT_FOUND")
    return jsonify({"success": True, "data": serialize_document(profile)})


@bp.route("/profile", methods=["PUT"])
@login_required
def update_profile() -> Any:
    """Update display name and/or email."""
    body = request.get_json(silent=True) or {}
    updates = {
        key: body[key] for key in ("displayName", "email") if body.get(key)
    }
    if not updates:
        raise ValidationError("At least one field must be provided for update")

    profile = UserService.update_profile(firestore.client(), g.user["uid"], updates)
    return jsonify({"success": True, "data": serialize_document(profile)})


@bp.route("/preferences", methods=["PUT"])
@login_required
def update_preferences() -> Any:
    """Update one or more app preferences."""
    body = request.get_json(silent=True) or {}
    prefs: dict[str, Any] = {}

    dark_mode = body.get("darkMode")
    if dark_mode:
        if dark_mode not in DARK_MODE_OPTIONS:
            raise ValidationError(
                'Invalid darkMode value. Must be "system", "light", or "dark"'
            )
        prefs["darkMode"] = dark_mode
    for key in ("notificationsEnabled", "biometricsEnabled", "stravaAutoSync"):
        if key in body and body[key] is not None:
            prefs[key] = bool(body[key])

    if not prefs:
        raise ValidationError("At least one preference must be provided for update")

    profile = UserService.update_preferences(
        firestore.client(), g.user["uid"], prefs  # type: ignore[arg-type]
    )
    return jsonify({"success": True, "data": serialize_document(profile)})


@bp.route("/profile", methods=["DELETE"])
@login_required
def delete_profile() -> Any:
    """Delete the authenticated user's profile."""
    UserService.delete_profile(firestore.client(), g.user["uid"])
    return jsonify({"success": True, "message": "User profile deleted successfully"})
