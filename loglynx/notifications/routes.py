"""Routes for the notifications blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import g, jsonify, request

from loglynx.auth.decorators import login_required
from loglynx.errors import ValidationError

from . import bp
from .services import DEFAULT_PLATFORM, NotificationService


def _require_token(body: dict[str, Any]) -> str:
    token = body.get("token")
    if not token or not isinstance(token, str):
        raise ValidationError("Device token is required")
    return token


@bp.route("/tokens", methods=["POST"])
@login_required
def register_token() -> Any:
    """Register the caller's device for push notifications."""
    body = request.get_json(silent=True) or {}
    token = _require_token(body)
    NotificationService.save_device_token(
        firestore.client(),
        g.user["uid"],
        token,
        body.get("platform") or DEFAULT_PLATFORM,
    )
    return jsonify({"success": True, "message": "Device token registered"})


@bp.route("/tokens", methods=["DELETE"])
@login_required
def unregister_token() -> Any:
    """Stop push notifications to one of the caller's devices."""
    body = request.get_json(silent=True) or {}
    token = _require_token(body)
    NotificationService.remove_device_token(firestore.client(), g.user["uid"], token)
    return jsonify({"success": True, "message": "Device token removed"})
