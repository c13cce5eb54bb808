"""Routes for the Strava integration."""

from __future__ import annotations

import secrets
import time
from typing import Any
from urllib.parse import urlencode

from firebase_admin import firestore
from flask import current_app, g, jsonify, redirect, request

from loglynx.auth.decorators import login_required
from loglynx.errors import ValidationError
from loglynx.utils import now_ms

from . import bp
from .services import StravaService


@bp.route("/auth-url", methods=["GET"])
@login_required
def get_auth_url() -> Any:
    """Return the Strava consent URL for the caller."""
    uid = g.user["uid"]
    nonce = secrets.token_hex(32)
    auth_url = StravaService.get_authorization_url(f"{uid}:{nonce}")
    StravaService.save_oauth_state(firestore.client(), uid, nonce)
    return jsonify({"success": True, "data": {"authUrl": auth_url, "state": nonce}})


@bp.route("/callback", methods=["GET"])
def handle_callback() -> Any:
    """Finish the OAuth flow and bounce back into the mobile app."""
    error = request.args.get("error")
    if error:
        raise ValidationError(
            f"Strava authorization denied: {error}", "STRAVA_AUTH_DENIED"
        )
    code = request.args.get("code")
    state = request.args.get("state")
    if not code or not state:
        raise ValidationError("Missing code or state parameter", "INVALID_CALLBACK")

    uid, sep, nonce = state.partition(":")
    if not uid or not sep or not nonce:
        raise ValidationError("Invalid state parameter", "INVALID_STATE")
    db = firestore.client()
    if StravaService.consume_oauth_state(db, nonce) != uid:
        current_app.logger.warning(f"Rejected Strava callback state for user {uid}")
        raise ValidationError("Invalid state parameter", "INVALID_STATE")

    token_data = StravaService.exchange_code_for_token(code)
    athlete = token_data.get("athlete") or {}
    athlete_name = " ".join(
        part for part in (athlete.get("firstname"), athlete.get("lastname")) if part
    )
    StravaService.save_connection(
        db,
        uid,
        {
            "accessToken": token_data["access_token"],
            "refreshToken": token_data["refresh_token"],
            "expiresAt": token_data["expires_at"],
            "athleteId": str(athlete.get("id", "")),
            "athleteName": athlete_name or None,
            "createdAt": now_ms(),
        },
    )
    current_app.logger.info(f"Strava account connected for user {uid}")

    query = urlencode({"success": "true", "athleteId": athlete.get("id", "")})
    return redirect(f"{current_app.config['STRAVA_APP_REDIRECT']}?{query}")


@bp.route("/status", methods=["GET"])
@login_required
def get_status() -> Any:
    """Report whether the caller has connected Strava."""
    connection = StravaService.get_connection(firestore.client(), g.user["uid"])
    if connection is None:
        return jsonify({"success": True, "data": {"connected": False}})
    return jsonify(
        {
            "success": True,
            "data": {
                "connected": True,
                "athleteId": connection["athleteId"],
                "athleteName": connection.get("athleteName"),
                "lastSyncAt": connection.get("lastSyncAt"),
                "isExpired": connection["expiresAt"] <= int(time.time()),
                "expiresAt": connection["expiresAt"],
            },
        }
    )


@bp.route("/disconnect", methods=["POST"])
@login_required
def disconnect() -> Any:
    """Remove the caller's Strava connection."""
    StravaService.delete_connection(firestore.client(), g.user["uid"])
    current_app.logger.info(f"Strava account disconnected for user {g.user['uid']}")
    return jsonify(
        {"success": True, "message": "Strava account disconnected successfully"}
    )


@bp.route("/sync", methods=["POST"])
@login_required
def sync_activities() -> Any:
    """Import the caller's recent Strava rides."""
    current_app.logger.info(f"Starting Strava activity sync for user {g.user['uid']}")
    result = StravaService.sync_activities(firestore.client(), g.user["uid"])
    return jsonify(
        {
            "success": True,
            "data": {
                **result,
                "message": f"Synced {result['synced']} new activities, "
                f"skipped {result['skipped']} existing activities",
            },
        }
    )
