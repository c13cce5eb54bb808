"""Routes for badges and per-user achievements."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from firebase_admin.exceptions import FirebaseError
from flask import current_app, jsonify, request
from google.api_core.exceptions import GoogleAPIError

from loglynx.auth.decorators import ensure_same_user, login_required
from loglynx.errors import AppError, NotFoundError
from loglynx.notifications.services import NotificationService

from . import bp
from .models import Badge
from .services import BadgeService


def _notify_unlocked(db: Any, uid: str, badges: list[Badge]) -> None:
    if len(badges) == 1:
        title = "New badge unlocked!"
        body = f"You earned {badges[0]['name']} {badges[0]['icon']}"
    else:
        title = f"{len(badges)} new badges unlocked!"
        body = ", ".join(badge["name"] for badge in badges)
    try:
        NotificationService.send_notification(
            db,
            uid,
            title,
            body,
            {"type": "badge_unlocked", "badgeIds": ",".join(b["id"] for b in badges)},
        )
    except (FirebaseError, GoogleAPIError, ValueError) as e:
        current_app.logger.warning(f"Failed to send badge notification to {uid}: {e}")


@bp.route("/badges", methods=["GET"])
def get_all_badges() -> Any:
    """List every badge in the catalog."""
    return jsonify({"success": True, "badges": BadgeService.get_all_badges()})


@bp.route("/users/<uid>/badges", methods=["GET"])
@login_required
def get_user_badges(uid: str) -> Any:
    """List the user's unlocked badges, unlocking any newly earned ones first."""
    ensure_same_user(uid, "access user badges")
    db = firestore.client()
    try:
        BadgeService.evaluate_and_unlock(db, uid)
    except (AppError, GoogleAPIError) as e:
        current_app.logger.warning(f"Badge evaluation failed for user {uid}: {e}")
    badges = BadgeService.get_user_badges(db, uid)
    return jsonify({"success": True, "badges": badges})


@bp.route("/users/<uid>/badges/progress", methods=["GET"])
@login_required
def get_badge_progress(uid: str) -> Any:
    """Report progress towards every badge."""
    ensure_same_user(uid, "access badge progress")
    progress = BadgeService.get_progress(firestore.client(), uid)
    return jsonify({"success": True, "progress": progress})


@bp.route("/users/<uid>/badges/<badge_id>", methods=["GET"])
@login_required
def get_user_badge(uid: str, badge_id: str) -> Any:
    """Return one unlock record; legacy badge ids are accepted."""
    ensure_same_user(uid, "access user badge")
    badge = BadgeService.get_user_badge(firestore.client(), uid, badge_id)
    if badge is None:
        raise NotFoundError("Badge not found", "BADGE_NOT_FOUND")
    return jsonify({"success": True, "badge": badge})


@bp.route("/users/<uid>/badges", methods=["POST"])
@login_required
def unlock_badge(uid: str) -> Any:
    """Unlock a badge without checking its requirements."""
    ensure_same_user(uid, "unlock badge")
    body = request.get_json(silent=True) or {}
    badge_id = body.get("badgeId")
    badge = BadgeService.unlock_badge(
        firestore.client(), uid, badge_id if isinstance(badge_id, str) else ""
    )
    return jsonify(
        {"success": True, "message": "Badge unlocked successfully", "badge": badge}
    )


@bp.route("/users/<uid>/badges/check", methods=["POST"])
@login_required
def check_badges(uid: str) -> Any:
    """Evaluate the user's stats and unlock whatever they now qualify for."""
    ensure_same_user(uid, "check badges")
    db = firestore.client()
    unlocked = BadgeService.evaluate_and_unlock(db, uid)
    if unlocked:
        _notify_unlocked(db, uid, unlocked)
    return jsonify(
        {"success": True, "unlockedBadges": unlocked, "count": len(unlocked)}
    )
