"""Routes for the service-logs blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import current_app, g, jsonify, request

from loglynx.auth.decorators import login_required
from loglynx.constants import RECENT_SERVICE_LOGS_LIMIT
from loglynx.errors import NotFoundError, ValidationError
from loglynx.utils import parse_datetime, serialize_document

from . import bp
from .models import EDITABLE_FIELDS
from .services import ServiceLogService


def _log_not_found() -> NotFoundError:
    return NotFoundError("Service log not found", "SERVICE_LOG_NOT_FOUND")


def _performed_at(value: Any):
    performed_at = parse_datetime(value)
    if performed_at is None:
        raise ValidationError("performedAt must be an ISO 8601 date")
    return performed_at


@bp.route("", methods=["GET"])
@login_required
def get_service_logs() -> Any:
    """List the caller's service logs, optionally filtered by ``bikeId``."""
    logs = ServiceLogService.get_service_logs(
        firestore.client(), g.user["uid"], request.args.get("bikeId")
    )
    return jsonify({"success": True, "serviceLogs": serialize_document(logs)})


@bp.route("/recent", methods=["GET"])
@login_required
def get_recent_service_logs() -> Any:
    """Return the caller's most recent service logs."""
    limit = request.args.get("limit", type=int) or RECENT_SERVICE_LOGS_LIMIT
    if limit < 1:
        limit = RECENT_SERVICE_LOGS_LIMIT
    current_app.logger.info(
        f"Getting recent service logs for user: {g.user['uid']}, limit: {limit}"
    )
    logs = ServiceLogService.get_recent_service_logs(
        firestore.client(), g.user["uid"], limit
    )
    return jsonify({"success": True, "serviceLogs": serialize_document(logs)})


@bp.route("/<log_id>", methods=["GET"])
@login_required
def get_service_log(log_id: str) -> Any:
    """Return one of the caller's service logs."""
    log = ServiceLogService.get_service_log(firestore.client(), g.user["uid"], log_id)
    if log is None:
        raise _log_not_found()
    return jsonify({"success": True, "serviceLog": serialize_document(log)})


@bp.route("", methods=["POST"])
@login_required
def create_service_log() -> Any:
    """Record a service for one of the caller's bikes."""
    body = request.get_json(silent=True) or {}
    required_truthy = ("bikeId", "performedAt", "title", "notes", "items")
    if any(not body.get(field) for field in required_truthy) or any(
        body.get(field) is None for field in ("cost", "mileageAtService")
    ):
        raise ValidationError(
            "Missing required fields: bikeId, performedAt, title, notes, cost, "
            "mileageAtService, items"
        )

    log_data = {field: body[field] for field in EDITABLE_FIELDS}
    log_data["performedAt"] = _performed_at(body["performedAt"])
    log = ServiceLogService.create_service_log(
        firestore.client(), g.user["uid"], log_data
    )
    return jsonify({"success": True, "serviceLog": serialize_document(log)}), 201


@bp.route("/<log_id>", methods=["PUT"])
@login_required
def update_service_log(log_id: str) -> Any:
    """Partially update one of the caller's service logs."""
    body = request.get_json(silent=True) or {}
    updates = {field: body[field] for field in EDITABLE_FIELDS if field in body}
    if "performedAt" in updates:
        updates["performedAt"] = _performed_at(updates["performedAt"])

    log = ServiceLogService.update_service_log(
        firestore.client(), g.user["uid"], log_id, updates
    )
    if log is None:
        raise _log_not_found()
    return jsonify({"success": True, "serviceLog": serialize_document(log)})


@bp.route("/<log_id>", methods=["DELETE"])
@login_required
def delete_service_log(log_id: str) -> Any:
    """Delete one of the caller's service logs."""
    if not ServiceLogService.delete_service_log(
        firestore.client(), g.user["uid"], log_id
    ):
        raise _log_not_found()
    return jsonify({"success": True, "message": "Service log deleted successfully"})
