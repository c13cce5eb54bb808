"""Routes for the bikes blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import current_app, g, jsonify, request

from loglynx.auth.decorators import login_required
from loglynx.constants import BIKE_STATUSES
from loglynx.errors import NotFoundError, ValidationError
from loglynx.utils import serialize_document

from . import bp
from .models import EDITABLE_FIELDS, REQUIRED_FIELDS
from .services import BikeService


def _bike_not_found() -> NotFoundError:
    return NotFoundError("Bike not found", "BIKE_NOT_FOUND")


def _validate_status(status: Any) -> None:
    if status not in BIKE_STATUSES:
        raise ValidationError(
            f"Invalid status. Must be one of: {', '.join(BIKE_STATUSES)}"
        )


@bp.route("", methods=["GET"])
@login_required
def get_bikes() -> Any:
    """List the caller's bikes."""
    bikes = BikeService.get_bikes(firestore.client(), g.user["uid"])
    return jsonify({"success": True, "bikes": serialize_document(bikes)})


@bp.route("/lookup/<unique_identifier>", methods=["GET"])
@login_required
def get_bike_by_unique_identifier(unique_identifier: str) -> Any:
    """Find any bike by its printed unique identifier."""
    current_app.logger.info(
        f"Looking up bike by unique identifier: {unique_identifier}"
    )
    bike = BikeService.get_bike_by_unique_identifier(
        firestore.client(), unique_identifier
    )
    if bike is None:
        raise _bike_not_found()
    return jsonify({"success": True, "bike": serialize_document(bike)})


@bp.route("/<bike_id>", methods=["GET"])
@login_required
def get_bike(bike_id: str) -> Any:
    """Return one of the caller's bikes."""
    bike = BikeService.get_bike(firestore.client(), g.user["uid"], bike_id)
    if bike is None:
        raise _bike_not_found()
    return jsonify({"success": True, "bike": serialize_document(bike)})


@bp.route("", methods=["POST"])
@login_required
def create_bike() -> Any:
    """Create a bike for the caller."""
    body = request.get_json(silent=True) or {}
    # totalMileage may legitimately be 0
    missing = [f for f in REQUIRED_FIELDS if f != "totalMileage" and not body.get(f)]
    if body.get("totalMileage") is None:
        missing.append("totalMileage")
    if missing:
        current_app.logger.warning(f"Bike validation failed, missing: {missing}")
        raise ValidationError(
            "Missing required fields: name, brand, type, year, status, totalMileage"
        )
    _validate_status(body["status"])

    bike_data: dict[str, Any] = {field: body.get(field) for field in EDITABLE_FIELDS}
    bike_data["tags"] = body.get("tags") or []
    if body.get("uniqueIdentifier"):
        bike_data["uniqueIdentifier"] = body["uniqueIdentifier"]

    bike = BikeService.create_bike(
        firestore.client(), g.user["uid"], bike_data  # type: ignore[arg-type]
    )
    return jsonify({"success": True, "bike": serialize_document(bike)}), 201


@bp.route("/<bike_id>", methods=["PUT"])
@login_required
def update_bike(bike_id: str) -> Any:
    """Partially update one of the caller's bikes."""
    body = request.get_json(silent=True) or {}
    if body.get("status"):
        _validate_status(body["status"])
    updates = {field: body[field] for field in EDITABLE_FIELDS if field in body}

    bike = BikeService.update_bike(
        firestore.client(), g.user["uid"], bike_id, updates  # type: ignore[arg-type]
    )
    if bike is None:
        raise _bike_not_found()
    return jsonify({"success": True, "bike": serialize_document(bike)})


@bp.route("/<bike_id>", methods=["DELETE"])
@login_required
def delete_bike(bike_id: str) -> Any:
    """Delete one of the caller's bikes."""
    if not BikeService.delete_bike(firestore.client(), g.user["uid"], bike_id):
        raise _bike_not_found()
    return jsonify({"success": True, "message": "Bike deleted successfully"})


@bp.route("/<bike_id>/mileage", methods=["PUT"])
@login_required
def increment_mileage(bike_id: str) -> Any:
    """Add ridden distance to a bike."""
    body = request.get_json(silent=True) or {}
    delta = body.get("deltaMi")
    if isinstance(delta, bool) or not isinstance(delta, (int, float)) or delta <= 0:
        raise ValidationError("deltaMi must be a positive number")

    bike = BikeService.increment_mileage(
        firestore.client(), g.user["uid"], bike_id, delta
    )
    if bike is None:
        raise _bike_not_found()
    return jsonify({"success": True, "bike": serialize_document(bike)})
