"""Routes for the components blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import g, jsonify, request

from loglynx.auth.decorators import login_required
from loglynx.errors import NotFoundError, ValidationError
from loglynx.utils import serialize_document

from . import bp
from .models import EDITABLE_FIELDS, REQUIRED_FIELDS
from .services import ComponentService


def _component_not_found() -> NotFoundError:
    return NotFoundError("Component not found", "COMPONENT_NOT_FOUND")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@bp.route("", methods=["GET"])
@login_required
def get_components() -> Any:
    """List the caller's components, optionally filtered by ``bikeId``."""
    components = ComponentService.get_components(
        firestore.client(), g.user["uid"], request.args.get("bikeId")
    )
    return jsonify({"success": True, "components": serialize_document(components)})


@bp.route("/<component_id>", methods=["GET"])
@login_required
def get_component(component_id: str) -> Any:
    """Return one of the caller's components."""
    component = ComponentService.get_component(
        firestore.client(), g.user["uid"], component_id
    )
    if component is None:
        raise _component_not_found()
    return jsonify({"success": True, "component": serialize_document(component)})


@bp.route("/<component_id>/installations", methods=["GET"])
@login_required
def get_installations(component_id: str) -> Any:
    """Return the installation history of one of the caller's components."""
    db = firestore.client()
    if ComponentService.get_component(db, g.user["uid"], component_id) is None:
        raise _component_not_found()
    history = ComponentService.get_installations(db, component_id)
    return jsonify({"success": True, "installations": serialize_document(history)})


@bp.route("", methods=["POST"])
@login_required
def create_component() -> Any:
    """Create a component for the caller."""
    body = request.get_json(silent=True) or {}
    if any(not body.get(field) for field in REQUIRED_FIELDS):
        raise ValidationError("Missing required fields: kind, brand, model, spec")

    component = ComponentService.create_component(
        firestore.client(),
        g.user["uid"],
        {field: body.get(field) for field in EDITABLE_FIELDS},
    )
    return (
        jsonify({"success": True, "component": serialize_document(component)}),
        201,
    )


@bp.route("/<component_id>", methods=["PUT"])
@login_required
def update_component(component_id: str) -> Any:
    """Partially update one of the caller's components."""
    body = request.get_json(silent=True) or {}
    updates = {field: body[field] for field in EDITABLE_FIELDS if field in body}
    component = ComponentService.update_component(
        firestore.client(), g.user["uid"], component_id, updates
    )
    if component is None:
        raise _component_not_found()
    return jsonify({"success": True, "component": serialize_document(component)})


@bp.route("/<component_id>", methods=["DELETE"])
@login_required
def delete_component(component_id: str) -> Any:
    """Delete one of the caller's components."""
    deleted = ComponentService.delete_component(
        firestore.client(), g.user["uid"], component_id
    )
    if not deleted:
        raise _component_not_found()
    return jsonify({"success": True, "message": "Component deleted successfully"})


@bp.route("/<component_id>/install", methods=["POST"])
@login_required
def install_component(component_id: str) -> Any:
    """Install a component on one of the caller's bikes."""
    body = request.get_json(silent=True) or {}
    bike_id = body.get("bikeId")
    odometer = body.get("installedOdometer")
    if not bike_id or not _is_number(odometer):
        raise ValidationError("Missing required fields: bikeId, installedOdometer")

    component = ComponentService.install_component(
        firestore.client(), g.user["uid"], component_id, bike_id, odometer
    )
    if component is None:
        raise NotFoundError("Component or bike not found")
    return jsonify({"success": True, "component": serialize_document(component)})


@bp.route("/<component_id>/remove", methods=["POST"])
@login_required
def remove_component(component_id: str) -> Any:
    """Remove a component from the bike it is installed on."""
    body = request.get_json(silent=True) or {}
    odometer = body.get("removedOdometer")
    if not _is_number(odometer):
        raise ValidationError("Missing required field: removedOdometer")

    component = ComponentService.remove_component(
        firestore.client(), g.user["uid"], component_id, odometer
    )
    if component is None:
        raise _component_not_found()
    return jsonify({"success": True, "component": serialize_document(component)})
