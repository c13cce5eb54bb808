"""Service layer for component data access and installation history."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore
from flask import current_app

from loglynx.bikes.services import BikeService
from loglynx.constants import COMPONENTS_COLLECTION, INSTALLATIONS_COLLECTION, OWNER_UID
from loglynx.errors import ValidationError
from loglynx.utils import to_epoch_ms, utcnow

from .models import Component

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client


def _to_component(doc_id: str, data: dict[str, Any]) -> Component:
    component = cast(Component, dict(data))
    component["id"] = doc_id
    component["spec"] = data.get("spec") or {}
    component["currentBikeId"] = data.get("currentBikeId") or None
    return component


class ComponentService:
    """Service class for component-related operations."""

    @staticmethod
    def get_components(
        db: Client, owner_uid: str, bike_id: str | None = None
    ) -> list[Component]:
        """List a user's components, optionally only those on one bike."""
        query = db.collection(COMPONENTS_COLLECTION).where(
            filter=firestore.FieldFilter(OWNER_UID, "==", owner_uid)
        )
        if bike_id:
            query = query.where(
                filter=firestore.FieldFilter("currentBikeId", "==", bike_id)
            )
        components = [
            _to_component(doc.id, doc.to_dict() or {}) for doc in query.stream()
        ]
        suffix = f" on bike {bike_id}" if bike_id else ""
        current_app.logger.info(
            f"Found {len(components)} components for user {owner_uid}{suffix}"
        )
        return components

    @staticmethod
    def get_component(
        db: Client, owner_uid: str, component_id: str
    ) -> Component | None:
        """Fetch one component, or None if missing or owned by someone else."""
        doc = cast(
            "DocumentSnapshot",
            db.collection(COMPONENTS_COLLECTION).document(component_id).get(),
        )
        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        if data.get(OWNER_UID) != owner_uid:
            return None
        return _to_component(component_id, data)

    @staticmethod
    def create_component(
        db: Client, owner_uid: str, component_data: dict[str, Any]
    ) -> Component:
        """Create a component for a user."""
        now = utcnow()
        component_ref = db.collection(COMPONENTS_COLLECTION).document()
        data = {
            OWNER_UID: owner_uid,
            "kind": component_data["kind"],
            "brand": component_data["brand"],
            "model": component_data["model"],
            "spec": component_data["spec"],
            "currentBikeId": component_data.get("currentBikeId") or None,
            "createdAt": now,
            "updatedAt": now,
        }
        component_ref.set(data)
        current_app.logger.info(
            f"Created component {component_ref.id} for user {owner_uid}"
        )
        return _to_component(component_ref.id, data)

    @staticmethod
    def update_component(
        db: Client, owner_uid: str, component_id: str, updates: dict[str, Any]
    ) -> Component | None:
        """Apply a partial update to an owned component."""
        if ComponentService.get_component(db, owner_uid, component_id) is None:
            return None
        db.collection(COMPONENTS_COLLECTION).document(component_id).update(
            {**updates, "updatedAt": utcnow()}
        )
        current_app.logger.info(
            f"Updated component {component_id} for user {owner_uid}"
        )
        return ComponentService.get_component(db, owner_uid, component_id)

    @staticmethod
    def delete_component(db: Client, owner_uid: str, component_id: str) -> bool:
        """Delete an owned component. Returns False if it was not found."""
        if ComponentService.get_component(db, owner_uid, component_id) is None:
            return False
        db.collection(COMPONENTS_COLLECTION).document(component_id).delete()
        current_app.logger.info(
            f"Deleted component {component_id} for user {owner_uid}"
        )
        return True

    @staticmethod
    def install_component(
        db: Client,
        owner_uid: str,
        component_id: str,
        bike_id: str,
        installed_odometer: float,
    ) -> Component | None:
        """Mount a component on a bike and open an installation record.

        Returns None when either the component or the bike is not the user's.
        """
        if ComponentService.get_component(db, owner_uid, component_id) is None:
            return None
        if BikeService.get_bike(db, owner_uid, bike_id) is None:
            return None

        now = utcnow()
        component_ref = db.collection(COMPONENTS_COLLECTION).document(component_id)
        component_ref.update({"currentBikeId": bike_id, "updatedAt": now})
        component_ref.collection(INSTALLATIONS_COLLECTION).document().set(
            {
                "bikeId": bike_id,
                "installedAt": now,
                "installedOdometer": installed_odometer,
            }
        )
        current_app.logger.info(
            f"Installed component {component_id} on bike {bike_id} "
            f"for user {owner_uid}"
        )
        return ComponentService.get_component(db, owner_uid, component_id)

    @staticmethod
    def remove_component(
        db: Client, owner_uid: str, component_id: str, removed_odometer: float
    ) -> Component | None:
        """Unmount a component and close its latest open installation record."""
        component = ComponentService.get_component(db, owner_uid, component_id)
        if component is None:
            return None
        bike_id = component.get("currentBikeId")
        if not bike_id:
            raise ValidationError(
                "Component is not currently installed on any bike", "NOT_INSTALLED"
            )

        now = utcnow()
        component_ref = db.collection(COMPONENTS_COLLECTION).document(component_id)
        component_ref.update({"currentBikeId": None, "updatedAt": now})

        installations = component_ref.collection(INSTALLATIONS_COLLECTION).where(
            filter=firestore.FieldFilter("bikeId", "==", bike_id)
        )
        open_installs = [
            doc
            for doc in installations.stream()
            if not (doc.to_dict() or {}).get("removedAt")
        ]
        if open_installs:
            latest = max(
                open_installs,
                key=lambda doc: to_epoch_ms((doc.to_dict() or {}).get("installedAt"))
                or 0,
            )
            latest.reference.update(
                {"removedAt": now, "removedOdometer": removed_odometer}
            )

        current_app.logger.info(
            f"Removed component {component_id} from bike {bike_id} "
            f"for user {owner_uid}"
        )
        return ComponentService.get_component(db, owner_uid, component_id)

    @staticmethod
    def get_installations(db: Client, component_id: str) -> list[dict[str, Any]]:
        """Return a component's installation history, newest first."""
        installations = (
            db.collection(COMPONENTS_COLLECTION)
            .document(component_id)
            .collection(INSTALLATIONS_COLLECTION)
            .stream()
        )
        history = []
        for doc in installations:
            data = doc.to_dict() or {}
            data["id"] = doc.id
            history.append(data)
        history.sort(
            key=lambda item: to_epoch_ms(item.get("installedAt")) or 0, reverse=True
        )
        return history
