"""Service layer for bike data access."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore
from flask import current_app

from loglynx.constants import BIKES_COLLECTION, OWNER_UID
from loglynx.utils import utcnow

from .models import Bike, BikeInput
from .utils import generate_unique_identifier

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference


def _to_bike(doc_id: str, data: dict[str, Any]) -> Bike:
    """Normalise a stored bike document."""
    bike = cast(Bike, dict(data))
    bike["id"] = doc_id
    bike["brand"] = data.get("brand") or ""
    bike["tags"] = data.get("tags") or []
    bike["uniqueIdentifier"] = data.get("uniqueIdentifier") or ""
    bike["photoUrl"] = data.get("photoUrl") or None
    bike["totalMileage"] = data.get("totalMileage") or 0
    return bike


class BikeService:
    """Service class for bike-related operations."""

    @staticmethod
    def _owned_ref(
        db: Client, owner_uid: str, bike_id: str
    ) -> tuple[DocumentReference, dict[str, Any]] | None:
        """Return the bike reference and data if ``owner_uid`` owns it."""
        bike_ref = db.collection(BIKES_COLLECTION).document(bike_id)
        bike_doc = cast("DocumentSnapshot", bike_ref.get())
        if not bike_doc.exists:
            return None
        data = bike_doc.to_dict() or {}
        if data.get(OWNER_UID) != owner_uid:
            return None
        return bike_ref, data

    @staticmethod
    def get_bikes(db: Client, owner_uid: str) -> list[Bike]:
        """List all bikes owned by a user."""
        query = db.collection(BIKES_COLLECTION).where(
            filter=firestore.FieldFilter(OWNER_UID, "==", owner_uid)
        )
        bikes = [_to_bike(doc.id, doc.to_dict() or {}) for doc in query.stream()]
        current_app.logger.info(f"Found {len(bikes)} bikes for user {owner_uid}")
        return bikes

    @staticmethod
    def get_bike(db: Client, owner_uid: str, bike_id: str) -> Bike | None:
        """Fetch a single bike, or None if missing or owned by someone else."""
        owned = BikeService._owned_ref(db, owner_uid, bike_id)
        if owned is None:
            return None
        return _to_bike(bike_id, owned[1])

    @staticmethod
    def create_bike(db: Client, owner_uid: str, bike_data: BikeInput) -> Bike:
        """Create a bike, generating a unique identifier when none is given."""
        now = utcnow()
        bike_ref = db.collection(BIKES_COLLECTION).document()
        unique_identifier = (
            bike_data.get("uniqueIdentifier") or generate_unique_identifier()
        )
        data: dict[str, Any] = {
            OWNER_UID: owner_uid,
            "name": bike_data["name"],
            "brand": bike_data["brand"],
            "type": bike_data["type"],
            "year": bike_data["year"],
            "status": bike_data["status"],
            "totalMileage": bike_data["totalMileage"],
            "tags": bike_data.get("tags") or [],
            "uniqueIdentifier": unique_identifier,
            "photoUrl": bike_data.get("photoUrl") or None,
            "createdAt": now,
            "updatedAt": now,
        }
        bike_ref.set(data)
        current_app.logger.info(
            f"Created bike {bike_ref.id} with unique identifier "
            f"{unique_identifier} for user {owner_uid}"
        )
        return _to_bike(bike_ref.id, data)

    @staticmethod
    def update_bike(
        db: Client, owner_uid: str, bike_id: str, updates: BikeInput
    ) -> Bike | None:
        """Apply a partial update to an owned bike."""
        owned = BikeService._owned_ref(db, owner_uid, bike_id)
        if owned is None:
            return None
        bike_ref = owned[0]
        bike_ref.update({**updates, "updatedAt": utcnow()})
        current_app.logger.info(f"Updated bike {bike_id} for user {owner_uid}")
        return BikeService.get_bike(db, owner_uid, bike_id)

    @staticmethod
    def delete_bike(db: Client, owner_uid: str, bike_id: str) -> bool:
        """Delete an owned bike. Returns False if it was not found."""
        owned = BikeService._owned_ref(db, owner_uid, bike_id)
        if owned is None:
            return False
        owned[0].delete()
        current_app.logger.info(f"Deleted bike {bike_id} for user {owner_uid}")
        return True

    @staticmethod
    def increment_mileage(
        db: Client, owner_uid: str, bike_id: str, delta: float
    ) -> Bike | None:
        """Add ``delta`` to a bike's total mileage in a single atomic write."""
        owned = BikeService._owned_ref(db, owner_uid, bike_id)
        if owned is None:
            return None
        owned[0].update(
            {"totalMileage": firestore.Increment(delta), "updatedAt": utcnow()}
        )
        current_app.logger.info(f"Incremented mileage for bike {bike_id} by {delta}")
        return BikeService.get_bike(db, owner_uid, bike_id)

    @staticmethod
    def get_bike_by_unique_identifier(
        db: Client, unique_identifier: str
    ) -> Bike | None:
        """Look up a bike by the identifier printed on its QR sticker."""
        query = (
            db.collection(BIKES_COLLECTION)
            .where(
                filter=firestore.FieldFilter(
                    "uniqueIdentifier", "==", unique_identifier
                )
            )
            .limit(1)
        )
        docs = list(query.stream())
        if not docs:
            current_app.logger.info(
                f"No bike found with unique identifier: {unique_identifier}"
            )
            return None
        return _to_bike(docs[0].id, docs[0].to_dict() or {})
