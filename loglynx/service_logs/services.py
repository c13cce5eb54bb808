"""Service layer for service-log data access."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore
from flask import current_app

from loglynx.bikes.services import BikeService
from loglynx.constants import SERVICE_LOGS_COLLECTION, USER_UID
from loglynx.errors import NotFoundError
from loglynx.utils import to_epoch_ms, utcnow

from .models import ServiceLog

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client


def _to_service_log(doc_id: str, data: dict[str, Any]) -> ServiceLog:
    log = cast(ServiceLog, dict(data))
    log["id"] = doc_id
    log["items"] = data.get("items") or []
    return log


def _newest_first(logs: list[ServiceLog]) -> list[ServiceLog]:
    return sorted(
        logs, key=lambda log: to_epoch_ms(log.get("performedAt")) or 0, reverse=True
    )


class ServiceLogService:
    """Service class for service-log operations.

    A log belongs to whoever owns its bike; ``userUid`` is denormalised onto
    the log so per-user aggregates can query it directly.
    """

    @staticmethod
    def get_service_logs(
        db: Client, owner_uid: str, bike_id: str | None = None
    ) -> list[ServiceLog]:
        """List a user's service logs, newest first, optionally for one bike."""
        owned_ids = [bike["id"] for bike in BikeService.get_bikes(db, owner_uid)]
        if bike_id:
            owned_ids = [b for b in owned_ids if b == bike_id]

        logs: list[ServiceLog] = []
        for target_id in owned_ids:
            query = db.collection(SERVICE_LOGS_COLLECTION).where(
                filter=firestore.FieldFilter("bikeId", "==", target_id)
            )
            logs.extend(
                _to_service_log(doc.id, doc.to_dict() or {}) for doc in query.stream()
            )

        suffix = f" on bike {bike_id}" if bike_id else ""
        current_app.logger.info(
            f"Found {len(logs)} service logs for user {owner_uid}{suffix}"
        )
        return _newest_first(logs)

    @staticmethod
    def get_recent_service_logs(
        db: Client, owner_uid: str, limit: int
    ) -> list[ServiceLog]:
        """Return the ``limit`` most recently performed services."""
        return ServiceLogService.get_service_logs(db, owner_uid)[:limit]

    @staticmethod
    def get_service_log(db: Client, owner_uid: str, log_id: str) -> ServiceLog | None:
        """Fetch one log, or None if missing or its bike is not the user's."""
        doc = cast(
            "DocumentSnapshot",
            db.collection(SERVICE_LOGS_COLLECTION).document(log_id).get(),
        )
        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        bike_id = data.get("bikeId")
        if not bike_id or BikeService.get_bike(db, owner_uid, bike_id) is None:
            return None
        return _to_service_log(log_id, data)

    @staticmethod
    def create_service_log(
        db: Client, owner_uid: str, log_data: dict[str, Any]
    ) -> ServiceLog:
        """Record a service against one of the user's bikes."""
        if BikeService.get_bike(db, owner_uid, log_data["bikeId"]) is None:
            raise NotFoundError("Bike not found", "BIKE_NOT_FOUND")

        now = utcnow()
        log_ref = db.collection(SERVICE_LOGS_COLLECTION).document()
        data = {
            "bikeId": log_data["bikeId"],
            USER_UID: owner_uid,
            "performedAt": log_data["performedAt"],
            "title": log_data["title"],
            "notes": log_data["notes"],
            "cost": log_data["cost"],
            "mileageAtService": log_data["mileageAtService"],
            "items": log_data.get("items") or [],
            "createdAt": now,
            "updatedAt": now,
        }
        log_ref.set(data)
        current_app.logger.info(
            f"Created service log {log_ref.id} for user {owner_uid}"
        )
        return _to_service_log(log_ref.id, data)

    @staticmethod
    def update_service_log(
        db: Client, owner_uid: str, log_id: str, updates: dict[str, Any]
    ) -> ServiceLog | None:
        """Apply a partial update to one of the user's logs."""
        if ServiceLogService.get_service_log(db, owner_uid, log_id) is None:
            return None
        new_bike = updates.get("bikeId")
        if new_bike and BikeService.get_bike(db, owner_uid, new_bike) is None:
            raise NotFoundError("Bike not found", "BIKE_NOT_FOUND")

        db.collection(SERVICE_LOGS_COLLECTION).document(log_id).update(
            {**updates, "updatedAt": utcnow()}
        )
        current_app.logger.info(f"Updated service log {log_id} for user {owner_uid}")
        return ServiceLogService.get_service_log(db, owner_uid, log_id)

    @staticmethod
    def delete_service_log(db: Client, owner_uid: str, log_id: str) -> bool:
        """Delete one of the user's logs. Returns False if it was not found."""
        if ServiceLogService.get_service_log(db, owner_uid, log_id) is None:
            return False
        db.collection(SERVICE_LOGS_COLLECTION).document(log_id).delete()
        current_app.logger.info(f"Deleted service log {log_id} for user {owner_uid}")
        return True
