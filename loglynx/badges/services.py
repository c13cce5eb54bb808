"""Service for badge evaluation, progress and unlock records."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, cast

from firebase_admin import firestore
from flask import current_app
from google.api_core.exceptions import AlreadyExists, GoogleAPIError

from loglynx.constants import USER_BADGES_COLLECTION
from loglynx.errors import NotFoundError, StoreUnavailableError, ValidationError
from loglynx.utils import now_ms

from .models import (
    BADGE_DEFINITIONS,
    REQUIREMENT_STAT_FIELDS,
    Badge,
    BadgeDefinition,
    BadgeProgress,
    Requirement,
    UnlockRecord,
    UserBadge,
    UserStats,
    get_badge_definition,
    normalize_badge_id,
)
from .stats import compute_stats

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference


def _unlock_ref(db: Client, uid: str, badge_id: str) -> DocumentReference:
    # One document per (user, badge); the id doubles as the uniqueness guard.
    return db.collection(USER_BADGES_COLLECTION).document(f"{uid}_{badge_id}")


def _to_user_badge(data: dict) -> UserBadge:
    return {
        "badgeId": data["badgeId"],
        "unlockedAt": data.get("unlockedAt"),
        "progress": data.get("progress", 100),
    }


def _unlocked(badge: BadgeDefinition, record: UserBadge) -> Badge:
    unlocked = cast(Badge, dict(badge))
    unlocked["isUnlocked"] = True
    unlocked["unlockedAt"] = record["unlockedAt"]
    unlocked["progress"] = record["progress"]
    return unlocked


def _ensure_known_badge(badge_id: str) -> None:
    if get_badge_definition(badge_id) is None:
        raise NotFoundError("Badge not found", "BADGE_NOT_FOUND")


class BadgeService:
    """Service class for badge-related operations."""

    @staticmethod
    def get_all_badges() -> list[BadgeDefinition]:
        """Return the badge catalog."""
        current_app.logger.info("Getting all badge definitions")
        return list(BADGE_DEFINITIONS)

    @staticmethod
    def stat_for(requirement: Requirement, stats: UserStats) -> float | None:
        """The stat a requirement is measured against, None for unknown types."""
        field_name = REQUIREMENT_STAT_FIELDS.get(requirement["type"])
        if field_name is None:
            return None
        return stats[field_name]  # type: ignore[literal-required]

    @staticmethod
    def requirement_met(requirement: Requirement, stats: UserStats) -> bool:
        """Check ``stat >= value``. Unknown requirement types never hold."""
        current = BadgeService.stat_for(requirement, stats)
        return current is not None and current >= requirement["value"]

    @staticmethod
    def qualifies(badge: BadgeDefinition, stats: UserStats) -> bool:
        """True when every one of the badge's requirements holds."""
        requirements = badge["requirements"]
        return bool(requirements) and all(
            BadgeService.requirement_met(req, stats) for req in requirements
        )

    @staticmethod
    def progress_for(badge: BadgeDefinition, stats: UserStats) -> BadgeProgress:
        """Progress towards a badge, measured on its first requirement only."""
        requirement = badge["requirements"][0]
        current = BadgeService.stat_for(requirement, stats) or 0
        target = requirement["value"]
        if target <= 0:
            percentage = 100
        else:
            percentage = min(100, max(0, math.floor(current / target * 100)))
        return {
            "badgeId": badge["id"],
            "current": current,
            "target": target,
            "percentage": percentage,
        }

    @staticmethod
    def _read_unlock(db: Client, uid: str, badge_id: str) -> UserBadge | None:
        try:
            doc = cast("DocumentSnapshot", _unlock_ref(db, uid, badge_id).get())
        except GoogleAPIError as e:
            current_app.logger.error(
                f"Error reading badge {badge_id} for user {uid}: {e}"
            )
            raise StoreUnavailableError("Failed to get user badge") from e
        if not doc.exists:
            return None
        return _to_user_badge(doc.to_dict() or {})

    @staticmethod
    def create_unlock(db: Client, uid: str, badge_id: str) -> tuple[UserBadge, bool]:
        """Create the unlock record for a canonical badge id if it is absent.

        Returns the stored record and whether this call created it. A record
        written concurrently by someone else is returned with ``False``.
        """
        unlocked_at = now_ms()
        record: UnlockRecord = {
            "uid": uid,
            "badgeId": badge_id,
            "unlockedAt": unlocked_at,
            "progress": 100,
            "createdAt": unlocked_at,
        }
        ref = _unlock_ref(db, uid, badge_id)
        try:
            ref.create(record)
        except AlreadyExists:
            current_app.logger.info(
                f"Badge {badge_id} was already unlocked for user {uid}"
            )
            existing = BadgeService._read_unlock(db, uid, badge_id)
            return cast(UserBadge, existing), False
        except GoogleAPIError as e:
            current_app.logger.error(
                f"Error unlocking badge {badge_id} for user {uid}: {e}"
            )
            raise StoreUnavailableError("Failed to unlock badge") from e

        current_app.logger.info(f"Badge {badge_id} unlocked for user {uid}")
        return _to_user_badge(record), True

    @staticmethod
    def get_user_badges(db: Client, uid: str) -> list[Badge]:
        """Return the user's unlocked badges in catalog order."""
        query = db.collection(USER_BADGES_COLLECTION).where(
            filter=firestore.FieldFilter("uid", "==", uid)
        )
        try:
            records = {
                data.get("badgeId"): _to_user_badge(data)
                for data in (doc.to_dict() or {} for doc in query.stream())
            }
        except GoogleAPIError as e:
            current_app.logger.error(f"Error getting badges for user {uid}: {e}")
            raise StoreUnavailableError("Failed to get user badges") from e

        badges = [
            _unlocked(badge, records[badge["id"]])
            for badge in BADGE_DEFINITIONS
            if badge["id"] in records
        ]
        current_app.logger.info(f"Found {len(badges)} badges for user: {uid}")
        return badges

    @staticmethod
    def get_user_badge(db: Client, uid: str, badge_id: str) -> UserBadge | None:
        """Return the user's unlock record for a (possibly legacy) badge id."""
        canonical = normalize_badge_id(badge_id)
        _ensure_known_badge(canonical)
        current_app.logger.info(
            f"Getting badge {badge_id} (normalized: {canonical}) for user: {uid}"
        )
        return BadgeService._read_unlock(db, uid, canonical)

    @staticmethod
    def unlock_badge(db: Client, uid: str, badge_id: str) -> UserBadge:
        """Unlock a badge regardless of requirements. Idempotent."""
        if not badge_id:
            raise ValidationError("Badge ID is required")
        canonical = normalize_badge_id(badge_id)
        _ensure_known_badge(canonical)
        current_app.logger.info(
            f"Unlocking badge {badge_id} (normalized: {canonical}) for user: {uid}"
        )
        existing = BadgeService._read_unlock(db, uid, canonical)
        if existing is not None:
            current_app.logger.info(
                f"Badge {canonical} already unlocked for user: {uid}"
            )
            return existing
        return BadgeService.create_unlock(db, uid, canonical)[0]

    @staticmethod
    def evaluate_and_unlock(
        db: Client, uid: str, stats: UserStats | None = None
    ) -> list[Badge]:
        """Unlock every badge the user now qualifies for.

        Only badges unlocked by this call are returned; calling again without
        new activity returns an empty list.
        """
        if stats is None:
            stats = compute_stats(db, uid)
        current_app.logger.info(
            f"Checking badges for user {uid}: mileage {stats['totalMileage']}, "
            f"bikes {stats['bikeCount']}, services {stats['serviceCount']}, "
            f"components {stats['componentCount']}, "
            f"service cost {stats['totalServiceCost']}, "
            f"days active {stats['daysActive']}"
        )

        newly_unlocked: list[Badge] = []
        for badge in BADGE_DEFINITIONS:
            if BadgeService._read_unlock(db, uid, badge["id"]) is not None:
                continue
            if not BadgeService.qualifies(badge, stats):
                continue
            record, created = BadgeService.create_unlock(db, uid, badge["id"])
            if created:
                newly_unlocked.append(_unlocked(badge, record))

        current_app.logger.info(
            f"Unlocked {len(newly_unlocked)} new badges for user {uid}"
        )
        return newly_unlocked

    @staticmethod
    def get_progress(
        db: Client, uid: str, stats: UserStats | None = None
    ) -> list[BadgeProgress]:
        """Progress towards every catalog badge."""
        if stats is None:
            stats = compute_stats(db, uid)
        return [
            BadgeService.progress_for(badge, stats)
            for badge in BADGE_DEFINITIONS
            if badge["requirements"]
        ]
