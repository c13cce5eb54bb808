"""Service layer for user profiles."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from flask import current_app

from loglynx.constants import USERS_COLLECTION
from loglynx.errors import NotFoundError
from loglynx.utils import utcnow

from .models import DEFAULT_PREFERENCES, UserPreferences, UserProfile

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client


class UserService:
    """Service class for user-profile operations."""

    @staticmethod
    def create_or_update_profile(
        db: Client, uid: str, email: str, display_name: str
    ) -> UserProfile:
        """Create the profile on first login, otherwise refresh login details.

        ``createdAt`` and ``prefs`` are only written when the profile is new, so
        account age keeps counting from the first login.
        """
        user_ref = db.collection(USERS_COLLECTION).document(uid)
        user_doc = cast("DocumentSnapshot", user_ref.get())
        now = utcnow()

        if user_doc.exists:
            updates: dict[str, Any] = {"lastLoginAt": now}
            if email:
                updates["email"] = email
            if display_name:
                updates["displayName"] = display_name
            user_ref.update(updates)
            current_app.logger.info(f"Updated login details for user {uid}")
        else:
            profile: UserProfile = {
                "email": email,
                "displayName": display_name,
                "createdAt": now,
                "lastLoginAt": now,
                "prefs": dict(DEFAULT_PREFERENCES),  # type: ignore[typeddict-item]
            }
            user_ref.set(profile)
            current_app.logger.info(f"Created user profile for {uid}")

        return cast(UserProfile, UserService.get_profile(db, uid))

    @staticmethod
    def get_profile(db: Client, uid: str) -> UserProfile | None:
        """Fetch a user profile by uid."""
        user_doc = cast(
            "DocumentSnapshot", db.collection(USERS_COLLECTION).document(uid).get()
        )
        if not user_doc.exists:
            return None
        return cast(UserProfile, user_doc.to_dict() or {})

    @staticmethod
    def update_profile(db: Client, uid: str, updates: dict[str, Any]) -> UserProfile:
        """Update profile fields and bump ``lastLoginAt``."""
        if UserService.get_profile(db, uid) is None:
            raise NotFoundError("User profile not found", "PROFILE_NOT_FOUND")
        user_ref = db.collection(USERS_COLLECTION).document(uid)
        user_ref.update({**updates, "lastLoginAt": utcnow()})
        current_app.logger.info(f"Updated profile for user {uid}")
        return cast(UserProfile, UserService.get_profile(db, uid))

    @staticmethod
    def update_preferences(
        db: Client, uid: str, prefs: UserPreferences
    ) -> UserProfile:
        """Merge new preference values into the stored ones."""
        profile = UserService.get_profile(db, uid)
        if profile is None:
            raise NotFoundError("User profile not found", "PROFILE_NOT_FOUND")
        merged = {**profile.get("prefs", DEFAULT_PREFERENCES), **prefs}
        db.collection(USERS_COLLECTION).document(uid).update(
            {"prefs": merged, "lastLoginAt": utcnow()}
        )
        current_app.logger.info(f"Updated preferences for user {uid}")
        return cast(UserProfile, UserService.get_profile(db, uid))

    @staticmethod
    def delete_profile(db: Client, uid: str) -> None:
        """Delete a user's profile document."""
        db.collection(USERS_COLLECTION).document(uid).delete()
        current_app.logger.info(f"Deleted profile for user {uid}")
