"""Data models for the user blueprint."""

from __future__ import annotations

from typing import Any, TypedDict


class UserPreferences(TypedDict, total=False):
    """Per-user app preferences."""

    darkMode: str
    notificationsEnabled: bool
    biometricsEnabled: bool
    stravaAutoSync: bool


class UserProfile(TypedDict, total=False):
    """A user document in Firestore, keyed by Firebase uid."""

    email: str
    displayName: str
    createdAt: Any
    lastLoginAt: Any
    prefs: UserPreferences


DEFAULT_PREFERENCES: UserPreferences = {
    "darkMode": "system",
    "notificationsEnabled": True,
    "biometricsEnabled": False,
    "stravaAutoSync": False,
}
