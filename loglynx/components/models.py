"""Data models for the components blueprint."""

from __future__ import annotations

from typing import Any, Optional, TypedDict

from loglynx.core.types import FirestoreDocument


class Component(FirestoreDocument, total=False):
    """A component document in Firestore."""

    ownerUid: str
    kind: str
    brand: str
    model: str
    spec: dict[str, Any]
    currentBikeId: Optional[str]


class Installation(TypedDict, total=False):
    """One stint of a component on a bike (``installations`` sub-collection)."""

    bikeId: str
    installedAt: Any
    installedOdometer: float
    removedAt: Any
    removedOdometer: float


EDITABLE_FIELDS = ("kind", "brand", "model", "spec", "currentBikeId")
REQUIRED_FIELDS = ("kind", "brand", "model", "spec")
