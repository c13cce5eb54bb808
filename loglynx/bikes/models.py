"""Data models for the bikes blueprint."""

from __future__ import annotations

from typing import Optional, TypedDict

from loglynx.core.types import FirestoreDocument


class Bike(FirestoreDocument, total=False):
    """A bike document in Firestore."""

    ownerUid: str
    name: str
    brand: str
    type: str
    year: int
    status: str
    totalMileage: float
    tags: list[str]
    uniqueIdentifier: str
    photoUrl: Optional[str]


class BikeInput(TypedDict, total=False):
    """Client-editable bike fields."""

    name: str
    brand: str
    type: str
    year: int
    status: str
    totalMileage: float
    tags: list[str]
    uniqueIdentifier: str
    photoUrl: Optional[str]


EDITABLE_FIELDS = (
    "name",
    "brand",
    "type",
    "year",
    "status",
    "totalMileage",
    "tags",
    "photoUrl",
)
REQUIRED_FIELDS = ("name", "brand", "type", "year", "status", "totalMileage")
