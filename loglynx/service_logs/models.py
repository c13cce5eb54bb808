"""Data models for the service-logs blueprint."""

from __future__ import annotations

from typing import Any

from loglynx.core.types import FirestoreDocument


class ServiceLog(FirestoreDocument, total=False):
    """A maintenance entry recorded against a bike."""

    bikeId: str
    userUid: str
    performedAt: Any
    title: str
    notes: str
    cost: float
    mileageAtService: float
    items: list[str]


EDITABLE_FIELDS = (
    "bikeId",
    "performedAt",
    "title",
    "notes",
    "cost",
    "mileageAtService",
    "items",
)
