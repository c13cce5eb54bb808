"""Data models for the Strava integration."""

from __future__ import annotations

from typing import Any, Optional, TypedDict


class _StravaConnectionBase(TypedDict):
    accessToken: str
    refreshToken: str
    expiresAt: int
    athleteId: str


class StravaConnection(_StravaConnectionBase, total=False):
    """OAuth tokens and athlete info stored per user."""

    athleteName: Optional[str]
    lastSyncAt: Optional[int]
    createdAt: int
    updatedAt: int


class Activity(TypedDict, total=False):
    """A ride imported from Strava into the ``activities`` collection."""

    userUid: str
    source: str
    stravaId: str
    startedAt: Any
    distanceKm: float
    movingTimeSec: int
    elapsedTimeSec: int
    elevationGainM: float
    averageSpeedMps: float
    maxSpeedMps: float
    averageCadence: Optional[float]
    averageWatts: Optional[float]
    kilojoules: Optional[float]
    calories: Optional[float]
    bikeId: Optional[str]
    gearId: Optional[str]
    raw: dict[str, Any]
    createdAt: Any


class SyncResult(TypedDict):
    synced: int
    skipped: int
