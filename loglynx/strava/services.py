"""Strava OAuth and activity import."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, cast
from urllib.parse import urlencode

import requests
from firebase_admin import firestore
from flask import current_app

from loglynx.constants import (
    ACTIVITIES_COLLECTION,
    FIRESTORE_BATCH_LIMIT,
    MS_PER_DAY,
    STRAVA_CONNECTIONS_COLLECTION,
    STRAVA_OAUTH_STATES_COLLECTION,
    USER_UID,
)
from loglynx.errors import AppError, ExternalServiceError, NotFoundError
from loglynx.utils import now_ms, parse_datetime, utcnow

from .models import Activity, StravaConnection, SyncResult

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

AUTHORIZE_URL = "https://www.strava.com/oauth/authorize"
TOKEN_URL = "https://www.strava.com/oauth/token"
ACTIVITIES_URL = "https://www.strava.com/api/v3/athlete/activities"
SCOPE = "activity:read_all,profile:read_all"

REQUEST_TIMEOUT = 30  # seconds
TOKEN_REFRESH_MARGIN = 300  # seconds
OAUTH_STATE_TTL_SECONDS = 600
FIRST_SYNC_WINDOW_DAYS = 30
ACTIVITIES_PER_PAGE = 200
SOURCE = "strava"


def _not_configured() -> AppError:
    return AppError(
        "Strava client is not configured. Set STRAVA_CLIENT_ID, "
        "STRAVA_CLIENT_SECRET and STRAVA_REDIRECT_URI.",
        500,
        "STRAVA_NOT_CONFIGURED",
    )


def _to_activity(uid: str, activity: dict[str, Any]) -> Activity:
    bike_id = activity.get("bike_id")
    return {
        "userUid": uid,
        "source": SOURCE,
        "stravaId": str(activity["id"]),
        "startedAt": parse_datetime(activity.get("start_date")),
        "distanceKm": (activity.get("distance") or 0) / 1000,
        "movingTimeSec": activity.get("moving_time") or 0,
        "elapsedTimeSec": activity.get("elapsed_time") or 0,
        "elevationGainM": activity.get("total_elevation_gain") or 0,
        "averageSpeedMps": activity.get("average_speed") or 0,
        "maxSpeedMps": activity.get("max_speed") or 0,
        "averageCadence": activity.get("average_cadence") or None,
        "averageWatts": activity.get("average_watts") or None,
        "kilojoules": activity.get("kilojoules") or None,
        "calories": activity.get("calories") or None,
        "bikeId": str(bike_id) if bike_id else None,
        "gearId": activity.get("gear_id") or None,
        "raw": activity,
        "createdAt": utcnow(),
    }


class StravaService:
    """Service class for the Strava integration."""

    @staticmethod
    def get_authorization_url(state: str) -> str:
        """Build the Strava OAuth consent URL."""
        client_id = current_app.config.get("STRAVA_CLIENT_ID")
        redirect_uri = current_app.config.get("STRAVA_REDIRECT_URI")
        if not client_id or not redirect_uri:
            raise _not_configured()
        params = {
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": SCOPE,
            "state": state,
            "approval_prompt": "force",
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    @staticmethod
    def save_oauth_state(db: Client, uid: str, nonce: str) -> None:
        """Remember a nonce issued to ``uid`` for the OAuth callback."""
        db.collection(STRAVA_OAUTH_STATES_COLLECTION).document(nonce).set(
            {"uid": uid, "createdAt": now_ms()}
        )

    @staticmethod
    def consume_oauth_state(db: Client, nonce: str) -> str | None:
        """Return the uid a nonce was issued to and invalidate the nonce.

        Unknown and expired nonces return None. A nonce works only once.
        """
        state_ref = db.collection(STRAVA_OAUTH_STATES_COLLECTION).document(nonce)
        doc = cast("DocumentSnapshot", state_ref.get())
        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        state_ref.delete()
        age_ms = now_ms() - (data.get("createdAt") or 0)
        if age_ms > OAUTH_STATE_TTL_SECONDS * 1000:
            current_app.logger.warning(f"Expired Strava OAuth state {nonce}")
            return None
        return data.get("uid")

    @staticmethod
    def _post_token(payload: dict[str, Any], action: str) -> dict[str, Any]:
        client_id = current_app.config.get("STRAVA_CLIENT_ID")
        client_secret = current_app.config.get("STRAVA_CLIENT_SECRET")
        if not client_id or not client_secret:
            raise _not_configured()
        try:
            response = requests.post(
                TOKEN_URL,
                json={
                    "client_id": client_id,
                    "client_secret": client_secret,
                    **payload,
                },
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            current_app.logger.error(f"Error trying to {action}: {e}")
            raise ExternalServiceError(f"Failed to {action}", "STRAVA_ERROR") from e
        return response.json()

    @staticmethod
    def exchange_code_for_token(code: str) -> dict[str, Any]:
        """Trade an OAuth authorization code for tokens and athlete info."""
        return StravaService._post_token(
            {"code": code, "grant_type": "authorization_code"},
            "exchange Strava code",
        )

    @staticmethod
    def refresh_access_token(refresh_token: str) -> dict[str, Any]:
        """Obtain a fresh access token."""
        return StravaService._post_token(
            {"refresh_token": refresh_token, "grant_type": "refresh_token"},
            "refresh Strava token",
        )

    @staticmethod
    def save_connection(db: Client, uid: str, connection: StravaConnection) -> None:
        """Store a user's Strava connection, replacing any previous one."""
        db.collection(STRAVA_CONNECTIONS_COLLECTION).document(uid).set(
            {**connection, "updatedAt": now_ms()}
        )
        current_app.logger.info(f"Saved Strava connection for user {uid}")

    @staticmethod
    def get_connection(db: Client, uid: str) -> StravaConnection | None:
        """Return a user's Strava connection, if any."""
        doc = cast(
            "DocumentSnapshot",
            db.collection(STRAVA_CONNECTIONS_COLLECTION).document(uid).get(),
        )
        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        return {
            "accessToken": data.get("accessToken") or "",
            "refreshToken": data.get("refreshToken") or "",
            "expiresAt": data.get("expiresAt") or 0,
            "athleteId": data.get("athleteId") or "",
            "athleteName": data.get("athleteName"),
            "lastSyncAt": data.get("lastSyncAt"),
            "createdAt": data.get("createdAt") or now_ms(),
        }

    @staticmethod
    def delete_connection(db: Client, uid: str) -> None:
        """Forget a user's Strava tokens."""
        db.collection(STRAVA_CONNECTIONS_COLLECTION).document(uid).delete()
        current_app.logger.info(f"Deleted Strava connection for user {uid}")

    @staticmethod
    def get_valid_connection(db: Client, uid: str) -> StravaConnection:
        """Return the user's connection, refreshing tokens close to expiry."""
        connection = StravaService.get_connection(db, uid)
        if connection is None:
            raise NotFoundError("Strava account not connected", "STRAVA_NOT_CONNECTED")

        if connection["expiresAt"] > int(time.time()) + TOKEN_REFRESH_MARGIN:
            return connection

        current_app.logger.info(f"Refreshing Strava token for user {uid}")
        refreshed = StravaService.refresh_access_token(connection["refreshToken"])
        connection = {
            **connection,
            "accessToken": refreshed["access_token"],
            "refreshToken": refreshed["refresh_token"],
            "expiresAt": refreshed["expires_at"],
        }
        StravaService.save_connection(db, uid, connection)
        return connection

    @staticmethod
    def get_activities(
        access_token: str,
        after: int | None = None,
        before: int | None = None,
        per_page: int | None = None,
        page: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch the athlete's activities (a single page)."""
        params = {
            key: value
            for key, value in (
                ("before", before),
                ("after", after),
                ("per_page", per_page),
                ("page", page),
            )
            if value
        }
        try:
            response = requests.get(
                ACTIVITIES_URL,
                headers={"Authorization": f"Bearer {access_token}"},
                params=params,
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            current_app.logger.error(f"Error fetching Strava activities: {e}")
            raise ExternalServiceError(
                "Failed to fetch Strava activities", "STRAVA_ERROR"
            ) from e
        return response.json()

    @staticmethod
    def _stored_strava_ids(db: Client, uid: str) -> set[str]:
        query = (
            db.collection(ACTIVITIES_COLLECTION)
            .where(filter=firestore.FieldFilter(USER_UID, "==", uid))
            .where(filter=firestore.FieldFilter("source", "==", SOURCE))
        )
        return {(doc.to_dict() or {}).get("stravaId") for doc in query.stream()}

    @staticmethod
    def sync_activities(db: Client, uid: str) -> SyncResult:
        """Import new rides since the last sync (or the last 30 days).

        Pages are fetched until Strava returns a short page, so ``lastSyncAt``
        only moves forward once every activity in the window has been seen.
        Non-ride activities and rides already imported are counted as skipped.
        """
        connection = StravaService.get_valid_connection(db, uid)
        last_sync = connection.get("lastSyncAt")
        if last_sync:
            after = int(last_sync // 1000)
        else:
            after = (now_ms() - FIRST_SYNC_WINDOW_DAYS * MS_PER_DAY) // 1000

        sync_started = now_ms()
        activities: list[dict[str, Any]] = []
        page = 1
        while True:
            page_items = StravaService.get_activities(
                connection["accessToken"],
                after=after,
                per_page=ACTIVITIES_PER_PAGE,
                page=page,
            )
            activities.extend(page_items)
            if len(page_items) < ACTIVITIES_PER_PAGE:
                break
            page += 1

        stored = StravaService._stored_strava_ids(db, uid)

        new_activities: list[Activity] = []
        skipped = 0
        for activity in activities:
            strava_id = str(activity.get("id"))
            if activity.get("type") != "Ride" or strava_id in stored:
                skipped += 1
                continue
            stored.add(strava_id)
            new_activities.append(_to_activity(uid, activity))

        activities_ref = db.collection(ACTIVITIES_COLLECTION)
        for start in range(0, len(new_activities), FIRESTORE_BATCH_LIMIT):
            batch = db.batch()
            for activity_data in new_activities[start : start + FIRESTORE_BATCH_LIMIT]:
                batch.set(activities_ref.document(), activity_data)
            batch.commit()

        StravaService.save_connection(
            db, uid, {**connection, "lastSyncAt": sync_started}
        )
        current_app.logger.info(
            f"Synced {len(new_activities)} activities for user {uid}, "
            f"skipped {skipped}"
        )
        return {"synced": len(new_activities), "skipped": skipped}
