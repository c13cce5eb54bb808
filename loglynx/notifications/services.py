"""Service for device tokens and Firebase Cloud Messaging pushes."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from firebase_admin import exceptions, firestore, messaging
from flask import current_app
from google.api_core.exceptions import GoogleAPIError

from loglynx.constants import NOTIFICATION_TOKENS_COLLECTION
from loglynx.utils import now_ms, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

DEFAULT_PLATFORM = "android"

# FCM answers with these when a token will never be deliverable again.
STALE_TOKEN_ERRORS = (messaging.UnregisteredError, exceptions.InvalidArgumentError)


class NotificationService:
    """Service class for notification operations."""

    @staticmethod
    def save_device_token(
        db: Client, uid: str, token: str, platform: str = DEFAULT_PLATFORM
    ) -> None:
        """Register (or re-register) a device token for a user."""
        db.collection(NOTIFICATION_TOKENS_COLLECTION).document(token).set(
            {
                "uid": uid,
                "platform": platform,
                "updatedAt": utcnow(),
                "lastSeenAt": now_ms(),
            },
            merge=True,
        )
        current_app.logger.info(f"Saved notification token for user {uid}")

    @staticmethod
    def remove_device_token(db: Client, uid: str, token: str) -> bool:
        """Delete a device token unless it is registered to another user."""
        token_ref = db.collection(NOTIFICATION_TOKENS_COLLECTION).document(token)
        doc = cast("DocumentSnapshot", token_ref.get())
        if doc.exists and (doc.to_dict() or {}).get("uid") != uid:
            current_app.logger.warning(
                f"Token {token} does not belong to user {uid}"
            )
            return False
        token_ref.delete()
        current_app.logger.info(f"Removed notification token for user {uid}")
        return True

    @staticmethod
    def send_notification(
        db: Client,
        uid: str,
        title: str,
        body: str,
        data: dict[str, str] | None = None,
    ) -> int:
        """Push a notification to every device of a user.

        Tokens FCM reports as unregistered or invalid are deleted. Returns the
        number of devices the message was delivered to.
        """
        collection = db.collection(NOTIFICATION_TOKENS_COLLECTION)
        docs = list(
            collection.where(filter=firestore.FieldFilter("uid", "==", uid)).stream()
        )
        if not docs:
            current_app.logger.info(f"No notification tokens registered for user {uid}")
            return 0

        tokens = [doc.id for doc in docs]
        message = messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            data=data,
        )
        response = messaging.send_each_for_multicast(message)

        for token, result in zip(tokens, response.responses):
            if result.success or not isinstance(result.exception, STALE_TOKEN_ERRORS):
                continue
            try:
                collection.document(token).delete()
            except GoogleAPIError as e:
                current_app.logger.error(f"Failed to delete invalid token {token}: {e}")

        current_app.logger.info(
            f"Notification sent to {uid}: {title} "
            f"({response.success_count}/{len(tokens)} delivered)"
        )
        return response.success_count
