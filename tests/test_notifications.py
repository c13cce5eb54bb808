"""Tests for device tokens and push notifications."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from firebase_admin import messaging

from loglynx.notifications.services import NotificationService
from tests.conftest import MOCK_USER_ID, ApiTestCase


def send_result(success: bool, exception: Exception | None = None) -> MagicMock:
    result = MagicMock()
    result.success = success
    result.exception = exception
    return result


class NotificationTestCase(ApiTestCase):
    """Test case for the notifications blueprint and service."""

    def tokens(self) -> dict:
        return {
            doc.id: doc.to_dict()
            for doc in self.db.collection("notification_tokens").stream()
            if doc.exists
        }

    def test_register_token(self) -> None:
        response = self.client.post(
            "/api/v1/notifications/tokens",
            headers=self.auth_headers(),
            json={"token": "device-1", "platform": "ios"},
        )
        self.assertEqual(response.status_code, 200)
        token = self.tokens()["device-1"]
        self.assertEqual(token["uid"], MOCK_USER_ID)
        self.assertEqual(token["platform"], "ios")
        self.assertIsInstance(token["lastSeenAt"], int)

    def test_register_defaults_to_android(self) -> None:
        self.client.post(
            "/api/v1/notifications/tokens",
            headers=self.auth_headers(),
            json={"token": "device-1"},
        )
        self.assertEqual(self.tokens()["device-1"]["platform"], "android")

    def test_register_requires_token(self) -> None:
        response = self.client.post(
            "/api/v1/notifications/tokens", headers=self.auth_headers(), json={}
        )
        self.assertEqual(response.status_code, 400)

    def test_unregister_own_token(self) -> None:
        NotificationService.save_device_token(self.db, MOCK_USER_ID, "device-1")
        response = self.client.delete(
            "/api/v1/notifications/tokens",
            headers=self.auth_headers(),
            json={"token": "device-1"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertNotIn("device-1", self.tokens())

    def test_unregister_keeps_other_users_token(self) -> None:
        NotificationService.save_device_token(self.db, "someone-else", "device-2")
        self.client.delete(
            "/api/v1/notifications/tokens",
            headers=self.auth_headers(),
            json={"token": "device-2"},
        )
        self.assertIn("device-2", self.tokens())

    def test_send_without_tokens(self) -> None:
        with patch.object(messaging, "send_each_for_multicast") as mock_send:
            delivered = NotificationService.send_notification(
                self.db, MOCK_USER_ID, "Hi", "There"
            )
        self.assertEqual(delivered, 0)
        mock_send.assert_not_called()

    def test_send_prunes_stale_tokens(self) -> None:
        NotificationService.save_device_token(self.db, MOCK_USER_ID, "good")
        NotificationService.save_device_token(self.db, MOCK_USER_ID, "stale")
        NotificationService.save_device_token(self.db, MOCK_USER_ID, "flaky")
        NotificationService.save_device_token(self.db, "someone-else", "other")

        outcomes = {
            "good": send_result(True),
            "stale": send_result(False, messaging.UnregisteredError("gone")),
            "flaky": send_result(False, RuntimeError("timeout")),
        }

        def fake_send(message):
            response = MagicMock()
            response.responses = [outcomes[token] for token in message.tokens]
            response.success_count = 1
            return response

        with patch.object(
            messaging, "send_each_for_multicast", side_effect=fake_send
        ) as mock_send:
            delivered = NotificationService.send_notification(
                self.db, MOCK_USER_ID, "Badge", "Century", {"badgeIds": "century"}
            )

        self.assertEqual(delivered, 1)
        message = mock_send.call_args.args[0]
        self.assertEqual(sorted(message.tokens), ["flaky", "good", "stale"])
        self.assertEqual(message.notification.title, "Badge")
        self.assertEqual(message.data, {"badgeIds": "century"})
        self.assertEqual(sorted(self.tokens()), ["flaky", "good", "other"])
