import json
from unittest.mock import patch

from django.test import TestCase
from rest_framework.test import APIClient

from core.integration_models import GarminWebhookEvent

WEBHOOK_URL = "/api/garmin/webhook"


class TestGarminWebhookAck(TestCase):
    """Garmin must always get a fast 200 {"success": true}."""

    def setUp(self):
        self.client = APIClient()

    def _post_raw(self, raw, content_type="application/json"):
        return self.client.generic("POST", WEBHOOK_URL, raw, content_type=content_type)

    @patch("core.webhooks.process_garmin_webhook.delay")
    def test_known_event_is_recorded_and_enqueued(self, mock_delay):
        payload = {"activities": [{"userId": "g-1", "activityId": 1}]}

        response = self.client.post(WEBHOOK_URL, data=json.dumps(payload), content_type="application/json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})
        event = GarminWebhookEvent.objects.get()
        self.assertEqual(event.event_type, "ACTIVITY_SUMMARY")
        self.assertEqual(event.garmin_user_id, "g-1")
        self.assertEqual(event.status, GarminWebhookEvent.Status.QUEUED)
        mock_delay.assert_called_once_with(event.pk)

    @patch("core.webhooks.process_garmin_webhook.delay")
    def test_invalid_json_is_acknowledged(self, mock_delay):
        response = self._post_raw(b"{not json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})
        self.assertFalse(GarminWebhookEvent.objects.exists())
        mock_delay.assert_not_called()

    @patch("core.webhooks.process_garmin_webhook.delay")
    def test_non_object_payload_is_acknowledged(self, mock_delay):
        response = self._post_raw(b"[1, 2, 3]")

        self.assertEqual(response.status_code, 200)
        self.assertFalse(GarminWebhookEvent.objects.exists())
        mock_delay.assert_not_called()

    @patch("core.webhooks.process_garmin_webhook.delay")
    def test_unknown_event_is_recorded_as_ignored(self, mock_delay):
        response = self.client.post(WEBHOOK_URL, data=json.dumps({"hello": "world"}), content_type="application/json")

        self.assertEqual(response.status_code, 200)
        event = GarminWebhookEvent.objects.get()
        self.assertEqual(event.status, GarminWebhookEvent.Status.IGNORED)
        self.assertEqual(event.error_message, "unknown_event_type")
        mock_delay.assert_not_called()

    @patch("core.webhooks.process_garmin_webhook.delay", side_effect=RuntimeError("broker down"))
    def test_enqueue_failure_still_acknowledges(self, mock_delay):
        response = self.client.post(
            WEBHOOK_URL,
            data=json.dumps({"userId": "g-1", "reason": "USER_DEREGISTER"}),
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})

    @patch("core.webhooks.process_garmin_webhook.delay")
    def test_webhook_ignores_bearer_and_csrf(self, mock_delay):
        client = APIClient(enforce_csrf_checks=True)
        client.credentials(HTTP_AUTHORIZATION="Bearer not-a-real-token")

        response = client.post(WEBHOOK_URL, data=json.dumps({"activities": []}), content_type="application/json")

        self.assertEqual(response.status_code, 200)
