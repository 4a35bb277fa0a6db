"""
Event-type detection, the five webhook handlers and the Celery task.
"""
import pytest

from core.garmin_events import (
    ACTIVITY_DETAIL,
    ACTIVITY_FILE,
    ACTIVITY_SUMMARY,
    MANUALLY_UPDATED,
    MOVEIQ,
    UNKNOWN,
    USER_DEREGISTER,
    USER_PERMISSION_CHANGED,
    detect_event_type,
    dispatch_event,
    extract_garmin_user_id,
    handle_activity_detail,
    handle_activity_file,
    handle_activity_summary,
    handle_deregistration,
    handle_permission_change,
)
from core.integration_models import GarminWebhookEvent
from core.models import Activity
from core.tasks import process_garmin_webhook

SUMMARY = {
    "userId": "garmin-user-1",
    "summaryId": "s-1",
    "activityId": 1001,
    "activityName": "Morning Run",
    "activityType": "RUNNING",
    "startTimeInSeconds": 1700000000,
    "durationInSeconds": 1800,
    "distanceInMeters": 5000.0,
    "activeKilocalories": 350,
    "averageSpeedInMetersPerSecond": 2.78,
    "averageHeartRateInBeatsPerMinute": 150,
    "maxHeartRateInBeatsPerMinute": 172,
    "totalElevationGainInMeters": 42.5,
    "steps": 5200,
}


# ==============================================================================
#  Detection
# ==============================================================================
@pytest.mark.parametrize(
    "body,expected",
    [
        ({"eventType": "activity_summary"}, ACTIVITY_SUMMARY),
        ({"eventType": "MOVEIQ"}, MOVEIQ),
        ({"eventType": "MANUALLY_UPDATED", "activities": []}, MANUALLY_UPDATED),
        ({"activities": []}, ACTIVITY_SUMMARY),
        ({"activityDetails": []}, ACTIVITY_DETAIL),
        ({"activityFiles": []}, ACTIVITY_FILE),
        ({"userId": "1", "scopes": ["ACTIVITY_EXPORT"]}, USER_PERMISSION_CHANGED),
        ({"userId": "1", "permissions": {"ACTIVITY_EXPORT": True}}, USER_PERMISSION_CHANGED),
        ({"userId": "1", "reason": "USER_DEREGISTER"}, USER_DEREGISTER),
        ({"userId": "1", "action": "deregister"}, USER_DEREGISTER),
        ({"eventType": "SOMETHING_NEW"}, UNKNOWN),
        ({"foo": "bar"}, UNKNOWN),
        ([], UNKNOWN),
    ],
)
def test_detect_event_type(body, expected):
    assert detect_event_type(body) == expected


def test_extract_garmin_user_id_from_first_item():
    assert extract_garmin_user_id({"activities": [{"userId": 77}]}) == "77"
    assert extract_garmin_user_id({"userId": "top"}) == "top"
    assert extract_garmin_user_id({}) == ""


# ==============================================================================
#  Handlers
# ==============================================================================
@pytest.mark.django_db
class TestActivitySummary:
    def test_creates_activity(self, athlete, garmin_connection):
        result = handle_activity_summary([SUMMARY])

        assert result == {"processed": 1, "skipped": 0, "errors": 0}
        activity = Activity.objects.get(source_activity_id="1001")
        assert activity.athlete == athlete
        assert activity.activity_name == "Morning Run"
        assert activity.duration == 1800
        assert activity.distance == 5000.0
        assert activity.average_heart_rate == 150
        assert activity.start_time.timestamp() == 1700000000
        assert activity.summary_data["summaryId"] == "s-1"

    def test_existing_activity_is_skipped(self, garmin_connection):
        handle_activity_summary([SUMMARY])
        result = handle_activity_summary([SUMMARY])

        assert result == {"processed": 0, "skipped": 1, "errors": 0}
        assert Activity.objects.count() == 1

    def test_unknown_user_is_skipped(self, garmin_connection):
        result = handle_activity_summary([{**SUMMARY, "userId": "someone-else"}])
        assert result["skipped"] == 1
        assert not Activity.objects.exists()

    def test_pending_user_id_never_matches(self, garmin_connection):
        garmin_connection.garmin_user_id = "pending"
        garmin_connection.save()

        result = handle_activity_summary([{**SUMMARY, "userId": "pending"}])
        assert result["skipped"] == 1

    def test_bad_items_are_counted_not_raised(self, garmin_connection):
        result = handle_activity_summary(["garbage", {**SUMMARY, "activityId": None, "summaryId": None}])
        assert result == {"processed": 0, "skipped": 2, "errors": 0}


@pytest.mark.django_db
class TestActivityDetailAndFile:
    def test_detail_attaches_to_existing_activity(self, garmin_connection):
        handle_activity_summary([SUMMARY])

        result = handle_activity_detail([{"userId": "garmin-user-1", "activityId": 1001, "samples": [1, 2]}])

        assert result["processed"] == 1
        activity = Activity.objects.get(source_activity_id="1001")
        assert activity.detail_data["detail"]["samples"] == [1, 2]

    def test_detail_without_activity_is_skipped(self, garmin_connection):
        result = handle_activity_detail([{"userId": "garmin-user-1", "activityId": 999}])
        assert result == {"processed": 0, "skipped": 1, "errors": 0}

    def test_file_appends_and_skips_duplicate_type(self, garmin_connection):
        handle_activity_summary([SUMMARY])
        item = {"userId": "garmin-user-1", "activityId": 1001, "fileType": "FIT", "fileUrl": "https://x/file.fit"}

        first = handle_activity_file([item])
        second = handle_activity_file([item])

        assert first["processed"] == 1
        assert second["skipped"] == 1
        detail = Activity.objects.get(source_activity_id="1001").detail_data
        assert detail["processedFiles"] == ["FIT"]
        assert len(detail["files"]) == 1
        assert detail["files"][0]["url"] == "https://x/file.fit"


@pytest.mark.django_db
class TestConnectionEvents:
    def test_permission_change_replaces_scope(self, garmin_connection):
        result = handle_permission_change({
            "userId": "garmin-user-1",
            "scopes": ["ACTIVITY_EXPORT", "HEALTH_EXPORT"],
            "permissions": {"ACTIVITY_EXPORT": True},
        })

        assert result == {"success": True}
        garmin_connection.refresh_from_db()
        assert garmin_connection.scope == "ACTIVITY_EXPORT HEALTH_EXPORT"
        assert garmin_connection.permissions["scopes"] == ["ACTIVITY_EXPORT", "HEALTH_EXPORT"]

    def test_permission_change_without_user(self):
        assert handle_permission_change({"scopes": ["X"]})["success"] is False

    def test_deregistration_disconnects(self, garmin_connection):
        result = handle_deregistration({"userId": "garmin-user-1", "reason": "USER_DEREGISTER"})

        assert result == {"success": True}
        garmin_connection.refresh_from_db()
        assert garmin_connection.is_connected is False
        assert garmin_connection.access_token == ""
        assert garmin_connection.refresh_token == ""
        assert garmin_connection.disconnected_at is not None

    def test_deregistration_unknown_athlete(self, db):
        assert handle_deregistration({"userId": "nobody"}) == {"success": False, "error": "Athlete not found"}


@pytest.mark.django_db
def test_manually_updated_reuses_summary_handler(garmin_connection):
    result = dispatch_event(MANUALLY_UPDATED, {"activities": [SUMMARY]})
    assert result["processed"] == 1


def test_moveiq_has_no_handler():
    assert dispatch_event(MOVEIQ, {"eventType": "MOVEIQ"}) is None


# ==============================================================================
#  Celery task
# ==============================================================================
@pytest.mark.django_db
class TestProcessGarminWebhookTask:
    def test_processes_and_stores_result(self, garmin_connection):
        event = GarminWebhookEvent.objects.create(
            event_type=ACTIVITY_SUMMARY,
            garmin_user_id="garmin-user-1",
            payload_raw={"activities": [SUMMARY]},
        )

        assert process_garmin_webhook(event.pk) == "PROCESSED"

        event.refresh_from_db()
        assert event.status == GarminWebhookEvent.Status.PROCESSED
        assert event.result == {"processed": 1, "skipped": 0, "errors": 0}
        assert event.processed_at is not None

    def test_event_without_handler_is_ignored(self, db):
        event = GarminWebhookEvent.objects.create(event_type=MOVEIQ, payload_raw={"eventType": "MOVEIQ"})

        assert process_garmin_webhook(event.pk) == "IGNORED"

        event.refresh_from_db()
        assert event.status == GarminWebhookEvent.Status.IGNORED
        assert event.error_message == "no_handler:MOVEIQ"

    def test_handler_crash_marks_failed(self, db, monkeypatch):
        event = GarminWebhookEvent.objects.create(event_type=ACTIVITY_SUMMARY, payload_raw={"activities": []})

        def boom(*args, **kwargs):
            raise RuntimeError("db down")

        monkeypatch.setattr("core.tasks.dispatch_event", boom)

        assert process_garmin_webhook(event.pk) == "FAILED"
        event.refresh_from_db()
        assert event.status == GarminWebhookEvent.Status.FAILED
        assert "db down" in event.error_message

    def test_missing_event(self, db):
        assert process_garmin_webhook(987654) == "MISSING"
