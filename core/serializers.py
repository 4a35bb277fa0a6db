from rest_framework import serializers

from .integration_models import GarminConnection
from .models import Activity, Athlete, normalize_handle


# ==============================================================================
#  1. ATHLETE
# ==============================================================================
class AthleteSerializer(serializers.ModelSerializer):
    full_name = serializers.ReadOnlyField()
    garmin_is_connected = serializers.SerializerMethodField()

    class Meta:
        model = Athlete
        fields = [
            'id', 'first_name', 'last_name', 'full_name', 'email', 'photo_url',
            'gofast_handle', 'city', 'state', 'primary_sport', 'bio',
            'garmin_is_connected', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_garmin_is_connected(self, obj) -> bool:
        connection = getattr(obj, "garmin_connection", None) if obj.pk else None
        return bool(connection and connection.is_connected)

    def validate_gofast_handle(self, value):
        handle = normalize_handle(value)
        if not handle:
            return None
        qs = Athlete.objects.filter(gofast_handle=handle)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("Handle already taken")
        return handle


class AthletePublicSerializer(serializers.ModelSerializer):
    """Safe subset embedded in crew members, messages and RSVPs."""

    class Meta:
        model = Athlete
        fields = ['id', 'first_name', 'last_name', 'photo_url', 'gofast_handle']
        read_only_fields = fields


# ==============================================================================
#  2. ACTIVITIES
# ==============================================================================
class ActivitySerializer(serializers.ModelSerializer):
    class Meta:
        model = Activity
        fields = [
            'id', 'source', 'source_activity_id', 'activity_type', 'activity_name',
            'start_time', 'duration', 'distance', 'calories', 'average_speed',
            'average_heart_rate', 'max_heart_rate', 'elevation_gain', 'steps',
        ]
        read_only_fields = fields


# ==============================================================================
#  3. GARMIN (never exposes tokens)
# ==============================================================================
class GarminConnectionStatusSerializer(serializers.ModelSerializer):
    expires_at = serializers.DateTimeField(read_only=True)

    class Meta:
        model = GarminConnection
        fields = [
            'is_connected', 'garmin_user_id', 'scope', 'permissions',
            'connected_at', 'expires_at', 'last_sync_at', 'disconnected_at',
        ]
        read_only_fields = fields
