from rest_framework import serializers

from core.serializers import AthletePublicSerializer

from .models import CityRun, CityRunRSVP


class CityRunPublicSerializer(serializers.ModelSerializer):
    """Campos públicos: nunca expone quién creó el run."""

    weekday = serializers.ReadOnlyField()

    class Meta:
        model = CityRun
        fields = [
            'id', 'slug', 'title', 'city_slug', 'is_recurring', 'day_of_week', 'weekday',
            'start_date', 'end_date',
            'start_time_hour', 'start_time_minute', 'start_time_period', 'timezone',
            'meet_up_point', 'meet_up_street_address', 'meet_up_city', 'meet_up_state',
            'meet_up_zip', 'meet_up_lat', 'meet_up_lng',
            'total_miles', 'pace', 'description', 'strava_map_url',
        ]
        read_only_fields = fields


class CityRunDetailSerializer(CityRunPublicSerializer):
    going_count = serializers.SerializerMethodField()

    class Meta(CityRunPublicSerializer.Meta):
        fields = CityRunPublicSerializer.Meta.fields + ['going_count']
        read_only_fields = fields

    def get_going_count(self, obj) -> int:
        annotated = getattr(obj, "going_count", None)
        if annotated is not None:
            return annotated
        return obj.rsvps.filter(status=CityRunRSVP.Status.GOING).count()


class CityRunRSVPSerializer(serializers.ModelSerializer):
    athlete = AthletePublicSerializer(read_only=True)

    class Meta:
        model = CityRunRSVP
        fields = ['id', 'run', 'athlete', 'status', 'occurrence_date', 'rsvp_photo_urls', 'created_at', 'updated_at']
        read_only_fields = ['id', 'run', 'athlete', 'created_at', 'updated_at']

    def validate_rsvp_photo_urls(self, value):
        if value is None:
            return None
        if not isinstance(value, list) or not all(isinstance(url, str) for url in value):
            raise serializers.ValidationError("rsvpPhotoUrls must be a list of URLs")
        return value
