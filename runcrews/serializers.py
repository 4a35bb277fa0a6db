from rest_framework import serializers

from core.models import normalize_handle
from core.serializers import AthletePublicSerializer

from .models import (
    RunCrew,
    RunCrewAnnouncement,
    RunCrewEvent,
    RunCrewMembership,
    RunCrewMessage,
    RunCrewRun,
    RunCrewRunRSVP,
    normalize_join_code,
)


# ==============================================================================
#  1. CREW
# ==============================================================================
class RunCrewSerializer(serializers.ModelSerializer):
    member_count = serializers.SerializerMethodField()

    class Meta:
        model = RunCrew
        fields = [
            'id', 'name', 'description', 'join_code', 'handle', 'logo_url', 'icon',
            'city', 'state', 'pace_min', 'pace_max',
            'primary_meet_up_point', 'primary_meet_up_address',
            'member_count', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
        extra_kwargs = {
            # Generated when omitted
            'join_code': {'required': False},
            'handle': {'required': False},
        }

    def get_member_count(self, obj) -> int:
        annotated = getattr(obj, "member_count", None)
        if annotated is not None:
            return annotated
        return obj.memberships.count()

    def validate_handle(self, value):
        handle = normalize_handle(value)
        if handle:
            qs = RunCrew.objects.filter(handle=handle)
            if self.instance is not None:
                qs = qs.exclude(pk=self.instance.pk)
            if qs.exists():
                raise serializers.ValidationError("Handle already taken")
        return handle

    def validate_join_code(self, value):
        # Se guarda en mayúsculas: la unicidad se chequea sobre el valor normalizado.
        join_code = normalize_join_code(value)
        if not join_code:
            raise serializers.ValidationError("Join code cannot be blank")
        qs = RunCrew.objects.filter(join_code=join_code)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("Join code already in use")
        return join_code


class RunCrewPublicSerializer(serializers.ModelSerializer):
    """Public metadata: no join code, no member list."""

    member_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = RunCrew
        fields = [
            'id', 'name', 'description', 'handle', 'logo_url', 'icon',
            'city', 'state', 'pace_min', 'pace_max',
            'primary_meet_up_point', 'primary_meet_up_address', 'member_count',
        ]
        read_only_fields = fields


class MembershipSerializer(serializers.ModelSerializer):
    athlete = AthletePublicSerializer(read_only=True)

    class Meta:
        model = RunCrewMembership
        fields = ['id', 'run_crew', 'athlete', 'role', 'joined_at']
        read_only_fields = fields


# ==============================================================================
#  2. RUNS + RSVPs
# ==============================================================================
class RunCrewRunRSVPSerializer(serializers.ModelSerializer):
    athlete = AthletePublicSerializer(read_only=True)

    class Meta:
        model = RunCrewRunRSVP
        fields = ['id', 'run', 'athlete', 'status', 'updated_at']
        read_only_fields = ['id', 'run', 'athlete', 'updated_at']


class RunCrewRunSerializer(serializers.ModelSerializer):
    created_by = AthletePublicSerializer(read_only=True)
    rsvps = RunCrewRunRSVPSerializer(many=True, read_only=True)

    class Meta:
        model = RunCrewRun
        fields = [
            'id', 'run_crew', 'title', 'date', 'start_time', 'meet_up_point',
            'meet_up_address', 'total_miles', 'pace', 'description',
            'created_by', 'rsvps', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'run_crew', 'created_by', 'rsvps', 'created_at', 'updated_at']


# ==============================================================================
#  3. EVENTS, ANNOUNCEMENTS, MESSAGES
# ==============================================================================
class RunCrewEventSerializer(serializers.ModelSerializer):
    organizer = AthletePublicSerializer(read_only=True)

    class Meta:
        model = RunCrewEvent
        fields = [
            'id', 'run_crew', 'title', 'date', 'time', 'location', 'address',
            'description', 'event_type', 'organizer', 'created_at',
        ]
        read_only_fields = ['id', 'run_crew', 'organizer', 'created_at']


class RunCrewAnnouncementSerializer(serializers.ModelSerializer):
    author = AthletePublicSerializer(read_only=True)

    class Meta:
        model = RunCrewAnnouncement
        fields = ['id', 'run_crew', 'title', 'content', 'author', 'archived_at', 'created_at', 'updated_at']
        read_only_fields = ['id', 'run_crew', 'author', 'archived_at', 'created_at', 'updated_at']


class RunCrewMessageSerializer(serializers.ModelSerializer):
    athlete = AthletePublicSerializer(read_only=True)

    class Meta:
        model = RunCrewMessage
        fields = ['id', 'run_crew', 'athlete', 'content', 'created_at', 'updated_at']
        read_only_fields = ['id', 'run_crew', 'athlete', 'created_at', 'updated_at']

    def validate_content(self, value):
        if not str(value or "").strip():
            raise serializers.ValidationError("Message content is required")
        return value


# ==============================================================================
#  4. HYDRATE (crew page payload)
# ==============================================================================
class RunCrewHydratedSerializer(RunCrewSerializer):
    memberships = MembershipSerializer(many=True, read_only=True)
    announcements = serializers.SerializerMethodField()
    messages = serializers.SerializerMethodField()
    runs = serializers.SerializerMethodField()
    events = RunCrewEventSerializer(many=True, read_only=True)
    user_role = serializers.SerializerMethodField()

    class Meta(RunCrewSerializer.Meta):
        fields = RunCrewSerializer.Meta.fields + [
            'memberships', 'announcements', 'messages', 'runs', 'events', 'user_role',
        ]

    def get_announcements(self, obj):
        qs = obj.announcements.filter(archived_at__isnull=True).select_related("author")[:10]
        return RunCrewAnnouncementSerializer(qs, many=True).data

    def get_messages(self, obj):
        qs = obj.messages.select_related("athlete")[:50]
        return RunCrewMessageSerializer(qs, many=True).data

    def get_runs(self, obj):
        qs = obj.runs.select_related("created_by").prefetch_related("rsvps__athlete")
        return RunCrewRunSerializer(qs, many=True).data

    def get_user_role(self, obj):
        return self.context.get("user_role")
