import nested_admin
from django.contrib import admin

from .models import (
    RunCrew,
    RunCrewAnnouncement,
    RunCrewEvent,
    RunCrewMembership,
    RunCrewMessage,
    RunCrewRun,
    RunCrewRunRSVP,
)

# ==============================================================================
#  RUN CREWS: crew -> runs -> RSVPs en una sola pantalla
# ==============================================================================

class RunCrewRunRSVPInline(nested_admin.NestedTabularInline):
    model = RunCrewRunRSVP
    extra = 0
    raw_id_fields = ('athlete',)


class RunCrewRunInline(nested_admin.NestedStackedInline):
    model = RunCrewRun
    extra = 0
    raw_id_fields = ('created_by',)
    inlines = [RunCrewRunRSVPInline]


class RunCrewMembershipInline(nested_admin.NestedTabularInline):
    model = RunCrewMembership
    extra = 0
    raw_id_fields = ('athlete',)
    readonly_fields = ('joined_at',)


@admin.register(RunCrew)
class RunCrewAdmin(nested_admin.NestedModelAdmin):
    list_display = ('name', 'handle', 'join_code', 'city', 'state', 'admins_visual', 'created_at')
    list_filter = ('state',)
    search_fields = ('name', 'handle', 'join_code', 'city')
    readonly_fields = ('created_at', 'updated_at')
    inlines = [RunCrewMembershipInline, RunCrewRunInline]

    def admins_visual(self, obj):
        count = obj.memberships.filter(role=RunCrewMembership.Role.ADMIN).count()
        return f"{count} admin(s)" if count else "⚠️ Sin admin"
    admins_visual.short_description = "Admins"


@admin.register(RunCrewAnnouncement)
class RunCrewAnnouncementAdmin(admin.ModelAdmin):
    list_display = ('title', 'run_crew', 'author', 'created_at', 'archived_at')
    list_filter = ('archived_at',)
    search_fields = ('title', 'content', 'run_crew__name')


@admin.register(RunCrewMessage)
class RunCrewMessageAdmin(admin.ModelAdmin):
    list_display = ('run_crew', 'athlete', 'created_at')
    search_fields = ('content', 'run_crew__name')


@admin.register(RunCrewEvent)
class RunCrewEventAdmin(admin.ModelAdmin):
    list_display = ('title', 'run_crew', 'date', 'location', 'event_type')
    search_fields = ('title', 'run_crew__name', 'location')
