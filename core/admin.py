from django.contrib import admin

from .integration_models import GarminConnection, GarminWebhookEvent
from .models import Activity, Athlete

# ==============================================================================
#  CONFIGURACIÓN DEL PANEL DE ADMINISTRACIÓN
# ==============================================================================

@admin.register(Athlete)
class AthleteAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'gofast_handle', 'email', 'city', 'state', 'garmin_visual', 'created_at')
    list_filter = ('state', 'primary_sport')
    search_fields = ('first_name', 'last_name', 'email', 'gofast_handle', 'user__username')
    readonly_fields = ('created_at', 'updated_at')

    fieldsets = (
        ('Cuenta', {
            'fields': ('user', 'email', 'gofast_handle')
        }),
        ('Perfil', {
            'fields': ('first_name', 'last_name', 'photo_url', 'city', 'state', 'primary_sport', 'bio')
        }),
        ('Auditoría', {
            'fields': ('created_at', 'updated_at')
        }),
    )

    def garmin_visual(self, obj):
        connection = getattr(obj, "garmin_connection", None)
        return "✅ Conectado" if connection and connection.is_connected else "-"
    garmin_visual.short_description = "Garmin"


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ('start_time', 'athlete', 'activity_type', 'activity_name', 'distance', 'duration', 'source')
    list_filter = ('source', 'activity_type')
    search_fields = ('activity_name', 'source_activity_id', 'athlete__first_name', 'athlete__last_name')
    date_hierarchy = 'start_time'
    readonly_fields = ('summary_data', 'detail_data', 'created_at', 'updated_at')


@admin.register(GarminConnection)
class GarminConnectionAdmin(admin.ModelAdmin):
    list_display = ('athlete', 'garmin_user_id', 'is_connected', 'connected_at', 'last_sync_at')
    list_filter = ('is_connected',)
    search_fields = ('garmin_user_id', 'athlete__first_name', 'athlete__last_name', 'athlete__email')
    # Los tokens nunca se muestran en el admin
    exclude = ('access_token', 'refresh_token')
    readonly_fields = ('connected_at', 'disconnected_at', 'last_sync_at', 'created_at', 'updated_at')


@admin.register(GarminWebhookEvent)
class GarminWebhookEventAdmin(admin.ModelAdmin):
    list_display = ('received_at', 'event_type', 'garmin_user_id', 'status', 'processed_at')
    list_filter = ('status', 'event_type')
    search_fields = ('garmin_user_id', 'error_message')
    readonly_fields = ('payload_raw', 'result', 'received_at', 'processed_at')
