from django.urls import path

from .garmin_views import (
    GarminAuthorizeView,
    GarminCallbackView,
    GarminDisconnectView,
    GarminStatusView,
    GarminSyncView,
)
from .views import AthleteCreateView, AthleteDetailView, AthleteHydrateView, CheckHandleView
from .webhooks import GarminWebhookView

# ==============================================================================
#  RUTAS DEL NÚCLEO (CORE) - /api/...
# ==============================================================================
urlpatterns = [
    # 1. Atletas
    path('athlete/create', AthleteCreateView.as_view(), name='athlete_create'),
    path('athlete/hydrate', AthleteHydrateView.as_view(), name='athlete_hydrate'),
    path('athlete/check-handle', CheckHandleView.as_view(), name='athlete_check_handle'),
    path('athlete/<int:athlete_id>', AthleteDetailView.as_view(), name='athlete_detail'),

    # 2. Garmin OAuth (PKCE)
    path('auth/garmin/authorize', GarminAuthorizeView.as_view(), name='garmin_authorize'),
    path('auth/garmin/callback', GarminCallbackView.as_view(), name='garmin_callback'),

    # 3. Garmin: webhook + gestión de la conexión
    path('garmin/webhook', GarminWebhookView.as_view(), name='garmin_webhook'),
    path('garmin/status', GarminStatusView.as_view(), name='garmin_status'),
    path('garmin/sync', GarminSyncView.as_view(), name='garmin_sync'),
    path('garmin/disconnect', GarminDisconnectView.as_view(), name='garmin_disconnect'),
]
