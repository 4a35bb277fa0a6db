from django.urls import path

from .views import CityRunPublicDetailView, CityRunPublicListView, CityRunRSVPView

# ==============================================================================
#  CITY RUNS - /api/runs/...
# ==============================================================================
urlpatterns = [
    path('runs/public', CityRunPublicListView.as_view(), name='cityrun_public_list'),
    path('runs/public/<str:run_ref>', CityRunPublicDetailView.as_view(), name='cityrun_public_detail'),
    path('runs/<int:run_id>/rsvp', CityRunRSVPView.as_view(), name='cityrun_rsvp'),
]
