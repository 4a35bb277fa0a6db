from django.urls import path

from .views import (
    MyRunCrewsView,
    RunCrewAnnouncementDetailView,
    RunCrewAnnouncementsView,
    RunCrewCreateView,
    RunCrewDetailView,
    RunCrewDiscoverView,
    RunCrewEventsView,
    RunCrewHydrateView,
    RunCrewJoinView,
    RunCrewLeaveView,
    RunCrewMemberDetailView,
    RunCrewMembersView,
    RunCrewMessageDetailView,
    RunCrewMessagesView,
    RunCrewPublicByHandleView,
    RunCrewRunDetailView,
    RunCrewRunRSVPView,
    RunCrewRunsView,
    RunCrewTransferOwnershipView,
)

# ==============================================================================
#  RUN CREWS - /api/runcrew/...
# ==============================================================================
urlpatterns = [
    # 1. Alta, ingreso y vista completa
    path('runcrew/create/', RunCrewCreateView.as_view(), name='runcrew_create'),
    path('runcrew/join/', RunCrewJoinView.as_view(), name='runcrew_join'),
    path('runcrew/hydrate/', RunCrewHydrateView.as_view(), name='runcrew_hydrate'),

    # 2. Público (sin auth)
    path('runcrew/discover/', RunCrewDiscoverView.as_view(), name='runcrew_discover'),
    path('runcrew/public/handle/<str:handle>/', RunCrewPublicByHandleView.as_view(), name='runcrew_public_handle'),

    # 3. Crew + membresías
    path('runcrew/<int:crew_id>/', RunCrewDetailView.as_view(), name='runcrew_detail'),
    path('runcrew/<int:crew_id>/members/', RunCrewMembersView.as_view(), name='runcrew_members'),
    path(
        'runcrew/<int:crew_id>/members/<int:membership_id>/',
        RunCrewMemberDetailView.as_view(),
        name='runcrew_member_detail',
    ),
    path('runcrew/<int:crew_id>/leave/', RunCrewLeaveView.as_view(), name='runcrew_leave'),
    path(
        'runcrew/<int:crew_id>/transfer-ownership/',
        RunCrewTransferOwnershipView.as_view(),
        name='runcrew_transfer_ownership',
    ),

    # 4. Contenido del crew
    path('runcrew/<int:crew_id>/announcements/', RunCrewAnnouncementsView.as_view(), name='runcrew_announcements'),
    path(
        'runcrew/<int:crew_id>/announcements/<int:announcement_id>/',
        RunCrewAnnouncementDetailView.as_view(),
        name='runcrew_announcement_detail',
    ),
    path('runcrew/<int:crew_id>/messages/', RunCrewMessagesView.as_view(), name='runcrew_messages'),
    path(
        'runcrew/<int:crew_id>/messages/<int:message_id>/',
        RunCrewMessageDetailView.as_view(),
        name='runcrew_message_detail',
    ),
    path('runcrew/<int:crew_id>/runs/', RunCrewRunsView.as_view(), name='runcrew_runs'),
    path('runcrew/<int:crew_id>/runs/<int:run_id>/', RunCrewRunDetailView.as_view(), name='runcrew_run_detail'),
    path('runcrew/<int:crew_id>/runs/<int:run_id>/rsvp/', RunCrewRunRSVPView.as_view(), name='runcrew_run_rsvp'),
    path('runcrew/<int:crew_id>/events/', RunCrewEventsView.as_view(), name='runcrew_events'),

    # 5. Mis crews
    path('me/run-crews/', MyRunCrewsView.as_view(), name='my_run_crews'),
]
