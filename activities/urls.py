from django.urls import path
from .views import (
    ActivityListCreateView,
    ActivityDetailView,
    ActivityTransitionView,
    ActivityLedgerView,
    JoinActivityView,
    LeaveActivityView,
    ActivityParticipantsView,
    RemoveParticipantView,
    MyParticipationsView,
)

urlpatterns = [
    path("", ActivityListCreateView.as_view(), name="activity-list-create"),
    path("<int:pk>/", ActivityDetailView.as_view(), name="activity-detail"),

    # Participation
    path("<int:activity_id>/join/", JoinActivityView.as_view(), name="activity-join"),
    path("<int:activity_id>/leave/", LeaveActivityView.as_view(), name="activity-leave"),
    path("<int:activity_id>/participants/", ActivityParticipantsView.as_view(), name="activity-participants"),
    path(
        "participations/<int:participation_id>/",
        RemoveParticipantView.as_view(),
        name="participation-remove",
    ),
    path("me/participations/", MyParticipationsView.as_view(), name="my-participations"),

    # Ledger for one activity
    path("<int:activity_id>/ledger/", ActivityLedgerView.as_view(), name="activity-ledger"),

    # Lifecycle: complete / cancel / reopen
    path(
        "<int:activity_id>/<str:action>/",
        ActivityTransitionView.as_view(),
        name="activity-transition",
    ),
]
