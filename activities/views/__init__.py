from .activities import (
    ActivityListCreateView,
    ActivityDetailView,
    ActivityTransitionView,
    ActivityLedgerView,
)
from .participations import (
    JoinActivityView,
    LeaveActivityView,
    ActivityParticipantsView,
    RemoveParticipantView,
    MyParticipationsView,
)
