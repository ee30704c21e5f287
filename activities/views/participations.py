from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import status
from django.shortcuts import get_object_or_404

from activities import participation as guard
from activities.models import Activity, Participation
from activities.serializers import ParticipationSerializer, MyParticipationSerializer
from activities.throttles import ActivityJoinThrottle
from .generics import require_activity_manager


class JoinActivityView(APIView):
    """
    POST /api/activities/<activity_id>/join/
    The participant is always the authenticated user.
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [ActivityJoinThrottle]

    def post(self, request, activity_id):
        participation = guard.join(activity_id, request.user)
        return Response(ParticipationSerializer(participation).data, status=status.HTTP_201_CREATED)


class LeaveActivityView(APIView):
    """
    POST /api/activities/<activity_id>/leave/
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [ActivityJoinThrottle]

    def post(self, request, activity_id):
        guard.leave(activity_id, request.user)
        return Response({"message": "Left activity"})


class ActivityParticipantsView(APIView):
    """
    GET /api/activities/<activity_id>/participants/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, activity_id):
        activity = get_object_or_404(Activity, pk=activity_id)
        participations = guard.list_participants(activity)
        return Response({
            "count": len(participations),
            "is_joined": guard.is_joined(activity, request.user),
            "results": ParticipationSerializer(participations, many=True).data,
        })


class RemoveParticipantView(APIView):
    """
    DELETE /api/activities/participations/<participation_id>/
    Moderation by the activity creator or an admin.
    """
    permission_classes = [IsAuthenticated]

    def delete(self, request, participation_id):
        participation = get_object_or_404(
            Participation.objects.select_related("activity"), pk=participation_id
        )
        require_activity_manager(
            request.user,
            participation.activity,
            "You do not have permission to remove participants from this activity.",
        )

        guard.remove_participant(participation_id, actor=request.user)
        return Response({"message": "Participant removed"})


class MyParticipationsView(APIView):
    """
    GET /api/activities/me/participations/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        participations = guard.list_user_participations(request.user)
        serializer = MyParticipationSerializer(participations, many=True, context={"request": request})
        return Response(serializer.data)
