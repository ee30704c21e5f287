from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import status
from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from activities import state_machine
from activities.models import Activity
from activities.serializers import ActivitySerializer
from activities.services import ActivityService
from gamification.ledger import PointsLedger
from gamification.serializers import PointTransactionSerializer
from .generics import require_activity_manager

FILTER_UPCOMING = "upcoming"
FILTER_COMPLETED = "completed"
FILTER_ALL = "all"


class ActivityListCreateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        qs = Activity.objects.all()

        filter_param = request.query_params.get("filter", FILTER_ALL)
        if filter_param == FILTER_UPCOMING:
            qs = qs.filter(start_time__gt=timezone.now(), status=Activity.STATUS_OPEN)
        elif filter_param == FILTER_COMPLETED:
            qs = qs.filter(status__in=[Activity.STATUS_COMPLETED, Activity.STATUS_CANCELLED])
        elif filter_param != FILTER_ALL:
            return Response({"error": "Invalid filter"}, status=status.HTTP_400_BAD_REQUEST)

        mine_param = request.query_params.get("mine")
        if mine_param and mine_param.lower() in ("1", "true", "yes"):
            qs = qs.filter(
                Q(creator=request.user) | Q(participations__user=request.user)
            ).distinct()

        search = request.query_params.get("search")
        if search:
            qs = qs.filter(Q(title__icontains=search) | Q(description__icontains=search))

        total_count = qs.count()

        limit = request.query_params.get("limit")
        offset = request.query_params.get("offset")

        try:
            limit_val = int(limit) if limit is not None else 50  # Default page size
            offset_val = int(offset) if offset is not None else 0
        except ValueError:
            return Response({"error": "Invalid pagination params"}, status=status.HTTP_400_BAD_REQUEST)

        limit_val = max(1, min(limit_val, 100))  # Cap at 100
        offset_val = max(0, offset_val)

        qs = (
            qs.select_related("creator")
            .annotate(_annotated_participants_count=Count("participations", distinct=True))
            .order_by("-start_time", "-id")
        )[offset_val: offset_val + limit_val]

        serializer = ActivitySerializer(qs, many=True, context={"request": request})
        return Response({
            "count": total_count,
            "results": serializer.data,
            "limit": limit_val,
            "offset": offset_val,
        })

    def post(self, request):
        activity = ActivityService.create_activity(
            request.data,
            requester=request.user,
            context={"request": request},
        )
        return Response(
            ActivitySerializer(activity, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )


class ActivityDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        activity = get_object_or_404(Activity.objects.select_related("creator"), pk=pk)
        return Response(ActivitySerializer(activity, context={"request": request}).data)

    def patch(self, request, pk):
        activity = get_object_or_404(Activity, pk=pk)
        require_activity_manager(request.user, activity, "You do not have permission to edit this activity.")

        fields = {key: value for key, value in request.data.items()}
        new_status = fields.pop("status", None)
        # Re-sending the current status is a no-op
        changes_status = new_status is not None and new_status != activity.status

        # Field edits and the status change commit or roll back together.
        # Reopen runs before field edits; point values are frozen while completed.
        with transaction.atomic():
            if changes_status and new_status == Activity.STATUS_OPEN:
                activity = state_machine.transition(pk, new_status, actor=request.user)
                changes_status = False

            if fields:
                activity = ActivityService.update_activity(
                    pk, fields, actor=request.user, context={"request": request}
                )

            if changes_status:
                activity = state_machine.transition(pk, new_status, actor=request.user)

        return Response(ActivitySerializer(activity, context={"request": request}).data)

    put = patch

    def delete(self, request, pk):
        activity = get_object_or_404(Activity, pk=pk)
        require_activity_manager(request.user, activity, "You do not have permission to delete this activity.")

        ActivityService.delete_activity(pk, actor=request.user)
        return Response({"message": "Activity deleted"})


class ActivityTransitionView(APIView):
    """
    POST /api/activities/<activity_id>/complete/
    POST /api/activities/<activity_id>/cancel/
    POST /api/activities/<activity_id>/reopen/
    """
    permission_classes = [IsAuthenticated]

    ACTIONS = {
        "complete": state_machine.complete,
        "cancel": state_machine.cancel,
        "reopen": state_machine.reopen,
    }

    def post(self, request, activity_id, action):
        operation = self.ACTIONS.get(action)
        if operation is None:
            return Response({"error": "Invalid action"}, status=status.HTTP_400_BAD_REQUEST)

        activity = get_object_or_404(Activity, pk=activity_id)
        require_activity_manager(request.user, activity)

        activity = operation(activity_id, actor=request.user)
        return Response(
            ActivitySerializer(activity, context={"request": request}).data,
            status=status.HTTP_200_OK,
        )


class ActivityLedgerView(APIView):
    """
    GET /api/activities/<activity_id>/ledger/
    Every ledger row tied to the activity, plus its settlement state.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, activity_id):
        activity = get_object_or_404(Activity, pk=activity_id)
        require_activity_manager(request.user, activity, "You do not have permission to view this ledger.")

        transactions = PointsLedger.activity_transactions(activity)
        return Response({
            "activity_id": activity.id,
            "status": activity.status,
            "settlement_round": activity.settlement_round,
            "settlement_state": PointsLedger.settlement_state(activity),
            "transactions": PointTransactionSerializer(transactions, many=True).data,
        })
