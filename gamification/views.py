from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.exceptions import PermissionDenied
from rest_framework import status
from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404

from activities.throttles import PointsAwardThrottle
from activities.views.generics import user_is_system_admin
from .ledger import PointsLedger
from .ranking import compute_ranking, get_user_rank
from .serializers import (
    AwardPointsSerializer,
    PointTransactionSerializer,
    RankingEntrySerializer,
)

User = get_user_model()


class RankingView(APIView):
    """
    GET /api/points/ranking/?limit=10
    Full leaderboard unless a limit is given.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ranking = compute_ranking()

        limit = request.query_params.get("limit")
        if limit is not None:
            try:
                ranking = ranking[:max(0, int(limit))]
            except ValueError:
                return Response({"error": "Invalid limit"}, status=status.HTTP_400_BAD_REQUEST)

        me = get_user_rank(request.user)
        return Response({
            "results": RankingEntrySerializer(ranking, many=True).data,
            "me": RankingEntrySerializer(me).data if me else None,
        })


def _history_payload(user):
    transactions = PointsLedger.user_transactions(user)
    return {
        "user_id": user.id,
        "total_points": PointsLedger.user_total(user),
        "transactions": PointTransactionSerializer(transactions, many=True).data,
    }


class MyPointsView(APIView):
    """
    GET /api/points/me/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(_history_payload(request.user))


class UserPointsView(APIView):
    """
    GET /api/points/users/<user_id>/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        user = get_object_or_404(User, pk=user_id, is_active=True)
        return Response(_history_payload(user))


class AwardPointsView(APIView):
    """
    POST /api/points/award/
    Body: { "user_id": 3, "amount": -5, "reason": "Late cancellation" }
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [PointsAwardThrottle]

    def post(self, request):
        if not user_is_system_admin(request.user):
            raise PermissionDenied("Only admins can award points.")

        serializer = AwardPointsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        tx = PointsLedger.award_manual(
            serializer.validated_data["user"],
            serializer.validated_data["amount"],
            serializer.validated_data["reason"],
            awarded_by=request.user,
        )
        return Response(PointTransactionSerializer(tx).data, status=status.HTTP_201_CREATED)
