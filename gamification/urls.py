from django.urls import path
from .views import RankingView, MyPointsView, UserPointsView, AwardPointsView

urlpatterns = [
    path("ranking/", RankingView.as_view(), name="points-ranking"),
    path("me/", MyPointsView.as_view(), name="points-me"),
    path("users/<int:user_id>/", UserPointsView.as_view(), name="points-user"),
    path("award/", AwardPointsView.as_view(), name="points-award"),
]
