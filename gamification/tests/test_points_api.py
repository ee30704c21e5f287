from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from activities.tests.factories import make_user
from gamification.ledger import PointsLedger
from gamification.models import PointTransaction
from users.models import User


class PointsAPITestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.admin = make_user("boss", role=User.ROLE_ADMIN)
        self.member = make_user("member")
        self.other = make_user("other")
        self.client.force_authenticate(user=self.member)

    def test_ranking_endpoint(self):
        PointsLedger.award_manual(self.member, 4, "x")
        PointsLedger.award_manual(self.other, 9, "x")

        response = self.client.get(reverse("points-ranking"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["user_id"] for row in response.data["results"]], [self.other.id, self.member.id])
        self.assertEqual(response.data["me"]["rank"], 2)

        response = self.client.get(reverse("points-ranking"), {"limit": 1})
        self.assertEqual(len(response.data["results"]), 1)

        response = self.client.get(reverse("points-ranking"), {"limit": "many"})
        self.assertEqual(response.status_code, 400)

    def test_ranking_me_is_null_without_points(self):
        response = self.client.get(reverse("points-ranking"))
        self.assertIsNone(response.data["me"])

    def test_my_points(self):
        PointsLedger.award_manual(self.member, 4, "Setup help")
        PointsLedger.award_manual(self.member, -1, "Late")

        response = self.client.get(reverse("points-me"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total_points"], 3)
        self.assertEqual([tx["amount"] for tx in response.data["transactions"]], [-1, 4])

    def test_user_points(self):
        PointsLedger.award_manual(self.other, 2, "x")

        response = self.client.get(reverse("points-user", args=[self.other.id]))
        self.assertEqual(response.data["total_points"], 2)

        response = self.client.get(reverse("points-user", args=[9999]))
        self.assertEqual(response.status_code, 404)

    def test_award_requires_admin(self):
        response = self.client.post(
            reverse("points-award"),
            {"user_id": self.other.id, "amount": 5, "reason": "Self-promoted"},
            format="json",
        )
        self.assertEqual(response.status_code, 403)
        self.assertFalse(PointTransaction.objects.exists())

    def test_admin_awards_points(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(
            reverse("points-award"),
            {"user_id": self.member.id, "amount": -5, "reason": "Late cancellation"},
            format="json",
        )
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["type"], PointTransaction.TYPE_DEDUCTION)
        self.assertEqual(response.data["awarded_by"]["id"], self.admin.id)
        self.assertEqual(PointsLedger.user_total(self.member), -5)

    def test_award_zero_is_rejected(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(
            reverse("points-award"),
            {"user_id": self.member.id, "amount": 0, "reason": "Nothing"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("amount", response.data["errors"])

    def test_award_unknown_user_is_rejected(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(
            reverse("points-award"),
            {"user_id": 9999, "amount": 3, "reason": "Ghost"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("user_id", response.data["errors"])
