from django.core.cache import cache
from django.db.models import RestrictedError
from django.test import TestCase

from activities import participation as guard
from activities import state_machine
from activities.exceptions import ValidationError
from activities.tests.factories import make_user, make_activity
from gamification.ledger import PointsLedger, PARTIAL, SETTLED, UNSETTLED
from gamification.models import PointTransaction


class ManualAwardTests(TestCase):
    def setUp(self):
        cache.clear()
        self.admin = make_user("admin")
        self.user = make_user("alice")

    def test_positive_amount_is_a_bonus(self):
        tx = PointsLedger.award_manual(self.user, 25, "Helped set up", awarded_by=self.admin)

        self.assertEqual(tx.type, PointTransaction.TYPE_BONUS)
        self.assertEqual(tx.amount, 25)
        self.assertIsNone(tx.activity)
        self.assertEqual(tx.awarded_by, self.admin)
        self.assertEqual(PointsLedger.user_total(self.user), 25)

    def test_negative_amount_is_a_deduction(self):
        PointsLedger.award_manual(self.user, 10, "Bonus")
        tx = PointsLedger.award_manual(self.user, -4, "No-show")

        self.assertEqual(tx.type, PointTransaction.TYPE_DEDUCTION)
        self.assertEqual(PointsLedger.user_total(self.user), 6)

    def test_repeated_awards_are_separate_entries(self):
        PointsLedger.award_manual(self.user, 5, "Thanks")
        PointsLedger.award_manual(self.user, 5, "Thanks")

        self.assertEqual(PointTransaction.objects.filter(user=self.user).count(), 2)

    def test_zero_amount_is_rejected(self):
        with self.assertRaises(ValidationError):
            PointsLedger.award_manual(self.user, 0, "Nothing")
        self.assertFalse(PointTransaction.objects.exists())

    def test_non_integer_amount_is_rejected(self):
        with self.assertRaises(ValidationError):
            PointsLedger.award_manual(self.user, "5", "Text")
        with self.assertRaises(ValidationError):
            PointsLedger.award_manual(self.user, True, "Bool")

    def test_blank_reason_is_rejected(self):
        with self.assertRaises(ValidationError):
            PointsLedger.award_manual(self.user, 5, "  \n ")

    def test_reason_is_single_line(self):
        tx = PointsLedger.award_manual(self.user, 5, "Great\nwork")
        self.assertEqual(tx.reason, "Great work")

    def test_user_total_without_rows_is_zero(self):
        self.assertEqual(PointsLedger.user_total(self.user), 0)


class SettlementStateTests(TestCase):
    def setUp(self):
        cache.clear()
        self.creator = make_user("creator")
        self.alice = make_user("alice")
        self.activity = make_activity(self.creator)
        guard.join(self.activity.id, self.alice)

    def test_states_follow_lifecycle(self):
        self.assertEqual(PointsLedger.settlement_state(self.activity), UNSETTLED)

        activity = state_machine.complete(self.activity.id, actor=self.creator)
        self.assertEqual(PointsLedger.settlement_state(activity), SETTLED)

    def test_half_reversed_round_is_partial(self):
        activity = state_machine.complete(self.activity.id, actor=self.creator)
        payout = PointsLedger.outstanding_payouts(activity).first()

        PointTransaction.objects.create(
            user_id=payout.user_id,
            amount=-payout.amount,
            type=PointTransaction.TYPE_DEDUCTION,
            activity=activity,
            reason="Activity Reopened: Saturday hike",
            reverses=payout,
        )
        self.assertEqual(PointsLedger.settlement_state(activity), PARTIAL)

    def test_user_transactions_newest_first(self):
        state_machine.complete(self.activity.id, actor=self.creator)
        state_machine.reopen(self.activity.id, actor=self.creator)

        rows = list(PointsLedger.user_transactions(self.alice))
        self.assertEqual([row.amount for row in rows], [-5, 5])

    def test_activity_transactions_oldest_first(self):
        state_machine.complete(self.activity.id, actor=self.creator)
        state_machine.reopen(self.activity.id, actor=self.creator)

        types = [row.type for row in PointsLedger.activity_transactions(self.activity)]
        self.assertEqual(types[:2], [PointTransaction.TYPE_CREATION, PointTransaction.TYPE_PARTICIPATION])
        self.assertEqual(types[2:], [PointTransaction.TYPE_DEDUCTION] * 2)


class LedgerUserDeletionTests(TestCase):
    def setUp(self):
        cache.clear()
        self.creator = make_user("creator")
        self.alice = make_user("alice")
        self.activity = make_activity(self.creator)
        guard.join(self.activity.id, self.alice)

    def test_user_with_reversed_payouts_can_be_deleted(self):
        state_machine.complete(self.activity.id, actor=self.creator)
        state_machine.reopen(self.activity.id, actor=self.creator)

        self.alice.delete()

        self.assertFalse(PointTransaction.objects.filter(user_id=self.alice.id).exists())
        # The creator's payout and its reversal are untouched
        self.assertEqual(PointTransaction.objects.filter(user=self.creator).count(), 2)
        self.assertEqual(PointsLedger.user_total(self.creator), 0)

    def test_payout_cannot_be_deleted_while_its_reversal_exists(self):
        state_machine.complete(self.activity.id, actor=self.creator)
        state_machine.reopen(self.activity.id, actor=self.creator)
        payout = PointTransaction.objects.get(user=self.alice, type=PointTransaction.TYPE_PARTICIPATION)

        with self.assertRaises(RestrictedError):
            payout.delete()
