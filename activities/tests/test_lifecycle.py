from unittest import mock

from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase

from activities import participation as guard
from activities import state_machine
from activities.exceptions import ActivityFull, InvalidTransition, StorageError
from activities.models import Activity
from activities.services import ActivityService
from gamification.ledger import PointsLedger, SETTLED, UNSETTLED, REVERSED
from gamification.models import PointTransaction
from .factories import make_user, make_activity


class ActivityLifecycleTests(TestCase):
    def setUp(self):
        cache.clear()
        self.creator = make_user("creator")
        self.alice = make_user("alice")
        self.bob = make_user("bob")
        self.activity = make_activity(self.creator)

    def test_complete_pays_creator_and_participants(self):
        guard.join(self.activity.id, self.alice)
        guard.join(self.activity.id, self.bob)

        activity = state_machine.complete(self.activity.id, actor=self.creator)

        self.assertEqual(activity.status, Activity.STATUS_COMPLETED)
        self.assertEqual(PointsLedger.user_total(self.creator), 10)
        self.assertEqual(PointsLedger.user_total(self.alice), 5)
        self.assertEqual(PointsLedger.user_total(self.bob), 5)

        creation = PointTransaction.objects.get(user=self.creator, activity=self.activity)
        self.assertEqual(creation.type, PointTransaction.TYPE_CREATION)
        self.assertEqual(creation.reason, "Created: Saturday hike")

        participation = PointTransaction.objects.get(user=self.alice, activity=self.activity)
        self.assertEqual(participation.type, PointTransaction.TYPE_PARTICIPATION)
        self.assertEqual(participation.reason, "Participated: Saturday hike")

    def test_complete_twice_does_not_pay_twice(self):
        guard.join(self.activity.id, self.alice)

        state_machine.complete(self.activity.id, actor=self.creator)
        state_machine.complete(self.activity.id, actor=self.creator)

        self.assertEqual(PointTransaction.objects.filter(activity=self.activity).count(), 2)
        self.assertEqual(PointsLedger.user_total(self.alice), 5)

    def test_settle_completion_is_idempotent(self):
        guard.join(self.activity.id, self.alice)
        state_machine.complete(self.activity.id, actor=self.creator)

        self.activity.refresh_from_db()
        self.assertEqual(PointsLedger.settle_completion(self.activity), [])
        self.assertEqual(PointTransaction.objects.filter(activity=self.activity).count(), 2)

    def test_creator_who_joined_gets_creation_points_only(self):
        guard.join(self.activity.id, self.creator)
        guard.join(self.activity.id, self.alice)

        state_machine.complete(self.activity.id, actor=self.creator)

        creator_rows = PointTransaction.objects.filter(user=self.creator, activity=self.activity)
        self.assertEqual(creator_rows.count(), 1)
        self.assertEqual(creator_rows.get().type, PointTransaction.TYPE_CREATION)
        self.assertEqual(PointsLedger.user_total(self.creator), 10)

    def test_zero_points_write_nothing(self):
        activity = make_activity(self.creator, points_participant=0, points_creator=0)
        guard.join(activity.id, self.alice)

        state_machine.complete(activity.id, actor=self.creator)

        self.assertFalse(PointTransaction.objects.filter(activity=activity).exists())
        activity.refresh_from_db()
        self.assertEqual(PointsLedger.settlement_state(activity), UNSETTLED)

    def test_reopen_reverses_every_payout(self):
        guard.join(self.activity.id, self.alice)
        state_machine.complete(self.activity.id, actor=self.creator)

        activity = state_machine.reopen(self.activity.id, actor=self.creator)

        self.assertEqual(activity.status, Activity.STATUS_OPEN)
        self.assertEqual(PointsLedger.user_total(self.creator), 0)
        self.assertEqual(PointsLedger.user_total(self.alice), 0)

        deductions = PointTransaction.objects.filter(
            activity=self.activity, type=PointTransaction.TYPE_DEDUCTION
        )
        self.assertEqual(deductions.count(), 2)
        for row in deductions:
            self.assertEqual(row.reason, "Activity Reopened: Saturday hike")
            self.assertEqual(row.amount, -row.reverses.amount)
            self.assertEqual(row.user_id, row.reverses.user_id)

        self.assertEqual(PointsLedger.settlement_state(activity), REVERSED)
        self.assertFalse(PointsLedger.outstanding_payouts(activity).exists())

    def test_complete_reopen_complete_pays_once_net(self):
        guard.join(self.activity.id, self.alice)

        state_machine.complete(self.activity.id, actor=self.creator)
        state_machine.reopen(self.activity.id, actor=self.creator)
        activity = state_machine.complete(self.activity.id, actor=self.creator)

        self.assertEqual(activity.settlement_round, 2)
        self.assertEqual(PointsLedger.user_total(self.creator), 10)
        self.assertEqual(PointsLedger.user_total(self.alice), 5)
        self.assertEqual(PointsLedger.settlement_state(activity), SETTLED)
        # 2 payouts, 2 reversals, 2 new payouts
        self.assertEqual(PointTransaction.objects.filter(activity=self.activity).count(), 6)

    def test_reopen_pays_current_roster_on_second_completion(self):
        guard.join(self.activity.id, self.alice)
        state_machine.complete(self.activity.id, actor=self.creator)
        state_machine.reopen(self.activity.id, actor=self.creator)

        guard.leave(self.activity.id, self.alice)
        guard.join(self.activity.id, self.bob)
        state_machine.complete(self.activity.id, actor=self.creator)

        self.assertEqual(PointsLedger.user_total(self.alice), 0)
        self.assertEqual(PointsLedger.user_total(self.bob), 5)

    def test_cancel_pays_nothing(self):
        guard.join(self.activity.id, self.alice)

        activity = state_machine.cancel(self.activity.id, actor=self.creator)
        self.assertEqual(activity.status, Activity.STATUS_CANCELLED)

        state_machine.reopen(self.activity.id, actor=self.creator)
        self.assertFalse(PointTransaction.objects.exists())

    def test_cannot_complete_cancelled_activity(self):
        state_machine.cancel(self.activity.id, actor=self.creator)

        with self.assertRaises(InvalidTransition):
            state_machine.complete(self.activity.id, actor=self.creator)

        self.activity.refresh_from_db()
        self.assertEqual(self.activity.status, Activity.STATUS_CANCELLED)

    def test_cannot_cancel_completed_activity(self):
        state_machine.complete(self.activity.id, actor=self.creator)

        with self.assertRaises(InvalidTransition):
            state_machine.cancel(self.activity.id, actor=self.creator)

    def test_cannot_reopen_open_activity(self):
        with self.assertRaises(InvalidTransition):
            state_machine.reopen(self.activity.id, actor=self.creator)

    def test_transition_routes_by_status(self):
        activity = state_machine.transition(self.activity.id, "completed", actor=self.creator)
        self.assertEqual(activity.status, Activity.STATUS_COMPLETED)

        with self.assertRaises(InvalidTransition):
            state_machine.transition(self.activity.id, "archived", actor=self.creator)

    def test_can_transition(self):
        self.assertEqual(state_machine.can_transition(self.activity, "completed"), (True, ""))

        ok, reason = state_machine.can_transition(self.activity, "open")
        self.assertFalse(ok)
        self.assertIn("already", reason)

        self.activity.status = Activity.STATUS_CANCELLED
        ok, _ = state_machine.can_transition(self.activity, "completed")
        self.assertFalse(ok)

    def test_allowed_transitions(self):
        self.assertEqual(
            state_machine.get_allowed_transitions(self.activity),
            [Activity.STATUS_COMPLETED, Activity.STATUS_CANCELLED],
        )

    def test_capacity_one_scenario(self):
        creator = make_user("c")
        user_u = make_user("u")
        user_v = make_user("v")
        activity = make_activity(creator, max_participants=1, points_participant=5, points_creator=10)

        guard.join(activity.id, user_u)
        with self.assertRaises(ActivityFull):
            guard.join(activity.id, user_v)

        state_machine.complete(activity.id, actor=creator)
        payouts = set(
            PointTransaction.objects.filter(activity=activity).values_list("user_id", "amount", "type")
        )
        self.assertEqual(payouts, {
            (creator.id, 10, PointTransaction.TYPE_CREATION),
            (user_u.id, 5, PointTransaction.TYPE_PARTICIPATION),
        })

        state_machine.reopen(activity.id, actor=creator)
        deductions = set(
            PointTransaction.objects.filter(activity=activity, type=PointTransaction.TYPE_DEDUCTION)
            .values_list("user_id", "amount")
        )
        self.assertEqual(deductions, {(creator.id, -10), (user_u.id, -5)})
        self.assertEqual(PointsLedger.user_total(creator), 0)
        self.assertEqual(PointsLedger.user_total(user_u), 0)


class LifecycleRollbackTests(TestCase):
    """A storage failure while writing ledger rows rolls back the whole transition."""

    def setUp(self):
        cache.clear()
        self.creator = make_user("creator")
        self.alice = make_user("alice")
        self.activity = make_activity(self.creator)
        guard.join(self.activity.id, self.alice)

    def _failing_bulk_create(self):
        return mock.patch.object(
            PointTransaction.objects, "bulk_create", side_effect=DatabaseError("disk I/O error")
        )

    def test_failed_settlement_leaves_activity_open(self):
        with self._failing_bulk_create():
            with self.assertRaises(StorageError):
                state_machine.complete(self.activity.id, actor=self.creator)

        self.activity.refresh_from_db()
        self.assertEqual(self.activity.status, Activity.STATUS_OPEN)
        self.assertEqual(self.activity.settlement_round, 0)
        self.assertFalse(PointTransaction.objects.exists())

        # A retry after the failure settles normally
        state_machine.complete(self.activity.id, actor=self.creator)
        self.assertEqual(PointsLedger.user_total(self.alice), 5)

    def test_failed_reversal_leaves_activity_completed(self):
        state_machine.complete(self.activity.id, actor=self.creator)

        with self._failing_bulk_create():
            with self.assertRaises(StorageError):
                state_machine.reopen(self.activity.id, actor=self.creator)

        self.activity.refresh_from_db()
        self.assertEqual(self.activity.status, Activity.STATUS_COMPLETED)
        self.assertFalse(
            PointTransaction.objects.filter(type=PointTransaction.TYPE_DEDUCTION).exists()
        )
        self.assertEqual(PointsLedger.settlement_state(self.activity), SETTLED)
        self.assertEqual(PointsLedger.user_total(self.alice), 5)

    def test_failed_delete_keeps_activity_and_payouts(self):
        state_machine.complete(self.activity.id, actor=self.creator)

        with self._failing_bulk_create():
            with self.assertRaises(StorageError):
                ActivityService.delete_activity(self.activity.id, actor=self.creator)

        self.assertTrue(Activity.objects.filter(pk=self.activity.id).exists())
        self.assertEqual(PointsLedger.user_total(self.alice), 5)
