"""
Points ledger: turns activity completion/reopen edges into ledger rows.

Rows are only ever appended. A reopen writes one equal-and-opposite
deduction per outstanding payout (linked through ``reverses``), so the
net effect is always reconstructed by summation.
"""
import logging

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Sum

from activities.exceptions import StorageError, ValidationError
from activities.sanitizers import sanitize_reason
from .models import PointTransaction
from .ranking import invalidate_ranking_cache

logger = logging.getLogger("weekend.points")

SETTLED = "settled"
UNSETTLED = "unsettled"
REVERSED = "reversed"
PARTIAL = "partial"


class PointsLedger:
    CREATION_REASON = "Created: {title}"
    PARTICIPATION_REASON = "Participated: {title}"
    REOPEN_REASON = "Activity Reopened: {title}"

    # ---- queries -------------------------------------------------------

    @staticmethod
    def outstanding_payouts(activity):
        """Creation/participation rows for the activity that no deduction has cancelled."""
        return PointTransaction.objects.filter(
            activity=activity,
            type__in=PointTransaction.PAYOUT_TYPES,
            reversed_by__isnull=True,
        )

    @staticmethod
    def activity_transactions(activity):
        return (
            PointTransaction.objects
            .filter(activity=activity)
            .select_related("user", "awarded_by")
            .order_by("created_at", "id")
        )

    @staticmethod
    def user_transactions(user):
        return (
            PointTransaction.objects
            .filter(user=user)
            .select_related("activity", "awarded_by")
            .order_by("-created_at", "-id")
        )

    @staticmethod
    def user_total(user) -> int:
        total = PointTransaction.objects.filter(user=user).aggregate(total=Sum("amount"))["total"]
        return total or 0

    @classmethod
    def settlement_state(cls, activity) -> str:
        """
        Compare the latest settlement round's payouts against their reversals.

        PARTIAL means a reversal stopped half-way; it should never survive a
        committed request.
        """
        latest = PointTransaction.objects.filter(
            activity=activity,
            type__in=PointTransaction.PAYOUT_TYPES,
            settlement_round=activity.settlement_round,
        )
        paid = latest.count()
        if paid == 0:
            return UNSETTLED

        outstanding = latest.filter(reversed_by__isnull=True).count()
        if outstanding == paid:
            return SETTLED
        if outstanding == 0:
            return REVERSED
        return PARTIAL

    # ---- writes --------------------------------------------------------

    @classmethod
    def settle_completion(cls, activity):
        """
        Pay out a completed activity. Safe to call repeatedly.

        The caller is expected to hold the activity row lock; the payout
        uniqueness constraint backs that up, and a duplicate insert is
        treated as "already settled".
        """
        if cls.outstanding_payouts(activity).exists():
            logger.info(f"Settlement skipped: activity={activity.id} already settled")
            return []

        try:
            with transaction.atomic():
                activity.settlement_round += 1
                activity.save(update_fields=["settlement_round"])
                rows = cls._payout_rows(activity)
                created = PointTransaction.objects.bulk_create(rows)
        except IntegrityError:
            activity.refresh_from_db(fields=["settlement_round"])
            logger.warning(
                f"Settlement conflict: activity={activity.id}, round={activity.settlement_round}. "
                f"Treating as already settled."
            )
            return []
        except DatabaseError as e:
            activity.refresh_from_db(fields=["settlement_round"])
            logger.error(f"Settlement failed: activity={activity.id}: {e}")
            raise StorageError() from e

        cls._ranking_changed()
        logger.info(
            f"Activity settled: activity={activity.id}, round={activity.settlement_round}, "
            f"transactions={len(created)}, points={sum(tx.amount for tx in created)}"
        )
        return created

    @classmethod
    def _payout_rows(cls, activity):
        rows = []
        if activity.points_creator > 0:
            rows.append(PointTransaction(
                user_id=activity.creator_id,
                amount=activity.points_creator,
                type=PointTransaction.TYPE_CREATION,
                activity=activity,
                reason=cls.CREATION_REASON.format(title=activity.title),
                settlement_round=activity.settlement_round,
            ))

        if activity.points_participant > 0:
            # The creator collects creation points only, never both
            participant_ids = (
                activity.participations
                .exclude(user_id=activity.creator_id)
                .order_by("created_at", "id")
                .values_list("user_id", flat=True)
            )
            for user_id in participant_ids:
                rows.append(PointTransaction(
                    user_id=user_id,
                    amount=activity.points_participant,
                    type=PointTransaction.TYPE_PARTICIPATION,
                    activity=activity,
                    reason=cls.PARTICIPATION_REASON.format(title=activity.title),
                    settlement_round=activity.settlement_round,
                ))
        return rows

    @classmethod
    def reverse_completion(cls, activity):
        """
        Append one deduction per outstanding payout of the activity.
        Runs as a unit: either every reversal row is written or none is.
        """
        reason = cls.REOPEN_REASON.format(title=activity.title)
        try:
            with transaction.atomic():
                payouts = list(cls.outstanding_payouts(activity).order_by("id"))
                reversals = [
                    PointTransaction(
                        user_id=payout.user_id,
                        amount=-payout.amount,
                        type=PointTransaction.TYPE_DEDUCTION,
                        activity=activity,
                        reason=reason,
                        reverses=payout,
                    )
                    for payout in payouts
                ]
                created = PointTransaction.objects.bulk_create(reversals)
        except DatabaseError as e:
            logger.error(f"Reversal failed: activity={activity.id}: {e}")
            raise StorageError() from e

        if created:
            cls._ranking_changed()
        logger.info(
            f"Activity settlement reversed: activity={activity.id}, "
            f"round={activity.settlement_round}, transactions={len(created)}"
        )
        return created

    @classmethod
    def award_manual(cls, user, amount, reason, awarded_by=None):
        """
        Direct credit/debit with no activity attached. Every call is a new entry.
        """
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError("Amount must be an integer.")
        if amount == 0:
            raise ValidationError("Amount must not be zero.")

        reason = sanitize_reason(reason)
        if not reason:
            raise ValidationError("A reason is required.")

        tx_type = PointTransaction.TYPE_BONUS if amount >= 0 else PointTransaction.TYPE_DEDUCTION
        try:
            with transaction.atomic():
                tx = PointTransaction.objects.create(
                    user=user,
                    amount=amount,
                    reason=reason,
                    type=tx_type,
                    awarded_by=awarded_by,
                )
        except DatabaseError as e:
            logger.error(f"Manual award failed: user={user.id}: {e}")
            raise StorageError() from e

        cls._ranking_changed()
        logger.info(
            f"Manual {tx_type}: user={user.id}, amount={amount}, "
            f"by={getattr(awarded_by, 'id', None)}"
        )
        return tx

    @staticmethod
    def _ranking_changed():
        invalidate_ranking_cache()
        transaction.on_commit(invalidate_ranking_cache)
