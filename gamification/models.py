from django.db import models
from django.db.models import Q
from django.conf import settings


class PointTransaction(models.Model):
    """
    Append-only ledger entry. The ledger is the single source of truth for points:
    totals are always a sum over these rows, never a stored counter.
    """
    TYPE_CREATION = "creation"
    TYPE_PARTICIPATION = "participation"
    TYPE_BONUS = "bonus"
    TYPE_DEDUCTION = "deduction"

    TYPE_CHOICES = [
        (TYPE_CREATION, "Creation"),
        (TYPE_PARTICIPATION, "Participation"),
        (TYPE_BONUS, "Bonus"),
        (TYPE_DEDUCTION, "Deduction"),
    ]

    PAYOUT_TYPES = (TYPE_CREATION, TYPE_PARTICIPATION)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="point_transactions",
    )
    amount = models.IntegerField(help_text="Positive = credit, negative = debit")
    reason = models.CharField(max_length=255)
    type = models.CharField(max_length=32, choices=TYPE_CHOICES)

    activity = models.ForeignKey(
        "activities.Activity",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="point_transactions",
    )
    awarded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="awarded_transactions",
    )

    # Settlement bookkeeping
    settlement_round = models.PositiveIntegerField(null=True, blank=True)
    reverses = models.OneToOneField(
        "self",
        on_delete=models.RESTRICT,
        null=True,
        blank=True,
        related_name="reversed_by",
        help_text="Payout row cancelled by this deduction",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(condition=~Q(amount=0), name="ck_point_tx_amount_nonzero"),
            models.UniqueConstraint(
                fields=["activity", "user", "type", "settlement_round"],
                condition=Q(type__in=["creation", "participation"]),
                name="uniq_point_tx_payout_per_round",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "-created_at"], name="point_tx_user_created_idx"),
            models.Index(fields=["activity", "type"], name="point_tx_activity_type_idx"),
        ]

    def __str__(self):
        return f"{self.user} ({self.amount:+d}) {self.type}: {self.reason}"
