# activities/models.py
from django.db import models
from django.conf import settings


class Activity(models.Model):
    STATUS_OPEN = "open"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_OPEN, "Open"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="created_activities",
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    start_time = models.DateTimeField()
    image = models.CharField(max_length=1024, blank=True, default="")

    status = models.CharField(
        max_length=32,
        choices=STATUS_CHOICES,
        default=STATUS_OPEN,
    )

    points_participant = models.PositiveIntegerField(default=0)
    points_creator = models.PositiveIntegerField(default=0)
    max_participants = models.PositiveIntegerField(default=0, help_text="0 means unlimited")

    # Bumped on every settlement; scopes the payout uniqueness constraint in the ledger
    settlement_round = models.PositiveIntegerField(default=0, editable=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-start_time"]
        verbose_name_plural = "activities"
        indexes = [
            models.Index(fields=["status", "start_time"], name="activity_status_start_idx"),
            models.Index(fields=["creator", "start_time"], name="activity_creator_start_idx"),
        ]

    def __str__(self):
        return self.title

    @property
    def is_unlimited(self) -> bool:
        return self.max_participants == 0


class Participation(models.Model):
    """
    One user joined to one activity.
    Rows are deleted on leave; the roster is frozen while the activity is completed.
    """
    activity = models.ForeignKey(
        Activity,
        on_delete=models.CASCADE,
        related_name="participations",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="participations",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["activity", "user"], name="uniq_participation_activity_user"),
        ]
        indexes = [
            models.Index(fields=["activity", "created_at"], name="part_activity_created_idx"),
            models.Index(fields=["user", "created_at"], name="part_user_created_idx"),
        ]

    def __str__(self):
        return f"{self.user} @ {self.activity}"
