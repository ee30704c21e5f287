import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("activities", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PointTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.IntegerField(help_text="Positive = credit, negative = debit")),
                ("reason", models.CharField(max_length=255)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("creation", "Creation"),
                            ("participation", "Participation"),
                            ("bonus", "Bonus"),
                            ("deduction", "Deduction"),
                        ],
                        max_length=32,
                    ),
                ),
                ("settlement_round", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "activity",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="point_transactions",
                        to="activities.activity",
                    ),
                ),
                (
                    "awarded_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="awarded_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "reverses",
                    models.OneToOneField(
                        blank=True,
                        help_text="Payout row cancelled by this deduction",
                        null=True,
                        on_delete=django.db.models.deletion.RESTRICT,
                        related_name="reversed_by",
                        to="gamification.pointtransaction",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="point_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["user", "-created_at"], name="point_tx_user_created_idx"),
                    models.Index(fields=["activity", "type"], name="point_tx_activity_type_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount", 0), _negated=True), name="ck_point_tx_amount_nonzero"),
                    models.UniqueConstraint(
                        condition=models.Q(("type__in", ["creation", "participation"])),
                        fields=("activity", "user", "type", "settlement_round"),
                        name="uniq_point_tx_payout_per_round",
                    ),
                ],
            },
        ),
    ]
