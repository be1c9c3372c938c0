from __future__ import annotations

from django.db import migrations, models

import libs.idgen


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("marketplace", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Match",
            fields=[
                (
                    "id",
                    models.BigIntegerField(
                        default=libs.idgen.generate_id,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("CLAIMED", "Claimed"),
                            ("PENDING_APPROVAL", "Pending approval"),
                            ("ACCEPTED", "Accepted"),
                            ("REVOKED", "Revoked"),
                            ("CANCELED", "Canceled"),
                        ],
                        default="PENDING_APPROVAL",
                        max_length=20,
                    ),
                ),
                ("campaign_code", models.CharField(max_length=16, unique=True)),
                ("accepted_at", models.DateTimeField(blank=True, null=True)),
                ("revoked_at", models.DateTimeField(blank=True, null=True)),
                (
                    "creator",
                    models.ForeignKey(
                        on_delete=models.deletion.PROTECT,
                        related_name="matches",
                        to="marketplace.creator",
                    ),
                ),
                (
                    "offer",
                    models.ForeignKey(
                        on_delete=models.deletion.PROTECT,
                        related_name="matches",
                        to="marketplace.offer",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("offer", "creator"), name="match_offer_creator_unique"),
                ],
                "indexes": [
                    models.Index(fields=["status", "accepted_at"], name="match_status_accepted_idx"),
                ],
            },
        ),
    ]
