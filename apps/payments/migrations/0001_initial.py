from __future__ import annotations

from django.db import migrations, models

import libs.idgen


def _id_field():
    return models.BigIntegerField(
        default=libs.idgen.generate_id,
        editable=False,
        primary_key=True,
        serialize=False,
    )


class Migration(migrations.Migration):
    initial = True

    dependencies: list = []

    operations = [
        migrations.CreateModel(
            name="BillingSubscription",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "subject_type",
                    models.CharField(choices=[("BRAND", "Brand"), ("CREATOR", "Creator")], max_length=16),
                ),
                ("subject_id", models.BigIntegerField()),
                ("stripe_subscription_id", models.CharField(blank=True, max_length=255)),
                ("stripe_customer_id", models.CharField(blank=True, max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("ACTIVE", "Active"),
                            ("TRIALING", "Trialing"),
                            ("PAST_DUE", "Past due"),
                            ("CANCELED", "Canceled"),
                            ("INACTIVE", "Inactive"),
                        ],
                        default="INACTIVE",
                        max_length=16,
                    ),
                ),
                ("current_period_end", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("subject_type", "subject_id"),
                        name="billing_subscription_subject_unique",
                    )
                ],
                "indexes": [models.Index(fields=["stripe_subscription_id"], name="billing_sub_stripe_id_idx")],
            },
        ),
    ]
