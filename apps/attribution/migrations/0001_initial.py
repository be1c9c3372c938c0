from __future__ import annotations

from django.conf import settings
from django.db import migrations, models

import libs.idgen


def _id_field():
    return models.BigIntegerField(
        default=libs.idgen.generate_id,
        editable=False,
        primary_key=True,
        serialize=False,
    )


def _timestamps():
    return [
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


def _match_fk(related_name: str):
    return models.ForeignKey(
        on_delete=models.deletion.CASCADE,
        related_name=related_name,
        to="matches.match",
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("marketplace", "0001_initial"),
        ("matches", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="LinkClick",
            fields=[
                ("id", _id_field()),
                *_timestamps(),
                ("ip_hash", models.CharField(blank=True, max_length=64)),
                ("user_agent", models.CharField(blank=True, max_length=512)),
                ("referer", models.CharField(blank=True, max_length=1024)),
                ("match", _match_fk("clicks")),
            ],
            options={
                "indexes": [models.Index(fields=["match", "created_at"], name="linkclick_match_created_idx")],
            },
        ),
        migrations.CreateModel(
            name="AttributedOrder",
            fields=[
                ("id", _id_field()),
                *_timestamps(),
                ("shop_domain", models.CharField(max_length=255)),
                ("order_id", models.CharField(max_length=64)),
                ("customer_id", models.CharField(blank=True, max_length=64)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("total_cents", models.BigIntegerField(default=0)),
                ("match", _match_fk("attributed_orders")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("shop_domain", "order_id"),
                        name="attributed_order_shop_order_unique",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AttributedRefund",
            fields=[
                ("id", _id_field()),
                *_timestamps(),
                ("shop_domain", models.CharField(max_length=255)),
                ("order_id", models.CharField(max_length=64)),
                ("refund_id", models.CharField(max_length=64)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("amount_cents", models.BigIntegerField(default=0)),
                ("match", _match_fk("attributed_refunds")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("shop_domain", "refund_id"),
                        name="attributed_refund_shop_refund_unique",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Redemption",
            fields=[
                ("id", _id_field()),
                *_timestamps(),
                (
                    "channel",
                    models.CharField(
                        choices=[("IN_STORE", "In store"), ("ONLINE", "Online"), ("OTHER", "Other")],
                        default="IN_STORE",
                        max_length=16,
                    ),
                ),
                ("amount_cents", models.BigIntegerField()),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("note", models.CharField(blank=True, max_length=240)),
                ("match", _match_fk("redemptions")),
                (
                    "brand",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="redemptions",
                        to="marketplace.brand",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=models.deletion.SET_NULL,
                        related_name="recorded_redemptions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount_cents__gt", 0)),
                        name="redemption_amount_positive",
                    ),
                ],
            },
        ),
    ]
