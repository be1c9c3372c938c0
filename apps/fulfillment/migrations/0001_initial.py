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

    dependencies = [
        ("marketplace", "0001_initial"),
        ("matches", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CommerceStore",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("shop_domain", models.CharField(max_length=255, unique=True)),
                ("access_token_encrypted", models.TextField()),
                ("scopes", models.CharField(blank=True, max_length=500)),
                ("installed_at", models.DateTimeField(blank=True, null=True)),
                ("uninstalled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "brand",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="stores",
                        to="marketplace.brand",
                    ),
                ),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="MatchDiscount",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("shop_domain", models.CharField(max_length=255)),
                ("code", models.CharField(max_length=32)),
                ("price_rule_id", models.CharField(max_length=64)),
                ("discount_code_id", models.CharField(blank=True, max_length=64)),
                ("percent", models.DecimalField(decimal_places=2, max_digits=5)),
                (
                    "match",
                    models.OneToOneField(
                        on_delete=models.deletion.CASCADE,
                        related_name="discount",
                        to="matches.match",
                    ),
                ),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="OrderFulfillmentRecord",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("shop_domain", models.CharField(max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("DRAFT_CREATED", "Draft created"),
                            ("COMPLETED", "Completed"),
                            ("FULFILLED", "Fulfilled"),
                            ("CANCELED", "Canceled"),
                            ("ERROR", "Error"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                ("draft_order_id", models.CharField(blank=True, max_length=64)),
                ("order_id", models.CharField(blank=True, max_length=64)),
                ("order_name", models.CharField(blank=True, max_length=64)),
                ("tracking_number", models.CharField(blank=True, max_length=128)),
                ("tracking_url", models.CharField(blank=True, max_length=500)),
                ("error", models.TextField(blank=True)),
                ("fulfilled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "match",
                    models.OneToOneField(
                        on_delete=models.deletion.CASCADE,
                        related_name="order_record",
                        to="matches.match",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["shop_domain", "order_id"], name="order_record_shop_order_idx"),
                    models.Index(fields=["status"], name="order_record_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ManualShipment",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("PENDING", "Pending"), ("SHIPPED", "Shipped")],
                        default="PENDING",
                        max_length=16,
                    ),
                ),
                ("carrier", models.CharField(blank=True, max_length=64)),
                ("tracking_number", models.CharField(blank=True, max_length=128)),
                ("tracking_url", models.CharField(blank=True, max_length=500)),
                ("shipped_at", models.DateTimeField(blank=True, null=True)),
                (
                    "match",
                    models.OneToOneField(
                        on_delete=models.deletion.CASCADE,
                        related_name="manual_shipment",
                        to="matches.match",
                    ),
                ),
            ],
            options={"abstract": False},
        ),
    ]
