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


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("marketplace", "0001_initial"),
        ("matches", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Deliverable",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DUE", "Due"),
                            ("VERIFIED", "Verified"),
                            ("FAILED", "Failed"),
                            ("REPOST_REQUIRED", "Repost required"),
                        ],
                        default="DUE",
                        max_length=20,
                    ),
                ),
                ("expected_type", models.CharField(max_length=16)),
                ("due_at", models.DateTimeField()),
                ("submitted_permalink", models.CharField(blank=True, max_length=500)),
                ("submitted_notes", models.TextField(blank=True)),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("usage_rights_granted_at", models.DateTimeField(blank=True, null=True)),
                ("usage_rights_scope", models.CharField(blank=True, max_length=64)),
                ("verified_permalink", models.CharField(blank=True, max_length=500)),
                ("verified_media_id", models.CharField(blank=True, max_length=64)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("failure_reason", models.CharField(blank=True, max_length=500)),
                ("reminder_sent_at", models.DateTimeField(blank=True, null=True)),
                (
                    "match",
                    models.OneToOneField(
                        on_delete=models.deletion.CASCADE,
                        related_name="deliverable",
                        to="matches.match",
                    ),
                ),
                (
                    "reviewed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=models.deletion.SET_NULL,
                        related_name="reviewed_deliverables",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=~models.Q(status="VERIFIED") | ~models.Q(verified_permalink=""),
                        name="deliverable_verified_requires_permalink",
                    ),
                ],
                "indexes": [
                    models.Index(fields=["status", "due_at"], name="deliverable_status_due_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="DeliverableReview",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("VERIFY", "Verify"),
                            ("REQUEST_CHANGES", "Request changes"),
                            ("FAIL", "Fail"),
                            ("REPOST_REQUIRED", "Repost required"),
                        ],
                        max_length=20,
                    ),
                ),
                ("reason", models.CharField(blank=True, max_length=500)),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=models.deletion.SET_NULL,
                        related_name="deliverable_reviews",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "deliverable",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="reviews",
                        to="deliverables.deliverable",
                    ),
                ),
            ],
            options={"ordering": ["created_at"]},
        ),
        migrations.CreateModel(
            name="Strike",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("reason", models.CharField(max_length=255)),
                (
                    "creator",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="strikes",
                        to="marketplace.creator",
                    ),
                ),
                (
                    "match",
                    models.OneToOneField(
                        on_delete=models.deletion.CASCADE,
                        related_name="strike",
                        to="matches.match",
                    ),
                ),
            ],
            options={"abstract": False},
        ),
    ]
