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
    ]

    operations = [
        migrations.CreateModel(
            name="Brand",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=160)),
                ("website", models.CharField(blank=True, max_length=500)),
                ("address1", models.CharField(blank=True, max_length=255)),
                ("city", models.CharField(blank=True, max_length=120)),
                ("province", models.CharField(blank=True, max_length=120)),
                ("zip", models.CharField(blank=True, max_length=32)),
                ("country", models.CharField(blank=True, max_length=2)),
                ("instagram_handle", models.CharField(blank=True, max_length=64)),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="BrandMember",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "role",
                    models.CharField(
                        choices=[("OWNER", "Owner"), ("MEMBER", "Member")],
                        default="MEMBER",
                        max_length=16,
                    ),
                ),
                (
                    "brand",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="memberships",
                        to="marketplace.brand",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="brand_memberships",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"unique_together": {("brand", "user")}},
        ),
        migrations.AddField(
            model_name="brand",
            name="members",
            field=models.ManyToManyField(
                blank=True,
                related_name="brands",
                through="marketplace.BrandMember",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
        migrations.CreateModel(
            name="Creator",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("full_name", models.CharField(blank=True, max_length=160)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("username", models.CharField(blank=True, max_length=64)),
                ("ig_user_id", models.CharField(blank=True, max_length=64)),
                ("followers_count", models.PositiveIntegerField(blank=True, null=True)),
                ("address1", models.CharField(blank=True, max_length=255)),
                ("address2", models.CharField(blank=True, max_length=255)),
                ("city", models.CharField(blank=True, max_length=120)),
                ("province", models.CharField(blank=True, max_length=120)),
                ("zip", models.CharField(blank=True, max_length=32)),
                ("country", models.CharField(blank=True, max_length=2)),
                (
                    "user",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=models.deletion.SET_NULL,
                        related_name="creator",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="CreatorSocialAccount",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "provider",
                    models.CharField(choices=[("INSTAGRAM", "Instagram")], default="INSTAGRAM", max_length=16),
                ),
                ("external_user_id", models.CharField(max_length=64)),
                ("access_token_encrypted", models.TextField(blank=True)),
                ("account_type", models.CharField(blank=True, max_length=32)),
                ("profile_synced_at", models.DateTimeField(blank=True, null=True)),
                ("profile_error", models.TextField(blank=True)),
                (
                    "creator",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="social_accounts",
                        to="marketplace.creator",
                    ),
                ),
            ],
            options={"unique_together": {("creator", "provider")}},
        ),
        migrations.CreateModel(
            name="Offer",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("title", models.CharField(max_length=200)),
                (
                    "status",
                    models.CharField(
                        choices=[("DRAFT", "Draft"), ("PUBLISHED", "Published"), ("ARCHIVED", "Archived")],
                        default="DRAFT",
                        max_length=16,
                    ),
                ),
                (
                    "deliverable_type",
                    models.CharField(
                        choices=[("REELS", "Reels"), ("FEED", "Feed"), ("UGC_ONLY", "UGC only")],
                        default="REELS",
                        max_length=16,
                    ),
                ),
                ("deadline_days_after_delivery", models.PositiveIntegerField(default=7)),
                ("usage_rights_required", models.BooleanField(default=False)),
                ("usage_rights_scope", models.CharField(blank=True, max_length=64)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "brand",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="offers",
                        to="marketplace.brand",
                    ),
                ),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="OfferProduct",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("shopify_product_id", models.CharField(max_length=64)),
                ("shopify_variant_id", models.CharField(blank=True, max_length=64)),
                ("quantity", models.PositiveIntegerField(default=1)),
                (
                    "offer",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="products",
                        to="marketplace.offer",
                    ),
                ),
            ],
            options={"ordering": ["created_at"]},
        ),
    ]
