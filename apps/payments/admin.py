from __future__ import annotations

from django.contrib import admin

from apps.payments.models import BillingSubscription


@admin.register(BillingSubscription)
class BillingSubscriptionAdmin(admin.ModelAdmin):
    list_display = ("subject_type", "subject_id", "status", "stripe_subscription_id", "current_period_end")
    list_filter = ("subject_type", "status")
    search_fields = ("stripe_subscription_id", "stripe_customer_id")
    readonly_fields = ("created_at", "updated_at")
