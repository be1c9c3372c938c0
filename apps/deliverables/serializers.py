from __future__ import annotations

from rest_framework import serializers

from apps.deliverables.models import Deliverable


class DeliverableSubmitSerializer(serializers.Serializer):
    url = serializers.URLField(max_length=500)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True, default="")
    grant_usage_rights = serializers.BooleanField(required=False, default=False)


class DeliverableReviewSerializer(serializers.Serializer):
    permalink = serializers.URLField(max_length=500, required=False, allow_blank=True, default="")
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class DeliverableSerializer(serializers.ModelSerializer):
    class Meta:
        model = Deliverable
        fields = [
            "id",
            "match_id",
            "status",
            "expected_type",
            "due_at",
            "submitted_permalink",
            "submitted_notes",
            "submitted_at",
            "usage_rights_granted_at",
            "usage_rights_scope",
            "verified_permalink",
            "verified_at",
            "failure_reason",
        ]
        read_only_fields = fields
