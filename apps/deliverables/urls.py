from __future__ import annotations

from django.urls import path

from apps.deliverables.views import (
    DeliverableFailView,
    DeliverableRepostView,
    DeliverableRequestChangesView,
    DeliverableSubmitView,
    DeliverableVerifyView,
)

urlpatterns = [
    path(
        "creator/matches/<int:match_id>/deliverable/submit/",
        DeliverableSubmitView.as_view(),
        name="deliverable-submit",
    ),
    path("brand/deliverables/<int:deliverable_id>/verify/", DeliverableVerifyView.as_view(), name="deliverable-verify"),
    path(
        "brand/deliverables/<int:deliverable_id>/request-changes/",
        DeliverableRequestChangesView.as_view(),
        name="deliverable-request-changes",
    ),
    path("brand/deliverables/<int:deliverable_id>/fail/", DeliverableFailView.as_view(), name="deliverable-fail"),
    path("brand/deliverables/<int:deliverable_id>/repost/", DeliverableRepostView.as_view(), name="deliverable-repost"),
]
