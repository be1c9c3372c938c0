from __future__ import annotations

from django.urls import path

from apps.matches.views import MatchApproveView, MatchRevokeView, OfferClaimView

urlpatterns = [
    path("creator/offers/<int:offer_id>/claim/", OfferClaimView.as_view(), name="offer-claim"),
    path("brand/matches/<int:match_id>/approve/", MatchApproveView.as_view(), name="match-approve"),
    path("brand/matches/<int:match_id>/revoke/", MatchRevokeView.as_view(), name="match-revoke"),
]
