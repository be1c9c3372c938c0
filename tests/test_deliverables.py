from __future__ import annotations

from datetime import timedelta
from unittest.mock import Mock, patch

from django.core.exceptions import ValidationError
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from apps.core.errors import ConflictError, IntegrationError, NotFound
from apps.deliverables import services
from apps.deliverables.models import Deliverable, DeliverableReview, Strike
from apps.deliverables.verification import auto_verify_from_instagram, find_matching_media, run_verification
from apps.marketplace.providers.instagram import InstagramMedia
from apps.matches.models import Match
from apps.notifications.models import Notification
from tests.factories import (
    link_instagram,
    make_brand,
    make_creator,
    make_deliverable,
    make_match,
    make_offer,
    make_user,
)

POST_URL = "https://www.instagram.com/reel/Cx123/"


def _media(caption: str, *, media_type: str = "REELS", permalink: str = POST_URL, age: timedelta | None = None) -> InstagramMedia:
    return InstagramMedia(
        media_id="media_1",
        caption=caption,
        media_type=media_type,
        permalink=permalink,
        timestamp=timezone.now() - (age or timedelta(minutes=5)),
    )


class SubmissionTests(TestCase):
    def setUp(self) -> None:
        self.creator = make_creator(make_user())
        self.brand = make_brand()
        self.offer = make_offer(self.brand)
        self.match = make_match(self.offer, self.creator)
        self.deliverable = make_deliverable(self.match)

    def test_submit_once(self) -> None:
        deliverable = services.submit_deliverable(self.match.id, creator=self.creator, permalink=POST_URL, notes="Posted!")

        self.assertEqual(deliverable.status, Deliverable.Status.DUE)
        self.assertEqual(deliverable.submitted_permalink, POST_URL)
        self.assertIsNotNone(deliverable.submitted_at)
        with self.assertRaises(ConflictError):
            services.submit_deliverable(self.match.id, creator=self.creator, permalink=POST_URL)

    def test_racing_submission_loses_at_write(self) -> None:
        stale = services._load_for_submission(self.match)
        services.submit_deliverable(self.match.id, creator=self.creator, permalink=POST_URL, notes="first")

        with patch("apps.deliverables.services._load_for_submission", return_value=stale):
            with self.assertRaisesMessage(ConflictError, "Deliverable already processed"):
                services.submit_deliverable(
                    self.match.id, creator=self.creator, permalink="https://www.instagram.com/reel/Other/", notes="second"
                )

        self.deliverable.refresh_from_db()
        self.assertEqual(self.deliverable.submitted_permalink, POST_URL)
        self.assertEqual(self.deliverable.submitted_notes, "first")

    def test_rejects_bad_url(self) -> None:
        with self.assertRaises(ValidationError):
            services.submit_deliverable(self.match.id, creator=self.creator, permalink="ftp://nope")

    def test_other_creators_match_is_not_found(self) -> None:
        with self.assertRaises(NotFound):
            services.submit_deliverable(self.match.id, creator=make_creator(), permalink=POST_URL)

    def test_revoked_match_cannot_submit(self) -> None:
        Match.objects.filter(id=self.match.id).update(status=Match.Status.REVOKED)

        with self.assertRaises(ConflictError):
            services.submit_deliverable(self.match.id, creator=self.creator, permalink=POST_URL)

    def test_usage_rights_must_be_granted_when_required(self) -> None:
        self.offer.usage_rights_required = True
        self.offer.usage_rights_scope = "ORGANIC_6MO"
        self.offer.save(update_fields=["usage_rights_required", "usage_rights_scope"])

        with self.assertRaises(ValidationError):
            services.submit_deliverable(self.match.id, creator=self.creator, permalink=POST_URL)

        deliverable = services.submit_deliverable(
            self.match.id, creator=self.creator, permalink=POST_URL, grant_usage_rights=True
        )
        self.assertIsNotNone(deliverable.usage_rights_granted_at)
        self.assertEqual(deliverable.usage_rights_scope, "ORGANIC_6MO")

    def test_submit_endpoint(self) -> None:
        client = APIClient()
        client.force_authenticate(user=self.creator.user)
        url = f"/api/v1/creator/matches/{self.match.id}/deliverable/submit/"

        first = client.post(url, {"url": POST_URL}, format="json")
        second = client.post(url, {"url": POST_URL}, format="json")

        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json()["deliverable"]["submitted_permalink"], POST_URL)
        self.assertEqual(second.status_code, 409)
        self.assertEqual(second.json(), {"ok": False, "error": "Deliverable already submitted"})


class BrandReviewTests(TestCase):
    def setUp(self) -> None:
        self.owner = make_user()
        self.brand = make_brand(self.owner)
        self.creator = make_creator()
        self.match = make_match(make_offer(self.brand), self.creator)
        self.deliverable = make_deliverable(self.match, submitted_permalink=POST_URL, submitted_at=timezone.now())

    def test_verify_uses_submitted_permalink(self) -> None:
        deliverable = services.verify_deliverable(self.deliverable.id, brand=self.brand, reviewer=self.owner)

        self.assertEqual(deliverable.status, Deliverable.Status.VERIFIED)
        self.assertEqual(deliverable.verified_permalink, POST_URL)
        self.assertEqual(deliverable.reviews.get().action, DeliverableReview.Action.VERIFY)
        with self.assertRaises(ConflictError):
            services.verify_deliverable(self.deliverable.id, brand=self.brand, reviewer=self.owner)

    def test_verify_requires_some_permalink(self) -> None:
        Deliverable.objects.filter(id=self.deliverable.id).update(submitted_permalink="")

        with self.assertRaisesMessage(ValidationError, "Missing permalink"):
            services.verify_deliverable(self.deliverable.id, brand=self.brand, reviewer=self.owner)

    def test_other_brand_cannot_review(self) -> None:
        with self.assertRaises(NotFound):
            services.verify_deliverable(self.deliverable.id, brand=make_brand(name="Other"), reviewer=self.owner)

    def test_request_changes_clears_submission(self) -> None:
        deliverable = services.request_changes(self.deliverable.id, brand=self.brand, reviewer=self.owner, reason="Tag us")

        self.assertEqual(deliverable.status, Deliverable.Status.DUE)
        self.assertEqual(deliverable.submitted_permalink, "")
        self.assertIsNone(deliverable.submitted_at)
        self.assertEqual(deliverable.failure_reason, "Tag us")

    def test_fail_issues_one_strike_and_notifies(self) -> None:
        deliverable = services.fail_deliverable(self.deliverable.id, brand=self.brand, reviewer=self.owner)

        self.assertEqual(deliverable.status, Deliverable.Status.FAILED)
        self.assertEqual(deliverable.failure_reason, services.DEFAULT_REJECTION_REASON)
        self.assertEqual(Strike.objects.filter(match=self.match).count(), 1)
        self.assertTrue(Notification.objects.filter(type="strike_issued", to=self.creator.email).exists())
        self.assertFalse(services.issue_strike(self.match, "again"))
        self.assertEqual(Strike.objects.count(), 1)

    def test_repost_cycle(self) -> None:
        with self.assertRaises(ConflictError):
            services.require_repost(self.deliverable.id, brand=self.brand, reviewer=self.owner)

        services.fail_deliverable(self.deliverable.id, brand=self.brand, reviewer=self.owner)
        deliverable = services.require_repost(self.deliverable.id, brand=self.brand, reviewer=self.owner)
        self.assertEqual(deliverable.status, Deliverable.Status.REPOST_REQUIRED)

        resubmitted = services.submit_deliverable(self.match.id, creator=self.creator, permalink=POST_URL + "v2")
        self.assertEqual(resubmitted.status, Deliverable.Status.DUE)
        self.assertEqual(resubmitted.submitted_permalink, POST_URL + "v2")

    def test_review_endpoint_maps_conflict(self) -> None:
        client = APIClient()
        client.force_authenticate(user=self.owner)
        url = f"/api/v1/brand/deliverables/{self.deliverable.id}/verify/"

        self.assertEqual(client.post(url, {}, format="json").status_code, 200)
        response = client.post(url, {}, format="json")

        self.assertEqual(response.status_code, 409)
        self.assertFalse(response.json()["ok"])

    def test_verify_rechecks_usage_rights_when_writing(self) -> None:
        offer = make_offer(self.brand, usage_rights_required=True)
        match = make_match(offer, make_creator())
        deliverable = make_deliverable(
            match,
            submitted_permalink=POST_URL,
            submitted_at=timezone.now(),
            usage_rights_granted_at=timezone.now(),
        )
        stale = services._load_for_brand(deliverable.id, self.brand)
        services.request_changes(deliverable.id, brand=self.brand, reviewer=self.owner, reason="Tag us")

        with patch("apps.deliverables.services._load_for_brand", return_value=stale):
            with self.assertRaisesMessage(ConflictError, "Deliverable changed during review"):
                services.verify_deliverable(deliverable.id, brand=self.brand, reviewer=self.owner)

        deliverable.refresh_from_db()
        self.assertEqual(deliverable.status, Deliverable.Status.DUE)
        self.assertIsNone(deliverable.usage_rights_granted_at)
        self.assertFalse(deliverable.reviews.filter(action=DeliverableReview.Action.VERIFY).exists())

    def test_verify_rechecks_submitted_permalink_when_writing(self) -> None:
        stale = services._load_for_brand(self.deliverable.id, self.brand)
        services.request_changes(self.deliverable.id, brand=self.brand, reviewer=self.owner)

        with patch("apps.deliverables.services._load_for_brand", return_value=stale):
            with self.assertRaisesMessage(ConflictError, "Deliverable changed during review"):
                services.verify_deliverable(self.deliverable.id, brand=self.brand, reviewer=self.owner)

        self.deliverable.refresh_from_db()
        self.assertEqual(self.deliverable.status, Deliverable.Status.DUE)
        self.assertEqual(self.deliverable.verified_permalink, "")

    def test_explicit_permalink_still_needs_current_usage_rights(self) -> None:
        offer = make_offer(self.brand, usage_rights_required=True)
        deliverable = make_deliverable(make_match(offer, make_creator()))

        with self.assertRaisesMessage(ValidationError, "Usage rights have not been granted"):
            services.verify_deliverable(deliverable.id, brand=self.brand, reviewer=self.owner, permalink=POST_URL)


class DeadlineTests(TestCase):
    def setUp(self) -> None:
        self.brand = make_brand()
        self.creator = make_creator()
        self.now = timezone.now()

    def test_overdue_enforced_types_fail_with_strike(self) -> None:
        reel = make_deliverable(make_match(make_offer(self.brand), self.creator), due_at=self.now - timedelta(hours=1))
        ugc_offer = make_offer(self.brand, deliverable_type="UGC_ONLY")
        ugc = make_deliverable(make_match(ugc_offer, make_creator()), due_at=self.now - timedelta(hours=1))

        results = services.enforce_overdue(now=self.now)

        self.assertEqual([r["deliverable_id"] for r in results], [reel.id])
        self.assertTrue(results[0]["strike_issued"])
        reel.refresh_from_db()
        ugc.refresh_from_db()
        self.assertEqual(reel.status, Deliverable.Status.FAILED)
        self.assertEqual(reel.failure_reason, services.MISSED_DEADLINE_REASON)
        self.assertEqual(ugc.status, Deliverable.Status.DUE)

    def test_reminder_sent_once_inside_window(self) -> None:
        make_deliverable(make_match(make_offer(self.brand), self.creator), due_at=self.now + timedelta(hours=10))
        make_deliverable(make_match(make_offer(self.brand), make_creator()), due_at=self.now + timedelta(days=5))

        self.assertEqual(services.send_due_soon_reminders(now=self.now), 1)
        self.assertEqual(services.send_due_soon_reminders(now=self.now), 0)
        self.assertEqual(Notification.objects.filter(type="deliverable_due_soon").count(), 1)

    def test_ensure_deliverable_is_idempotent(self) -> None:
        match = make_match(make_offer(self.brand, deadline_days_after_delivery=7), self.creator)

        first, created = services.ensure_deliverable(match)
        second, created_again = services.ensure_deliverable(match)

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(first.id, second.id)
        self.assertGreater(first.due_at, match.accepted_at + timedelta(days=7))


class MediaMatchingTests(TestCase):
    def test_requires_code_and_brand_tag(self) -> None:
        media = [
            _media("Love this serum #ad"),
            _media("Use FRILP-ABC234 for a discount"),
            _media("Use frilp-abc234 with @GlowGoods", permalink="https://www.instagram.com/reel/match/"),
        ]

        found = find_matching_media(media, campaign_code="FRILP-ABC234", expected_type="REELS", brand_handle="@glowgoods")

        self.assertEqual(found.permalink, "https://www.instagram.com/reel/match/")

    def test_media_type_and_timing(self) -> None:
        accepted_at = timezone.now() - timedelta(days=1)
        old_reel = _media("FRILP-ABC234", age=timedelta(days=3))
        image = _media("FRILP-ABC234", media_type="IMAGE")

        self.assertIsNone(
            find_matching_media([old_reel, image], campaign_code="FRILP-ABC234", expected_type="REELS", accepted_at=accepted_at)
        )
        self.assertIs(
            find_matching_media([old_reel, image], campaign_code="FRILP-ABC234", expected_type="FEED", accepted_at=accepted_at),
            image,
        )


class AutoVerifyTests(TestCase):
    def setUp(self) -> None:
        self.brand = make_brand(instagram_handle="glowgoods")
        self.creator = make_creator()
        link_instagram(self.creator)
        self.match = make_match(make_offer(self.brand), self.creator, code="FRILP-ABC234")
        Match.objects.filter(id=self.match.id).update(accepted_at=timezone.now() - timedelta(days=1))
        self.deliverable = make_deliverable(self.match)

    def test_verifies_matching_reel(self) -> None:
        client = Mock()
        client.fetch_recent_media.return_value = [_media("New fave! FRILP-ABC234 @glowgoods")]

        checked, results = auto_verify_from_instagram(client=client)

        self.assertEqual(checked, 1)
        self.assertTrue(results[0]["verified"])
        self.deliverable.refresh_from_db()
        self.assertEqual(self.deliverable.status, Deliverable.Status.VERIFIED)
        self.assertEqual(self.deliverable.verified_media_id, "media_1")
        client.fetch_recent_media.assert_called_once_with(
            access_token="ig_test_token", ig_user_id="17841400000000000", limit=25
        )

    def test_fetch_failure_is_reported_per_row(self) -> None:
        client = Mock()
        client.fetch_recent_media.side_effect = IntegrationError("Instagram API request failed")

        _, results = auto_verify_from_instagram(client=client)

        self.assertFalse(results[0]["ok"])
        self.assertEqual(results[0]["note"], "Instagram API request failed")
        self.deliverable.refresh_from_db()
        self.assertEqual(self.deliverable.status, Deliverable.Status.DUE)

    def test_run_verification_enforces_after_checking(self) -> None:
        Deliverable.objects.filter(id=self.deliverable.id).update(due_at=timezone.now() - timedelta(hours=2))
        client = Mock()
        client.fetch_recent_media.return_value = []

        report = run_verification(client=client).as_dict()

        self.assertEqual(report["checked"], 1)
        self.assertEqual(report["processed"], 2)
        self.deliverable.refresh_from_db()
        self.assertEqual(self.deliverable.status, Deliverable.Status.FAILED)

    def test_usage_rights_revoked_mid_check_blocks_verification(self) -> None:
        offer = make_offer(self.brand, usage_rights_required=True)
        match = make_match(offer, self.creator, code="FRILP-RGT234")
        Match.objects.filter(id=match.id).update(accepted_at=timezone.now() - timedelta(days=1))
        deliverable = make_deliverable(match, submitted_at=timezone.now(), usage_rights_granted_at=timezone.now())
        Deliverable.objects.filter(id=self.deliverable.id).update(status=Deliverable.Status.VERIFIED)

        def fetch_while_brand_requests_changes(**kwargs):
            Deliverable.objects.filter(id=deliverable.id).update(usage_rights_granted_at=None, submitted_at=None)
            return [_media("Loving it FRILP-RGT234 @glowgoods")]

        client = Mock()
        client.fetch_recent_media.side_effect = fetch_while_brand_requests_changes

        _, results = auto_verify_from_instagram(client=client)

        self.assertFalse(results[0]["verified"])
        self.assertEqual(results[0]["note"], "Deliverable changed during verification")
        deliverable.refresh_from_db()
        self.assertEqual(deliverable.status, Deliverable.Status.DUE)
        self.assertEqual(deliverable.verified_permalink, "")
