from __future__ import annotations

from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from apps.attribution.models import AttributedOrder, AttributedRefund, LinkClick, Redemption
from apps.attribution.services.aggregator import cents_to_display, creator_rollup, match_totals, roi_percent
from apps.attribution.services.ingest import parse_order_event, parse_refund_event, record_attributed_order, record_attributed_refund
from apps.attribution.services.redirects import hash_ip, with_tracking_params
from apps.core.errors import IntegrationError
from apps.fulfillment.providers.shopify import amount_to_cents
from apps.matches.models import Match
from tests.factories import make_brand, make_creator, make_match, make_offer, make_store, make_user, shopify_client_mock


class MoneyHelpersTests(TestCase):
    def test_cents_to_display(self) -> None:
        self.assertEqual(cents_to_display(4250), "42.50")
        self.assertEqual(cents_to_display(5), "0.05")
        self.assertEqual(cents_to_display(None), "0.00")
        self.assertEqual(cents_to_display(-1250), "-12.50")

    def test_roi_percent(self) -> None:
        self.assertIsNone(roi_percent(10_000, 0))
        self.assertEqual(roi_percent(15_000, 5_000), 200.0)
        self.assertEqual(roi_percent(1_000, 3_000), -66.7)

    def test_tracking_params_preserve_existing_query(self) -> None:
        url = with_tracking_params("https://glow.example/shop?ref=ig&utm_source=old", offer_id=9, code="FRILP-ABC234", with_discount=True)

        params = parse_qs(urlparse(url).query)
        self.assertEqual(params["ref"], ["ig"])
        self.assertEqual(params["utm_source"], ["frilpp"])
        self.assertEqual(params["utm_campaign"], ["9"])
        self.assertEqual(params["discount"], ["FRILP-ABC234"])

    def test_ip_hash_is_not_the_raw_address(self) -> None:
        hashed = hash_ip("203.0.113.9")
        self.assertNotIn("203.0.113.9", hashed)
        self.assertEqual(hashed, hash_ip("203.0.113.9"))
        self.assertEqual(hash_ip(""), "")


class CampaignRedirectTests(TestCase):
    def setUp(self) -> None:
        cache.clear()
        self.brand = make_brand(website="https://glow.example")
        self.offer = make_offer(self.brand)
        self.match = make_match(self.offer, make_creator(), code="FRILP-ABC234")

    def test_unknown_code_goes_home(self) -> None:
        response = self.client.get("/r/FRILP-NOPE99")

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response["Location"], "/")
        self.assertEqual(LinkClick.objects.count(), 0)

    def test_code_is_case_insensitive_and_click_recorded(self) -> None:
        response = self.client.get(
            "/r/frilp-abc234",
            HTTP_X_FORWARDED_FOR="198.51.100.7, 10.0.0.1",
            HTTP_USER_AGENT="Instagram 300.0",
            HTTP_REFERER="https://l.instagram.com/",
        )

        self.assertEqual(response.status_code, 302)
        location = urlparse(response["Location"])
        self.assertEqual(location.netloc, "glow.example")
        self.assertNotIn("discount", parse_qs(location.query))
        click = LinkClick.objects.get()
        self.assertEqual(click.match_id, self.match.id)
        self.assertEqual(click.ip_hash, hash_ip("198.51.100.7"))
        self.assertEqual(click.user_agent, "Instagram 300.0")

    def test_cta_url_wins_over_website(self) -> None:
        self.offer.metadata = {"ctaUrl": "https://glow.example/serum"}
        self.offer.save(update_fields=["metadata"])

        response = self.client.get("/r/FRILP-ABC234")

        self.assertTrue(response["Location"].startswith("https://glow.example/serum?"))

    @patch("apps.attribution.services.redirects.get_shopify_client")
    def test_store_product_page(self, mock_factory) -> None:
        make_store(self.brand)
        mock_factory.return_value = shopify_client_mock()

        response = self.client.get("/r/FRILP-ABC234")

        location = urlparse(response["Location"])
        self.assertEqual(location.netloc, "glow-goods.myshopify.com")
        self.assertEqual(location.path, "/products/summer-serum")
        self.assertEqual(parse_qs(location.query)["discount"], ["FRILP-ABC234"])

    @patch("apps.attribution.services.redirects.get_shopify_client")
    def test_product_lookup_failure_falls_back_to_shop_root(self, mock_factory) -> None:
        make_store(self.brand)
        client = shopify_client_mock()
        client.get_product.side_effect = IntegrationError("Shopify API request failed: products/1000.json")
        mock_factory.return_value = client

        response = self.client.get("/r/FRILP-ABC234")

        location = urlparse(response["Location"])
        self.assertEqual(location.netloc, "glow-goods.myshopify.com")
        self.assertEqual(location.path, "")

    def test_brand_without_links_goes_to_map(self) -> None:
        bare = make_brand(name="Corner Cafe", website="", city="Austin")
        match = make_match(make_offer(bare), make_creator(), code="FRILP-MAP234")

        response = self.client.get(f"/r/{match.campaign_code}")

        self.assertTrue(response["Location"].startswith("https://www.google.com/maps/search/?api=1&query=Corner+Cafe+Austin"))

    def test_brand_name_alone_does_not_build_a_map_link(self) -> None:
        bare = make_brand(name="Corner Cafe", website="")
        match = make_match(make_offer(bare), make_creator(), code="FRILP-NAM234")

        response = self.client.get(f"/r/{match.campaign_code}")

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response["Location"], "/")
        self.assertEqual(LinkClick.objects.filter(match=match).count(), 1)

    @override_settings(RATE_LIMITS_ENABLED=True, RATE_LIMIT_REDIRECTS_PER_MINUTE=1)
    def test_rate_limited_before_any_write(self) -> None:
        first = self.client.get("/r/FRILP-ABC234", REMOTE_ADDR="192.0.2.1")
        second = self.client.get("/r/FRILP-ABC234", REMOTE_ADDR="192.0.2.1")

        self.assertEqual(first.status_code, 302)
        self.assertEqual(second.status_code, 429)
        self.assertEqual(LinkClick.objects.count(), 1)

    @override_settings(RATE_LIMITS_ENABLED=True, RATE_LIMIT_REDIRECTS_PER_MINUTE=1)
    def test_limiter_outage_fails_open(self) -> None:
        with patch("apps.core.rate_limit.cache") as broken_cache:
            broken_cache.add.side_effect = ConnectionError("cache down")
            response = self.client.get("/r/FRILP-ABC234")

        self.assertEqual(response.status_code, 302)
        self.assertEqual(LinkClick.objects.count(), 1)


class AggregationTests(TestCase):
    def setUp(self) -> None:
        self.brand = make_brand()
        self.offer = make_offer(self.brand, metadata={"productValue": 25})
        self.creator = make_creator()
        self.match = make_match(self.offer, self.creator)

    def _order(self, match: Match, order_id: str, cents: int, customer: str = "") -> AttributedOrder:
        return AttributedOrder.objects.create(
            match=match,
            shop_domain="glow-goods.myshopify.com",
            order_id=order_id,
            customer_id=customer,
            currency="USD",
            total_cents=cents,
        )

    def test_net_revenue_subtracts_refunds(self) -> None:
        self._order(self.match, "1", 4250)
        self._order(self.match, "2", 1000)
        AttributedRefund.objects.create(
            match=self.match,
            shop_domain="glow-goods.myshopify.com",
            order_id="1",
            refund_id="r1",
            currency="USD",
            amount_cents=1250,
        )
        LinkClick.objects.create(match=self.match, ip_hash="x")

        totals = match_totals([self.match.id])[self.match.id]

        self.assertEqual(totals.orders, 2)
        self.assertEqual(totals.order_cents, 5250)
        self.assertEqual(totals.refund_cents, 1250)
        self.assertEqual(totals.net_revenue_cents, 4000)
        self.assertEqual(totals.clicks, 1)

    def test_refund_from_webhook_amounts_is_exact(self) -> None:
        shop = "glow-goods.myshopify.com"
        order = parse_order_event(
            {
                "id": 5001,
                "total_price": "120.00",
                "currency": "usd",
                "discount_codes": [{"code": self.match.campaign_code.lower()}],
            }
        )
        refund = parse_refund_event(
            {"id": "r1", "order_id": 5001, "transactions": [{"kind": "refund", "amount": "20.00"}]}
        )

        self.assertTrue(record_attributed_order(shop, order).attributed)
        self.assertTrue(record_attributed_refund(shop, refund).attributed)

        totals = match_totals([self.match.id])[self.match.id]
        self.assertEqual(totals.order_cents, 12_000)
        self.assertEqual(totals.refund_cents, 2_000)
        self.assertEqual(totals.net_revenue_cents, 10_000)
        self.assertEqual(cents_to_display(totals.net_revenue_cents), "100.00")

    def test_many_one_cent_orders_do_not_drift(self) -> None:
        self.assertEqual(sum(amount_to_cents("0.01") for _ in range(10_000)), 10_000)
        AttributedOrder.objects.bulk_create(
            [
                AttributedOrder(
                    match=self.match,
                    shop_domain="glow-goods.myshopify.com",
                    order_id=str(n),
                    currency="USD",
                    total_cents=amount_to_cents("0.01"),
                )
                for n in range(10_000)
            ],
            batch_size=500,
        )

        totals = match_totals([self.match.id])[self.match.id]

        self.assertEqual(totals.orders, 10_000)
        self.assertEqual(totals.order_cents, 10_000)
        self.assertEqual(cents_to_display(totals.net_revenue_cents), "100.00")

    def test_creator_rollup_roi_and_repeat_buyers(self) -> None:
        second = make_match(make_offer(self.brand, title="Second", metadata={"productValue": 25}), self.creator)
        self._order(self.match, "1", 6000, customer="c1")
        self._order(second, "2", 4000, customer="c1")
        self._order(second, "3", 2000, customer="c2")
        AttributedRefund.objects.create(
            match=second,
            shop_domain="glow-goods.myshopify.com",
            order_id="3",
            refund_id="r3",
            currency="USD",
            amount_cents=2000,
        )

        rows = creator_rollup(self.brand)

        self.assertEqual(len(rows), 1)
        row = rows[0]
        self.assertEqual(row["match_count"], 2)
        self.assertEqual(row["net_revenue_cents"], 10_000)
        self.assertEqual(row["seed_cost_cents"], 5_000)
        self.assertEqual(row["roi_percent"], 100.0)
        # c2's only order was fully refunded.
        self.assertEqual(row["repeat_buyer_count"], 1)

    def test_rollup_roi_is_none_without_seed_cost(self) -> None:
        self.offer.metadata = {}
        self.offer.save(update_fields=["metadata"])
        self._order(self.match, "1", 1000)

        self.assertIsNone(creator_rollup(self.brand)[0]["roi_percent"])

    def test_attribution_rows_are_immutable(self) -> None:
        order = self._order(self.match, "1", 1000)
        order.total_cents = 1
        with self.assertRaises(ValidationError):
            order.save()
        with self.assertRaises(ValidationError):
            order.delete()


class RedemptionApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()
        self.owner = make_user()
        self.brand = make_brand(self.owner)
        self.match = make_match(make_offer(self.brand), make_creator(), code="FRILP-ABC234")
        self.client.force_authenticate(user=self.owner)

    def test_record_redemption_by_decimal_amount(self) -> None:
        response = self.client.post(
            "/api/v1/brand/redemptions/",
            {"code": "frilp-abc234", "amount": "19.99", "channel": "IN_STORE", "note": "Pop-up"},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["redemption"]["amount_cents"], 1999)
        self.assertEqual(body["redemption"]["amount_display"], "19.99")
        self.assertEqual(body["totals"]["redemption_cents"], 1999)
        self.assertEqual(body["totals"]["redemption_display"], "19.99")

    def test_code_from_another_brand_is_not_found(self) -> None:
        other = make_brand(name="Other")
        make_match(make_offer(other), make_creator(), code="FRILP-OTHER2")

        response = self.client.post("/api/v1/brand/redemptions/", {"code": "FRILP-OTHER2", "amount_cents": 500}, format="json")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(Redemption.objects.count(), 0)

    def test_amount_must_be_positive(self) -> None:
        response = self.client.post("/api/v1/brand/redemptions/", {"code": "FRILP-ABC234", "amount_cents": 0}, format="json")

        self.assertEqual(response.status_code, 400)

    def test_offer_analytics_include_display_strings(self) -> None:
        Redemption.objects.create(match=self.match, brand=self.brand, amount_cents=1234, currency="USD")

        response = self.client.get("/api/v1/brand/analytics/offers/")

        self.assertEqual(response.status_code, 200)
        row = response.json()["offers"][0]
        self.assertEqual(row["redemption_cents"], 1234)
        self.assertEqual(row["redemption_display"], "12.34")

    def test_creator_performance(self) -> None:
        creator_user = make_user()
        creator = make_creator(creator_user)
        match = make_match(make_offer(self.brand, title="Perf"), creator)
        LinkClick.objects.create(match=match, ip_hash="x")
        self.client.force_authenticate(user=creator_user)

        response = self.client.get("/api/v1/creator/performance/")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["summary"]["total_clicks"], 1)
        self.assertEqual(body["matches"][0]["share_url"], "https://frilpp.test/r/" + match.campaign_code)
