from __future__ import annotations

from datetime import timedelta
from itertools import count
from unittest.mock import Mock

from django.utils import timezone

from apps.core.crypto import encrypt_secret
from apps.deliverables.models import Deliverable
from apps.fulfillment.models import CommerceStore
from apps.marketplace.models import Brand, BrandMember, Creator, CreatorSocialAccount, Offer, OfferProduct
from apps.matches.models import Match
from apps.users.models import User

_seq = count(1)


def make_user(email: str | None = None) -> User:
    return User.objects.create_user(email=email or f"user{next(_seq)}@example.com", password="pass12345")


def make_brand(user: User | None = None, **fields) -> Brand:
    fields.setdefault("name", "Glow Goods")
    brand = Brand.objects.create(**fields)
    if user is not None:
        BrandMember.objects.create(brand=brand, user=user, role=BrandMember.Role.OWNER)
    return brand


def make_creator(user: User | None = None, **fields) -> Creator:
    n = next(_seq)
    defaults = {
        "full_name": "Casey Creator",
        "email": f"creator{n}@example.com",
        "username": f"casey{n}",
        "address1": "1 Main St",
        "city": "Austin",
        "province": "TX",
        "zip": "78701",
        "country": "US",
    }
    defaults.update(fields)
    return Creator.objects.create(user=user, **defaults)


def make_offer(brand: Brand, *, products: int = 1, **fields) -> Offer:
    fields.setdefault("title", "Summer Serum Seeding")
    fields.setdefault("status", Offer.Status.PUBLISHED)
    offer = Offer.objects.create(brand=brand, **fields)
    for index in range(products):
        OfferProduct.objects.create(
            offer=offer,
            shopify_product_id=str(1000 + index),
            shopify_variant_id=str(2000 + index),
            quantity=1,
        )
    return offer


def make_store(brand: Brand, shop_domain: str = "glow-goods.myshopify.com") -> CommerceStore:
    return CommerceStore.objects.create(
        brand=brand,
        shop_domain=shop_domain,
        access_token_encrypted=encrypt_secret("shpat_test_token"),
        scopes="write_discounts,write_draft_orders,read_products",
        installed_at=timezone.now(),
    )


def make_match(offer: Offer, creator: Creator, *, status: str = Match.Status.ACCEPTED, code: str | None = None) -> Match:
    return Match.objects.create(
        offer=offer,
        creator=creator,
        status=status,
        campaign_code=code or f"FRILP-T{next(_seq):05d}",
        accepted_at=timezone.now() if status == Match.Status.ACCEPTED else None,
    )


def make_deliverable(match: Match, **fields) -> Deliverable:
    fields.setdefault("status", Deliverable.Status.DUE)
    fields.setdefault("expected_type", match.offer.deliverable_type)
    fields.setdefault("due_at", timezone.now() + timedelta(days=10))
    return Deliverable.objects.create(match=match, **fields)


def link_instagram(creator: Creator, external_user_id: str = "17841400000000000") -> CreatorSocialAccount:
    return CreatorSocialAccount.objects.create(
        creator=creator,
        provider=CreatorSocialAccount.Provider.INSTAGRAM,
        external_user_id=external_user_id,
        access_token_encrypted=encrypt_secret("ig_test_token"),
    )


def shopify_client_mock() -> Mock:
    """A ShopifyClient double whose calls all succeed."""
    client = Mock()
    client.create_price_rule.return_value = "pr_1"
    client.create_discount_code.side_effect = lambda price_rule_id, code: ("dc_1", code)
    client.create_draft_order.return_value = "draft_1"
    client.complete_draft_order.return_value = ("order_1", "#1001")
    client.get_product.return_value = {"id": 1000, "handle": "summer-serum"}
    return client
