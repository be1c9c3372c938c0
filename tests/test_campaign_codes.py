from __future__ import annotations

import re

from django.test import TestCase

from apps.core.errors import ConflictError
from apps.matches.campaign_codes import CODE_PREFIX, create_match, generate_campaign_code, normalize_code
from apps.matches.models import Match
from tests.factories import make_brand, make_creator, make_offer


class CampaignCodeTests(TestCase):
    def test_generated_code_shape(self) -> None:
        code = generate_campaign_code()
        self.assertTrue(code.startswith(CODE_PREFIX))
        self.assertRegex(code, r"^FRILP-[A-HJ-NP-Z2-9]{6}$")
        # No ambiguous glyphs.
        self.assertIsNone(re.search(r"[01IO]", code[len(CODE_PREFIX):]))

    def test_normalize_code(self) -> None:
        self.assertEqual(normalize_code("  frilp-abc234 "), "FRILP-ABC234")
        self.assertEqual(normalize_code(None), "")

    def test_collision_draws_a_new_code(self) -> None:
        brand = make_brand()
        offer = make_offer(brand)
        first_creator = make_creator()
        second_creator = make_creator()
        create_match(offer, first_creator, code_factory=lambda: "FRILP-AAAAAA")

        codes = iter(["FRILP-AAAAAA", "FRILP-BBBBBB"])
        match = create_match(offer, second_creator, code_factory=lambda: next(codes))

        self.assertEqual(match.campaign_code, "FRILP-BBBBBB")
        self.assertEqual(Match.objects.count(), 2)

    def test_second_claim_by_same_creator_conflicts(self) -> None:
        brand = make_brand()
        offer = make_offer(brand)
        creator = make_creator()
        create_match(offer, creator)

        with self.assertRaises(ConflictError):
            create_match(offer, creator)
        self.assertEqual(Match.objects.filter(offer=offer, creator=creator).count(), 1)
