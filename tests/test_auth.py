from __future__ import annotations

from rest_framework import status
from rest_framework.test import APITestCase

from tests.factories import make_brand, make_creator, make_user


class AuthTests(APITestCase):
    def login(self, email: str, password: str = "pass12345"):
        return self.client.post("/api/v1/auth/login", {"email": email, "password": password}, format="json")

    def test_login_returns_tokens_and_identity(self) -> None:
        user = make_user("owner@example.com")
        brand = make_brand(user)

        response = self.login("owner@example.com")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("token", response.data)
        self.assertIn("refreshToken", response.data)
        self.assertEqual(response.data["user"]["brand_ids"], [brand.id])
        self.assertIsNone(response.data["user"]["creator_id"])

    def test_bad_password(self) -> None:
        make_user("owner@example.com")

        response = self.login("owner@example.com", "wrong")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_me_with_bearer_token(self) -> None:
        user = make_user("casey@example.com")
        creator = make_creator(user)
        token = self.login("casey@example.com").data["token"]

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        response = self.client.get("/api/v1/auth/me")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["creator_id"], creator.id)

    def test_refresh(self) -> None:
        make_user("owner@example.com")
        refresh = self.login("owner@example.com").data["refreshToken"]

        response = self.client.post("/api/v1/auth/refresh", {"refresh": refresh}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["token"])

    def test_brand_endpoints_require_membership(self) -> None:
        self.client.force_authenticate(user=make_user())

        response = self.client.get("/api/v1/brand/analytics/offers/")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_is_rejected(self) -> None:
        response = self.client.get("/api/v1/brand/analytics/offers/")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_ignores_email_case(self) -> None:
        make_user("Owner@Example.com")

        response = self.login("OWNER@example.COM")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["user"]["email"], "owner@example.com")
