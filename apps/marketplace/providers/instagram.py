from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import requests
from django.utils.dateparse import parse_datetime

from apps.core.config import PipelineConfig, get_pipeline_config
from apps.core.errors import IntegrationError

GRAPH_HOST = "https://graph.facebook.com"
PROFILE_FIELDS = "id,username,followers_count,media_count,account_type"
MEDIA_FIELDS = "id,caption,media_type,permalink,timestamp,username"


@dataclass(frozen=True)
class InstagramProfile:
    ig_user_id: str
    username: str
    followers_count: int | None
    account_type: str


@dataclass(frozen=True)
class InstagramMedia:
    media_id: str
    caption: str
    media_type: str
    permalink: str
    timestamp: datetime | None


class InstagramClient:
    def __init__(self, *, api_version: str, timeout: float = 10) -> None:
        self.base_url = f"{GRAPH_HOST}/{api_version}"
        self.timeout = timeout

    def _get(self, path: str, params: dict) -> dict:
        try:
            response = requests.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise IntegrationError("Instagram API unavailable.") from exc
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not response.ok or not isinstance(payload, dict):
            message = None
            if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
                message = payload["error"].get("message")
            raise IntegrationError(message or f"Instagram API error: {response.status_code}")
        return payload

    def fetch_profile(self, *, access_token: str, ig_user_id: str) -> InstagramProfile:
        data = self._get(f"/{ig_user_id}", {"fields": PROFILE_FIELDS, "access_token": access_token})
        if "id" not in data:
            raise IntegrationError("Failed to fetch Instagram profile")
        followers = data.get("followers_count")
        return InstagramProfile(
            ig_user_id=str(data["id"]),
            username=str(data.get("username") or ""),
            followers_count=followers if isinstance(followers, int) else None,
            account_type=str(data.get("account_type") or ""),
        )

    def fetch_recent_media(self, *, access_token: str, ig_user_id: str, limit: int = 25) -> list[InstagramMedia]:
        data = self._get(
            f"/{ig_user_id}/media",
            {"fields": MEDIA_FIELDS, "limit": str(limit), "access_token": access_token},
        )
        items = data.get("data")
        if not isinstance(items, list):
            raise IntegrationError("Failed to fetch Instagram media")
        media = []
        for item in items:
            if not isinstance(item, dict):
                continue
            media.append(
                InstagramMedia(
                    media_id=str(item.get("id") or ""),
                    caption=str(item.get("caption") or ""),
                    media_type=str(item.get("media_type") or "").upper(),
                    permalink=str(item.get("permalink") or ""),
                    timestamp=parse_datetime(str(item.get("timestamp") or "")) if item.get("timestamp") else None,
                )
            )
        return media


def get_instagram_client(config: PipelineConfig | None = None) -> InstagramClient:
    config = config or get_pipeline_config()
    return InstagramClient(api_version=config.meta_api_version, timeout=config.meta_timeout_seconds)
