from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict

DEFAULT_SUBJECT = "Frilpp notification"


@dataclass(frozen=True)
class RenderedMessage:
    subject: str
    body: str


def _lines(*parts: str) -> str:
    return "\n".join(part for part in parts if part is not None)


def _text(payload: dict, key: str, default: str = "") -> str:
    value = payload.get(key)
    return default if value in (None, "") else str(value)


def _creator_approved(payload: dict) -> RenderedMessage:
    brand_name = _text(payload, "brand_name", "the brand")
    offer_title = _text(payload, "offer_title", "your offer")
    code = _text(payload, "campaign_code")
    share_url = _text(payload, "share_url")
    body_parts = [f"You're approved for: {offer_title}"]
    if code:
        body_parts.append(f"Your code: {code}")
    if share_url:
        body_parts.append(f"Trackable link: {share_url}")
    body_parts += ["", "Next: watch for shipment updates in Frilpp."]
    return RenderedMessage(subject=f"You're approved for {brand_name}", body=_lines(*body_parts))


def _shipment_fulfilled(payload: dict) -> RenderedMessage:
    brand_name = _text(payload, "brand_name", "Frilpp")
    tracking_number = _text(payload, "tracking_number")
    tracking_url = _text(payload, "tracking_url")
    body_parts = ["Your seeding shipment has been fulfilled."]
    if tracking_number:
        body_parts.append(f"Tracking: {tracking_number}")
    if tracking_url:
        body_parts.append(f"Track here: {tracking_url}")
    return RenderedMessage(subject=f"Your shipment is on the way ({brand_name})", body=_lines(*body_parts))


def _deliverable_due_soon(payload: dict) -> RenderedMessage:
    due_at = _text(payload, "due_at")
    code = _text(payload, "campaign_code")
    body_parts = ["Reminder: your deliverable is due soon."]
    if due_at:
        body_parts.append(f"Due at: {due_at}")
    if code:
        body_parts.append(f"Code: {code}")
    return RenderedMessage(subject="Reminder: your deliverable is due soon", body=_lines(*body_parts))


def _strike_issued(payload: dict) -> RenderedMessage:
    reason = _text(payload, "reason", "Missed deliverable")
    return RenderedMessage(
        subject="Strike issued on Frilpp",
        body=_lines(
            "A strike was issued on your account.",
            f"Reason: {reason}",
            "",
            "If you believe this is a mistake, reply with your post link for review.",
        ),
    )


TEMPLATES: Dict[str, Callable[[dict], RenderedMessage]] = {
    "creator_approved": _creator_approved,
    "shipment_fulfilled": _shipment_fulfilled,
    "deliverable_due_soon": _deliverable_due_soon,
    "strike_issued": _strike_issued,
}


def render_notification(message_type: str, payload: Any) -> RenderedMessage:
    renderer = TEMPLATES.get(message_type)
    if renderer is not None:
        return renderer(payload if isinstance(payload, dict) else {})
    body = payload if isinstance(payload, str) and payload else "You have a new notification."
    return RenderedMessage(subject=DEFAULT_SUBJECT, body=body)
