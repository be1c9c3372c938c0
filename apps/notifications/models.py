from __future__ import annotations

from django.db import models

from apps.core.models import BaseModel


class Notification(BaseModel):
    class Channel(models.TextChoices):
        EMAIL = "EMAIL", "Email"
        SMS = "SMS", "SMS"
        WHATSAPP = "WHATSAPP", "WhatsApp"

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        SENT = "SENT", "Sent"
        ERROR = "ERROR", "Error"
        DEAD = "DEAD", "Dead"

    channel = models.CharField(max_length=16, choices=Channel.choices)
    to = models.CharField(max_length=255)
    type = models.CharField(max_length=64)
    payload = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    last_error = models.TextField(blank=True)
    attempts = models.PositiveIntegerField(default=0)
    sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="notification_status_created_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"Notification<{self.type}:{self.channel}:{self.status}>"
