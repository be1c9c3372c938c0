from __future__ import annotations

from django.db import models

from apps.core.models import BaseModel


class CronLock(BaseModel):
    """Lease row per job. A lock is held while ``locked_until`` is in the future."""

    job = models.CharField(max_length=64, unique=True)
    locked_by = models.CharField(max_length=64, blank=True)
    locked_until = models.DateTimeField()

    def __str__(self) -> str:
        return f"{self.job} until {self.locked_until:%Y-%m-%d %H:%M:%S}"
