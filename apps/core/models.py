from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models

from libs.idgen import generate_id


class BaseModel(models.Model):
    """Snowflake bigint key plus creation and modification stamps."""

    id = models.BigIntegerField(primary_key=True, default=generate_id, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class AppendOnlyModel(BaseModel):
    """
    Rows are written once. Attribution facts and audit trails derive from these
    and must never be rewritten after the fact.
    """

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):  # type: ignore[override]
        if not self._state.adding:
            raise ValidationError(f"{type(self).__name__} rows are immutable.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):  # type: ignore[override]
        raise ValidationError(f"{type(self).__name__} rows are immutable.")
