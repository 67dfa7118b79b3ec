"""Persistent alert records."""
from __future__ import annotations

from django.db import models


class AlertRecord(models.Model):
    """
    One consumption alert.

    The primary key is the alert id assigned by the alert engine, so ids
    stay monotonic across restarts and are never reused.
    """

    id = models.PositiveBigIntegerField(primary_key=True)
    account_id = models.CharField(max_length=64, db_index=True)
    customer_document = models.CharField(max_length=32)
    current_volume = models.FloatField()
    limit_volume = models.FloatField()
    raised_at = models.DateTimeField()
    read = models.BooleanField(default=False)
    email_enabled = models.BooleanField(default=False)
    concessionaire_enabled = models.BooleanField(default=False)
    message = models.TextField(blank=True)

    class Meta:
        ordering = ["-raised_at", "-id"]
        indexes = [
            models.Index(fields=["read", "-raised_at"], name="alert_pending_idx"),
        ]

    def __str__(self) -> str:
        return f"#{self.id} {self.account_id} {self.current_volume:.2f}/{self.limit_volume:.2f}"
