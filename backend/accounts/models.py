"""Persistent customer and water account models."""
from __future__ import annotations

from django.db import models

from .states import AccountState


class TimeStampedModel(models.Model):
    """Abstract base model that tracks creation and update times."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Customer(TimeStampedModel):
    """Account holder who receives consumption alerts."""

    document = models.CharField(max_length=32, unique=True, help_text="Taxpayer document (CPF)")
    name = models.CharField(max_length=128)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.document})"


class WaterAccount(TimeStampedModel):
    """Water utility account that aggregates one or more meters."""

    STATE_CHOICES = [
        (AccountState.ACTIVE.value, "Active"),
        (AccountState.SUSPENDED.value, "Suspended"),
        (AccountState.DELINQUENT.value, "Delinquent"),
        (AccountState.CANCELLED.value, "Cancelled"),
    ]

    number = models.CharField(max_length=64, unique=True)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="accounts")
    address = models.CharField(max_length=255, blank=True)
    state = models.CharField(max_length=16, choices=STATE_CHOICES, default=AccountState.ACTIVE.value)
    consumption_limit = models.FloatField(default=0.0, help_text="Alert threshold in m³ (0 disables)")

    class Meta:
        ordering = ["number"]
        indexes = [
            models.Index(fields=["state"], name="account_state_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.number} - {self.state}"


class MeterLink(TimeStampedModel):
    """Binds a physical meter to the account it is billed under."""

    meter_id = models.PositiveIntegerField(unique=True, help_text="Meter identifier (SHA)")
    account = models.ForeignKey(WaterAccount, on_delete=models.CASCADE, related_name="meter_links")

    class Meta:
        ordering = ["account", "meter_id"]

    def __str__(self) -> str:
        return f"{self.account.number}:{self.meter_id}"
