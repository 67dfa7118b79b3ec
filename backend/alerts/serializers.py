"""Serializers for alert API."""
from __future__ import annotations

from rest_framework import serializers

from alerts.notifications import ALL_KINDS


class AlertSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    account_id = serializers.CharField()
    customer_document = serializers.CharField()
    current_volume = serializers.FloatField()
    limit_volume = serializers.FloatField()
    timestamp = serializers.DateTimeField()
    read = serializers.BooleanField()
    email_enabled = serializers.BooleanField(source="channels.email")
    concessionaire_enabled = serializers.BooleanField(source="channels.concessionaire")
    message = serializers.CharField()


class ThresholdSerializer(serializers.Serializer):
    """Alert threshold of one account; omitted fields are left unchanged."""

    account_id = serializers.CharField(read_only=True)
    limit_volume = serializers.FloatField(required=False, min_value=0)
    email_enabled = serializers.BooleanField(required=False)
    concessionaire_enabled = serializers.BooleanField(required=False)


class StrategySerializer(serializers.Serializer):
    kind = serializers.CharField()
    enabled = serializers.BooleanField()


class ChannelsSerializer(serializers.Serializer):
    kinds = serializers.ListField(child=serializers.ChoiceField(choices=ALL_KINDS), allow_empty=True)


class ToggleChannelSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=ALL_KINDS)
    enabled = serializers.BooleanField()
