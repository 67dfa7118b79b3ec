"""Serializers for monitoring API."""
from __future__ import annotations

from rest_framework import serializers


class SessionSnapshotSerializer(serializers.Serializer):
    """Monitoring session state of one account."""

    account_id = serializers.CharField()
    state = serializers.SerializerMethodField()
    interval_seconds = serializers.FloatField()
    consecutive_failures = serializers.IntegerField()
    last_volume = serializers.FloatField(allow_null=True)
    last_read_at = serializers.DateTimeField(allow_null=True)
    last_error = serializers.CharField(allow_blank=True)
    tick_in_flight = serializers.BooleanField()

    def get_state(self, obj) -> str:
        return obj.state.value


class StartSessionSerializer(serializers.Serializer):
    interval_seconds = serializers.FloatField(required=False, min_value=0.001)


class TransitionResultSerializer(serializers.Serializer):
    changed = serializers.BooleanField()
    session = SessionSnapshotSerializer(allow_null=True)


class ConsumptionReadSerializer(serializers.Serializer):
    account_id = serializers.CharField()
    volume = serializers.FloatField()
