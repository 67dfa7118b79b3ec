"""Serializers for account API."""
from __future__ import annotations

from rest_framework import serializers

from .states import AccountState


class AccountSerializer(serializers.Serializer):
    """Account snapshot as seen by the monitoring core."""

    account_id = serializers.CharField()
    customer_document = serializers.CharField()
    state = serializers.SerializerMethodField()
    meter_ids = serializers.SerializerMethodField()
    consumption_limit = serializers.FloatField()
    address = serializers.CharField(allow_blank=True)

    def get_state(self, obj) -> str:
        return obj.state.value

    def get_meter_ids(self, obj) -> list:
        return sorted(obj.meter_ids)


class ChangeStateSerializer(serializers.Serializer):
    state = serializers.ChoiceField(choices=[s.value for s in AccountState])


class MeterSerializer(serializers.Serializer):
    meter_id = serializers.IntegerField(min_value=1)


class CommandSerializer(serializers.Serializer):
    """Entry of the command history."""

    command = serializers.SerializerMethodField()
    account_id = serializers.CharField()
    description = serializers.SerializerMethodField()
    timestamp = serializers.DateTimeField()

    def get_command(self, obj) -> str:
        return obj.__class__.__name__

    def get_description(self, obj) -> str:
        return obj.describe()


class CommandResultSerializer(serializers.Serializer):
    command = CommandSerializer()
    account = AccountSerializer(allow_null=True)
    can_undo = serializers.BooleanField()
    can_redo = serializers.BooleanField()


class HistorySerializer(serializers.Serializer):
    executed = CommandSerializer(many=True)
    can_undo = serializers.BooleanField()
    can_redo = serializers.BooleanField()
