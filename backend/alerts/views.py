"""ViewSets for alert APIs."""
from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from alerts import serializers
from hydropanel.runtime import get_runtime

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(
        summary="List alerts",
        description="Newest first. Filter by account or only unread alerts.",
        parameters=[
            OpenApiParameter("account", str, description="Account number"),
            OpenApiParameter("pending", bool, description="Only unread alerts"),
        ],
        responses=serializers.AlertSerializer(many=True),
    ),
    retrieve=extend_schema(summary="Alert details", responses=serializers.AlertSerializer),
)
class AlertViewSet(viewsets.ViewSet):
    lookup_value_regex = r"\d+"

    def list(self, request):
        engine = get_runtime().alerts
        account_id = request.query_params.get("account")
        pending = request.query_params.get("pending", "").lower() in ("1", "true", "yes")

        if account_id:
            alerts = engine.alerts_for_account(account_id)
            if pending:
                alerts = [alert for alert in alerts if not alert.read]
        elif pending:
            alerts = engine.pending_alerts()
        else:
            alerts = engine.all_alerts()
        return Response(serializers.AlertSerializer(alerts, many=True).data)

    def retrieve(self, request, pk=None):
        alert = get_runtime().alerts.store.get(int(pk))
        if alert is None:
            return Response({"error": f"Alert {pk} not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(serializers.AlertSerializer(alert).data)

    @extend_schema(summary="Mark alert as read", request=None, responses={200: serializers.AlertSerializer})
    @action(detail=True, methods=["post"], url_path="mark-read")
    def mark_read(self, request, pk=None):
        engine = get_runtime().alerts
        if not engine.mark_read(int(pk)):
            return Response({"error": f"Alert {pk} not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(serializers.AlertSerializer(engine.store.get(int(pk))).data)


class ThresholdViewSet(viewsets.ViewSet):
    """Consumption limit and channel flags per account."""

    lookup_field = "account_id"
    lookup_value_regex = "[^/]+"

    def _data(self, config):
        return serializers.ThresholdSerializer(config).data

    @extend_schema(summary="List configured thresholds", responses=serializers.ThresholdSerializer(many=True))
    def list(self, request):
        return Response(serializers.ThresholdSerializer(get_runtime().alerts.thresholds.all(), many=True).data)

    @extend_schema(summary="Threshold of one account", responses=serializers.ThresholdSerializer)
    def retrieve(self, request, account_id=None):
        config = get_runtime().alerts.get_config(account_id)
        if config is None:
            return Response({"error": f"No threshold for account {account_id}"}, status=status.HTTP_404_NOT_FOUND)
        return Response(self._data(config))

    @extend_schema(summary="Configure threshold", request=serializers.ThresholdSerializer, responses=serializers.ThresholdSerializer)
    def update(self, request, account_id=None):
        serializer = serializers.ThresholdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        runtime = get_runtime()
        runtime.registry.require_account(account_id)

        engine = runtime.alerts
        if "limit_volume" in data:
            engine.configure_limit(account_id, data["limit_volume"])
        if "email_enabled" in data:
            engine.enable_email(account_id, data["email_enabled"])
        if "concessionaire_enabled" in data:
            engine.enable_concessionaire(account_id, data["concessionaire_enabled"])

        config = engine.get_config(account_id)
        if config is None:
            config = engine.configure_limit(account_id, 0.0)
        return Response(self._data(config))

    def partial_update(self, request, account_id=None):
        return self.update(request, account_id=account_id)


class ChannelViewSet(viewsets.ViewSet):
    """Notification strategies per account."""

    lookup_field = "account_id"
    lookup_value_regex = "[^/]+"

    def _data(self, account_id):
        strategies = get_runtime().dispatcher.strategies(account_id)
        return serializers.StrategySerializer(
            [{"kind": s.kind, "enabled": s.enabled} for s in strategies], many=True
        ).data

    @extend_schema(summary="Strategies of one account", responses=serializers.StrategySerializer(many=True))
    def retrieve(self, request, account_id=None):
        return Response(self._data(account_id))

    @extend_schema(
        summary="Replace strategies",
        description="Ordered list of notification kinds; all start enabled.",
        request=serializers.ChannelsSerializer,
        responses=serializers.StrategySerializer(many=True),
    )
    def update(self, request, account_id=None):
        serializer = serializers.ChannelsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        runtime = get_runtime()
        runtime.registry.require_account(account_id)
        runtime.dispatcher.configure(account_id, serializer.validated_data["kinds"])
        return Response(self._data(account_id))

    @extend_schema(
        summary="Enable or disable one strategy",
        request=serializers.ToggleChannelSerializer,
        responses={200: serializers.StrategySerializer(many=True), 404: {"description": "Strategy not configured"}},
    )
    def partial_update(self, request, account_id=None):
        serializer = serializers.ToggleChannelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        kind = serializer.validated_data["kind"]
        if not get_runtime().dispatcher.set_enabled(account_id, kind, serializer.validated_data["enabled"]):
            return Response(
                {"error": f"Strategy {kind} is not configured for account {account_id}"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(self._data(account_id))

    @extend_schema(summary="Remove all strategies", responses={204: None})
    def destroy(self, request, account_id=None):
        get_runtime().dispatcher.remove(account_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
