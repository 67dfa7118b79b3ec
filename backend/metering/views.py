"""ViewSets for monitoring APIs."""
from __future__ import annotations

import logging

from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from hydropanel.runtime import get_runtime
from metering import serializers

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(summary="List monitoring sessions", responses=serializers.SessionSnapshotSerializer(many=True)),
    retrieve=extend_schema(summary="Session status of one account", responses=serializers.SessionSnapshotSerializer),
)
class MonitoringSessionViewSet(viewsets.ViewSet):
    """
    Monitoring session control.

    Sessions are keyed by account number and live in the process runtime.
    """

    lookup_field = "account_id"
    lookup_value_regex = "[^/]+"

    def _transition_response(self, account_id: str, changed: bool) -> Response:
        snapshot = get_runtime().monitor.status(account_id)
        data = serializers.TransitionResultSerializer({"changed": changed, "session": snapshot}).data
        return Response(data)

    def list(self, request):
        snapshots = get_runtime().monitor.sessions()
        return Response(serializers.SessionSnapshotSerializer(snapshots, many=True).data)

    def retrieve(self, request, account_id=None):
        snapshot = get_runtime().monitor.status(account_id)
        if snapshot is None:
            return Response(
                {"error": f"Account {account_id} is not monitored"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(serializers.SessionSnapshotSerializer(snapshot).data)

    @extend_schema(
        summary="Start monitoring",
        description="Stopped/Error sessions start; a started session gets a fresh ticker; paused sessions must be resumed.",
        request=serializers.StartSessionSerializer,
        responses={200: serializers.TransitionResultSerializer, 404: {"description": "Unknown account"}},
    )
    @action(detail=True, methods=["post"])
    def start(self, request, account_id=None):
        serializer = serializers.StartSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        changed = get_runtime().monitor.start(account_id, serializer.validated_data.get("interval_seconds"))
        return self._transition_response(account_id, changed)

    @extend_schema(summary="Pause monitoring", request=None, responses=serializers.TransitionResultSerializer)
    @action(detail=True, methods=["post"])
    def pause(self, request, account_id=None):
        return self._transition_response(account_id, get_runtime().monitor.pause(account_id))

    @extend_schema(summary="Resume monitoring", request=None, responses=serializers.TransitionResultSerializer)
    @action(detail=True, methods=["post"])
    def resume(self, request, account_id=None):
        return self._transition_response(account_id, get_runtime().monitor.resume(account_id))

    @extend_schema(summary="Stop monitoring", request=None, responses=serializers.TransitionResultSerializer)
    @action(detail=True, methods=["post"])
    def stop(self, request, account_id=None):
        return self._transition_response(account_id, get_runtime().monitor.stop(account_id))

    @extend_schema(
        summary="Read consumption now",
        description="One-off aggregated read of every meter of the account. Does not change the session.",
        responses={200: serializers.ConsumptionReadSerializer, 503: {"description": "Read failure"}},
    )
    @action(detail=True, methods=["get"])
    def read(self, request, account_id=None):
        runtime = get_runtime()
        runtime.registry.require_account(account_id)
        volume = runtime.monitor.read_account_consumption(account_id)
        return Response(serializers.ConsumptionReadSerializer({"account_id": account_id, "volume": volume}).data)
