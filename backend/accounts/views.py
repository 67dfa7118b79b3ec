"""ViewSets for account APIs."""
from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts import serializers
from accounts.commands import ChangeAccountState, Command, LinkMeter, UnlinkMeter, suspend_account
from hydropanel.runtime import get_runtime

logger = logging.getLogger(__name__)


def _command_response(command: Command, code: int = status.HTTP_200_OK) -> Response:
    runtime = get_runtime()
    data = serializers.CommandResultSerializer({
        "command": command,
        "account": runtime.registry.get_account(command.account_id),
        "can_undo": runtime.history.can_undo(),
        "can_redo": runtime.history.can_redo(),
    }).data
    return Response(data, status=code)


@extend_schema_view(
    list=extend_schema(summary="List accounts", responses=serializers.AccountSerializer(many=True)),
    retrieve=extend_schema(summary="Account details", responses=serializers.AccountSerializer),
)
class AccountViewSet(viewsets.ViewSet):
    """
    Account operations.

    Every mutation runs as a command so it can be undone from the history.
    """

    lookup_field = "account_id"
    lookup_value_regex = "[^/]+"

    def list(self, request):
        accounts = get_runtime().registry.list_accounts()
        return Response(serializers.AccountSerializer(accounts, many=True).data)

    def retrieve(self, request, account_id=None):
        account = get_runtime().registry.require_account(account_id)
        return Response(serializers.AccountSerializer(account).data)

    @extend_schema(
        summary="Change account state",
        request=serializers.ChangeStateSerializer,
        responses={200: serializers.CommandResultSerializer, 409: {"description": "Transition not allowed"}},
    )
    @action(detail=True, methods=["post"], url_path="change-state")
    def change_state(self, request, account_id=None):
        serializer = serializers.ChangeStateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        runtime = get_runtime()
        command = ChangeAccountState(runtime.registry, account_id, serializer.validated_data["state"])
        runtime.history.execute(command)
        return _command_response(command)

    @extend_schema(summary="Suspend account", request=None, responses=serializers.CommandResultSerializer)
    @action(detail=True, methods=["post"])
    def suspend(self, request, account_id=None):
        runtime = get_runtime()
        command = runtime.history.execute(suspend_account(runtime.registry, account_id))
        return _command_response(command)

    @extend_schema(
        summary="Link meter",
        request=serializers.MeterSerializer,
        responses={200: serializers.CommandResultSerializer, 409: {"description": "Meter taken or account not active"}},
    )
    @action(detail=True, methods=["post"], url_path="link-meter")
    def link_meter(self, request, account_id=None):
        serializer = serializers.MeterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        runtime = get_runtime()
        command = runtime.history.execute(
            LinkMeter(runtime.registry, account_id, serializer.validated_data["meter_id"])
        )
        return _command_response(command)

    @extend_schema(summary="Unlink meter", request=serializers.MeterSerializer, responses=serializers.CommandResultSerializer)
    @action(detail=True, methods=["post"], url_path="unlink-meter")
    def unlink_meter(self, request, account_id=None):
        serializer = serializers.MeterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        runtime = get_runtime()
        command = runtime.history.execute(
            UnlinkMeter(runtime.registry, account_id, serializer.validated_data["meter_id"])
        )
        return _command_response(command)


class CommandHistoryViewSet(viewsets.ViewSet):
    """Undo/redo of account commands."""

    @extend_schema(
        summary="Executed commands",
        parameters=[OpenApiParameter("limit", int, description="Only the most recent N commands")],
        responses=serializers.HistorySerializer,
    )
    def list(self, request):
        limit = request.query_params.get("limit")
        history = get_runtime().history
        try:
            limit = int(limit) if limit else None
        except ValueError:
            return Response({"error": "limit must be an integer"}, status=status.HTTP_400_BAD_REQUEST)
        data = serializers.HistorySerializer({
            "executed": history.history(limit),
            "can_undo": history.can_undo(),
            "can_redo": history.can_redo(),
        }).data
        return Response(data)

    @extend_schema(
        summary="Undo last command",
        request=None,
        responses={200: serializers.CommandResultSerializer, 409: {"description": "Nothing to undo"}},
    )
    @action(detail=False, methods=["post"])
    def undo(self, request):
        return _command_response(get_runtime().history.undo())

    @extend_schema(
        summary="Redo last undone command",
        request=None,
        responses={200: serializers.CommandResultSerializer, 409: {"description": "Nothing to redo"}},
    )
    @action(detail=False, methods=["post"])
    def redo(self, request):
        return _command_response(get_runtime().history.redo())

    @extend_schema(summary="Clear history", request=None, responses={204: None})
    @action(detail=False, methods=["post"])
    def clear(self, request):
        get_runtime().history.clear()
        return Response(status=status.HTTP_204_NO_CONTENT)
