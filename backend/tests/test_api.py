"""API tests for monitoring, accounts and alerts endpoints."""
import json

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from rest_framework.test import APIClient

from alerts.consumers import AlertPanelConsumer
from alerts.notifications.panel import panel_group
from alerts.store import InMemoryAlertStore
from hydropanel.runtime import build_runtime, install_runtime
from tests.fixtures.factories import *


@pytest.fixture
def runtime(settings, registry, mock_reader):
    """Runtime wired to the in-memory registry and a mock reader."""
    settings.MONITOR_FIRST_TICK_IMMEDIATE = False
    settings.MONITOR_DEFAULT_INTERVAL = 60
    runtime = build_runtime(
        registry=registry,
        reader=mock_reader(volumes={101: 40.0, 102: 32.3}),
        store=InMemoryAlertStore(),
    )
    return install_runtime(runtime)


@pytest.fixture
def api_client(runtime):
    return APIClient()


class TestMonitoringAPI:
    def test_start_and_status(self, api_client):
        response = api_client.post("/api/monitoring/sessions/C1/start/", {"interval_seconds": 30}, format="json")

        assert response.status_code == 200
        assert response.data["changed"] is True
        assert response.data["session"]["state"] == "started"
        assert response.data["session"]["interval_seconds"] == 30.0

        response = api_client.get("/api/monitoring/sessions/C1/")
        assert response.data["state"] == "started"

    def test_start_unknown_account(self, api_client):
        response = api_client.post("/api/monitoring/sessions/NOPE/start/", {}, format="json")

        assert response.status_code == 404
        assert response.data["type"] == "AccountNotFound"

    def test_invalid_interval(self, api_client):
        response = api_client.post("/api/monitoring/sessions/C1/start/", {"interval_seconds": 0}, format="json")
        assert response.status_code == 400

    def test_pause_resume_stop(self, api_client):
        api_client.post("/api/monitoring/sessions/C1/start/", {}, format="json")

        assert api_client.post("/api/monitoring/sessions/C1/pause/").data["session"]["state"] == "paused"
        assert api_client.post("/api/monitoring/sessions/C1/resume/").data["session"]["state"] == "started"
        assert api_client.post("/api/monitoring/sessions/C1/stop/").data["session"]["state"] == "stopped"

    def test_ignored_transition(self, api_client):
        api_client.post("/api/monitoring/sessions/C1/start/", {}, format="json")

        response = api_client.post("/api/monitoring/sessions/C1/resume/")

        assert response.status_code == 200
        assert response.data["changed"] is False

    def test_unmonitored_status(self, api_client):
        assert api_client.get("/api/monitoring/sessions/C1/").status_code == 404

    def test_list_sessions(self, api_client, add_account):
        add_account("C2", meters=[201])
        api_client.post("/api/monitoring/sessions/C2/start/", {}, format="json")
        api_client.post("/api/monitoring/sessions/C1/start/", {}, format="json")

        response = api_client.get("/api/monitoring/sessions/")

        assert [s["account_id"] for s in response.data] == ["C1", "C2"]

    def test_read_now(self, api_client):
        response = api_client.get("/api/monitoring/sessions/C1/read/")

        assert response.status_code == 200
        assert response.data["volume"] == pytest.approx(72.3)

    def test_read_failure(self, api_client, runtime):
        runtime.reader.failing.add(101)

        response = api_client.get("/api/monitoring/sessions/C1/read/")

        assert response.status_code == 503
        assert response.data["type"] == "ReadFailure"


class TestAccountsAPI:
    def test_list_and_retrieve(self, api_client):
        assert [a["account_id"] for a in api_client.get("/api/accounts/").data] == ["C1"]

        response = api_client.get("/api/accounts/C1/")
        assert response.data["meter_ids"] == [101, 102]
        assert response.data["state"] == "active"

    def test_unknown_account(self, api_client):
        assert api_client.get("/api/accounts/NOPE/").status_code == 404

    def test_suspend_undo_redo(self, api_client, registry):
        response = api_client.post("/api/accounts/C1/suspend/")
        assert response.data["account"]["state"] == "suspended"
        assert response.data["can_undo"] is True

        response = api_client.post("/api/accounts/history/undo/")
        assert response.status_code == 200
        assert response.data["account"]["state"] == "active"
        assert response.data["can_redo"] is True

        api_client.post("/api/accounts/history/redo/")
        assert registry.get_account("C1").state.value == "suspended"

    def test_invalid_transition_is_conflict(self, api_client):
        api_client.post("/api/accounts/C1/change-state/", {"state": "cancelled"}, format="json")

        response = api_client.post("/api/accounts/C1/change-state/", {"state": "active"}, format="json")

        assert response.status_code == 409
        assert response.data["type"] == "InvalidTransition"

    def test_link_meter_taken(self, api_client, add_account):
        add_account("C2")

        response = api_client.post("/api/accounts/C2/link-meter/", {"meter_id": 101}, format="json")

        assert response.status_code == 409

    def test_link_and_unlink(self, api_client):
        response = api_client.post("/api/accounts/C1/link-meter/", {"meter_id": 103}, format="json")
        assert response.data["account"]["meter_ids"] == [101, 102, 103]

        response = api_client.post("/api/accounts/C1/unlink-meter/", {"meter_id": 101}, format="json")
        assert response.data["account"]["meter_ids"] == [102, 103]

    def test_nothing_to_undo(self, api_client):
        response = api_client.post("/api/accounts/history/undo/")

        assert response.status_code == 409
        assert response.data["type"] == "NothingToUndo"

    def test_undo_of_noop_link_is_conflict(self, api_client):
        api_client.post("/api/accounts/C1/link-meter/", {"meter_id": 101}, format="json")

        response = api_client.post("/api/accounts/history/undo/")

        assert response.status_code == 409
        assert response.data["type"] == "NothingToUndo"
        assert "Link meter 101 to account C1" in response.data["error"]

    def test_history_listing(self, api_client):
        api_client.post("/api/accounts/C1/link-meter/", {"meter_id": 103}, format="json")
        api_client.post("/api/accounts/C1/suspend/")

        response = api_client.get("/api/accounts/history/", {"limit": 1})

        assert [c["command"] for c in response.data["executed"]] == ["ChangeAccountState"]

        assert api_client.post("/api/accounts/history/clear/").status_code == 204
        assert api_client.get("/api/accounts/history/").data["executed"] == []


class TestAlertsAPI:
    def test_threshold_and_alerts(self, api_client, runtime):
        response = api_client.put(
            "/api/alerts/thresholds/C1/",
            {"limit_volume": 50, "email_enabled": True},
            format="json",
        )
        assert response.status_code == 200
        assert response.data["limit_volume"] == 50.0

        api_client.post("/api/monitoring/sessions/C1/start/", {}, format="json")
        runtime.monitor.tick("C1")

        alerts = api_client.get("/api/alerts/", {"account": "C1"}).data
        assert len(alerts) == 1
        assert alerts[0]["current_volume"] == pytest.approx(72.3)
        assert alerts[0]["limit_volume"] == 50.0
        assert alerts[0]["email_enabled"] is True

        alert_id = alerts[0]["id"]
        assert api_client.post(f"/api/alerts/{alert_id}/mark-read/").data["read"] is True
        assert api_client.get("/api/alerts/", {"pending": "true"}).data == []

    def test_unknown_alert(self, api_client):
        assert api_client.get("/api/alerts/42/").status_code == 404
        assert api_client.post("/api/alerts/42/mark-read/").status_code == 404

    def test_negative_limit_rejected(self, api_client):
        response = api_client.put("/api/alerts/thresholds/C1/", {"limit_volume": -1}, format="json")
        assert response.status_code == 400

    def test_channels(self, api_client):
        response = api_client.put("/api/alerts/channels/C1/", {"kinds": ["email", "sms"]}, format="json")
        assert [c["kind"] for c in response.data] == ["email", "sms"]

        response = api_client.patch("/api/alerts/channels/C1/", {"kind": "sms", "enabled": False}, format="json")
        assert response.data[1] == {"kind": "sms", "enabled": False}

        response = api_client.patch("/api/alerts/channels/C1/", {"kind": "push", "enabled": False}, format="json")
        assert response.status_code == 404

        assert api_client.delete("/api/alerts/channels/C1/").status_code == 204
        assert api_client.get("/api/alerts/channels/C1/").data == []

    def test_unknown_channel_kind(self, api_client):
        response = api_client.put("/api/alerts/channels/C1/", {"kinds": ["fax"]}, format="json")
        assert response.status_code == 400


@pytest.mark.django_db
class TestAlertPanelConsumer:
    def test_receives_pending_then_new_alerts(self, runtime):
        runtime.alerts.configure_limit("C1", 10.0)
        first = runtime.alerts.evaluate("C1", 20.0)

        async def scenario():
            communicator = WebsocketCommunicator(AlertPanelConsumer.as_asgi(), "/ws/alerts/panel/")
            connected, _ = await communicator.connect()
            assert connected

            pending = json.loads(await communicator.receive_from())
            await get_channel_layer().group_send(
                panel_group(), {"type": "alert.raised", "data": {"id": 99}}
            )
            relayed = json.loads(await communicator.receive_from())
            await communicator.disconnect()
            return pending, relayed

        pending, relayed = async_to_sync(scenario)()

        assert pending["type"] == "pending_alerts"
        assert [a["id"] for a in pending["data"]] == [first.id]
        assert relayed == {"type": "alert", "data": {"id": 99}}

    def test_mark_read_over_websocket(self, runtime):
        runtime.alerts.configure_limit("C1", 10.0)
        alert = runtime.alerts.evaluate("C1", 20.0)

        async def scenario():
            communicator = WebsocketCommunicator(AlertPanelConsumer.as_asgi(), "/ws/alerts/panel/")
            await communicator.connect()
            await communicator.receive_from()
            await communicator.send_to(text_data=json.dumps({"action": "mark_read", "id": alert.id}))
            reply = json.loads(await communicator.receive_from())
            await communicator.send_to(text_data=json.dumps({"action": "delete"}))
            error = json.loads(await communicator.receive_from())
            await communicator.disconnect()
            return reply, error

        reply, error = async_to_sync(scenario)()

        assert reply == {"type": "marked_read", "data": {"id": alert.id, "read": True}}
        assert error["type"] == "error"
        assert runtime.alerts.pending_alerts() == []
