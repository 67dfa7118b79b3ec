"""Tests for NotificationDispatcher and the concrete strategies."""
import json
from unittest.mock import patch

import pytest
import requests
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core import mail
from django.utils import timezone

from accounts.registry import Customer
from alerts.notifications import StrategyRegistry
from alerts.notifications.email import EmailNotification
from alerts.notifications.panel import ConcessionaireNotification, InternalPanelNotification, panel_group
from alerts.notifications.push import PushNotification
from alerts.notifications.sms import SMSNotification
from alerts.store import Alert
from common.exceptions import NotificationError
from tests.fixtures.factories import *


@pytest.fixture
def alert():
    return Alert(
        id=1,
        account_id="C1",
        customer_document=DEFAULT_DOCUMENT,
        current_volume=72.3,
        limit_volume=50.0,
        timestamp=timezone.now(),
    )


@pytest.fixture
def account(registry):
    return registry.get_account("C1")


@pytest.fixture
def customer(registry):
    return registry.get_customer(DEFAULT_DOCUMENT)


class TestStrategyRegistry:
    def test_builtin_kinds_registered(self):
        kinds = StrategyRegistry.list_kinds()
        for kind in ("email", "sms", "push", "concessionaire", "internal_panel"):
            assert kind in kinds

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="not registered"):
            StrategyRegistry.create("fax")

    def test_instances_are_independent(self):
        first = StrategyRegistry.create("mock_ok")
        second = StrategyRegistry.create("mock_ok")
        first.enabled = False

        assert second.enabled

    def test_enabled_option(self):
        assert not StrategyRegistry.create("mock_ok", {"enabled": False}).enabled


class TestDispatcherConfiguration:
    def test_configure_keeps_order_and_dedupes(self, dispatcher):
        dispatcher.configure("C1", ["mock_fail", "MOCK_OK", "mock_fail"])
        assert [s.kind for s in dispatcher.strategies("C1")] == ["mock_fail", "mock_ok"]

    def test_configure_unknown_kind_changes_nothing(self, dispatcher):
        dispatcher.configure("C1", ["mock_ok"])

        with pytest.raises(ValueError):
            dispatcher.configure("C1", ["mock_ok", "fax"])

        assert dispatcher.active_kinds("C1") == ["mock_ok"]

    def test_set_enabled(self, dispatcher):
        dispatcher.configure("C1", ["mock_ok", "mock_fail"])

        assert dispatcher.set_enabled("C1", "mock_fail", False)
        assert dispatcher.active_kinds("C1") == ["mock_ok"]
        assert not dispatcher.set_enabled("C1", "email", False)
        assert not dispatcher.set_enabled("C2", "mock_ok", False)

    def test_strategies_are_per_account(self, dispatcher, add_account):
        add_account("C2")
        dispatcher.configure("C1", ["mock_ok"])
        dispatcher.configure("C2", ["mock_ok"])
        dispatcher.set_enabled("C1", "mock_ok", False)

        assert dispatcher.active_kinds("C2") == ["mock_ok"]

    def test_remove(self, dispatcher):
        dispatcher.configure("C1", ["mock_ok"])
        assert dispatcher.remove("C1")
        assert not dispatcher.remove("C1")
        assert dispatcher.strategies("C1") == []


class TestDispatch:
    def test_failures_are_isolated(self, dispatcher, alert, account):
        crash, fail, ok = dispatcher.configure("C1", ["mock_crash", "mock_fail", "mock_ok"])

        report = dispatcher.dispatch(alert, account)

        assert len(crash.sent) == 1
        assert len(fail.sent) == 1
        assert ok.sent == [(1, "C1", DEFAULT_DOCUMENT)]
        assert report.delivered == ["mock_ok"]
        assert set(report.failed) == {"mock_crash", "mock_fail"}
        assert report.attempted == 3

    def test_failure_is_logged(self, dispatcher, alert, account, caplog):
        dispatcher.configure("C1", ["mock_fail"])

        dispatcher.dispatch(alert, account)

        assert "Notification via mock_fail failed for alert #1" in caplog.text

    def test_disabled_strategy_skipped(self, dispatcher, alert, account):
        ok, other = dispatcher.configure("C1", ["mock_ok", "mock_fail"])
        dispatcher.set_enabled("C1", "mock_fail", False)

        report = dispatcher.dispatch(alert, account)

        assert len(ok.sent) == 1
        assert other.sent == []
        assert report.attempted == 1

    def test_no_strategies_is_noop(self, dispatcher, alert, account):
        report = dispatcher.dispatch(alert, account)
        assert report.attempted == 0

    def test_missing_customer_sends_nothing(self, dispatcher, alert, add_account, caplog):
        orphan = add_account("C9", customer_document="00000000000")
        (ok,) = dispatcher.configure("C9", ["mock_ok"])

        report = dispatcher.dispatch(alert, orphan)

        assert ok.sent == []
        assert report.attempted == 0
        assert "Customer 00000000000 not found" in caplog.text


class TestEmailNotification:
    @pytest.fixture(autouse=True)
    def locmem_backend(self, settings):
        settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
        settings.ALERT_EMAIL_FROM = "alerts@test.local"

    def test_sends_message(self, alert, account, customer):
        EmailNotification().notify(alert, account, customer)

        assert len(mail.outbox) == 1
        message = mail.outbox[0]
        assert message.to == ["maria@example.com"]
        assert message.from_email == "alerts@test.local"
        assert "C1" in message.subject
        assert alert.message in message.body

    def test_customer_without_email(self, alert, account):
        customer = Customer(document=DEFAULT_DOCUMENT, name="No Mail")

        with pytest.raises(NotificationError) as excinfo:
            EmailNotification().notify(alert, account, customer)

        assert excinfo.value.kind == "email"
        assert mail.outbox == []


class TestSMSNotification:
    def test_posts_to_gateway(self, alert, account, customer):
        strategy = SMSNotification({"gateway_url": "http://sms.test/send", "token": "abc"})

        with patch("alerts.notifications.sms.requests.post") as post:
            strategy.notify(alert, account, customer)

        post.assert_called_once()
        args, kwargs = post.call_args
        assert args == ("http://sms.test/send",)
        assert kwargs["json"] == {"to": "+5581999990000", "message": alert.message}
        assert kwargs["headers"] == {"Authorization": "Bearer abc"}
        post.return_value.raise_for_status.assert_called_once()

    def test_gateway_error(self, alert, account, customer):
        strategy = SMSNotification({"gateway_url": "http://sms.test/send"})

        with patch(
            "alerts.notifications.sms.requests.post",
            side_effect=requests.ConnectionError("refused"),
        ):
            with pytest.raises(NotificationError, match="SMS gateway request failed"):
                strategy.notify(alert, account, customer)

    def test_not_configured(self, alert, account, customer, settings):
        settings.SMS_GATEWAY_URL = ""

        with pytest.raises(NotificationError, match="not configured"):
            SMSNotification().notify(alert, account, customer)


class TestPushNotification:
    def test_publishes_on_account_topic(self, alert, account, customer):
        strategy = PushNotification({"host": "broker.test", "port": 1884, "topic_prefix": "hp/alerts/"})

        with patch("alerts.notifications.push.publish.single") as single:
            strategy.notify(alert, account, customer)

        args, kwargs = single.call_args
        assert args == ("hp/alerts/C1",)
        assert kwargs["hostname"] == "broker.test"
        assert kwargs["port"] == 1884
        payload = json.loads(kwargs["payload"])
        assert payload["id"] == 1
        assert payload["customer"] == "Maria Silva"

    def test_broker_unreachable(self, alert, account, customer):
        with patch("alerts.notifications.push.publish.single", side_effect=OSError("no route")):
            with pytest.raises(NotificationError, match="Publish to"):
                PushNotification().notify(alert, account, customer)


class TestPanelNotification:
    def _listen(self):
        layer = get_channel_layer()
        channel = async_to_sync(layer.new_channel)()
        async_to_sync(layer.group_add)(panel_group(), channel)
        return layer, channel

    @pytest.mark.parametrize("strategy_class,kind", [
        (InternalPanelNotification, "internal_panel"),
        (ConcessionaireNotification, "concessionaire"),
    ])
    def test_broadcasts_to_panel_group(self, alert, account, customer, strategy_class, kind):
        layer, channel = self._listen()

        strategy_class().notify(alert, account, customer)

        message = async_to_sync(layer.receive)(channel)
        assert message["type"] == "alert.raised"
        assert message["data"]["id"] == 1
        assert message["data"]["channel"] == kind
        assert message["data"]["customer_name"] == "Maria Silva"

    def test_no_channel_layer(self, alert, account, customer):
        with patch("alerts.notifications.panel.get_channel_layer", return_value=None):
            with pytest.raises(NotificationError, match="Channel layer not available"):
                InternalPanelNotification().notify(alert, account, customer)
