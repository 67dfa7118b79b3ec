"""Unit tests for storage layer."""
from datetime import datetime, timezone as dt_timezone
from unittest.mock import MagicMock, patch

import pytest

from metering.services import ReadingEvent
from storage import InfluxDBStorage, ReadingRecorder, StorageRegistry, WriteError, influx_config_from_settings
from tests.fixtures.factories import *
from tests.mocks.storage import MockInfluxDBStorage


class TestStorageRegistry:
    """Test storage registry functionality."""

    def test_register_storage(self):
        """Test storage registration."""
        assert "mock_influxdb" in StorageRegistry.names()
        assert "influxdb" in StorageRegistry.names()

    def test_create_storage(self, sample_storage_config):
        """Test storage factory creation."""
        storage = StorageRegistry.create("mock_influxdb", sample_storage_config)
        assert storage is not None
        assert not storage.is_connected

    def test_create_invalid_storage(self):
        """Test creation of unregistered storage."""
        with pytest.raises(ValueError, match="Unknown storage backend"):
            StorageRegistry.create("invalid_storage", {})

    def test_register_rejects_non_storage(self):
        with pytest.raises(TypeError):
            StorageRegistry.register("bogus")(object)

    def test_name_taken_by_another_backend(self):
        with pytest.raises(ValueError, match="already taken"):
            StorageRegistry.register("influxdb")(MockInfluxDBStorage)

    def test_same_backend_registers_twice(self):
        assert StorageRegistry.register("mock_influxdb")(MockInfluxDBStorage) is MockInfluxDBStorage

    def test_from_settings(self, settings):
        settings.INFLUXDB_BUCKET = "water"

        storage = StorageRegistry.from_settings(settings, name="mock_influxdb")

        assert isinstance(storage, MockInfluxDBStorage)
        assert storage.config["bucket"] == "water"


class TestMockInfluxDB:
    """Test MockInfluxDB storage."""

    def test_connected_block(self, sample_storage_config):
        """Test holding a connection for a block."""
        storage = StorageRegistry.create("mock_influxdb", sample_storage_config)

        with storage.connected():
            assert storage.is_connected
            storage.write([{"measurement": "test", "fields": {"value": 42}}])

        assert not storage.is_connected
        assert len(storage.get_written_data()) == 1

    def test_latest_value(self, sample_storage_config):
        sample_storage_config["_test_latest"] = {"101": 12.5}
        storage = StorageRegistry.create("mock_influxdb", sample_storage_config)

        assert storage.latest_value("meter_reading", "volume", {"meter": "101"}) == 12.5
        assert storage.latest_value("meter_reading", "volume", {"meter": "999"}) is None


class TestInfluxDBStorage:
    """Test the InfluxDB backend against a mocked client."""

    def test_url_from_host_and_port(self):
        storage = InfluxDBStorage({"host": "influx", "port": 9999})
        assert storage.url == "http://influx:9999"

    def test_explicit_url_wins(self, sample_storage_config):
        storage = InfluxDBStorage(sample_storage_config)
        assert storage.url == "http://localhost:8086"

    def test_write_connects_lazily(self, sample_storage_config):
        with patch("storage.influxdb.InfluxClient") as client_class:
            storage = InfluxDBStorage(sample_storage_config)

            assert storage.write([{
                "measurement": "account_consumption",
                "tags": {"account": "C1"},
                "fields": {"volume": 72.3},
                "time": 1700000000000000000,
            }])

        client_class.assert_called_once_with(url="http://localhost:8086", token="test-token", org="test-org")
        write_api = client_class.return_value.write_api.return_value
        write_api.write.assert_called_once()
        assert write_api.write.call_args.kwargs["bucket"] == "test-bucket"

    def test_connects_once_across_writes(self, sample_storage_config):
        with patch("storage.influxdb.InfluxClient") as client_class:
            storage = InfluxDBStorage(sample_storage_config)

            for volume in (1.0, 2.0):
                storage.write([{"measurement": "m", "fields": {"volume": volume}}])

        client_class.assert_called_once()

    def test_write_failure_raises_write_error(self, sample_storage_config):
        with patch("storage.influxdb.InfluxClient") as client_class:
            client_class.return_value.write_api.return_value.write.side_effect = RuntimeError("boom")
            storage = InfluxDBStorage(sample_storage_config)

            with pytest.raises(WriteError):
                storage.write([{"measurement": "m", "fields": {"volume": 1.0}}])

    def test_empty_write(self, sample_storage_config):
        with patch("storage.influxdb.InfluxClient"):
            storage = InfluxDBStorage(sample_storage_config)
            assert storage.write([])

    def test_disconnect(self, sample_storage_config):
        with patch("storage.influxdb.InfluxClient") as client_class:
            storage = InfluxDBStorage(sample_storage_config)
            storage.connect()
            storage.disconnect()

        client_class.return_value.close.assert_called_once()
        assert not storage.is_connected

    def test_config_from_settings(self, settings):
        settings.INFLUXDB_URL = None
        settings.INFLUXDB_HOST = "tsdb"
        settings.INFLUXDB_BUCKET = "water"

        config = influx_config_from_settings(settings)

        assert config["host"] == "tsdb"
        assert config["bucket"] == "water"
        assert InfluxDBStorage(config).url == "http://tsdb:8086"


class TestReadingRecorder:
    """Test reading history recording."""

    @pytest.fixture
    def event(self):
        return ReadingEvent(
            account_id="C1",
            volume=72.3,
            timestamp=datetime(2024, 1, 1, tzinfo=dt_timezone.utc),
        )

    def test_format_point(self, sample_storage_config, event):
        recorder = ReadingRecorder(StorageRegistry.create("mock_influxdb", sample_storage_config))

        point = recorder.format_point(event)

        assert point == {
            "measurement": "account_consumption",
            "tags": {"account": "C1"},
            "fields": {"volume": 72.3},
            "time": 1704067200000000000,
        }

    def test_records_reading(self, sample_storage_config, event):
        storage = StorageRegistry.create("mock_influxdb", sample_storage_config)
        recorder = ReadingRecorder(storage)

        recorder.on_reading(event)

        assert recorder.written == 1
        assert storage.get_written_data()[0]["tags"] == {"account": "C1"}

    def test_write_failure_is_swallowed(self, sample_storage_config, event, caplog):
        sample_storage_config["_test_write_fail"] = True
        recorder = ReadingRecorder(StorageRegistry.create("mock_influxdb", sample_storage_config))

        recorder.on_reading(event)

        assert recorder.failed == 1
        assert "Failed to record reading of account C1" in caplog.text

    def test_attached_to_monitor(self, sample_storage_config, make_monitor, mock_reader):
        storage = StorageRegistry.create("mock_influxdb", sample_storage_config)
        monitor = make_monitor(mock_reader(volumes={101: 1.5, 102: 2.0}))
        ReadingRecorder(storage).attach(monitor)
        monitor.start("C1")

        monitor.tick("C1")

        assert storage.get_written_data()[0]["fields"] == {"volume": 3.5}

    def test_close_disconnects(self):
        storage = MagicMock()
        ReadingRecorder(storage).close()
        storage.disconnect.assert_called_once()
