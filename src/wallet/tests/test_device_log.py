"""Tests for wallet/service/device_log.py."""

import datetime as dt

import pytest
from freezegun import freeze_time

from wallet.models import WalletPassLog
from wallet.service import device_log

from .conftest import DEVICE_ID, PASS_TYPE_ID

pytestmark = pytest.mark.django_db


class TestAppend:
    def test_log_info(self) -> None:
        entry = device_log.log_info(DEVICE_ID, "Device registered", PASS_TYPE_ID, "S1")

        assert entry.level == WalletPassLog.Level.INFO
        assert entry.pass_type_identifier == PASS_TYPE_ID
        assert entry.serial_number == "S1"

    def test_log_error_with_context(self) -> None:
        entry = device_log.log_error(DEVICE_ID, "Fetch failed", context={"status": 500})

        assert entry.level == WalletPassLog.Level.ERROR
        assert entry.context == {"status": 500}
        assert entry.serial_number is None

    def test_missing_values_get_placeholders(self) -> None:
        entry = device_log.log_error("", "")

        assert entry.device_library_identifier == device_log.UNKNOWN_DEVICE
        assert entry.message == device_log.UNKNOWN_MESSAGE

    def test_long_identifiers_are_truncated(self) -> None:
        entry = device_log.log_info("d" * 300, "msg", "p" * 300, "s" * 300)

        assert len(entry.device_library_identifier) == 255
        assert len(entry.pass_type_identifier or "") == 255
        assert len(entry.serial_number or "") == 255

    def test_entries_are_immutable(self) -> None:
        entry = device_log.log_info(DEVICE_ID, "msg")
        entry.message = "changed"

        with pytest.raises(ValueError):
            entry.save()


class TestRecordDeviceLogs:
    def test_records_strings_and_objects(self) -> None:
        count = device_log.record_device_logs(
            DEVICE_ID,
            [
                "Web service error: 500",
                {"message": "Pass failed", "passTypeIdentifier": PASS_TYPE_ID, "serialNumber": "S1"},
                {"context": {"a": 1}},
            ],
        )

        assert count == 3
        assert WalletPassLog.objects.filter(level=WalletPassLog.Level.ERROR).count() == 3
        assert WalletPassLog.objects.filter(serial_number="S1", pass_type_identifier=PASS_TYPE_ID).count() == 1
        contextual = WalletPassLog.objects.get(context__isnull=False)
        assert contextual.message == device_log.UNKNOWN_MESSAGE
        assert contextual.context == {"a": 1}

    def test_missing_device_id(self) -> None:
        device_log.record_device_logs(None, ["oops"])

        assert WalletPassLog.objects.get().device_library_identifier == device_log.UNKNOWN_DEVICE

    def test_malformed_entries_are_kept(self) -> None:
        count = device_log.record_device_logs(DEVICE_ID, [42, None, ""])

        assert count == 3
        assert set(WalletPassLog.objects.values_list("message", flat=True)) == {device_log.UNKNOWN_MESSAGE}

    def test_empty_upload(self) -> None:
        assert device_log.record_device_logs(DEVICE_ID, []) == 0
        assert not WalletPassLog.objects.exists()


class TestPruneDeviceLogs:
    def test_deletes_only_old_entries(self) -> None:
        with freeze_time(dt.datetime(2025, 1, 1, tzinfo=dt.UTC)):
            device_log.log_error(DEVICE_ID, "old")
        with freeze_time(dt.datetime(2025, 3, 25, tzinfo=dt.UTC)):
            device_log.log_error(DEVICE_ID, "recent")

        with freeze_time(dt.datetime(2025, 4, 1, tzinfo=dt.UTC)):
            deleted = device_log.prune_device_logs(older_than_days=30)

        assert deleted == 1
        assert list(WalletPassLog.objects.values_list("message", flat=True)) == ["recent"]
