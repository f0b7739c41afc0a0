"""Tests for the composition root's process-wide stores."""

from concurrent.futures import ThreadPoolExecutor

from marketcore.infrastructure import bootstrap
from marketcore.infrastructure.config import load_settings


def _settings(tmp_path):
    return load_settings({"MARKETCORE_DATA_DIR": str(tmp_path), "MARKETCORE_LOCK_TIMEOUT": "5"})


class TestSharedStores:

    def test_handlers_share_ledger_and_reservations(self, tmp_path):
        settings = _settings(tmp_path)

        checkout = bootstrap.checkout_handler(settings)
        processor = bootstrap.payment_event_processor(settings)

        assert checkout._reservations._ledger is processor._reservations._ledger
        assert (
            checkout._reservations._reservation_repo
            is processor._reservations._reservation_repo
        )
        assert checkout._order_repo is processor._order_repo

    def test_same_directory_spelled_differently_is_shared(self, tmp_path):
        (tmp_path / "data").mkdir()
        plain = _settings(tmp_path / "data")
        dotted = _settings(tmp_path / "data" / ".." / "data")

        assert bootstrap.stock_ledger(plain) is bootstrap.stock_ledger(dotted)

    def test_other_directories_are_separate(self, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()

        assert bootstrap.stock_ledger(_settings(tmp_path / "a")) is not bootstrap.stock_ledger(
            _settings(tmp_path / "b")
        )

    def test_processors_share_payment_ref_locks(self, tmp_path):
        settings = _settings(tmp_path)

        first = bootstrap.payment_event_processor(settings)
        second = bootstrap.payment_event_processor(settings)

        assert first._ref_locks is second._ref_locks

    def test_concurrent_reserves_through_both_handlers_are_not_lost(self, tmp_path):
        settings = _settings(tmp_path)
        bootstrap.stock_ledger(settings).register("A", 1000)
        via_checkout = bootstrap.checkout_handler(settings)._reservations
        via_webhooks = bootstrap.payment_event_processor(settings)._reservations

        def hammer(manager):
            for _ in range(100):
                manager.reserve("A", 1)

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [pool.submit(hammer, via_checkout), pool.submit(hammer, via_webhooks)]
            for future in futures:
                future.result()

        row = bootstrap.stock_ledger(settings).get("A")
        assert row.reserved_quantity == 200
        assert row.stock_quantity == 1000
