"""JSON-file-backed StockLedger.

Row locks are per product; the whole-file read/rewrite underneath is
guarded by a short file mutex that is never held while a caller's
transaction body runs.  Locks are in-process only: one writer process
per data directory.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path

from marketcore.domain.model.stock import ProductStock
from marketcore.infrastructure.persistence.row_locked_ledger import RowLockedStockLedger


class JsonStockLedger(RowLockedStockLedger):

    def __init__(self, file_path: Path, default_timeout: float | None = None) -> None:
        super().__init__(default_timeout)
        self._file_path = file_path
        self._file_guard = threading.RLock()
        self._ensure_file()

    # --- Storage hooks --------------------------------------------------------

    def _read_row(self, product_id: str) -> ProductStock | None:
        for raw in self._load_raw():
            if raw["product_id"] == product_id:
                return self._to_domain(raw)
        return None

    def _write_row(self, row: ProductStock) -> None:
        with self._file_guard:
            records = self._load_raw()
            for i, raw in enumerate(records):
                if raw["product_id"] == row.product_id:
                    records[i] = self._to_raw(row)
                    break
            else:
                records.append(self._to_raw(row))
            self._persist_raw(records)

    def _all_rows(self) -> list[ProductStock]:
        return [self._to_domain(raw) for raw in self._load_raw()]

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(row: ProductStock) -> dict:
        return {
            "product_id": row.product_id,
            "stock_quantity": row.stock_quantity,
            "reserved_quantity": row.reserved_quantity,
        }

    @staticmethod
    def _to_domain(raw: dict) -> ProductStock:
        return ProductStock(
            product_id=raw["product_id"],
            stock_quantity=raw["stock_quantity"],
            reserved_quantity=raw.get("reserved_quantity", 0),
        )

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        with self._file_guard:
            return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, records: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(records, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")
