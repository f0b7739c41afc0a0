"""JSON-file-backed implementation of PaymentRepository.

Payment records and the processed-event ledger share one file:
``{"payments": [...], "processed_events": [...]}``.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from marketcore.domain.model.payment import Payment, PaymentRecordStatus
from marketcore.domain.model.value_objects import Money
from marketcore.domain.repository.payment_repository import PaymentRepository


class JsonPaymentRepository(PaymentRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._guard = threading.RLock()
        self._ensure_file()

    # --- PaymentRepository interface ------------------------------------------

    def save(self, payment: Payment) -> None:
        with self._guard:
            data = self._load_raw()
            records = data["payments"]
            if payment.id is None:
                payment.id = max((r["id"] for r in records), default=0) + 1
            for i, raw in enumerate(records):
                if raw["id"] == payment.id:
                    records[i] = self._to_raw(payment)
                    break
            else:
                records.append(self._to_raw(payment))
            self._persist_raw(data)

    def list_for_order(self, order_id: int) -> list[Payment]:
        return [
            self._to_domain(raw)
            for raw in self._load_raw()["payments"]
            if raw["order_id"] == order_id
        ]

    def has_processed_event(self, event_id: str) -> bool:
        return event_id in self._load_raw()["processed_events"]

    def record_processed_event(self, event_id: str) -> None:
        with self._guard:
            data = self._load_raw()
            if event_id not in data["processed_events"]:
                data["processed_events"].append(event_id)
                self._persist_raw(data)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(payment: Payment) -> dict:
        return {
            "id": payment.id,
            "order_id": payment.order_id,
            "payment_ref": payment.payment_ref,
            "amount": str(payment.amount.amount),
            "currency": payment.amount.currency,
            "status": payment.status.value,
            "charge_id": payment.charge_id,
            "failure_reason": payment.failure_reason,
            "paid_at": payment.paid_at.isoformat() if payment.paid_at else None,
            "created_at": payment.created_at.isoformat(),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Payment:
        return Payment(
            id=raw["id"],
            order_id=raw["order_id"],
            payment_ref=raw["payment_ref"],
            amount=Money(Decimal(raw["amount"]), raw.get("currency", "USD")),
            status=PaymentRecordStatus(raw["status"]),
            charge_id=raw.get("charge_id"),
            failure_reason=raw.get("failure_reason"),
            paid_at=datetime.fromisoformat(raw["paid_at"]) if raw.get("paid_at") else None,
            created_at=datetime.fromisoformat(raw["created_at"]),
        )

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> dict:
        with self._guard:
            return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, data: dict) -> None:
        self._file_path.write_text(
            json.dumps(data, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._persist_raw({"payments": [], "processed_events": []})
