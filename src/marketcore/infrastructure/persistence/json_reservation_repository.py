"""JSON-file-backed implementation of ReservationRepository."""

from __future__ import annotations

import json
import threading
import uuid
from datetime import datetime
from pathlib import Path

from marketcore.domain.model.reservation import Reservation, ReservationState
from marketcore.domain.repository.reservation_repository import ReservationRepository


class JsonReservationRepository(ReservationRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._guard = threading.RLock()
        self._ensure_file()

    # --- ReservationRepository interface --------------------------------------

    def next_id(self) -> str:
        return f"res_{uuid.uuid4().hex[:16]}"

    def get(self, reservation_id: str) -> Reservation | None:
        for raw in self._load_raw():
            if raw["id"] == reservation_id:
                return self._to_domain(raw)
        return None

    def list_for_order(self, order_ref: str) -> list[Reservation]:
        return [
            self._to_domain(raw)
            for raw in self._load_raw()
            if raw["order_ref"] == order_ref
        ]

    def save(self, reservation: Reservation) -> None:
        with self._guard:
            records = self._load_raw()
            for i, raw in enumerate(records):
                if raw["id"] == reservation.id:
                    records[i] = self._to_raw(reservation)
                    break
            else:
                records.append(self._to_raw(reservation))
            self._persist_raw(records)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(reservation: Reservation) -> dict:
        return {
            "id": reservation.id,
            "order_ref": reservation.order_ref,
            "product_id": reservation.product_id,
            "quantity": reservation.quantity,
            "state": reservation.state.value,
            "created_at": reservation.created_at.isoformat(),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Reservation:
        return Reservation(
            id=raw["id"],
            order_ref=raw["order_ref"],
            product_id=raw["product_id"],
            quantity=raw["quantity"],
            state=ReservationState(raw["state"]),
            created_at=datetime.fromisoformat(raw["created_at"]),
        )

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        with self._guard:
            return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, records: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(records, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")
