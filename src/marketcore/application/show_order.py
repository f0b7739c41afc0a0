"""Application service: Show Order use case (query)."""

from __future__ import annotations

from marketcore.application.dto import OrderDTO, to_order_dto
from marketcore.domain.exceptions import EntityNotFoundError
from marketcore.domain.repository.order_repository import OrderRepository


class ShowOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_id: int) -> OrderDTO:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")
        return to_order_dto(order)
