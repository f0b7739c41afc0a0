"""Coupon policy port.

The discount rules belong to the coupon service; checkout only needs a
yes/no and an amount.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketcore.domain.model.value_objects import Money


class CouponPolicy(ABC):

    @abstractmethod
    def discount(self, code: str, subtotal: Money, user_id: str) -> Money:
        """Return the discount ``code`` grants on ``subtotal`` for ``user_id``.

        Raises InvalidCouponError if the code is unknown, expired or not
        applicable.
        """
