from __future__ import annotations

# Order Store: the single authoritative copy of the board.
#
# All reads and writes go through one lock. The lock is never held across I/O,
# so callers can take a snapshot and broadcast it without blocking other
# mutations for longer than a dict update.

import enum
import threading
from dataclasses import dataclass, replace
from typing import ContextManager


class OrderStatus(str, enum.Enum):
    WAITING = "waiting"
    CALLING = "calling"


@dataclass(frozen=True)
class Order:
    """One ticket on the board."""

    id: int
    status: OrderStatus = OrderStatus.WAITING


class OrderStore:
    """In-memory collection of live orders plus the id counter.

    Reset policy is fixed for the lifetime of the store:
    - restart_ids_on_reset=False (default): ids are never reused while the
      process runs, `reset()` only clears the board.
    - restart_ids_on_reset=True: `reset()` also rewinds the counter to 1.
    """

    def __init__(self, *, restart_ids_on_reset: bool = False) -> None:
        # Re-entrant so a caller can hold it across a mutation and the
        # snapshot that follows it (see `atomic`).
        self._lock = threading.RLock()
        # id -> order; dict keeps insertion order, which is the display order.
        self._orders: dict[int, Order] = {}
        self._next_id: int = 1
        self.restart_ids_on_reset = restart_ids_on_reset

    def atomic(self) -> ContextManager[bool]:
        """Hold the store lock across several calls: `with store.atomic(): ...`"""
        return self._lock

    def snapshot(self) -> tuple[Order, ...]:
        with self._lock:
            return tuple(self._orders.values())

    def create(self) -> Order:
        """Append a new waiting order with the next id."""
        with self._lock:
            order = Order(id=self._next_id)
            self._next_id += 1
            self._orders[order.id] = order
            return order

    def advance(self, order_id: int | float) -> Order | None:
        """Move an order one step along waiting -> calling -> removed.

        Returns the updated order, or None when the order was removed.
        Raises KeyError when no order has this id.
        """
        with self._lock:
            current = self._orders.get(order_id)
            if current is None:
                raise KeyError(order_id)
            if current.status is OrderStatus.WAITING:
                updated = replace(current, status=OrderStatus.CALLING)
                # Assigning to an existing key keeps its position.
                self._orders[order_id] = updated
                return updated
            del self._orders[order_id]
            return None

    def reset(self) -> None:
        with self._lock:
            self._orders.clear()
            if self.restart_ids_on_reset:
                self._next_id = 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._orders)
