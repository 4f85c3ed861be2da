from __future__ import annotations

# The Queue Manager turns requests into Order Store operations.
#
# It is pure logic with no transport knowledge, so it is easy to unit test.
# Every successful mutation returns a fresh snapshot that the caller is
# expected to hand to the Broadcast Hub.

import enum
from dataclasses import dataclass

from .errors import NotFound
from .store import Order, OrderStore


class ToggleOutcome(str, enum.Enum):
    CALLING = "calling"
    REMOVED = "removed"


@dataclass(frozen=True)
class MutationResult:
    snapshot: tuple[Order, ...]
    order: Order | None = None
    outcome: ToggleOutcome | None = None


class QueueManager:
    """Mutation API over an injected OrderStore.

    Each result's snapshot is taken under the same store lock as the mutation,
    so it is exactly the board right after that mutation.
    """

    def __init__(self, store: OrderStore | None = None) -> None:
        self.store = store if store is not None else OrderStore()

    def snapshot(self) -> tuple[Order, ...]:
        return self.store.snapshot()

    def create(self) -> MutationResult:
        with self.store.atomic():
            order = self.store.create()
            return MutationResult(snapshot=self.store.snapshot(), order=order)

    def toggle(self, order_id: int | float) -> MutationResult:
        """Advance one order: waiting -> calling, calling -> removed.

        Raises NotFound when the id is not on the board.
        """
        with self.store.atomic():
            try:
                updated = self.store.advance(order_id)
            except KeyError:
                raise NotFound(f"order {order_id} not found") from None
            if updated is None:
                return MutationResult(snapshot=self.store.snapshot(), outcome=ToggleOutcome.REMOVED)
            return MutationResult(snapshot=self.store.snapshot(), order=updated, outcome=ToggleOutcome.CALLING)

    def reset(self) -> MutationResult:
        with self.store.atomic():
            self.store.reset()
            return MutationResult(snapshot=self.store.snapshot())
