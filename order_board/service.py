from __future__ import annotations

# BoardService ties the Mutation API to the Broadcast Hub.
#
# Every surface (WebSocket, MQTT, HTTP control calls) goes through this class,
# so a toggle follows the same state machine no matter where it came from.
#
# A mutation and the publish of its snapshot run under one lock. Publishing
# only enqueues, so the lock is held for microseconds and never across I/O.

import logging
import threading
from typing import Callable, Hashable

from .errors import MalformedInput, NotFound
from .hub import BroadcastHub, Sink
from .manager import MutationResult, QueueManager
from .protocol import ADD, SUBSCRIBE, TOGGLE, Frame, parse_frame
from .store import Order

log = logging.getLogger("order_board.service")


class BoardService:
    def __init__(self, *, manager: QueueManager | None = None, hub: BroadcastHub | None = None) -> None:
        self.manager = manager if manager is not None else QueueManager()
        self.hub = hub if hub is not None else BroadcastHub()
        self._lock = threading.Lock()

    # -------------------- subscriber lifecycle --------------------

    def connect(self, handle: Hashable, sink: Sink) -> None:
        """Register a subscriber and queue the current state for it."""
        with self._lock:
            self.hub.register(handle, sink)
            self.hub.send_to(handle, self.manager.snapshot())
        log.info("Subscriber %s connected (%d live)", handle, len(self.hub))

    def disconnect(self, handle: Hashable) -> None:
        if self.hub.unregister(handle):
            log.info("Subscriber %s disconnected (%d live)", handle, len(self.hub))

    # -------------------- control operations --------------------

    def snapshot(self) -> tuple[Order, ...]:
        return self.manager.snapshot()

    def add(self) -> Order:
        result = self._apply(self.manager.create)
        if result.order is None:
            raise RuntimeError("create returned no order")
        return result.order

    def toggle(self, order_id: int | float) -> MutationResult:
        """Raises NotFound without broadcasting when the id is unknown."""
        return self._apply(lambda: self.manager.toggle(order_id))

    def reset(self) -> MutationResult:
        return self._apply(self.manager.reset)

    def resync(self, handle: Hashable) -> bool:
        """Send the current state to one subscriber, e.g. after its transport reconnects."""
        with self._lock:
            return self.hub.send_to(handle, self.manager.snapshot())

    def _apply(self, mutate: Callable[[], MutationResult]) -> MutationResult:
        with self._lock:
            result = mutate()
            self.hub.publish(result.snapshot)
        return result

    # -------------------- push channel --------------------

    def handle_frame(self, handle: Hashable, raw: str | bytes | bytearray) -> Frame | None:
        """Route one inbound push frame. Returns the parsed frame, or None if dropped."""
        try:
            frame = parse_frame(raw)
        except MalformedInput as exc:
            log.info("Dropped malformed frame from %s: %s", handle, exc.detail)
            return None

        if frame.type == SUBSCRIBE:
            self.resync(handle)
        elif frame.type == ADD:
            order = self.add()
            log.info("Order %s created by %s", order.id, handle)
        elif frame.type == TOGGLE and frame.id is not None:
            try:
                result = self.toggle(frame.id)
            except NotFound:
                log.info("Toggle from %s ignored: order %s not found", handle, frame.id)
                return frame
            outcome = "calling" if result.order is not None else "removed"
            log.info("Order %s toggled by %s -> %s", frame.id, handle, outcome)
        return frame
