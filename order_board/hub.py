"""Broadcast Hub: fan a snapshot out to every live subscriber.

The hub does not know about WebSockets or MQTT. Subscribers are registered as
`Sink` objects under a handle chosen by the transport. `deliver()` must not
block; transports that can stall buffer internally.
"""

from __future__ import annotations

import logging
import threading
from typing import Hashable, Iterable, Protocol

from .errors import TransportFailure
from .protocol import encode, state_message
from .store import Order

log = logging.getLogger("order_board.hub")


class Sink(Protocol):
    @property
    def is_open(self) -> bool: ...

    def deliver(self, payload: str) -> None: ...


class BroadcastHub:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[Hashable, Sink] = {}

    def register(self, handle: Hashable, sink: Sink) -> None:
        with self._lock:
            self._subscribers[handle] = sink

    def unregister(self, handle: Hashable) -> bool:
        """Remove a subscriber. Returns False if it was not registered."""
        with self._lock:
            return self._subscribers.pop(handle, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def __contains__(self, handle: Hashable) -> bool:
        with self._lock:
            return handle in self._subscribers

    def publish(self, snapshot: Iterable[Order]) -> int:
        """Send one state message to all subscribers. Returns the delivery count."""
        payload = encode(state_message(snapshot))
        with self._lock:
            targets = list(self._subscribers.items())

        delivered = 0
        for handle, sink in targets:
            if self._deliver(handle, sink, payload):
                delivered += 1
        return delivered

    def send_to(self, handle: Hashable, snapshot: Iterable[Order]) -> bool:
        """Send the snapshot to a single subscriber (no broadcast)."""
        with self._lock:
            sink = self._subscribers.get(handle)
        if sink is None:
            return False
        return self._deliver(handle, sink, encode(state_message(snapshot)))

    def _deliver(self, handle: Hashable, sink: Sink, payload: str) -> bool:
        if not sink.is_open:
            # The transport's close handler will unregister it.
            log.debug("Skipping closed subscriber %s", handle)
            return False
        try:
            sink.deliver(payload)
        except TransportFailure as exc:
            log.warning("Delivery to %s failed: %s", handle, exc.detail)
            return False
        except Exception:
            log.exception("Delivery to %s failed", handle)
            return False
        return True
