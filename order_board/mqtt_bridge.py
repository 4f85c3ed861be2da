from __future__ import annotations

# MQTT adapter around BoardService.
#
# The bridge is one more Broadcast Hub subscriber: every published state is
# mirrored to `<ns>/state`. Frames arriving on `<ns>/requests` take the same
# path as WebSocket frames, so a `subscribe` there republishes the state.

import logging
from typing import TYPE_CHECKING

from .errors import TransportFailure
from .mqtt_topics import DEFAULT_NAMESPACE, board_requests, state_updates

if TYPE_CHECKING:
    from .mqtt_client import MqttClient
    from .service import BoardService

log = logging.getLogger("order_board.mqtt_bridge")


class MqttBridge:
    """Hub sink that mirrors the board onto an MQTT broker."""

    handle = "mqtt"

    def __init__(self, *, mqtt: MqttClient, service: BoardService, namespace: str = DEFAULT_NAMESPACE) -> None:
        self.mqtt = mqtt
        self.service = service
        self.namespace = namespace
        self._state_topic = state_updates(namespace)
        self._request_topic = board_requests(namespace)

    @property
    def is_open(self) -> bool:
        return self.mqtt.is_connected()

    def start(self) -> None:
        self.mqtt.subscribe(self._request_topic)
        self.mqtt.add_handler(self._handle_message)
        self.mqtt.add_connect_handler(self._handle_connect)
        # Skipped by the hub until the broker acknowledges the connection;
        # _handle_connect then publishes the state.
        self.service.connect(self.handle, self)

    def stop(self) -> None:
        self.service.disconnect(self.handle)

    def deliver(self, payload: str) -> None:
        try:
            self.mqtt.publish(self._state_topic, payload, retain=True)
        except ConnectionError as e:
            raise TransportFailure(str(e)) from e

    def _handle_connect(self) -> None:
        # Replaces whatever state a previous run left retained on the broker.
        self.service.resync(self.handle)

    def _handle_message(self, topic: str, payload: bytes) -> None:
        # Only request frames are routed.
        if topic != self._request_topic:
            return
        self.service.handle_frame(self.handle, payload)
