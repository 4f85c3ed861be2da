"""Small MQTT helper built on top of paho-mqtt.

Why this exists:
- paho-mqtt is callback-based and runs its network loop on its own thread.
- The board only needs publish, subscribe and a raw-payload message callback,
  so this wrapper keeps the paho API out of the rest of the package.

QoS is kept at 0; the retained flag is used for the state topic so late
subscribers immediately receive the current board.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable

import paho.mqtt.client as mqtt

log = logging.getLogger("order_board.mqtt_client")

# Called with (topic, raw payload bytes) on the paho network thread.
MessageHandler = Callable[[str, bytes], None]
# Called on the paho network thread after every successful (re)connect.
ConnectHandler = Callable[[], None]


class MqttClient:
    """Thin wrapper around paho-mqtt."""

    def __init__(
        self,
        *,
        client_id: str,
        host: str,
        port: int,
        keepalive: int = 30,
    ) -> None:
        self.client_id = client_id
        self.host = host
        self.port = port
        self.keepalive = keepalive

        self._client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id, clean_session=True)
        self._client.on_connect = self._on_connect
        self._client.on_message = self._on_message

        self._handlers: list[MessageHandler] = []
        self._connect_handlers: list[ConnectHandler] = []
        # clean_session=True drops subscriptions on reconnect; they are renewed in _on_connect.
        self._topics: list[str] = []
        self._lock = threading.Lock()

        self._started = False

    def start(self) -> None:
        """Connect and start the background network loop."""
        if self._started:
            return
        self._client.connect(self.host, self.port, keepalive=self.keepalive)
        self._client.loop_start()
        self._started = True

    def stop(self) -> None:
        """Stop and disconnect."""
        if not self._started:
            return
        self._client.loop_stop()
        self._client.disconnect()
        self._started = False

    def is_connected(self) -> bool:
        return self._started and self._client.is_connected()

    def add_handler(self, handler: MessageHandler) -> None:
        with self._lock:
            self._handlers.append(handler)

    def add_connect_handler(self, handler: ConnectHandler) -> None:
        with self._lock:
            self._connect_handlers.append(handler)

    def subscribe(self, topic: str) -> None:
        with self._lock:
            if topic not in self._topics:
                self._topics.append(topic)
        # Before CONNACK this is a no-op for paho; _on_connect subscribes again.
        self._client.subscribe(topic, qos=0)

    def publish(self, topic: str, message: str | bytes | dict[str, Any], *, retain: bool = False) -> None:
        if isinstance(message, dict):
            payload: str | bytes = json.dumps(message, separators=(",", ":"))
        else:
            payload = message
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        info = self._client.publish(topic, payload=payload, qos=0, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise ConnectionError(f"publish to {topic} failed rc={info.rc}")

    # -------------------- internal callbacks --------------------

    def _on_connect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any,
    ) -> None:
        if reason_code.is_failure:
            log.warning("MQTT connect to %s:%s refused: %s", self.host, self.port, reason_code)
            return
        log.info("MQTT connected to %s:%s", self.host, self.port)

        with self._lock:
            topics = list(self._topics)
            handlers = list(self._connect_handlers)
        for topic in topics:
            self._client.subscribe(topic, qos=0)
        for h in handlers:
            try:
                h()
            except Exception:
                log.exception("MQTT connect handler failed")

    def _on_message(self, client: mqtt.Client, userdata: Any, msg: mqtt.MQTTMessage) -> None:
        raw = msg.payload
        if not isinstance(raw, bytes):
            raw = str(raw).encode("utf-8")

        with self._lock:
            handlers = list(self._handlers)
        for h in handlers:
            try:
                h(msg.topic, raw)
            except Exception:
                # A failing handler must not kill the paho network thread.
                log.exception("MQTT handler failed for topic %s", msg.topic)
