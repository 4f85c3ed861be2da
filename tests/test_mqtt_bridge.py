import json

from order_board.mqtt_bridge import MqttBridge
from order_board.service import BoardService


class FakeMqtt:
    """Records publishes; lets tests inject inbound messages."""

    def __init__(self, connected=True):
        self.connected = connected
        self.subscriptions: list[str] = []
        self.handlers = []
        self.connect_handlers = []
        self.published: list[tuple[str, str, bool]] = []

    def is_connected(self) -> bool:
        return self.connected

    def subscribe(self, topic: str) -> None:
        self.subscriptions.append(topic)

    def add_handler(self, handler) -> None:
        self.handlers.append(handler)

    def add_connect_handler(self, handler) -> None:
        self.connect_handlers.append(handler)

    def connect(self) -> None:
        self.connected = True
        for h in self.connect_handlers:
            h()

    def publish(self, topic, message, *, retain=False) -> None:
        if not self.connected:
            raise ConnectionError("not connected")
        self.published.append((topic, message, retain))

    def inject(self, topic: str, payload: bytes) -> None:
        for h in self.handlers:
            h(topic, payload)

    def states(self) -> list:
        return [json.loads(m)["orders"] for _t, m, _r in self.published]


def _bridge(mqtt: FakeMqtt, service: BoardService) -> MqttBridge:
    bridge = MqttBridge(mqtt=mqtt, service=service, namespace="demo/v0")
    bridge.start()
    return bridge


def test_start_subscribes_and_publishes_current_state():
    service = BoardService()
    service.add()
    mqtt = FakeMqtt()
    _bridge(mqtt, service)

    assert mqtt.subscriptions == ["demo/v0/requests"]
    assert mqtt.published == [
        ("demo/v0/state", '{"type":"state","orders":[{"id":1,"status":"waiting"}]}', True)
    ]


def test_inbound_frames_mutate_and_broadcast():
    service = BoardService()
    mqtt = FakeMqtt()
    _bridge(mqtt, service)

    mqtt.inject("demo/v0/requests", b'{"type":"add"}')
    mqtt.inject("demo/v0/requests", b'{"type":"toggle","id":1}')
    mqtt.inject("demo/v0/requests", b"garbage")
    mqtt.inject("demo/v0/requests", b'{"type":"toggle","id":7}')
    mqtt.inject("demo/v0/state", b'{"type":"add"}')

    assert mqtt.states() == [
        [],
        [{"id": 1, "status": "waiting"}],
        [{"id": 1, "status": "calling"}],
    ]


def test_subscribe_republishes_state():
    service = BoardService()
    mqtt = FakeMqtt()
    _bridge(mqtt, service)
    mqtt.inject("demo/v0/requests", b'{"type":"subscribe"}')
    assert len(mqtt.published) == 2


def test_disconnected_broker_is_skipped():
    service = BoardService()
    mqtt = FakeMqtt()
    _bridge(mqtt, service)
    mqtt.connected = False

    service.add()
    assert len(mqtt.published) == 1
    assert [o.id for o in service.snapshot()] == [1]


def test_stop_unregisters():
    service = BoardService()
    mqtt = FakeMqtt()
    bridge = _bridge(mqtt, service)
    bridge.stop()
    service.add()
    assert len(mqtt.published) == 1
    assert len(service.hub) == 0


def test_state_is_published_once_the_broker_acknowledges():
    service = BoardService()
    service.add()
    mqtt = FakeMqtt(connected=False)
    _bridge(mqtt, service)
    assert mqtt.published == []

    mqtt.connect()
    assert mqtt.published == [
        ("demo/v0/state", '{"type":"state","orders":[{"id":1,"status":"waiting"}]}', True)
    ]


def test_reconnect_republishes_current_state():
    service = BoardService()
    mqtt = FakeMqtt()
    _bridge(mqtt, service)

    mqtt.connected = False
    service.add()
    mqtt.connect()

    assert mqtt.states() == [[], [{"id": 1, "status": "waiting"}]]
