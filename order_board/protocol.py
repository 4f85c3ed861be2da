"""Wire format of the push channel and the control calls.

Push frames (JSON text):
- client -> server: `{"type": "subscribe"}`, `{"type": "add"}`,
  `{"type": "toggle", "id": <number>}`
- server -> client: `{"type": "state", "orders": [{"id": 1, "status": "waiting"}, ...]}`

Everything that can be rejected is rejected here with `MalformedInput`, so the
transports only deal with well-formed `Frame` objects.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable

from .errors import MalformedInput
from .store import Order

SUBSCRIBE = "subscribe"
ADD = "add"
TOGGLE = "toggle"
STATE = "state"

FRAME_TYPES = (SUBSCRIBE, ADD, TOGGLE)


@dataclass(frozen=True)
class Frame:
    type: str
    id: int | float | None = None


def parse_frame(raw: str | bytes | bytearray) -> Frame:
    data = _load_object(raw)

    ftype = data.get("type")
    if not isinstance(ftype, str):
        raise MalformedInput("missing type")
    if ftype not in FRAME_TYPES:
        raise MalformedInput(f"unknown type {ftype!r}")

    if ftype == TOGGLE:
        return Frame(type=TOGGLE, id=parse_order_id(data.get("id")))
    return Frame(type=ftype)


def parse_toggle_body(raw: str | bytes | bytearray) -> int | float:
    """Extract the order id from a `/toggle` request body."""
    return parse_order_id(_load_object(raw).get("id"))


def parse_order_id(value: Any) -> int | float:
    # Any JSON number is accepted. Integral floats (1.0) address order 1;
    # other numbers are valid input that simply never matches an order.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedInput("id must be a number")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _load_object(raw: str | bytes | bytearray) -> dict[str, Any]:
    try:
        text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
        data = json.loads(text)
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedInput("not json") from e
    if not isinstance(data, dict):
        raise MalformedInput("not an object")
    return data


# -------------------- outbound --------------------


def order_to_dict(order: Order) -> dict[str, Any]:
    return {"id": order.id, "status": order.status.value}


def orders_payload(snapshot: Iterable[Order]) -> list[dict[str, Any]]:
    return [order_to_dict(o) for o in snapshot]


def state_message(snapshot: Iterable[Order]) -> dict[str, Any]:
    return {"type": STATE, "orders": orders_payload(snapshot)}


def encode(message: dict[str, Any]) -> str:
    return json.dumps(message, separators=(",", ":"))
