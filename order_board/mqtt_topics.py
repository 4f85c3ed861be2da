"""MQTT topic helpers.

Topic layout under a configurable namespace (default: `orders/v0`):

- `<ns>/state`
    The server publishes every state message here (retained).
- `<ns>/requests`
    Clients publish `subscribe` / `add` / `toggle` frames here, with the same
    JSON shapes as the WebSocket push channel.

Run several boards on one broker by changing the namespace
(e.g. `--namespace shop/counter-2`).
"""

from __future__ import annotations

DEFAULT_NAMESPACE = "orders/v0"


def state_updates(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/state"


def board_requests(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/requests"
