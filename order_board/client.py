from __future__ import annotations

# Push-channel client.
#
# - `watch`: print the board every time it changes
# - `add`: create an order and print the resulting board
# - `toggle`: advance an order and print the resulting board
#
# All three speak the WebSocket protocol, exactly like the kiosk and admin
# frontends do.

import argparse
import asyncio
import json
import os
from typing import Any

import websockets

DEFAULT_URL = "ws://127.0.0.1:4000/"


def format_board(orders: list[dict[str, Any]]) -> str:
    """Render a state message's orders as two lines: calling, then waiting."""
    calling = [str(o.get("id")) for o in orders if o.get("status") == "calling"]
    waiting = [str(o.get("id")) for o in orders if o.get("status") == "waiting"]
    return "\n".join(
        [
            "calling: " + (" ".join(calling) if calling else "-"),
            "waiting: " + (" ".join(waiting) if waiting else "-"),
        ]
    )


def _state_orders(message: str | bytes) -> list[dict[str, Any]] | None:
    try:
        payload = json.loads(message)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict) or payload.get("type") != "state":
        return None
    orders = payload.get("orders")
    return orders if isinstance(orders, list) else None


async def watch(url: str) -> None:
    async with websockets.connect(url) as ws:
        print(f"[client] connected to {url}")
        await ws.send(json.dumps({"type": "subscribe"}))
        async for message in ws:
            orders = _state_orders(message)
            if orders is None:
                continue
            print(format_board(orders))
            print()


async def send_frame(url: str, frame: dict[str, Any], *, timeout: float = 2.0) -> list[dict[str, Any]] | None:
    """Send one frame and return the next broadcast state.

    The server sends the current state on connect; that first message is
    consumed before the frame goes out. Returns None if no state change
    arrives within `timeout` (e.g. toggling an unknown id).
    """
    async with websockets.connect(url) as ws:
        first = _state_orders(await asyncio.wait_for(ws.recv(), timeout))
        if first is None:
            raise RuntimeError("server did not send initial state")
        await ws.send(json.dumps(frame))
        try:
            while True:
                orders = _state_orders(await asyncio.wait_for(ws.recv(), timeout))
                if orders is not None:
                    return orders
        except asyncio.TimeoutError:
            return None


def main() -> None:
    parser = argparse.ArgumentParser(description="Order board client (WebSocket)")
    parser.add_argument("--url", default=os.getenv("ORDER_BOARD_URL", DEFAULT_URL))
    parser.add_argument("--timeout", type=float, default=2.0, help="seconds to wait for a state update")
    sub = parser.add_subparsers(dest="cmd", required=True)
    sub.add_parser("watch", help="print the board on every change")
    sub.add_parser("add", help="create a new order")
    p_toggle = sub.add_parser("toggle", help="waiting -> calling, calling -> done")
    p_toggle.add_argument("--id", type=int, required=True)
    args = parser.parse_args()

    if args.cmd == "watch":
        try:
            asyncio.run(watch(args.url))
        except KeyboardInterrupt:
            pass
        return

    if args.cmd == "add":
        frame: dict[str, Any] = {"type": "add"}
    else:
        frame = {"type": "toggle", "id": args.id}

    orders = asyncio.run(send_frame(args.url, frame, timeout=args.timeout))
    if orders is None:
        print(f"[client] no change after {args.cmd} (unknown id?)")
        return
    print(format_board(orders))


if __name__ == "__main__":
    main()
