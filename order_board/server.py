from __future__ import annotations

# Transport adapter: one FastAPI app serving both surfaces on the same port.
#
# - WebSocket push channel at `/` (and `/ws`): state on connect, then
#   subscribe/add/toggle frames.
# - HTTP control calls: GET /state, POST /add, POST /toggle, POST /reset.
#
# Both surfaces call into the same BoardService.

import argparse
import asyncio
import contextlib
import logging
import os
import uuid
from typing import Any

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.websockets import WebSocketState

from .errors import NOT_FOUND, BoardError, TransportFailure
from .manager import QueueManager
from .protocol import order_to_dict, orders_payload, parse_toggle_body
from .service import BoardService
from .store import OrderStore

log = logging.getLogger("order_board.server")

DEFAULT_SEND_BUFFER = 64

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class WebSocketSink:
    """Outbound side of one WebSocket subscriber.

    `deliver()` may be called from any thread. Frames go into a bounded queue
    drained by a writer task on the connection's event loop, so a slow client
    only delays itself. On overflow the oldest queued state is dropped.
    """

    def __init__(
        self,
        websocket: WebSocket,
        *,
        loop: asyncio.AbstractEventLoop,
        max_pending: int = DEFAULT_SEND_BUFFER,
        name: str = "",
    ) -> None:
        self.websocket = websocket
        self.name = name
        self._loop = loop
        self._queue: "asyncio.Queue[str]" = asyncio.Queue(maxsize=max(1, max_pending))
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def start(self) -> None:
        self._task = self._loop.create_task(self._writer())

    def deliver(self, payload: str) -> None:
        try:
            self._loop.call_soon_threadsafe(self._enqueue, payload)
        except RuntimeError as e:
            # Event loop already closed.
            raise TransportFailure(str(e)) from e

    def _enqueue(self, payload: str) -> None:
        if self._closed:
            return
        if self._queue.full():
            self._queue.get_nowait()
            log.warning("Subscriber %s is slow, dropped a queued state", self.name)
        self._queue.put_nowait(payload)

    async def _writer(self) -> None:
        while True:
            payload = await self._queue.get()
            try:
                await self.websocket.send_text(payload)
            except Exception as exc:
                self._closed = True
                log.info("Subscriber %s send failed: %s", self.name, exc)
                return

    async def close(self) -> None:
        self._closed = True
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


def create_app(service: BoardService | None = None, *, send_buffer: int = DEFAULT_SEND_BUFFER) -> FastAPI:
    service = service if service is not None else BoardService()

    app = FastAPI(title="order-board", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.service = service

    @app.middleware("http")
    async def allow_any_origin(request: Request, call_next):
        if request.method == "OPTIONS":
            response = Response(status_code=204)
        else:
            response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(BoardError)
    async def board_error(request: Request, exc: BoardError) -> JSONResponse:
        err = exc.to_response()
        return JSONResponse(err.to_message(), status_code=err.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Unknown path and wrong method look the same to callers.
        if exc.status_code in (404, 405):
            return JSONResponse(NOT_FOUND.to_message(), status_code=NOT_FOUND.status_code)
        return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)

    # -------------------- control calls --------------------

    @app.get("/state")
    async def get_state() -> dict[str, Any]:
        return {"orders": orders_payload(service.snapshot())}

    @app.post("/reset")
    async def reset(request: Request) -> dict[str, Any]:
        await request.body()
        service.reset()
        log.info("Board reset via control call")
        return {"ok": True}

    @app.post("/add")
    async def add(request: Request) -> dict[str, Any]:
        await request.body()
        order = service.add()
        return order_to_dict(order)

    @app.post("/toggle")
    async def toggle(request: Request) -> dict[str, Any]:
        order_id = parse_toggle_body(await request.body())
        service.toggle(order_id)
        return {"ok": True}

    # -------------------- push channel --------------------

    async def board_socket(websocket: WebSocket) -> None:
        await websocket.accept()
        handle = f"ws-{uuid.uuid4().hex[:8]}"
        sink = WebSocketSink(websocket, loop=asyncio.get_running_loop(), max_pending=send_buffer, name=handle)
        sink.start()
        service.connect(handle, sink)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes") or b""
                service.handle_frame(handle, raw)
        finally:
            service.disconnect(handle)
            await sink.close()

    app.add_api_websocket_route("/", board_socket)
    app.add_api_websocket_route("/ws", board_socket)

    return app


def run_server(
    *,
    host: str,
    port: int,
    restart_ids_on_reset: bool = False,
    send_buffer: int = DEFAULT_SEND_BUFFER,
    mqtt_host: str | None = None,
    mqtt_port: int = 1883,
    namespace: str = "orders/v0",
    log_level: str = "INFO",
) -> None:
    import uvicorn

    service = BoardService(manager=QueueManager(OrderStore(restart_ids_on_reset=restart_ids_on_reset)))
    app = create_app(service, send_buffer=send_buffer)

    bridge = None
    mqtt_client = None
    if mqtt_host:
        # Local imports so the server runs without a broker configured.
        from .mqtt_bridge import MqttBridge
        from .mqtt_client import MqttClient

        mqtt_client = MqttClient(client_id=f"order-board-{os.getpid()}", host=mqtt_host, port=mqtt_port)
        mqtt_client.start()
        bridge = MqttBridge(mqtt=mqtt_client, service=service, namespace=namespace)
        bridge.start()
        log.info("MQTT bridge connected to %s:%s, namespace=%s", mqtt_host, mqtt_port, namespace)

    log.info(
        "Order board listening on ws://%s:%s/ and http://%s:%s (ids %s on reset)",
        host,
        port,
        host,
        port,
        "restart" if restart_ids_on_reset else "continue",
    )
    try:
        uvicorn.run(app, host=host, port=port, log_level=log_level.lower())
    finally:
        if bridge is not None:
            bridge.stop()
        if mqtt_client is not None:
            mqtt_client.stop()


def main() -> None:
    parser = argparse.ArgumentParser(description="Order board server (WebSocket + HTTP)")
    parser.add_argument("--host", default=os.getenv("ORDER_BOARD_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("ORDER_BOARD_PORT", "4000")))
    parser.add_argument(
        "--restart-ids-on-reset",
        action="store_true",
        help="rewind the id counter to 1 on reset (default: ids keep increasing)",
    )
    parser.add_argument(
        "--send-buffer",
        type=int,
        default=DEFAULT_SEND_BUFFER,
        help="queued states per WebSocket subscriber before the oldest is dropped",
    )
    parser.add_argument("--mqtt-host", default=None, help="enable the MQTT bridge on this broker")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default="orders/v0")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    run_server(
        host=args.host,
        port=args.port,
        restart_ids_on_reset=args.restart_ids_on_reset,
        send_buffer=args.send_buffer,
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        namespace=args.namespace,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
