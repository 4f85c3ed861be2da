from __future__ import annotations

# Single-entrypoint runner.
#
# The primary way to run the board is:
#     python -m order_board.app serve [--port 4000] [--mqtt-host HOST]
#
# The client subcommands are small helpers for operating and debugging a
# running board from a terminal.

import argparse
import os


def main() -> None:
    parser = argparse.ArgumentParser(description="Order board - main entrypoint")
    sub = parser.add_subparsers(dest="cmd", required=True)

    def add_client_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--url", default=os.getenv("ORDER_BOARD_URL", "ws://127.0.0.1:4000/"))
        p.add_argument("--timeout", type=float, default=2.0)

    # ---- Normal operation ----
    p_serve = sub.add_parser("serve", help="Start the board server (WebSocket + HTTP on one port)")
    p_serve.add_argument("--host", default=os.getenv("ORDER_BOARD_HOST", "0.0.0.0"))
    p_serve.add_argument("--port", type=int, default=int(os.getenv("ORDER_BOARD_PORT", "4000")))
    p_serve.add_argument("--restart-ids-on-reset", action="store_true", help="rewind ids to 1 on reset")
    p_serve.add_argument("--send-buffer", type=int, default=64)
    p_serve.add_argument("--mqtt-host", default=None, help="mirror the board to this MQTT broker")
    p_serve.add_argument("--mqtt-port", type=int, default=1883)
    p_serve.add_argument("--namespace", default="orders/v0")
    p_serve.add_argument("--log-level", default="INFO")

    # ---- Client helpers ----
    p_watch = sub.add_parser("watch", help="Print the board on every change")
    add_client_args(p_watch)

    p_add = sub.add_parser("add", help="Create a new order")
    add_client_args(p_add)

    p_toggle = sub.add_parser("toggle", help="Advance an order (waiting -> calling -> done)")
    add_client_args(p_toggle)
    p_toggle.add_argument("--id", type=int, required=True)

    args = parser.parse_args()

    if args.cmd == "serve":
        from .server import main as run

        run_args = [
            "--host",
            args.host,
            "--port",
            str(args.port),
            "--send-buffer",
            str(args.send_buffer),
            "--mqtt-port",
            str(args.mqtt_port),
            "--namespace",
            args.namespace,
            "--log-level",
            args.log_level,
        ]
        if args.restart_ids_on_reset:
            run_args += ["--restart-ids-on-reset"]
        if args.mqtt_host:
            run_args += ["--mqtt-host", args.mqtt_host]

        _dispatch_to_module_main(run, run_args)
        return

    from .client import main as run

    run_args = ["--url", args.url, "--timeout", str(args.timeout), args.cmd]
    if args.cmd == "toggle":
        run_args += ["--id", str(args.id)]
    _dispatch_to_module_main(run, run_args)


def _dispatch_to_module_main(module_main, argv: list[str]) -> None:
    import sys

    old_argv = sys.argv[:]
    try:
        sys.argv = [old_argv[0], *argv]
        module_main()
    finally:
        sys.argv = old_argv


if __name__ == "__main__":
    main()
