"""Real-time queue-number board (WebSocket + HTTP).

One server process owns the list of orders (ticket numbers), each either
waiting or calling. Admin clients add and advance orders; every change is
pushed as a full state snapshot to all connected displays.

Optionally the board is mirrored to an MQTT broker.

See README for how to run.
"""
from __future__ import annotations
