#!/usr/bin/env python3
"""
Motion Command Monitor - Run next to (or instead of) the robot bridge
Subscribes to the motion channel's ZMQ PUB socket and prints every command.

Usage:
    python scripts/motion_monitor.py [--host 127.0.0.1] [--port 9090] [--robot c20000002]
"""

import argparse
import time

import zmq

from cento.core.config import ChannelSettings
from cento.motion import decode_message, payload_to_command


def main():
    settings = ChannelSettings()
    default_host = "127.0.0.1" if settings.host in ("0.0.0.0", "*") else settings.host

    parser = argparse.ArgumentParser(description="Print motion commands from the ZMQ channel")
    parser.add_argument("--host", type=str, default=default_host, help="Publisher IP address")
    parser.add_argument("--port", type=int, default=settings.port, help="ZMQ port")
    parser.add_argument("--robot", type=str, default=settings.robot_name, help="Robot name (topic prefix)")
    parser.add_argument("--raw", action="store_true", help="Print raw JSON payloads")
    args = parser.parse_args()

    context = zmq.Context()
    socket = context.socket(zmq.SUB)
    socket.connect(f"tcp://{args.host}:{args.port}")
    socket.setsockopt_string(zmq.SUBSCRIBE, f"/{args.robot}/")
    socket.setsockopt(zmq.RCVTIMEO, 5000)  # 5 second timeout

    print(f"[MON] Connected to tcp://{args.host}:{args.port} (topics /{args.robot}/*)")
    print("[MON] Press Ctrl+C to stop")

    count = 0
    start = None

    try:
        while True:
            try:
                frames = socket.recv_multipart()
            except zmq.Again:
                print("[MON] No commands (timeout), waiting...")
                continue

            try:
                topic, payload = decode_message(frames)
            except ValueError as e:
                print(f"[WARN] {e}")
                continue

            now = time.monotonic()
            if start is None:
                start = now
            count += 1

            text = payload if args.raw else payload_to_command(topic, payload)
            print(f"[MON] {now - start:7.2f}s  {topic:<24} {text}")
    except KeyboardInterrupt:
        print("\n[MON] Stopping...")
    finally:
        socket.close()
        context.term()
        print(f"[MON] Done. Received {count} commands")

    return 0


if __name__ == "__main__":
    exit(main())
