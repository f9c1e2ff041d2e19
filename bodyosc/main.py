from __future__ import annotations

import argparse
import logging
import socket
import sys
import threading
from pathlib import Path

from bodyosc.core.osc import decode_bundle
from bodyosc.models.config import ConfigurationError
from bodyosc.services.runtime import build_runtime

logger = logging.getLogger("bodyosc")


SOURCES = ("kinect",)


def _open_source(name: str, deliver):
    # Imported late: the sensor SDK binding is only available on Windows.
    from bodyosc.core.kinect import Kinect2Source

    if name == "kinect":
        return Kinect2Source(deliver)
    raise ValueError(f"unknown source {name!r}")


def _run(args: argparse.Namespace) -> int:
    try:
        runtime = build_runtime(Path(args.config))
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 2
    level = runtime.config_store.config.logging.level
    logging.getLogger().setLevel(level)

    session = runtime.session_manager
    stop_evt = threading.Event()
    try:
        source = _open_source(args.source, session.submit)
        session.start()
        source.run(stop_evt)
    except KeyboardInterrupt:
        logger.info("interrupted")
    finally:
        stop_evt.set()
        session.stop()
        logger.info("session summary: %s", session.status())
    return 0


def _listen(args: argparse.Namespace) -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.bind((args.host, args.port))
        logger.info("listening on %s:%d", args.host, args.port)
        while True:
            packet, sender = sock.recvfrom(65535)
            bundle = decode_bundle(packet)
            if bundle is None:
                logger.warning("undecodable datagram (%d bytes) from %s", len(packet), sender[0])
                continue
            for message in bundle.messages:
                print(message.address, " ".join(message.arguments))
    except KeyboardInterrupt:
        return 0
    finally:
        sock.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="bodyosc", description="Stream tracked skeletons as OSC bundles")
    sub = parser.add_subparsers(dest="cmd", required=True)

    run_p = sub.add_parser("run", help="Stream Kinect v2 bodies to the configured destination")
    run_p.add_argument("--config", default="configs/default.yaml", help="YAML config path")
    run_p.add_argument("--source", default="kinect", choices=SOURCES, help="Body frame source (default kinect)")

    listen_p = sub.add_parser("listen", help="Print decoded bundles received on a UDP port")
    listen_p.add_argument("--host", default="0.0.0.0", help="Bind address")
    listen_p.add_argument("--port", type=int, default=9875, help="Bind port (default 9875)")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
    if args.cmd == "run":
        return _run(args)
    return _listen(args)


if __name__ == "__main__":
    sys.exit(main())
