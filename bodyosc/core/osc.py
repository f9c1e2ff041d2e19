from __future__ import annotations

import logging
import math
import socket
import struct
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from bodyosc.core.constants import JointType, TrackingState
from bodyosc.core.skeleton import Body
from bodyosc.models.config import ConfigurationError, OscConfig

logger = logging.getLogger(__name__)

BUNDLE_TAG = "#bundle"
# OSC time tag meaning "process immediately".
IMMEDIATE_TIME_TAG = 1


class TransportFailure(Exception):
    """A single datagram could not be handed to the network."""


@dataclass(frozen=True)
class OscMessage:
    address: str
    arguments: Tuple[str, ...]


@dataclass(frozen=True)
class OscBundle:
    messages: Tuple[OscMessage, ...]
    time_tag: int = IMMEDIATE_TIME_TAG


def format_float(value) -> str:
    """Shortest decimal that round-trips the float32 value, without exponent.

    Integral values drop the trailing ".0" (1.0 -> "1").
    """
    value = np.float32(value)
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return np.format_float_positional(value, unique=True, trim="-")


def joint_address(joint_type: JointType) -> str:
    return "/" + joint_type.name


def build_body_bundle(
    body: Body,
    joints: Sequence[JointType],
    include_untracked: bool = True,
) -> OscBundle:
    messages = []
    for joint_type in joints:
        joint = body.joints[joint_type]
        if not include_untracked and joint.tracking_state == TrackingState.NotTracked:
            continue
        x, y, z = joint.position
        messages.append(
            OscMessage(
                address=joint_address(joint_type),
                arguments=(format_float(x), format_float(y), format_float(z)),
            )
        )
    return OscBundle(messages=tuple(messages))


def _pad4(data: bytes) -> bytes:
    pad = (4 - (len(data) % 4)) % 4
    return data + (b"\x00" * pad)


def _osc_str(value: str) -> bytes:
    return _pad4(value.encode("utf-8") + b"\x00")


def encode_message(message: OscMessage) -> bytes:
    tags = "," + ("s" * len(message.arguments))
    return b"".join(
        [_osc_str(message.address), _osc_str(tags)]
        + [_osc_str(arg) for arg in message.arguments]
    )


def encode_bundle(bundle: OscBundle) -> bytes:
    parts = [_osc_str(BUNDLE_TAG), struct.pack(">Q", bundle.time_tag)]
    for message in bundle.messages:
        payload = encode_message(message)
        parts.append(struct.pack(">i", len(payload)))
        parts.append(payload)
    return b"".join(parts)


def read_osc_padded_string(packet: bytes, offset: int) -> tuple[Optional[str], int]:
    if offset < 0 or offset >= len(packet):
        return None, offset
    end = packet.find(b"\x00", offset)
    if end < 0:
        return None, offset
    try:
        text = packet[offset:end].decode("utf-8")
    except UnicodeDecodeError:
        return None, offset
    next_offset = ((end + 4) // 4) * 4
    if next_offset > len(packet):
        return None, offset
    return text, next_offset


def decode_message(packet: bytes) -> Optional[OscMessage]:
    address, offset = read_osc_padded_string(packet, 0)
    if not address or not address.startswith("/"):
        return None
    tags, offset = read_osc_padded_string(packet, offset)
    if not tags or not tags.startswith(","):
        return None
    if any(tag != "s" for tag in tags[1:]):
        return None
    arguments = []
    for _ in tags[1:]:
        arg, offset = read_osc_padded_string(packet, offset)
        if arg is None:
            return None
        arguments.append(arg)
    if offset != len(packet):
        return None
    return OscMessage(address=address, arguments=tuple(arguments))


def decode_bundle(packet: bytes) -> Optional[OscBundle]:
    tag, offset = read_osc_padded_string(packet, 0)
    if tag != BUNDLE_TAG or len(packet) < offset + 8:
        return None
    (time_tag,) = struct.unpack_from(">Q", packet, offset)
    offset += 8
    messages = []
    while offset < len(packet):
        if len(packet) < offset + 4:
            return None
        (size,) = struct.unpack_from(">i", packet, offset)
        offset += 4
        if size <= 0 or size % 4 or offset + size > len(packet):
            return None
        message = decode_message(packet[offset : offset + size])
        if message is None:
            return None
        messages.append(message)
        offset += size
    return OscBundle(messages=tuple(messages), time_tag=time_tag)


class OscBundleSink:
    """Owns the UDP socket and sends one datagram per bundle, never retrying."""

    def __init__(self, cfg: OscConfig):
        self.addr = self._resolve(cfg.host, int(cfg.port))
        self._check_route(self.addr)
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.closed = False
        self.sent_count = 0
        self.failure_count = 0
        self.last_failure: Optional[TransportFailure] = None

    @staticmethod
    def _resolve(host: str, port: int) -> tuple[str, int]:
        try:
            infos = socket.getaddrinfo(host, port, socket.AF_INET, socket.SOCK_DGRAM)
        except (socket.gaierror, UnicodeError, OverflowError) as exc:
            raise ConfigurationError(f"cannot resolve OSC destination {host}:{port}: {exc}") from exc
        return infos[0][4][0], port

    @staticmethod
    def _check_route(addr: tuple[str, int]) -> None:
        # connect() on a UDP socket sends nothing but fails when no route exists.
        check_sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            check_sock.connect(addr)
        except OSError as exc:
            raise ConfigurationError(f"OSC destination {addr[0]}:{addr[1]} is unreachable: {exc}") from exc
        finally:
            check_sock.close()

    def __enter__(self) -> "OscBundleSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def send(self, bundle: OscBundle) -> bool:
        if self.closed:
            return False
        try:
            self.sock.sendto(encode_bundle(bundle), self.addr)
        except OSError as exc:
            self._report(TransportFailure(f"send to {self.addr[0]}:{self.addr[1]} failed: {exc}"))
            return False
        self.sent_count += 1
        return True

    def _report(self, failure: TransportFailure) -> None:
        self.failure_count += 1
        self.last_failure = failure
        logger.warning("dropping bundle: %s", failure)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.sock.close()
