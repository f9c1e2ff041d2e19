from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from bodyosc.core.skeleton import BodySnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BodiesEvent:
    frame_index: int
    bodies: Tuple[BodySnapshot, ...]


@dataclass(frozen=True)
class TransportFailureEvent:
    frame_index: int
    slot_index: int
    reason: str


@dataclass(frozen=True)
class SessionStatusEvent:
    running: bool
    tracked_bodies: int
    datagrams_sent: int
    message: str


class EventBus:
    def __init__(self):
        self._subs: Dict[str, List[Callable]] = {}

    def subscribe(self, event_name: str, callback: Callable) -> None:
        self._subs.setdefault(event_name, []).append(callback)

    def publish(self, event_name: str, payload) -> None:
        for callback in list(self._subs.get(event_name, [])):
            try:
                callback(payload)
            except Exception:  # noqa: BLE001
                logger.exception("subscriber for %r failed", event_name)
