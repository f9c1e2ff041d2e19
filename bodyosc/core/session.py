from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from bodyosc.core.events import (
    BodiesEvent,
    EventBus,
    SessionStatusEvent,
    TransportFailureEvent,
)
from bodyosc.core.extractor import FrameExtractor
from bodyosc.core.joint_log import JointRecordLogger
from bodyosc.core.osc import OscBundleSink, build_body_bundle
from bodyosc.core.sanitize import sanitize_body
from bodyosc.core.skeleton import BodySnapshot, FrameUnavailable
from bodyosc.models.config import AppConfig

logger = logging.getLogger(__name__)

MAILBOX_CLOSED = object()


class FrameMailbox:
    """Single-slot channel between the sensor and the session; newest frame wins."""

    def __init__(self):
        self._cond = threading.Condition()
        self._pending = None
        self._has_pending = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, raw) -> bool:
        """Store a frame, returning True when an undrained older frame was dropped."""
        with self._cond:
            if self._closed:
                return False
            dropped = self._has_pending
            self._pending = raw
            self._has_pending = True
            self._cond.notify()
            return dropped

    def get(self, timeout: Optional[float] = None):
        with self._cond:
            if not self._cond.wait_for(lambda: self._has_pending or self._closed, timeout):
                return None
            if self._closed:
                return MAILBOX_CLOSED
            raw = self._pending
            self._pending = None
            self._has_pending = False
            return raw

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._pending = None
            self._has_pending = False
            self._cond.notify_all()


@dataclass
class SessionState:
    running: bool = False
    message: str = "idle"
    frames_processed: int = 0
    frames_unavailable: int = 0
    frames_coalesced: int = 0
    tracked_bodies: int = 0
    datagrams_sent: int = 0
    send_failures: int = 0
    body_errors: int = 0
    frame_errors: int = 0


class SessionManager:
    def __init__(
        self,
        cfg: AppConfig,
        sink: OscBundleSink,
        event_bus: EventBus,
        joint_logger: Optional[JointRecordLogger] = None,
    ):
        self.cfg = cfg
        self.sink = sink
        self.event_bus = event_bus
        self.joint_logger = joint_logger
        self.mailbox = FrameMailbox()
        self.extractor = FrameExtractor(cfg.runtime.body_slot_count)
        self.joints = cfg.osc.joint_types()
        self.state = SessionState()
        self._thread: Optional[threading.Thread] = None
        self._stop_evt = threading.Event()
        self._lock = threading.Lock()
        self._process_lock = threading.Lock()

    def submit(self, raw) -> None:
        """Entry point for the sensor: hand over one raw frame (or None)."""
        if self.mailbox.put(raw):
            self.state.frames_coalesced += 1

    def process_frame(self, raw) -> int:
        """Run one frame through extract, sanitize, encode and send.

        Returns the number of datagrams sent.
        """
        with self._process_lock:
            if self._stop_evt.is_set():
                return 0
            try:
                frame = self.extractor.extract(raw)
            except FrameUnavailable:
                self.state.frames_unavailable += 1
                return 0

            frame_index = self.state.frames_processed
            self.state.frames_processed += 1
            snapshots = []
            sent = 0
            for body in frame.tracked_bodies():
                if self._stop_evt.is_set():
                    break
                if self.joint_logger is not None:
                    self.joint_logger.log_body(body)
                try:
                    clean = sanitize_body(body, self.cfg.runtime.z_floor)
                    bundle = build_body_bundle(
                        clean,
                        self.joints,
                        include_untracked=self.cfg.runtime.send_untracked_joints,
                    )
                except Exception:  # noqa: BLE001
                    self.state.body_errors += 1
                    logger.exception("frame %d: failed to encode slot %d", frame_index, body.slot_index)
                    continue
                snapshots.append(BodySnapshot.from_body(clean))
                if self.sink.send(bundle):
                    sent += 1
                elif not self.sink.closed:
                    self.state.send_failures += 1
                    self.event_bus.publish(
                        "transport_failure",
                        TransportFailureEvent(
                            frame_index=frame_index,
                            slot_index=body.slot_index,
                            reason=str(self.sink.last_failure),
                        ),
                    )

            self.state.tracked_bodies = len(snapshots)
            self.state.datagrams_sent += sent
            self.event_bus.publish(
                "bodies", BodiesEvent(frame_index=frame_index, bodies=tuple(snapshots))
            )
            return sent

    def run(self) -> None:
        """Drain the mailbox until stopped; the sink is closed on every exit path."""
        self.state.running = True
        self.state.message = "running"
        self._publish_status()
        try:
            while not self._stop_evt.is_set():
                raw = self.mailbox.get()
                if raw is MAILBOX_CLOSED:
                    break
                try:
                    self.process_frame(raw)
                except Exception:  # noqa: BLE001
                    self.state.frame_errors += 1
                    logger.exception("dropping frame after processing error")
            self.state.message = "stopped"
        finally:
            self._stop_evt.set()
            self.mailbox.close()
            with self._process_lock:
                self._release()
            self.state.running = False
            self._publish_status()

    def start(self) -> dict:
        with self._lock:
            if self.state.running:
                return {"ok": True, "message": "already_running"}
            if self._stop_evt.is_set():
                return {"ok": False, "message": "session_closed"}
            self._thread = threading.Thread(target=self.run, daemon=True)
            self.state.running = True
            self.state.message = "starting"
            self._thread.start()
        return {"ok": True, "message": "started"}

    def stop(self) -> dict:
        with self._lock:
            self._stop_evt.set()
            self.mailbox.close()
        if self._thread is not None:
            self._thread.join(timeout=3.0)
        with self._process_lock:
            self._release()
        with self._lock:
            self.state.running = False
            self.state.message = "stopped"
        return {"ok": True, "message": "stopped"}

    def status(self) -> dict:
        return {
            "running": self.state.running,
            "message": self.state.message,
            "frames_processed": self.state.frames_processed,
            "frames_unavailable": self.state.frames_unavailable,
            "frames_coalesced": self.state.frames_coalesced,
            "tracked_bodies": self.state.tracked_bodies,
            "datagrams_sent": self.state.datagrams_sent,
            "send_failures": self.state.send_failures,
            "body_errors": self.state.body_errors,
            "frame_errors": self.state.frame_errors,
        }

    def _release(self) -> None:
        self.sink.close()
        if self.joint_logger is not None:
            self.joint_logger.close()

    def _publish_status(self) -> None:
        self.event_bus.publish(
            "status",
            SessionStatusEvent(
                running=self.state.running,
                tracked_bodies=self.state.tracked_bodies,
                datagrams_sent=self.state.datagrams_sent,
                message=self.state.message,
            ),
        )
