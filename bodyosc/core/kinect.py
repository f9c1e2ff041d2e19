from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from bodyosc.core.constants import JointType

logger = logging.getLogger(__name__)


def body_frame_to_payload(body_frame, max_body_count: int) -> dict:
    bodies = []
    for slot_index in range(max_body_count):
        body = body_frame.bodies[slot_index]
        if not body.is_tracked:
            bodies.append({"tracked": False})
            continue
        kjoints = body.joints
        joints = {}
        for joint_type in JointType:
            kjoint = kjoints[int(joint_type)]
            joints[joint_type.name] = {
                "position": [kjoint.Position.x, kjoint.Position.y, kjoint.Position.z],
                "state": int(kjoint.TrackingState),
            }
        bodies.append(
            {
                "tracked": True,
                "joints": joints,
                "hand_left_state": int(body.hand_left_state),
                "hand_right_state": int(body.hand_right_state),
            }
        )
    return {"bodies": bodies}


class Kinect2Source:
    """Polls a Kinect v2 body stream and pushes each new frame to ``deliver``."""

    def __init__(self, deliver: Callable[[Optional[dict]], None], poll_interval_s: float = 0.005):
        self.deliver = deliver
        self.poll_interval_s = poll_interval_s
        # Windows-only binding; the payload mapper above works without it.
        from pykinect2 import PyKinectRuntime, PyKinectV2

        self._kinect = PyKinectRuntime.PyKinectRuntime(PyKinectV2.FrameSourceTypes_Body)

    def run(self, stop_evt: threading.Event) -> None:
        logger.info("kinect body stream opened (%d slots)", self._kinect.max_body_count)
        try:
            while not stop_evt.is_set():
                if not self._kinect.has_new_body_frame():
                    time.sleep(self.poll_interval_s)
                    continue
                body_frame = self._kinect.get_last_body_frame()
                if body_frame is None:
                    self.deliver(None)
                    continue
                self.deliver(body_frame_to_payload(body_frame, self._kinect.max_body_count))
        finally:
            self._kinect.close()
            logger.info("kinect body stream closed")
