from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Dict, List

from bodyosc.core.constants import (
    BODY_SLOT_COUNT,
    HandState,
    JointType,
    TrackingState,
    parse_hand_state,
    parse_joint_type,
    parse_tracking_state,
)
from bodyosc.core.skeleton import Body, Frame, FrameUnavailable, Joint, as_position

logger = logging.getLogger(__name__)


class BodySlots:
    """Fixed arena of body lanes refreshed in place every frame."""

    def __init__(self, slot_count: int = BODY_SLOT_COUNT):
        if not 1 <= slot_count <= BODY_SLOT_COUNT:
            raise ValueError(f"slot_count must be within 1..{BODY_SLOT_COUNT}")
        self._slots: List[Body] = [Body.empty(idx) for idx in range(slot_count)]

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, slot_index: int) -> Body:
        return self._slots[slot_index]

    def refresh(self, slot_index: int, body: Body) -> None:
        if body.slot_index != slot_index:
            raise ValueError(f"body for slot {body.slot_index} stored in slot {slot_index}")
        self._slots[slot_index] = body

    def snapshot(self) -> tuple[Body, ...]:
        return tuple(self._slots)


class FrameExtractor:
    def __init__(self, slot_count: int = BODY_SLOT_COUNT):
        self.slots = BodySlots(slot_count)

    def extract(self, raw) -> Frame:
        if raw is None:
            raise FrameUnavailable("no body frame ready")
        if not isinstance(raw, Mapping):
            logger.debug("skipping frame payload of type %s", type(raw).__name__)
            raise FrameUnavailable("frame payload is not a mapping")
        entries = raw.get("bodies", ())
        if isinstance(entries, (str, bytes)) or not isinstance(entries, Sequence):
            logger.debug("skipping frame with malformed bodies field")
            raise FrameUnavailable("frame bodies is not a sequence")

        for slot_index in range(len(self.slots)):
            entry = entries[slot_index] if slot_index < len(entries) else None
            self.slots.refresh(slot_index, self._extract_body(slot_index, entry))
        return Frame(bodies=self.slots.snapshot(), slot_count=len(self.slots))

    def _extract_body(self, slot_index: int, entry) -> Body:
        if not isinstance(entry, Mapping):
            return Body.empty(slot_index)
        raw_joints = entry.get("joints")
        if not isinstance(raw_joints, Mapping):
            raw_joints = {}
        joints: Dict[JointType, Joint] = {
            jt: Joint(jt, as_position((0.0, 0.0, 0.0))) for jt in JointType
        }
        for key, payload in raw_joints.items():
            try:
                joint_type = parse_joint_type(key)
            except (TypeError, ValueError):
                logger.debug("slot %d: ignoring unknown joint %r", slot_index, key)
                continue
            joints[joint_type] = self._extract_joint(joint_type, payload)
        return Body(
            slot_index=slot_index,
            is_tracked=bool(entry.get("tracked", False)),
            joints=joints,
            hand_left_state=self._hand_state(entry.get("hand_left_state")),
            hand_right_state=self._hand_state(entry.get("hand_right_state")),
        )

    @staticmethod
    def _extract_joint(joint_type: JointType, payload) -> Joint:
        if not isinstance(payload, Mapping):
            return Joint(joint_type, as_position((0.0, 0.0, 0.0)))
        try:
            position = as_position(payload.get("position", (0.0, 0.0, 0.0)))
        except (TypeError, ValueError):
            return Joint(joint_type, as_position((0.0, 0.0, 0.0)))
        try:
            state = parse_tracking_state(payload.get("state", TrackingState.NotTracked))
        except (TypeError, ValueError):
            state = TrackingState.NotTracked
        return Joint(joint_type, position, state)

    @staticmethod
    def _hand_state(value) -> HandState:
        if value is None:
            return HandState.Unknown
        try:
            return parse_hand_state(value)
        except (TypeError, ValueError):
            return HandState.Unknown
