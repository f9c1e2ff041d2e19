from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Tuple

import numpy as np

from bodyosc.core.constants import HandState, JointType, TrackingState


class FrameUnavailable(Exception):
    """The sensor had no body data ready for this cycle."""


def as_position(xyz) -> np.ndarray:
    position = np.array(xyz, dtype=np.float32).reshape(3)
    position.flags.writeable = False
    return position


@dataclass(frozen=True)
class Joint:
    type: JointType
    position: np.ndarray
    tracking_state: TrackingState = TrackingState.NotTracked

    def with_position(self, xyz) -> "Joint":
        return replace(self, position=as_position(xyz))


@dataclass(frozen=True)
class Body:
    slot_index: int
    is_tracked: bool
    joints: Mapping[JointType, Joint]
    hand_left_state: HandState = HandState.Unknown
    hand_right_state: HandState = HandState.Unknown

    def __post_init__(self) -> None:
        missing = set(JointType) - set(self.joints)
        if missing:
            names = ", ".join(sorted(j.name for j in missing))
            raise ValueError(f"body {self.slot_index} is missing joints: {names}")
        if not isinstance(self.joints, MappingProxyType):
            object.__setattr__(self, "joints", MappingProxyType(dict(self.joints)))

    @classmethod
    def empty(cls, slot_index: int) -> "Body":
        return cls(
            slot_index=slot_index,
            is_tracked=False,
            joints={jt: Joint(jt, as_position((0.0, 0.0, 0.0))) for jt in JointType},
        )


@dataclass(frozen=True)
class Frame:
    bodies: Tuple[Body, ...]
    slot_count: int

    def tracked_bodies(self) -> list[Body]:
        return [body for body in self.bodies if body.is_tracked]


@dataclass(frozen=True)
class BodySnapshot:
    """Sanitized camera-space joints of one tracked body, for renderers."""

    slot_index: int
    points: Mapping[JointType, np.ndarray] = field(default_factory=dict)
    tracking_states: Mapping[JointType, TrackingState] = field(default_factory=dict)
    hand_left_state: HandState = HandState.Unknown
    hand_right_state: HandState = HandState.Unknown

    @classmethod
    def from_body(cls, body: Body) -> "BodySnapshot":
        return cls(
            slot_index=body.slot_index,
            points=MappingProxyType({jt: j.position for jt, j in body.joints.items()}),
            tracking_states=MappingProxyType(
                {jt: j.tracking_state for jt, j in body.joints.items()}
            ),
            hand_left_state=body.hand_left_state,
            hand_right_state=body.hand_right_state,
        )
