from __future__ import annotations

from enum import IntEnum


class JointType(IntEnum):
    SpineBase = 0
    SpineMid = 1
    Neck = 2
    Head = 3
    ShoulderLeft = 4
    ElbowLeft = 5
    WristLeft = 6
    HandLeft = 7
    ShoulderRight = 8
    ElbowRight = 9
    WristRight = 10
    HandRight = 11
    HipLeft = 12
    KneeLeft = 13
    AnkleLeft = 14
    FootLeft = 15
    HipRight = 16
    KneeRight = 17
    AnkleRight = 18
    FootRight = 19
    SpineShoulder = 20
    HandTipLeft = 21
    ThumbLeft = 22
    HandTipRight = 23
    ThumbRight = 24


class TrackingState(IntEnum):
    NotTracked = 0
    Inferred = 1
    Tracked = 2


class HandState(IntEnum):
    Unknown = 0
    NotTracked = 1
    Open = 2
    Closed = 3
    Lasso = 4


BODY_SLOT_COUNT = 6

# Inferred joints occasionally report a negative depth.
INFERRED_Z_POSITION_CLAMP = 0.1

# Always transmitted, in this order. Listeners match these addresses verbatim.
REQUIRED_OSC_JOINTS = [
    JointType.HandRight,
    JointType.HandLeft,
    JointType.AnkleRight,
    JointType.AnkleLeft,
]

JOINT_LOG_ORDER = sorted(JointType, key=lambda joint: joint.name)


def _parse_member(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls[value]
        except KeyError as exc:
            raise ValueError(f"unknown {label}: {value!r}") from exc
    try:
        return enum_cls(int(value))
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError(f"unknown {label}: {value!r}") from exc


def parse_joint_type(value) -> JointType:
    return _parse_member(JointType, value, "joint")


def parse_tracking_state(value) -> TrackingState:
    return _parse_member(TrackingState, value, "tracking state")


def parse_hand_state(value) -> HandState:
    return _parse_member(HandState, value, "hand state")
