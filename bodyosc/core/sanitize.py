from __future__ import annotations

import numpy as np

from bodyosc.core.constants import INFERRED_Z_POSITION_CLAMP
from bodyosc.core.skeleton import Body, as_position


def sanitize(position, z_floor: float = INFERRED_Z_POSITION_CLAMP) -> np.ndarray:
    # NaN compares false and passes through untouched.
    xyz = np.array(position, dtype=np.float32).reshape(3)
    if xyz[2] < 0:
        xyz[2] = max(xyz[2], np.float32(z_floor))
    return as_position(xyz)


def sanitize_body(body: Body, z_floor: float = INFERRED_Z_POSITION_CLAMP) -> Body:
    joints = {
        joint_type: joint.with_position(sanitize(joint.position, z_floor))
        for joint_type, joint in body.joints.items()
    }
    return Body(
        slot_index=body.slot_index,
        is_tracked=body.is_tracked,
        joints=joints,
        hand_left_state=body.hand_left_state,
        hand_right_state=body.hand_right_state,
    )
