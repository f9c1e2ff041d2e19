from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from bodyosc.core.constants import JOINT_LOG_ORDER
from bodyosc.core.osc import format_float
from bodyosc.core.skeleton import Body

JOINT_LOGGER_NAME = "bodyosc.joints"


def format_joint_record(body: Body) -> str:
    """x y z triples for every joint, alphabetical by joint name."""
    values = []
    for joint_type in JOINT_LOG_ORDER:
        values.extend(format_float(v) for v in body.joints[joint_type].position)
    return " ".join(values)


class JointRecordLogger:
    def __init__(self, path: Optional[str] = None, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(JOINT_LOGGER_NAME)
        self._handler: Optional[logging.Handler] = None
        self._prev_level = self.logger.level
        self._prev_propagate = self.logger.propagate
        if path:
            log_path = Path(path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            self._handler = logging.FileHandler(log_path, encoding="utf-8")
            self._handler.setFormatter(logging.Formatter("%(asctime)s %(message)s"))
            self.logger.addHandler(self._handler)
            self.logger.propagate = False
            if self.logger.level == logging.NOTSET or self.logger.level > logging.INFO:
                self.logger.setLevel(logging.INFO)

    def log_body(self, body: Body) -> None:
        if not self.logger.isEnabledFor(logging.INFO):
            return
        self.logger.info("slot=%d %s", body.slot_index, format_joint_record(body))

    def close(self) -> None:
        if self._handler is None:
            return
        self.logger.removeHandler(self._handler)
        self.logger.propagate = self._prev_propagate
        self.logger.setLevel(self._prev_level)
        self._handler.close()
        self._handler = None
