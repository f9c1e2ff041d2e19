from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from bodyosc.core.events import EventBus
from bodyosc.core.joint_log import JointRecordLogger
from bodyosc.core.osc import OscBundleSink
from bodyosc.core.session import SessionManager
from bodyosc.models.config import ConfigurationError
from bodyosc.services.config_store import ConfigStore

logger = logging.getLogger(__name__)


@dataclass
class RuntimeContext:
    config_store: ConfigStore
    event_bus: EventBus
    sink: OscBundleSink
    session_manager: SessionManager
    joint_logger: Optional[JointRecordLogger] = None


def build_runtime(config_path: Path) -> RuntimeContext:
    config_store = ConfigStore(config_path)
    cfg = config_store.config
    event_bus = EventBus()
    sink = OscBundleSink(cfg.osc)
    joint_logger = None
    if cfg.logging.log_joints:
        try:
            joint_logger = JointRecordLogger(cfg.logging.joint_log_path or None)
        except OSError as exc:
            sink.close()
            raise ConfigurationError(f"cannot open joint log {cfg.logging.joint_log_path}: {exc}") from exc
    session_manager = SessionManager(cfg, sink, event_bus, joint_logger)
    logger.info(
        "sending %s to %s:%d",
        ", ".join(cfg.osc.joints),
        sink.addr[0],
        sink.addr[1],
    )
    return RuntimeContext(
        config_store=config_store,
        event_bus=event_bus,
        sink=sink,
        session_manager=session_manager,
        joint_logger=joint_logger,
    )
