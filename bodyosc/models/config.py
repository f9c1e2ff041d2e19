from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

from bodyosc.core.constants import (
    BODY_SLOT_COUNT,
    INFERRED_Z_POSITION_CLAMP,
    REQUIRED_OSC_JOINTS,
    JointType,
    parse_joint_type,
)


class ConfigurationError(Exception):
    """Startup configuration is unusable."""


class OscConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=9875, ge=1, le=65535)
    joints: list[str] = Field(default_factory=lambda: [j.name for j in REQUIRED_OSC_JOINTS])

    @field_validator("host")
    @classmethod
    def _validate_host(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("host must not be empty")
        return value

    @field_validator("joints")
    @classmethod
    def _validate_joints(cls, value: list[str]) -> list[str]:
        ordered = [j.name for j in REQUIRED_OSC_JOINTS]
        for name in value:
            joint_type = parse_joint_type(name)
            if joint_type.name not in ordered:
                ordered.append(joint_type.name)
        return ordered

    def joint_types(self) -> list[JointType]:
        return [JointType[name] for name in self.joints]


class RuntimeConfig(BaseModel):
    z_floor: float = Field(default=INFERRED_Z_POSITION_CLAMP, gt=0.0)
    body_slot_count: int = Field(default=BODY_SLOT_COUNT, ge=1, le=BODY_SLOT_COUNT)
    send_untracked_joints: bool = True


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_joints: bool = True
    joint_log_path: str = ""

    @field_validator("level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value}")
        return level


class AppConfig(BaseModel):
    osc: OscConfig = Field(default_factory=OscConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
