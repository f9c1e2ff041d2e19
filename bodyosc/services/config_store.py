from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from bodyosc.models.config import AppConfig, ConfigurationError

logger = logging.getLogger(__name__)


class ConfigStore:
    def __init__(self, path: Path):
        self.path = path
        self.config = self._load_or_create()

    def _load_or_create(self) -> AppConfig:
        if self.path.exists():
            try:
                payload = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigurationError(f"cannot read {self.path}: {exc}") from exc
            try:
                return AppConfig.model_validate(payload)
            except ValidationError as exc:
                raise ConfigurationError(f"invalid config {self.path}: {exc}") from exc
        logger.info("config %s not found, writing defaults", self.path)
        cfg = AppConfig()
        self.save(cfg)
        return cfg

    def save(self, cfg: AppConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump(cfg.model_dump(), sort_keys=False),
            encoding="utf-8",
        )
        self.config = cfg
