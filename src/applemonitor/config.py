from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from applemonitor.alerts import DEFAULT_SOUND, BarkSound
from applemonitor.models import AppConfig
from applemonitor.schedule import cron_trigger

LOG = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.json"


class ConfigError(RuntimeError):
    pass


@dataclass(slots=True)
class RuntimeSettings:
    config_path: Path
    log_level: str = "INFO"
    dry_run: bool = False

    @classmethod
    def from_env(cls) -> "RuntimeSettings":
        return cls(
            config_path=Path(os.getenv("APPLE_MONITOR_CONFIG") or Path.cwd() / DEFAULT_CONFIG_PATH),
            log_level=(os.getenv("APPLE_MONITOR_LOG_LEVEL") or "INFO").upper(),
            dry_run=(os.getenv("APPLE_MONITOR_DRY_RUN") or "").strip().lower() in {"1", "true", "yes"},
        )


def load_config(config_path: str | Path) -> AppConfig:
    path = Path(config_path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc

    try:
        return AppConfig.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigError(f"invalid config file {path}: {exc}") from exc


def validate_config(config: AppConfig) -> bool:
    """Check required task fields and fill per-device defaults.

    Returns False (after logging why) when monitoring cannot start. Sends
    nothing over the network.
    """
    task = config.task

    if not task.device_list:
        LOG.error("deviceCodeList must not be empty, add a product code such as MQ0D3CH/A")
        return False
    if not task.location.strip():
        LOG.error("location must not be empty, use the store-locator format such as 'Guangdong Shenzhen Nanshan'")
        return False
    if not task.schedule.strip():
        LOG.error("cronExpressions must not be empty, for example '0 0 0/1 * * ?'")
        return False
    if not task.country.strip():
        LOG.error("country must not be empty, for example CN or JP")
        return False

    try:
        cron_trigger(task.schedule)
    except ValueError as exc:
        LOG.error("cronExpressions %r is not a valid cron expression: %s", task.schedule, exc)
        return False

    for device in task.device_list:
        if not device.device_code.strip():
            LOG.error("every device needs a deviceCode")
            return False

    for device in task.device_list:
        if device.store_allow_list is None:
            device.store_allow_list = []
            LOG.info("%s has no store allow-list, monitoring all nearby stores", device.device_code)
        for target in device.push_targets:
            if not target.sound:
                target.sound = DEFAULT_SOUND
            elif not BarkSound.is_known(target.sound):
                LOG.warning("%s uses unknown bark sound %r, sending it as-is", device.device_code, target.sound)

    LOG.info("configuration ok, monitoring Apple Stores near %s", task.location)
    return True
