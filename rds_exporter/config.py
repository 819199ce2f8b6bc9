#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
import threading
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

import yaml

from rds_exporter.exceptions import ConfigError, ScrapeSettingsFrozenError

DEFAULT_PERIOD = 60.0
DEFAULT_DELAY = 600.0
DEFAULT_RANGE = 600.0
DEFAULT_SCRAPE_TIMEOUT = 60.0
DEFAULT_MAX_WORKERS = 32


@dataclass(frozen=True)
class Instance:
    region: str
    instance: str
    # name -> value; an empty value removes the label from the base set
    labels: Mapping[str, str] = field(default_factory=dict)
    disable_basic_metrics: bool = False
    disable_enhanced_metrics: bool = False
    aws_access_key: Optional[str] = None
    aws_secret_key: Optional[str] = None
    aws_role_arn: Optional[str] = None


@dataclass
class Config:
    instances: List[Instance]


def _parse_instance(index: int, raw: Any) -> Instance:
    if not isinstance(raw, dict):
        raise ConfigError(f"instances[{index}] must be a mapping, got {type(raw).__name__}")
    for key in ("region", "instance"):
        if not isinstance(raw.get(key), str) or not raw[key]:
            raise ConfigError(f"instances[{index}] is missing a {key!r} string")

    labels = raw.get("labels") or {}
    if not isinstance(labels, dict):
        raise ConfigError(f"instances[{index}].labels must be a mapping")
    # YAML turns `env:` into None, treat it like an explicit empty value
    labels = {str(k): "" if v is None else str(v) for k, v in labels.items()}

    return Instance(
        region=raw["region"],
        instance=raw["instance"],
        labels=labels,
        disable_basic_metrics=bool(raw.get("disable_basic_metrics", False)),
        disable_enhanced_metrics=bool(raw.get("disable_enhanced_metrics", False)),
        aws_access_key=raw.get("aws_access_key") or None,
        aws_secret_key=raw.get("aws_secret_key") or None,
        aws_role_arn=raw.get("aws_role_arn") or None,
    )


def parse_config(content: str) -> Config:
    try:
        raw = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}") from e

    if not isinstance(raw, dict) or not isinstance(raw.get("instances"), list):
        raise ConfigError("Config must contain an 'instances' list")

    return Config(instances=[_parse_instance(i, item) for i, item in enumerate(raw["instances"])])


def load_config(path: str) -> Config:
    try:
        with open(path) as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(f"Could not read config file {path!r}: {e}") from e
    return parse_config(content)


@dataclass(frozen=True)
class ScrapeSettings:
    """
    Process-wide tunables of the CloudWatch query window, in seconds.
    The window is [now - delay - range, now - delay] with one datapoint per period.
    """

    period: float = DEFAULT_PERIOD
    delay: float = DEFAULT_DELAY
    range: float = DEFAULT_RANGE
    scrape_timeout: float = DEFAULT_SCRAPE_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS

    def __post_init__(self) -> None:
        for name in ("period", "delay", "range", "scrape_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)!r}")
        if self.max_workers <= 0:
            raise ConfigError(f"max_workers must be positive, got {self.max_workers!r}")


_settings_lock = threading.Lock()
_settings: Optional[ScrapeSettings] = None
_settings_frozen = False


def init_scrape_settings(**kwargs: Any) -> ScrapeSettings:
    global _settings
    with _settings_lock:
        if _settings_frozen:
            raise ScrapeSettingsFrozenError("Scrape settings can't be changed after the first scrape")
        _settings = ScrapeSettings(**kwargs)
        return _settings


def get_scrape_settings() -> ScrapeSettings:
    """
    Returns the settings and freezes them - called by the scraper on every cycle.
    """
    global _settings, _settings_frozen
    with _settings_lock:
        if _settings is None:
            _settings = ScrapeSettings()
        _settings_frozen = True
        return _settings


def reset_scrape_settings() -> None:
    # tests only
    global _settings, _settings_frozen
    with _settings_lock:
        _settings = None
        _settings_frozen = False

