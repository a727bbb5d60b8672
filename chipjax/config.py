"""Machine configuration.

Defaults live in :class:`MachineConfig`; :func:`load_config` layers YAML
files, mappings and ``key=value`` overrides on top of them with OmegaConf.
"""

import os
from dataclasses import dataclass
from typing import Any, Mapping, Union

from omegaconf import OmegaConf, DictConfig
from omegaconf.errors import OmegaConfBaseException

from chipjax.constants import DEFAULT_INSTRUCTIONS_PER_SECOND, TIMER_HZ
from chipjax.errors import ConfigError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class MachineConfig:
    """Execution loop settings.

    Attributes:
        instructions_per_second: Target CHIP-8 instruction rate
        timer_hz: Delay/sound timer and frame rate
        seed: Seed for the CXNN random source
        max_backlog: Longest wall-clock gap (seconds) caught up in one iteration
        idle_sleep: Seconds ``Machine.run`` sleeps between iterations
        log_level: Console log level of the machine logger
    """
    instructions_per_second: int = DEFAULT_INSTRUCTIONS_PER_SECOND
    timer_hz: int = TIMER_HZ
    seed: int = 0
    max_backlog: float = 0.25
    idle_sleep: float = 1 / 240
    log_level: str = "WARNING"


ConfigSource = Union[MachineConfig, Mapping[str, Any], DictConfig, str, os.PathLike]


def validate_config(config: MachineConfig) -> MachineConfig:
    """Check value ranges that the schema types cannot express."""
    for name in ("instructions_per_second", "timer_hz", "max_backlog", "idle_sleep"):
        if getattr(config, name) <= 0:
            raise ConfigError(f"{name} must be positive, got {getattr(config, name)!r}")
    if config.log_level.upper() not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {LOG_LEVELS}, got {config.log_level!r}")
    return config


def _as_layer(source: ConfigSource) -> DictConfig:
    if isinstance(source, (MachineConfig, DictConfig)):
        return OmegaConf.structured(source) if isinstance(source, MachineConfig) else source
    if isinstance(source, Mapping):
        return OmegaConf.create(dict(source))
    if isinstance(source, str) and "=" in source:
        return OmegaConf.from_dotlist([source])
    if isinstance(source, (str, os.PathLike)):
        return OmegaConf.load(source)
    raise ConfigError(f"unsupported configuration source: {source!r}")


def load_config(*sources: ConfigSource) -> MachineConfig:
    """Merge configuration sources, later ones winning, into a MachineConfig.

    Example:
        >>> load_config("conf/machine.yaml", "instructions_per_second=1000")
    """
    schema = OmegaConf.structured(MachineConfig)
    try:
        merged = OmegaConf.merge(schema, *(_as_layer(source) for source in sources))
        config = OmegaConf.to_object(merged)
    except (OmegaConfBaseException, OSError) as e:
        raise ConfigError(str(e)) from e
    return validate_config(config)
