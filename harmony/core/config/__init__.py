"""Generation configuration: YAML file, environment and CLI overrides."""

from .config_loader import (
    GenerationConfig,
    ReferenceMode,
    get_config_path,
    load_config,
    load_unified_config,
    reload_configs,
)

__all__ = [
    "GenerationConfig",
    "ReferenceMode",
    "get_config_path",
    "load_config",
    "load_unified_config",
    "reload_configs",
]
