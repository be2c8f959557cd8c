"""Configuration loading for project generation.

Resolution order (later wins):
    config/harmony.yaml → environment (.env via python-dotenv) → explicit overrides

The resulting GenerationConfig is immutable and passed explicitly to every
pipeline stage.
"""

import logging
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..constants import (
    DEFAULT_MIRROR_URL,
    DESCRIPTOR_PATTERN,
    META_SUFFIX,
    MIRROR_TOKEN_NAME,
    MIRROR_TOKEN_VERSION,
    PACKAGE_CACHE_FOLDER,
    PROJECT_EXTENSION,
)
from ..errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "harmony.yaml"

# Environment variable → config field
_ENV_OVERRIDES = {
    "HARMONY_PROJECT_ROOT": "project_root",
    "HARMONY_EDITOR_ROOT": "editor_root",
    "HARMONY_REFERENCE_MODE": "reference_mode",
    "HARMONY_MIRROR_URL": "mirror_url_template",
    "HARMONY_TEMPLATE_PATH": "template_path",
}


class ReferenceMode(str, Enum):
    """How references between generated projects are written."""
    PROJECT = "project"   # ProjectReference to the sibling project file
    PACKAGE = "package"   # PackageReference + local .nupkg source


class GenerationConfig(BaseModel):
    """Immutable settings threaded through every pipeline stage."""

    model_config = ConfigDict(frozen=True)

    project_root: Path
    editor_root: Path
    reference_mode: ReferenceMode = ReferenceMode.PROJECT
    mirror_url_template: str = DEFAULT_MIRROR_URL
    template_path: Path = Path("templates/DefaultProject.csproj.default")
    engine_assemblies_dir: Path = Path("PrecompiledAssemblies")
    precompiled_search_root: Optional[Path] = None
    user_assembly_roots: List[Path] = Field(default_factory=list)
    descriptor_pattern: str = DESCRIPTOR_PATTERN
    meta_suffix: str = META_SUFFIX
    project_extension: str = PROJECT_EXTENSION
    max_workers: int = Field(4, ge=1)
    download_timeout: float = Field(60.0, gt=0)

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        # Defaults derived from project_root; relative user roots anchor to it
        if not isinstance(data, dict) or data.get("project_root") is None:
            return data
        data = dict(data)
        root = Path(os.path.abspath(os.path.expanduser(str(data["project_root"]))))
        if data.get("precompiled_search_root") is None:
            data["precompiled_search_root"] = root
        roots = data.get("user_assembly_roots") or [root / "Assets"]
        if isinstance(roots, (list, tuple)):
            data["user_assembly_roots"] = [
                root / r if isinstance(r, (str, os.PathLike)) else r for r in roots
            ]
        return data

    @field_validator(
        "project_root", "editor_root", "template_path", "engine_assemblies_dir",
        "precompiled_search_root",
    )
    @classmethod
    def _absolute(cls, value: Optional[Path]) -> Optional[Path]:
        if value is None:
            return None
        return Path(os.path.abspath(os.path.expanduser(str(value))))

    @property
    def package_cache_location(self) -> Path:
        return self.project_root / PACKAGE_CACHE_FOLDER

    def mirror_url(self, package_name: str, version: str) -> str:
        return (
            self.mirror_url_template
            .replace(MIRROR_TOKEN_NAME, package_name)
            .replace(MIRROR_TOKEN_VERSION, version)
        )


def get_config_path() -> Path:
    """Return the directory holding harmony.yaml.

    HARMONY_CONFIG_DIR wins; otherwise ./config relative to the working directory.
    """
    env_dir = os.getenv("HARMONY_CONFIG_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.cwd() / "config"


@lru_cache(maxsize=8)
def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top-level YAML value must be a mapping")
    return data


def load_unified_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the raw `generation` section from the YAML config file.

    A missing default file yields an empty mapping; a missing explicit
    path is an error.
    """
    explicit = path is not None
    config_file = Path(path) if explicit else get_config_path() / CONFIG_FILE_NAME

    if not config_file.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_file}")
        logger.debug(f"No config file at {config_file}, using defaults")
        return {}

    try:
        data = _read_yaml(str(config_file.resolve()))
    except yaml.YAMLError as e:
        raise ConfigError(f"{config_file}: invalid YAML: {e}") from e

    return dict(data.get("generation", data) or {})


def reload_configs() -> None:
    """Drop cached YAML so the next load re-reads from disk."""
    _read_yaml.cache_clear()


def load_config(path: Optional[Path] = None, **overrides: Any) -> GenerationConfig:
    """Build a GenerationConfig from file, environment and overrides.

    Args:
        path: Explicit YAML file. Defaults to config/harmony.yaml.
        **overrides: Field values that win over file and environment.
            None values are ignored so CLI flags can be passed through.

    Raises:
        ConfigError: Missing required roots, invalid values, or an
            unreadable project root.
    """
    load_dotenv()

    values: Dict[str, Any] = load_unified_config(path)

    for env_name, field_name in _ENV_OVERRIDES.items():
        env_value = os.getenv(env_name)
        if env_value:
            values[field_name] = env_value

    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        config = GenerationConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid generation config: {e}") from e

    if not config.project_root.is_dir():
        raise ConfigError(f"Project root does not exist or is not a directory: {config.project_root}")

    logger.debug(
        f"Loaded config: project_root={config.project_root} "
        f"editor_root={config.editor_root} mode={config.reference_mode.value}"
    )
    return config
