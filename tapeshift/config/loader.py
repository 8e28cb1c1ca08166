import logging
from pathlib import Path
from typing import Optional
import yaml
from pydantic import ValidationError
from tapeshift.config.models import AppConfig
from tapeshift.domain.errors import InvalidConfig

DEFAULT_CONFIG_PATH = Path("~/.config/tapeshift/tapeshift.yaml")

logger = logging.getLogger(__name__)

def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from a YAML file.
    A missing file yields the built-in defaults; a broken one is a terminal error.
    """
    config_file = (config_path or DEFAULT_CONFIG_PATH).expanduser()

    if not config_file.exists():
        logger.debug(f"No config file at {config_file}, using defaults")
        return AppConfig()

    try:
        with open(config_file, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise InvalidConfig(f"Failed to read config file {config_file}: {e}")

    if not isinstance(data, dict):
        raise InvalidConfig(f"Config file {config_file} must contain a mapping at the top level.")

    try:
        return AppConfig(**data)
    except ValidationError as e:
        raise InvalidConfig(
            f"Invalid config file {config_file}",
            [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
        )
