import json
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from .errors import ConfigurationError


def load_config_file(config_file: Union[str, Path]) -> Dict[str, Any]:
    """Read a YAML or JSON configuration file into a dictionary."""
    config_path = Path(config_file)
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    if config_path.suffix.lower() in [".yaml", ".yml"]:
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f)
    elif config_path.suffix.lower() == ".json":
        with open(config_path, "r") as f:
            config_data = json.load(f)
    else:
        raise ConfigurationError(
            f"Unsupported config file format: {config_path.suffix}"
        )

    # An empty YAML file loads as None
    if config_data is None:
        return {}
    if not isinstance(config_data, dict):
        raise ConfigurationError(
            f"Configuration file {config_path} must contain a mapping at the top level"
        )
    return config_data
