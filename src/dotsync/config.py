"""
Loading of the dotsync YAML configuration file.

Example `dotsync.yaml`:

    GITHUB_TOKEN: ghp_...
    LOG_LEVEL: INFO
    SKIP: [minikube]
    pip:
      install: [black, httpie]
      uninstall: [pylint]
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import platformdirs
import yaml

from dotsync.constants import APP_NAME, CONFIG_FILE_NAME
from dotsync.exceptions import ConfigFileError
from dotsync.log_utils import logger


def get_config_file(directory: Optional[Union[str, Path]] = None) -> Path:
    """
    Path of the configuration file, in the platformdirs user config directory unless `directory` is given.
    """
    base = Path(directory) if directory else Path(platformdirs.user_config_dir(APP_NAME))
    return base / CONFIG_FILE_NAME


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load the configuration YAML.

    Parameters:
        path: Explicit config file; defaults to get_config_file().

    Returns:
        Dict[str, Any]: The parsed mapping, or an empty dict when the file does not exist.

    Raises:
        ConfigFileError: If the file cannot be read, is not valid YAML, or is not a mapping.
    """
    config_path = Path(path) if path else get_config_file()
    if not config_path.exists():
        logger.debug(f"No configuration file at {config_path}; using defaults")
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigFileError(f"Could not read {config_path}", str(e)) from e
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Could not parse {config_path}", str(e)) from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigFileError(
            f"Invalid configuration in {config_path}",
            f"expected a mapping, got {type(config).__name__}",
        )
    return config


def get_skip_list(config: Dict[str, Any]) -> List[str]:
    skip = config.get("SKIP") or []
    if isinstance(skip, str):
        skip = [skip]
    return [str(s).strip() for s in skip if str(s).strip()]


def get_bin_dir(config: Dict[str, Any]) -> Optional[Path]:
    bin_dir = config.get("BIN_DIR")
    if not bin_dir:
        return None
    return Path(os.path.expanduser(str(bin_dir)))
