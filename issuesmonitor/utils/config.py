"""Configuration file loading."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import yaml
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"


@dataclass
class MonitorConfig:
    """Connection and storage settings."""
    redmine_base_url: str = ""
    redmine_api_key: str = ""
    redmine_timeout: Optional[float] = None
    data_dir: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonitorConfig":
        redmine = data.get("redmine") or {}
        storage = data.get("storage") or {}
        timeout = redmine.get("timeout")
        return cls(
            redmine_base_url=redmine.get("base_url") or "",
            redmine_api_key=redmine.get("api_key") or "",
            redmine_timeout=float(timeout) if timeout is not None else None,
            data_dir=storage.get("data_dir"),
        )


class ConfigLoader:
    """Loads settings from a YAML file, falling back to defaults."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        self.config_path = Path(config_path)

    def load_base_config(self) -> Dict[str, Any]:
        """Load raw configuration from the YAML file."""
        try:
            with open(self.config_path, "r") as f:
                return yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning(f"Config file not found: {self.config_path}, using defaults")
            return {}
        except OSError as e:
            logger.error(f"Error reading config file {self.config_path}: {e}, using defaults")
            return {}
        except yaml.YAMLError as e:
            logger.error(f"Error parsing config file {self.config_path}: {e}")
            return {}

    def load(self) -> MonitorConfig:
        data = self.load_base_config()
        if not isinstance(data, dict):
            logger.error(f"Config file {self.config_path} must contain a mapping, using defaults")
            return MonitorConfig()
        return MonitorConfig.from_dict(data)
