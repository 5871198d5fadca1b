"""
Config Loader - Build Settings from a YAML file, the environment and overrides.

Precedence, highest first:

    overrides passed to load()  >  ACTWRIGHT__* env vars (and .env)  >  YAML file  >  defaults
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

from actwright.config.settings import Settings
from actwright.exceptions.base import ConfigurationError

PathLike = Union[str, Path]


class ConfigLoader:
    """
    Loads one Settings instance.

    Without an explicit path the first existing file of SEARCH_PATHS is
    used; with one, a missing file is a ConfigurationError.
    """

    SEARCH_PATHS: List[Path] = [
        Path("actwright.yaml"),
        Path("config.yaml"),
        Path("config.yml"),
        Path.home() / ".config" / "actwright" / "config.yaml",
    ]

    ENV_FILES: List[Path] = [Path(".env"), Path(".env.local")]

    def __init__(self, config_path: Optional[PathLike] = None):
        self.config_path = Path(config_path) if config_path else None

    def find_config_file(self) -> Optional[Path]:
        if self.config_path is not None:
            if not self.config_path.exists():
                raise ConfigurationError(
                    f"Config file not found: {self.config_path}",
                    {"path": str(self.config_path)},
                )
            return self.config_path
        return next((p for p in self.SEARCH_PATHS if p.exists()), None)

    @staticmethod
    def read_yaml(path: Path) -> Dict[str, Any]:
        """
        Parse a YAML config file; an empty file is an empty mapping.

        Raises:
            ConfigurationError: If the file is not YAML or not a mapping
        """
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}", {"path": str(path)})
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping", {"path": str(path)})
        return data

    def load(
        self,
        env_file: Optional[PathLike] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Settings:
        if env_file:
            load_dotenv(env_file)
        else:
            found = next((p for p in self.ENV_FILES if p.exists()), None)
            if found:
                load_dotenv(found)

        settings = Settings()
        config_file = self.find_config_file()
        if config_file:
            file_values = self.read_yaml(config_file)
            if file_values:
                # Constructor kwargs beat env vars in pydantic-settings, so
                # re-apply whatever the environment set on top of the file
                from_env = settings.model_dump(exclude_defaults=True)
                settings = Settings(**file_values).merge_with(from_env)

        if overrides:
            settings = settings.merge_with(overrides)
        return settings


def load_config(
    config_path: Optional[PathLike] = None,
    env_file: Optional[PathLike] = None,
    **overrides: Any,
) -> Settings:
    """
    Load settings in one call.

    Example:
        >>> settings = load_config()
        >>> settings = load_config(config_path="actwright.yaml")
        >>> settings = load_config(cache={"depth_bound": 5})
    """
    return ConfigLoader(config_path).load(env_file=env_file, overrides=overrides or None)
