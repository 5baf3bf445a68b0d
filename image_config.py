"""
Settings loader for the DALL-E image session.

Reads OPENAI_ENDPOINT, OPENAI_API_KEY and MODEL_DEPLOYMENT from
appsettings.json or a .env file, falling back to environment variables
for anything the file leaves out.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from dotenv import dotenv_values


LOGGER = logging.getLogger(__name__)

REQUIRED_KEYS = ("OPENAI_ENDPOINT", "OPENAI_API_KEY", "MODEL_DEPLOYMENT")
SETTINGS_FILES = ("appsettings.json", ".env")
DEFAULT_API_VERSION = "2024-02-01"
DEFAULT_DOWNLOAD_TIMEOUT = 60.0


class ConfigurationError(Exception):
    """Required settings are missing or the settings file is unreadable"""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = list(missing or [])


@dataclass(frozen=True)
class Settings:
    endpoint: str
    api_key: str
    model_deployment: str
    api_version: str = DEFAULT_API_VERSION
    download_timeout: float = DEFAULT_DOWNLOAD_TIMEOUT


def _read_file(path: Path) -> Dict[str, Optional[str]]:
    """
    Read a settings file into a flat key/value mapping.

    JSON files must hold a single object; anything else is parsed as a
    dotenv file.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    try:
        if path.suffix.lower() == ".json":
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ConfigurationError(f"{path.name} must contain a JSON object")
            return {
                key: None if value is None else str(value)
                for key, value in data.items()
            }
        return dict(dotenv_values(path))
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e
    except ValueError as e:
        raise ConfigurationError(f"Invalid settings file {path}: {e}") from e


def _find_settings_file(base_dir: Path) -> Optional[Path]:
    for name in SETTINGS_FILES:
        candidate = base_dir / name
        if candidate.is_file():
            return candidate
    return None


def _parse_timeout(raw: Optional[str]) -> float:
    if not raw:
        return DEFAULT_DOWNLOAD_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"DOWNLOAD_TIMEOUT must be a number, got {raw!r}") from e
    if timeout <= 0:
        raise ConfigurationError("DOWNLOAD_TIMEOUT must be positive")
    return timeout


def load_settings(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Load and validate session settings.

    Args:
        path: Settings file to read. When omitted, the first existing of
            appsettings.json and .env in the working directory is used.
        environ: Fallback mapping for keys the file leaves empty
            (defaults to os.environ)

    Returns:
        Validated Settings

    Raises:
        ConfigurationError: If any required key is missing or empty, or
            the settings file cannot be parsed
    """
    if environ is None:
        environ = os.environ

    settings_path = Path(path) if path is not None else _find_settings_file(Path.cwd())
    file_values: Dict[str, Optional[str]] = {}
    if settings_path is not None:
        LOGGER.debug("Reading settings from %s", settings_path)
        file_values = _read_file(settings_path)

    def lookup(key: str) -> str:
        value = (file_values.get(key) or "").strip()
        if not value:
            value = (environ.get(key) or "").strip()
        return value

    values = {key: lookup(key) for key in REQUIRED_KEYS}
    missing = [key for key in REQUIRED_KEYS if not values[key]]
    if missing:
        raise ConfigurationError(
            f"Missing required settings: {', '.join(missing)}",
            missing=missing,
        )

    return Settings(
        endpoint=values["OPENAI_ENDPOINT"],
        api_key=values["OPENAI_API_KEY"],
        model_deployment=values["MODEL_DEPLOYMENT"],
        api_version=lookup("OPENAI_API_VERSION") or DEFAULT_API_VERSION,
        download_timeout=_parse_timeout(lookup("DOWNLOAD_TIMEOUT")),
    )
