"""
Configuration Loader for ToeRank

Loads configuration from YAML file with environment variable interpolation.
Follows Fast Fail principle - crashes immediately if config is invalid.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

VALID_SCORING_METHODS = ('mcda', 'composite')


class Config(BaseModel):
    """
    Master configuration model for ToeRank

    Wraps the raw YAML dictionary and exposes dot-path access.
    Invalid config causes a crash at startup (Fast Fail).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="allow")

    _raw_config: Dict[str, Any] = {}

    def __init__(self, **data):
        super().__init__(**data)
        self._raw_config = data

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get nested config value using dot notation

        Example:
            config.get('ranking.capacity')  # Returns 100
            config.get('scoring.validation_fees')  # Returns [0.0001, 0.008, 0.015]

        Args:
            key_path: Dot-separated path to config key
            default: Default value if key not found

        Returns:
            Config value or default
        """
        value = self._raw_config

        for key in key_path.split('.'):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_required(self, key_path: str) -> Any:
        """
        Get required config value - raises error if missing

        Raises:
            ValueError: If key not found
        """
        value = self.get(key_path)
        if value is None:
            raise ValueError(f"Required config key not found: {key_path}")
        return value

    def as_dict(self) -> Dict[str, Any]:
        """Raw configuration dictionary (used by components taking plain dicts)"""
        return self._raw_config


def _interpolate_env_vars(config_str: str) -> str:
    """
    Replace ${VAR_NAME} placeholders with environment variables

    Supports:
    - ${VAR_NAME} - Required, crashes if missing
    - ${VAR_NAME:-} - Optional, empty string if missing
    - ${VAR_NAME:-default} - Optional, uses default if missing

    Raises:
        ValueError: If required env var is missing
    """
    pattern = re.compile(r'\$\{(\w+)(:-([^}]*))?\}')

    def replacer(match):
        var_name = match.group(1)
        has_default = match.group(2) is not None
        default_value = match.group(3) if match.group(3) else ""

        value = os.getenv(var_name)

        if value is None:
            if has_default:
                return default_value
            raise ValueError(
                f"Environment variable '{var_name}' is required but not set. "
                f"Check your .env file or environment."
            )

        return value

    return pattern.sub(replacer, config_str)


# Global config cache to avoid duplicate loads
_cached_config: Config | None = None


def load_config(config_path: str | Path = "config/config.yaml") -> Config:
    """
    Load ToeRank configuration from YAML file (cached)

    Process:
    1. Return cached config if available
    2. Load .env file (if exists)
    3. Read YAML config
    4. Interpolate environment variables (${VAR})
    5. Parse and validate YAML
    6. Cache and return Config object

    Args:
        config_path: Path to YAML config file

    Returns:
        Config object with loaded configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid or env vars missing
        yaml.YAMLError: If YAML parsing fails
    """
    global _cached_config

    if _cached_config is not None:
        return _cached_config

    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            f"Expected location: {config_path.absolute()}"
        )

    with open(config_path, 'r') as f:
        config_str = f.read()

    try:
        config_str = _interpolate_env_vars(config_str)
    except ValueError as e:
        raise ValueError(
            f"Failed to interpolate environment variables in {config_path}: {e}"
        ) from e

    try:
        config_dict = yaml.safe_load(config_str)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(
            f"Failed to parse YAML config {config_path}: {e}"
        ) from e

    if not isinstance(config_dict, dict):
        raise ValueError(
            f"Config file {config_path} must contain a YAML dictionary, "
            f"got {type(config_dict)}"
        )

    config = Config(**config_dict)
    _validate_config(config)

    _cached_config = config

    return config


def _validate_fee(name: str, fee: Any) -> None:
    if isinstance(fee, bool) or not isinstance(fee, (int, float)) or not 0 <= fee < 1:
        raise ValueError(f"{name} must be a fraction in [0, 1), got {fee!r}")


def _validate_positive(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"{name} must be a positive number, got {value!r}")


def _validate_config(config: Config) -> None:
    """
    Validate critical configuration settings

    Raises ValueError if any critical settings are invalid, so a broken
    config crashes before any backtest output is read.

    Raises:
        ValueError: If validation fails
    """
    method = config.get('scoring.method')
    if method not in VALID_SCORING_METHODS:
        raise ValueError(
            f"scoring.method must be one of {list(VALID_SCORING_METHODS)}, got '{method}'"
        )

    capacity = config.get('ranking.capacity')
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
        raise ValueError(f"ranking.capacity must be a positive integer, got {capacity!r}")

    runners = config.get('runner.parallel_runners')
    if isinstance(runners, bool) or not isinstance(runners, int) or runners < 1:
        raise ValueError(f"runner.parallel_runners must be >= 1, got {runners!r}")

    _validate_fee('scoring.filter_fee', config.get('scoring.filter_fee'))

    validation_fees = config.get('scoring.validation_fees')
    if not validation_fees or not isinstance(validation_fees, list):
        raise ValueError("scoring.validation_fees must be a non-empty list")
    for fee in validation_fees:
        _validate_fee('scoring.validation_fees', fee)

    for fee in config.get('scoring.fee_tiers', []) or []:
        _validate_fee('scoring.fee_tiers', fee)

    test_ratio = config.get('scoring.split.test_ratio', 0.8)
    if not isinstance(test_ratio, (int, float)) or not 0 < test_ratio <= 1:
        raise ValueError(f"scoring.split.test_ratio must be in (0, 1], got {test_ratio!r}")

    # MCDA divides by each perfect value
    for section in ('scoring.mcda.perfect', 'scoring.blend'):
        for key, value in (config.get(section) or {}).items():
            _validate_positive(f"{section}.{key}", value)
