"""
Configuration management for classical-lint.

Defaults come from the dataclasses below, are merged with an optional YAML
file and finally overridden by CLASSICAL_LINT_* environment variables.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from utils.exceptions import ConfigurationError

ENV_PREFIX = "CLASSICAL_LINT_"

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
VALID_REPORT_FORMATS = ['text', 'json']
VALID_SEVERITIES = ['info', 'warning', 'error']


@dataclass
class FilesystemConfig:
    audio_extensions: list = field(default_factory=lambda: [
        '.flac', '.mp3', '.m4a', '.wav', '.aiff', '.ogg', '.opus', '.ape', '.wv', '.dsf', '.dff'
    ])
    ignored_dirs: list = field(default_factory=lambda: [
        '@eadir', '.git'
    ])


@dataclass
class ReportConfig:
    format: str = "text"
    min_level: str = "info"


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


@dataclass
class RulesConfig:
    # Rule id -> weight used by the improvement score
    weights: dict = field(default_factory=dict)


@dataclass
class LintConfig:
    """Structured configuration with defaults."""

    filesystem: FilesystemConfig = field(default_factory=FilesystemConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    rules: RulesConfig = field(default_factory=RulesConfig)


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file with defaults and environment variable support.

    Args:
        config_path: Path to configuration file (optional)

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config_dict = _dataclass_to_dict(LintConfig())

    if config_path and config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {config_path}: {e}")

        if file_config:
            if not isinstance(file_config, dict):
                raise ConfigurationError(f"Config file {config_path} must contain a mapping")
            config_dict = _merge_configs(config_dict, file_config)

    config_dict = _apply_env_overrides(config_dict)

    _validate_config(config_dict)

    return config_dict


def _dataclass_to_dict(obj) -> Dict[str, Any]:
    """Convert dataclass to dictionary recursively."""
    if hasattr(obj, '__dataclass_fields__'):
        return {name: _dataclass_to_dict(getattr(obj, name)) for name in obj.__dataclass_fields__}
    elif isinstance(obj, dict):
        return {k: _dataclass_to_dict(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_dataclass_to_dict(item) for item in obj]
    else:
        return obj


def _merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge configuration dictionaries.

    Args:
        base: Base configuration dictionary
        override: Override configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Variables are prefixed with CLASSICAL_LINT_ and use double underscores
    for nesting.

    Examples:
        CLASSICAL_LINT_LOGGING__LEVEL=DEBUG
        CLASSICAL_LINT_REPORT__MIN_LEVEL=warning
        CLASSICAL_LINT_RULES__WEIGHTS='{"2.3.2": 0.25}'
    """
    for env_var, value in os.environ.items():
        if not env_var.startswith(ENV_PREFIX):
            continue

        key_path = env_var[len(ENV_PREFIX):].lower().split('__')
        _set_nested_value(config, key_path, _convert_env_value(value))

    return config


def _convert_env_value(value: str) -> Any:
    """Convert environment variable string to appropriate Python type."""
    if value.lower() in ('true', 'yes', 'on'):
        return True
    elif value.lower() in ('false', 'no', 'off'):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    if value.startswith(('[', '{')):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    return value


def _set_nested_value(config: Dict[str, Any], key_path: list, value: Any):
    """Set a value in a nested dictionary using a list of keys."""
    current = config

    for key in key_path[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]

    current[key_path[-1]] = value


def _validate_config(config: Dict[str, Any]):
    """
    Validate configuration values.

    Args:
        config: Configuration dictionary to validate

    Raises:
        ConfigurationError: If configuration is invalid
    """
    filesystem_config = config.get('filesystem', {})

    audio_extensions = filesystem_config.get('audio_extensions', [])
    if not isinstance(audio_extensions, list) or not audio_extensions:
        raise ConfigurationError("filesystem.audio_extensions must be a non-empty list")
    for extension in audio_extensions:
        if not isinstance(extension, str) or not extension.startswith('.'):
            raise ConfigurationError(f"filesystem.audio_extensions entries must start with '.': {extension!r}")

    ignored_dirs = filesystem_config.get('ignored_dirs', [])
    if not isinstance(ignored_dirs, list):
        raise ConfigurationError("filesystem.ignored_dirs must be a list")

    report_config = config.get('report', {})

    report_format = str(report_config.get('format', 'text')).lower()
    if report_format not in VALID_REPORT_FORMATS:
        raise ConfigurationError(f"report.format must be one of {VALID_REPORT_FORMATS}")

    min_level = str(report_config.get('min_level', 'info')).lower()
    if min_level not in VALID_SEVERITIES:
        raise ConfigurationError(f"report.min_level must be one of {VALID_SEVERITIES}")

    logging_config = config.get('logging', {})

    log_level = str(logging_config.get('level', 'WARNING'))
    if log_level.upper() not in VALID_LOG_LEVELS:
        raise ConfigurationError(f"logging.level must be one of {VALID_LOG_LEVELS}")

    weights = config.get('rules', {}).get('weights', {})
    if not isinstance(weights, dict):
        raise ConfigurationError("rules.weights must be a mapping of rule id to weight")
    for rule_id, weight in weights.items():
        if isinstance(weight, bool) or not isinstance(weight, (int, float)) or weight <= 0:
            raise ConfigurationError(f"rules.weights.{rule_id} must be a positive number")


def get_config_template() -> str:
    """
    Get a YAML template for the configuration file.

    Returns:
        YAML configuration template as string
    """
    return """# Configuration for classical-lint
filesystem:
  audio_extensions:
    - .flac
    - .mp3
    - .m4a
    - .wav
    - .aiff
    - .ogg
    - .opus
    - .ape
    - .wv
    - .dsf
    - .dff

  ignored_dirs:
    - "@eadir"
    - .git

report:
  format: text        # text or json
  min_level: info     # info, warning or error

logging:
  level: WARNING
  format: "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
  file: null          # optional path of a rotating log file

# Improvement-score weight overrides, keyed by rule id
rules:
  weights:
    "2.3.2": 0.5
    classical.catalog_comment: 0.1
"""
