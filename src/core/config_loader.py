#!/usr/bin/env -S python3 -B -u
"""
Configuration loader for iptparse.

Provides centralized configuration loading for the command line tools.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List

from iptparse.core.exceptions import ConfigurationError


OUTPUT_FORMATS = ('text', 'json', 'summary')


def get_default_config() -> Dict[str, Any]:
    """Return the built-in configuration defaults."""
    return {
        'verbose_level': 0,
        'output_format': 'text',
        'encoding': 'utf-8',
        'json_indent': 2,
    }


def get_config_files() -> List[Path]:
    """
    Configuration file locations in order of precedence:
    1. Environment variable IPTPARSE_CONF (if set)
    2. ~/iptparse.yaml (user's home directory)
    3. ./iptparse.yaml (current directory)
    """
    config_files = []

    env_config = os.environ.get('IPTPARSE_CONF')
    if env_config:
        config_files.append(Path(env_config))

    config_files.extend([
        Path.home() / 'iptparse.yaml',
        Path('./iptparse.yaml')
    ])
    return config_files


def load_iptparse_config() -> Dict[str, Any]:
    """
    Load iptparse configuration with proper precedence.

    The first existing configuration file wins; unreadable files are
    skipped. A file that exists but holds invalid YAML, or a document
    that is not a mapping, is a configuration error.

    Returns:
        Dictionary containing configuration values
    """
    config = get_default_config()

    for config_file in get_config_files():
        if not config_file.exists():
            continue
        try:
            with open(config_file, 'r') as f:
                file_config = yaml.safe_load(f) or {}
        except OSError:
            # Continue to next file if current one cannot be read
            continue
        except yaml.YAMLError as e:
            raise ConfigurationError(
                "Invalid YAML in configuration file",
                config_file=str(config_file),
                cause=e
            ) from e

        if not isinstance(file_config, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping",
                config_file=str(config_file)
            )

        config.update(file_config)
        config['config_file'] = str(config_file)
        break

    validate_config(config)
    return config


def validate_config(config: Dict[str, Any]) -> None:
    """Check value types of the known configuration keys."""
    config_file = config.get('config_file')

    if config['output_format'] not in OUTPUT_FORMATS:
        raise ConfigurationError(
            f"Unknown output_format '{config['output_format']}', "
            f"expected one of: {', '.join(OUTPUT_FORMATS)}",
            config_file=config_file
        )
    for key in ('verbose_level', 'json_indent'):
        value = config[key]
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigurationError(
                f"{key} must be a non-negative integer, got {value!r}",
                config_file=config_file
            )
    if not isinstance(config['encoding'], str) or not config['encoding']:
        raise ConfigurationError("encoding must be a non-empty string", config_file=config_file)


def merge_config(config: Dict[str, Any], args) -> Dict[str, Any]:
    """
    Merge command line arguments over the loaded configuration.

    Only arguments the user actually supplied override the file values.
    """
    result = config.copy()

    if getattr(args, 'verbose', 0):
        result['verbose_level'] = args.verbose
    if getattr(args, 'json', False):
        result['output_format'] = 'json'
    elif getattr(args, 'summary', False):
        result['output_format'] = 'summary'
    if getattr(args, 'encoding', None):
        result['encoding'] = args.encoding

    return result
