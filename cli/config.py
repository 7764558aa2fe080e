#!/usr/bin/env python3
"""
Configuration Management Module for the Mint Safety Filter

Handles hierarchical configuration loading, environment variable mapping,
validation, and conversion of settings into rule, RPC and connection objects.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from accounts.token import ExtensionType
from network.rpc import RPCConfig


# Configuration file locations in order of precedence (highest to lowest)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / '.mintguard.yml',              # Project-specific YAML
    Path.cwd() / '.mintguard.json',             # Project-specific JSON
    Path.home() / '.mintguard' / 'config.yml',  # User global YAML
    Path.home() / '.mintguard' / 'config.json', # User global JSON
    Path('/etc/mintguard/config.yml'),          # System-wide YAML
]

# Environment variable prefix; nested keys are separated by a double underscore,
# e.g. MINTGUARD_FILTERS__CHECK_FEES=false
ENV_PREFIX = 'MINTGUARD_'
ENV_NESTING_SEPARATOR = '__'

# Default configuration values
DEFAULT_CONFIG = {
    # Ledger node connection
    'network': {
        'rpc_endpoint': 'https://api.mainnet-beta.solana.com',
        'commitment': 'processed',
        'timeout': 30,
        'max_retries': 3,
        'keepalive_interval': 30.0,
        'reconnect_delay': 2.0
    },

    # Mint filters
    'filters': {
        'enabled': True,
        'fast_mode': False,
        'check_fees': True,
        'check_mint_renounced': True,
        'check_freezable': True,
        'min_basis_points': 0,
        'max_basis_points': 10000,
        'max_allowed_failures': 0,
        'concurrency': 50,
        'forbidden_extensions': [
            'MintCloseAuthority',
            'PausableConfig',
            'ConfidentialTransferMint',
            'NonTransferable',
            'TransferHook',
            'PermanentDelegate'
        ]
    },

    # CLI behavior
    'cli': {
        'output_format': 'table',
        'verbose': 0
    }
}

# Configuration profiles
PROFILES = {
    'production': {
        'network': {'commitment': 'confirmed'},
        'filters': {'fast_mode': False, 'max_allowed_failures': 0}
    },
    'fast': {
        'network': {'commitment': 'processed'},
        'filters': {'fast_mode': True}
    },
    'development': {
        'network': {'rpc_endpoint': 'https://api.devnet.solana.com'},
        'filters': {'max_allowed_failures': 5},
        'cli': {'verbose': 2}
    }
}


class ConfigurationManager:
    """Manages hierarchical configuration with environment variable support."""

    def __init__(self, config_file: Optional[str] = None, profile: Optional[str] = None,
                 environ: Optional[Dict[str, str]] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Explicit configuration file path
            profile: Configuration profile to load (production, fast, development)
            environ: Environment mapping to read (defaults to os.environ)
        """
        self.logger = logging.getLogger('mintguard-cli.config')
        self.config_file = config_file
        self.profile = profile
        self.environ = os.environ if environ is None else environ
        self._config_cache = None
        self._config_sources = []

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from all sources in hierarchical order.

        Returns:
            Merged configuration dictionary
        """
        if self._config_cache is not None:
            return self._config_cache

        configs = []
        self._config_sources = []

        # 1. Start with default configuration
        configs.append(copy.deepcopy(DEFAULT_CONFIG))
        self._config_sources.append("defaults")

        # 2. Apply profile if specified
        if self.profile:
            if self.profile not in PROFILES:
                self.logger.warning(f"Unknown configuration profile: {self.profile}")
            else:
                configs.append(PROFILES[self.profile])
                self._config_sources.append(f"profile:{self.profile}")
                self.logger.debug(f"Applied profile: {self.profile}")

        # 3. Load configuration files
        if self.config_file:
            config_data = self._load_config_file(Path(self.config_file))
            if config_data:
                configs.append(config_data)
                self._config_sources.append(f"file:{self.config_file}")
        else:
            for config_path in CONFIG_SEARCH_PATHS:
                if config_path.exists():
                    config_data = self._load_config_file(config_path)
                    if config_data:
                        configs.append(config_data)
                        self._config_sources.append(f"file:{config_path}")
                        self.logger.debug(f"Loaded config from {config_path}")
                        break  # Use first found config file

        # 4. Apply environment variables
        env_config = self._load_environment_variables()
        if env_config:
            configs.append(env_config)
            self._config_sources.append("environment")

        # Later sources override earlier ones
        self._config_cache = self._deep_merge(*configs)
        return self._config_cache

    def _load_config_file(self, path: Path) -> Optional[Dict[str, Any]]:
        """Load configuration from a YAML or JSON file."""
        try:
            with open(path, 'r') as f:
                if path.suffix in ['.yml', '.yaml']:
                    return yaml.safe_load(f)
                elif path.suffix == '.json':
                    return json.load(f)
                else:
                    self.logger.warning(f"Unknown config file format: {path}")
                    return None
        except (OSError, ValueError, yaml.YAMLError) as e:
            self.logger.error(f"Failed to load config from {path}: {e}")
            return None

    def _load_environment_variables(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config = {}

        for key, value in self.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            # MINTGUARD_FILTERS__CHECK_FEES -> {'filters': {'check_fees': value}}
            parts = key[len(ENV_PREFIX):].lower().split(ENV_NESTING_SEPARATOR)
            current = env_config

            for part in parts[:-1]:
                current = current.setdefault(part, {})
                if not isinstance(current, dict):
                    self.logger.warning(f"Ignoring environment variable {key}: conflicts with a scalar value")
                    break
            else:
                current[parts[-1]] = self._parse_env_value(value)

        return env_config

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool, list, dict]:
        """Parse environment variable value to appropriate type."""
        # Boolean values
        if value.lower() in ['true', 'yes']:
            return True
        elif value.lower() in ['false', 'no']:
            return False

        # JSON for numbers and complex types
        try:
            return json.loads(value)
        except ValueError:
            pass

        # Comma-separated lists
        if ',' in value:
            return [item.strip() for item in value.split(',') if item.strip()]

        # Default to string
        return value

    def _deep_merge(self, *dicts: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple dictionaries."""
        result = {}

        for dictionary in dicts:
            for key, value in dictionary.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = self._deep_merge(result[key], value)
                else:
                    result[key] = copy.deepcopy(value)

        return result

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        Args:
            key_path: Dot-separated path (e.g., 'filters.check_fees')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        current = self.load()

        for key in key_path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def validate(self) -> List[str]:
        """
        Validate current configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        config = self.load()
        errors = []

        network = config.get('network', {})
        if not network.get('rpc_endpoint'):
            errors.append("RPC endpoint is required")
        if network.get('commitment') not in ('processed', 'confirmed', 'finalized'):
            errors.append(f"Invalid commitment level: {network.get('commitment')}")
        if not _is_number(network.get('reconnect_delay')) or network['reconnect_delay'] < 0:
            errors.append("Reconnect delay must be a non-negative number")
        if not _is_number(network.get('keepalive_interval')) or network['keepalive_interval'] <= 0:
            errors.append("Keepalive interval must be a positive number")

        filters = config.get('filters', {})
        min_bps = filters.get('min_basis_points', 0)
        max_bps = filters.get('max_basis_points', 0)
        if not isinstance(min_bps, int) or not isinstance(max_bps, int):
            errors.append("Fee basis points must be integers")
        elif not 0 <= min_bps <= max_bps <= 10000:
            errors.append(
                f"Fee basis points must satisfy 0 <= min ({min_bps}) <= max ({max_bps}) <= 10000"
            )

        threshold = filters.get('max_allowed_failures', 0)
        if not isinstance(threshold, int) or threshold < 0:
            errors.append("Max allowed failures must be a non-negative integer")

        concurrency = filters.get('concurrency', 1)
        if not isinstance(concurrency, int) or concurrency < 1:
            errors.append("Concurrency must be a positive integer")

        for name in filters.get('forbidden_extensions') or []:
            try:
                ExtensionType.from_name(str(name))
            except ValueError:
                errors.append(f"Unknown extension type: {name}")

        return errors

    def get_sources(self) -> List[str]:
        """Get list of configuration sources that were loaded."""
        self.load()
        return self._config_sources

    def export_environment(self) -> Dict[str, str]:
        """
        Export configuration as environment variables.

        Returns:
            Dictionary of environment variable names and values
        """
        env_vars = {}

        def flatten(obj: Dict[str, Any], prefix: str = ''):
            for key, value in obj.items():
                env_key = f"{prefix}{ENV_NESTING_SEPARATOR}{key}".upper() if prefix else key.upper()

                if isinstance(value, dict):
                    flatten(value, env_key)
                elif isinstance(value, bool):
                    env_vars[f"{ENV_PREFIX}{env_key}"] = 'true' if value else 'false'
                elif isinstance(value, list):
                    env_vars[f"{ENV_PREFIX}{env_key}"] = ','.join(str(item) for item in value)
                else:
                    env_vars[f"{ENV_PREFIX}{env_key}"] = str(value)

        flatten(self.load())
        return env_vars

    def reset(self):
        """Reset configuration cache."""
        self._config_cache = None
        self._config_sources = []


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def build_rpc_config(config: Dict[str, Any]) -> RPCConfig:
    """Create an RPCConfig from the ``network`` section."""
    network = config.get('network', {})
    return RPCConfig(
        endpoint=network.get('rpc_endpoint', RPCConfig.endpoint),
        commitment=network.get('commitment', RPCConfig.commitment),
        timeout=network.get('timeout', RPCConfig.timeout),
        max_retries=network.get('max_retries', RPCConfig.max_retries)
    )


def build_connection_settings(config: Dict[str, Any]) -> Dict[str, float]:
    """Keyword arguments for ConnectionManager from the ``network`` section."""
    network = config.get('network', {})
    return {
        'keepalive_interval': float(network.get('keepalive_interval', 30.0)),
        'reconnect_delay': float(network.get('reconnect_delay', 2.0))
    }
