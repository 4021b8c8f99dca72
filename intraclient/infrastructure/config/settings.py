"""Provides functions for loading configuration and building the client config.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.intraclient/config.yaml). The layered values are turned
into an immutable `ClientConfig` once, when a client is constructed.
"""

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Dict, Tuple

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".intraclient"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "INTRA_"

# --- Client Configuration ---

@dataclass(frozen=True)
class ClientConfig:
    """Immutable client configuration, built once at construction.

    Attributes:
        redirect_uri: Default OAuth redirect URI for the authorization-code flow.
        base_url: Base URL relative endpoints are resolved against.
        token_url: OAuth token endpoint.
        oauth_url: OAuth authorization endpoint (browser redirect).
        token_info_url: Endpoint describing the current token.
        scopes: Scopes requested for client-credentials and authorize URLs.
        rate_limit_max_requests: Requests admitted per rate window.
        rate_limit_per_milliseconds: Length of the rate window.
        max_retry: Retries after the initial attempt for retryable statuses.
        log_line: Emit one log line per attempt.
        err_log_body: Include the response body in failure log lines.
        throw_on_error: Raise on terminal failure instead of returning None.
        http_timeout_seconds: Transport timeout per request.
        user_agent: User-Agent header sent with every request.
        retry_backoff_seconds: Delay before the first retry (0 relies on the rate gate alone).
        retry_backoff_factor: Multiplier applied to the delay after each retry.
        retry_non_idempotent: Also retry 500s for POST/PATCH requests.
        token_single_flight: Serialize token refresh so concurrent 401s coalesce.
    """
    redirect_uri: Optional[str] = None
    base_url: str = "https://api.intra.42.fr/v2/"
    token_url: str = "https://api.intra.42.fr/oauth/token"
    oauth_url: str = "https://api.intra.42.fr/oauth/authorize"
    token_info_url: str = "https://api.intra.42.fr/oauth/token/info"
    scopes: Tuple[str, ...] = ("public",)
    rate_limit_max_requests: int = 2
    rate_limit_per_milliseconds: int = 1200
    max_retry: int = 5
    log_line: bool = True
    err_log_body: bool = True
    throw_on_error: bool = True
    http_timeout_seconds: float = 30.0
    user_agent: str = "intraclient/0.3"
    retry_backoff_seconds: float = 0.0
    retry_backoff_factor: float = 2.0
    retry_non_idempotent: bool = False
    token_single_flight: bool = True

    def __post_init__(self):
        if isinstance(self.scopes, str):
            object.__setattr__(self, "scopes", tuple(self.scopes.split()))
        else:
            object.__setattr__(self, "scopes", tuple(self.scopes))
        if self.rate_limit_max_requests < 1:
            raise ValueError("rate_limit_max_requests must be at least 1")
        if self.rate_limit_per_milliseconds <= 0:
            raise ValueError("rate_limit_per_milliseconds must be positive")
        if self.max_retry < 0:
            raise ValueError("max_retry cannot be negative")

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.rate_limit_per_milliseconds / 1000.0

    def with_overrides(self, **changes: Any) -> "ClientConfig":
        """Returns a copy with the given fields replaced; unknown names raise TypeError."""
        return dataclasses.replace(self, **changes)

# --- Global Configuration Store (Simple Approach) ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}  # For testing purposes
_loaded = False

def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. ClientConfig defaults

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: ENV VARS take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no file found).")

    # 3. Environment Variables (Highest priority) are handled in get_config

    _loaded = True
    logger.debug("Configuration loading process completed.")

def reset_configuration() -> None:
    """Forgets loaded YAML values so the next load_configuration() re-reads them."""
    global _config, _loaded
    _config = {}
    _loaded = False

def _coerce_env_value(value: str) -> Any:
    if value.lower() == 'true':
        return True
    elif value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value

def _lookup_yaml(key: str) -> Any:
    """Looks up a key in the YAML config, following dots into nested mappings."""
    if key in _config:
        return _config[key]
    node: Any = _config
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node

def get_config(key: str, default: Any = None, coerce: bool = True) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (key upper-cased, dots replaced by underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key (e.g. 'intra.max_retry')
        default: Default value if the key is not found
        coerce: Convert environment strings to bool/int/float; pass False
            for opaque values such as credentials

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace('.', '_')
    if env_key in os.environ:
        raw = os.environ[env_key]
        return _coerce_env_value(raw) if coerce else raw

    value = _lookup_yaml(key)
    if value is not None:
        return value

    return default

def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    try:
        cwd = Path.cwd()
        for path in [cwd] + list(cwd.parents):
            env_path = path / ENV_FILE_NAME
            if env_path.is_file():
                return env_path
    except OSError as e:
        logger.warning(f"Error searching for .env file: {e}")
    return None

# --- Convenience Functions ---

def get_client_credentials() -> Tuple[Optional[str], Optional[str]]:
    """Returns (client_id, client_secret) from INTRA_CLIENT_ID / INTRA_CLIENT_SECRET."""
    client_id = get_config('intra.client_id', coerce=False)
    client_secret = get_config('intra.client_secret', coerce=False)
    return (
        str(client_id) if client_id is not None else None,
        str(client_secret) if client_secret is not None else None,
    )

def build_client_config(**overrides: Any) -> ClientConfig:
    """Builds a ClientConfig from the layered configuration sources.

    Every ClientConfig field can be set as `intra.<field>` in YAML or as
    `INTRA_<FIELD>` in the environment. Keyword overrides win over both.
    """
    values: Dict[str, Any] = {}
    for config_field in dataclasses.fields(ClientConfig):
        value = get_config(f'intra.{config_field.name}')
        if value is not None:
            values[config_field.name] = value
    values.update(overrides)
    logger.debug(f"Building client config with keys: {sorted(values)}")
    return ClientConfig(**values)

def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {sorted(config_dict)}")

def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
