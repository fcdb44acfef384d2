"""Configuration model for the label catalog enrichment core."""

import json
import os
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import jsonschema

from ..core.classifier import DEFAULT_GENRE_MAPPINGS
from ..exceptions import ConfigurationError
from ..infrastructure.external.catalog_client import DEFAULT_API_URL, DEFAULT_TOKEN_URL


@dataclass
class CredentialsConfig:
    """Client credentials for the catalog API."""
    client_id: str = ""
    client_secret: str = ""


@dataclass
class ApiConfig:
    """Catalog API endpoints and request defaults."""
    api_url: str = DEFAULT_API_URL
    token_url: str = DEFAULT_TOKEN_URL
    market: str = "US"
    timeout: float = 10.0
    search_limit: int = 10


@dataclass
class CacheConfig:
    """Configuration for the TTL cache."""
    ttl_seconds: float = 3600.0


@dataclass
class QueueConfig:
    """Configuration for the rate-limited request queue."""
    max_calls_per_window: int = 100
    window_seconds: float = 30.0
    inter_task_delay: float = 0.05
    max_retries: int = 3
    task_timeout: Optional[float] = None


@dataclass
class ReconcilerConfig:
    """Configuration for artist reconciliation."""
    fuzzy_dedupe_threshold: Optional[float] = None


@dataclass
class LabelsConfig:
    """Sub-label genre mappings used by the classifier."""
    genre_mappings: Dict[str, List[str]] = field(
        default_factory=lambda: {label: list(genres) for label, genres in DEFAULT_GENRE_MAPPINGS.items()}
    )


@dataclass
class Config:
    """Main configuration model."""
    credentials: CredentialsConfig = field(default_factory=CredentialsConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    reconciler: ReconcilerConfig = field(default_factory=ReconcilerConfig)
    labels: LabelsConfig = field(default_factory=LabelsConfig)

    @classmethod
    def default(cls) -> "Config":
        """Create a default configuration without credentials."""
        return cls()

    def validate(self) -> None:
        """Check the configuration is usable.

        Raises:
            ConfigurationError: On missing credentials or non-positive limits
        """
        if not self.credentials.client_id or not self.credentials.client_secret:
            raise ConfigurationError(
                "Catalog credentials missing: set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET"
            )
        if self.cache.ttl_seconds <= 0:
            raise ConfigurationError("cache.ttl_seconds must be positive")
        if self.queue.max_calls_per_window < 1:
            raise ConfigurationError("queue.max_calls_per_window must be at least 1")
        if self.queue.window_seconds <= 0:
            raise ConfigurationError("queue.window_seconds must be positive")
        if self.queue.inter_task_delay < 0:
            raise ConfigurationError("queue.inter_task_delay must not be negative")
        if self.queue.max_retries < 0:
            raise ConfigurationError("queue.max_retries must not be negative")
        if self.queue.task_timeout is not None and self.queue.task_timeout <= 0:
            raise ConfigurationError("queue.task_timeout must be positive")
        if self.api.timeout <= 0:
            raise ConfigurationError("api.timeout must be positive")
        if self.api.search_limit < 1:
            raise ConfigurationError("api.search_limit must be at least 1")
        threshold = self.reconciler.fuzzy_dedupe_threshold
        if threshold is not None and not 0 < threshold <= 1:
            raise ConfigurationError("reconciler.fuzzy_dedupe_threshold must be in (0, 1]")


_POSITIVE_NUMBER = {"type": "number", "exclusiveMinimum": 0}

CONFIG_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "credentials": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "client_id": {"type": "string"},
                "client_secret": {"type": "string"},
            },
        },
        "api": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "api_url": {"type": "string", "minLength": 1},
                "token_url": {"type": "string", "minLength": 1},
                "market": {"type": "string", "pattern": "^[A-Z]{2}$"},
                "timeout": _POSITIVE_NUMBER,
                "search_limit": {"type": "integer", "minimum": 1, "maximum": 50},
            },
        },
        "cache": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "ttl_seconds": _POSITIVE_NUMBER,
            },
        },
        "queue": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "max_calls_per_window": {"type": "integer", "minimum": 1},
                "window_seconds": _POSITIVE_NUMBER,
                "inter_task_delay": {"type": "number", "minimum": 0},
                "max_retries": {"type": "integer", "minimum": 0},
                "task_timeout": {"oneOf": [_POSITIVE_NUMBER, {"type": "null"}]},
            },
        },
        "reconciler": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "fuzzy_dedupe_threshold": {
                    "oneOf": [
                        {"type": "number", "exclusiveMinimum": 0, "maximum": 1},
                        {"type": "null"},
                    ]
                },
            },
        },
        "labels": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "genre_mappings": {
                    "type": "object",
                    "minProperties": 1,
                    "additionalProperties": {
                        "type": "array",
                        "items": {"type": "string", "minLength": 1},
                    },
                },
            },
        },
    },
}


def validate_config_json(config_data: Any) -> List[str]:
    """Validate a configuration object against ``CONFIG_SCHEMA``.

    Returns:
        List of validation error messages
    """
    validator = jsonschema.Draft7Validator(CONFIG_SCHEMA)
    errors = []
    for error in sorted(validator.iter_errors(config_data), key=lambda e: [str(p) for p in e.absolute_path]):
        path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        errors.append(f"Validation error at {path}: {error.message}")
    return errors


def _dataclass_to_dict(obj):
    """Convert dataclass to dict recursively."""
    if is_dataclass(obj):
        return {key: _dataclass_to_dict(value) for key, value in asdict(obj).items()}
    elif isinstance(obj, dict):
        return {key: _dataclass_to_dict(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_dataclass_to_dict(item) for item in obj]
    else:
        return obj


def _dict_to_dataclass(data, dataclass_type):
    """Convert dict to dataclass recursively."""
    if not is_dataclass(dataclass_type):
        return data

    kwargs = {}
    for f in fields(dataclass_type):
        if f.name in data:
            if is_dataclass(f.type):
                kwargs[f.name] = _dict_to_dataclass(data[f.name], f.type)
            else:
                kwargs[f.name] = data[f.name]

    return dataclass_type(**kwargs)


def load_config(config_path: Path) -> Config:
    """Load configuration from a JSON file.

    Credentials may be left out of the file and supplied through
    ``config_from_env``.

    Raises:
        ConfigurationError: If the file is unreadable, not JSON, or fails the schema
    """
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid JSON in {config_path}: {e.msg} at line {e.lineno}, column {e.colno}"
        )
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {config_path}: {e}")

    errors = validate_config_json(config_data)
    if errors:
        raise ConfigurationError(f"Invalid config file {config_path}: " + "; ".join(errors))

    return _dict_to_dataclass(config_data, Config)


def save_config(config: Config, config_path: Path) -> None:
    """Save configuration to JSON file."""
    config_dict = _dataclass_to_dict(config)

    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config_dict, f, indent=2)


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file with empty credentials."""
    save_config(Config.default(), config_path)


def _env_number(environ: Mapping[str, str], name: str, convert):
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return convert(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def config_from_env(
    environ: Optional[Mapping[str, str]] = None,
    base: Optional[Config] = None,
) -> Config:
    """Overlay environment variables onto ``base`` (or the defaults).

    Reads ``SPOTIFY_CLIENT_ID``, ``SPOTIFY_CLIENT_SECRET`` and the optional
    ``LABEL_CATALOG_CACHE_TTL``, ``LABEL_CATALOG_MAX_CALLS``,
    ``LABEL_CATALOG_WINDOW_SECONDS`` and ``LABEL_CATALOG_MARKET``.
    """
    environ = os.environ if environ is None else environ
    config = base if base is not None else Config.default()

    client_id = environ.get("SPOTIFY_CLIENT_ID")
    client_secret = environ.get("SPOTIFY_CLIENT_SECRET")
    if client_id:
        config.credentials.client_id = client_id
    if client_secret:
        config.credentials.client_secret = client_secret

    ttl = _env_number(environ, "LABEL_CATALOG_CACHE_TTL", float)
    if ttl is not None:
        config.cache.ttl_seconds = ttl

    max_calls = _env_number(environ, "LABEL_CATALOG_MAX_CALLS", int)
    if max_calls is not None:
        config.queue.max_calls_per_window = max_calls

    window = _env_number(environ, "LABEL_CATALOG_WINDOW_SECONDS", float)
    if window is not None:
        config.queue.window_seconds = window

    market = environ.get("LABEL_CATALOG_MARKET")
    if market:
        config.api.market = market.strip().upper()

    return config
