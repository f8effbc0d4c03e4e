"""
Configuration for AVC Importer.

Settings are read from a JSON file with camelCase keys, completed with
defaults, optionally overridden by a partial document, ``--set``
expressions and environment variables, then resolved once into an
``Integration`` variant that the rest of the program receives explicitly.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from avcimporter.edi.acknowledgment import is_valid_interchange_id
from avcimporter.models import Integration, Ordering
from avcimporter.utils.errors import (
    ConfigurationError,
    InvalidConfigurationError,
    MissingConfigurationError,
)
from avcimporter.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path("configs/default.json")

# Environment variable -> dotted settings key
ENV_OVERRIDES = {
    "AVC_API_CLIENT_ID": "api.auth.clientId",
    "AVC_API_CLIENT_SECRET": "api.auth.clientSecret",
    "AVC_API_REFRESH_TOKEN": "api.auth.refreshToken",
    "AVC_EDI_PRIVATE_KEY_PATH": "edi.privateKeyPath",
    "AVC_EDI_SENDER_ID": "edi.senderId",
}

SECRET_KEYS = {"clientSecret", "refreshToken"}


class _Section(BaseModel):
    """Base for config sections: camelCase aliases, empty strings mean default."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_strings(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v != ""}
        return data


class AuthSettings(_Section):
    """Login-with-Amazon credentials."""

    client_id: str = ""
    client_secret: str = ""
    application_id: str = ""
    refresh_token: str = ""


class APISettings(_Section):
    """Vendor order feed endpoint settings."""

    active: bool = False
    auth: AuthSettings = Field(default_factory=AuthSettings)
    base_url: str = "https://sellingpartnerapi-na.amazon.com"
    token_url: str = "https://api.amazon.com/auth/o2/token"
    endpoint_url: str = "/vendor/orders/v1/purchaseOrders"
    order_id_field: str = "purchaseOrderNumber"
    ordering: Ordering = Ordering.LEXICAL
    page_limit: Optional[int] = Field(None, ge=1, le=100)
    timeout: float = Field(30.0, gt=0)


class EDISettings(_Section):
    """SFTP endpoint and EDI identity settings."""

    active: bool = False
    host: str = ""
    port: int = Field(22, ge=1, le=65535)
    download_username: str = ""
    upload_username: str = ""
    private_key_path: str = ""
    inbound_dir: str = "download"
    outbound_dir: str = "upload"
    sender_id: str = ""
    partner_id: str = "AMAZON"
    delete_inbound: bool = False
    keep_inbound: bool = True
    timeout: float = Field(10.0, gt=0)

    @field_validator("sender_id", "partner_id")
    @classmethod
    def _check_interchange_id(cls, value: str) -> str:
        if value and not is_valid_interchange_id(value):
            raise ValueError("must be printable ASCII without '~', '*' or '>'")
        return value


class StorageSettings(_Section):
    """Where and how fetched data is saved."""

    output_format: str = "json"
    save_path: Path = Path("output/")
    file_name: str = "data_dump"


class LoggingSettings(_Section):
    """Logging level and optional log file."""

    level: str = "INFO"
    file: Optional[Path] = None


class Settings(_Section):
    """Complete application configuration."""

    version: str = ""
    api: APISettings = Field(default_factory=APISettings)
    edi: EDISettings = Field(default_factory=EDISettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def checkpoint_dir(self) -> Path:
        """Directory holding the checkpoint file."""
        return self.storage.save_path


def _normalize_key(key: str) -> str:
    return to_camel(key) if "_" in key else key


def _deep_merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        key = _normalize_key(key)
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _validate(data: Mapping[str, Any], source: str) -> Settings:
    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise InvalidConfigurationError(
            f"Invalid configuration in {source}: {e.error_count()} error(s)",
            {"errors": [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]},
        )


def load_settings(file_path: Union[str, Path]) -> Settings:
    """
    Read configuration data from the specified file path.

    Args:
        file_path: Path to the JSON configuration file

    Returns:
        Settings populated from the file and defaults

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise ConfigurationError(f"Config file {file_path} does not exist", {"path": str(file_path)})

    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to read config {file_path}: {e}", {"path": str(file_path)})

    if not isinstance(data, dict):
        raise InvalidConfigurationError(f"Config {file_path} must contain a JSON object")

    settings = _validate(data, str(file_path))
    logger.info(f"Loaded config from: {file_path}")
    return settings


def apply_overrides(settings: Settings, overrides: Mapping[str, Any]) -> Settings:
    """
    Apply a partial configuration on top of settings.

    Only keys present in overrides are replaced; nested sections merge.
    Keys may be camelCase or snake_case.

    Returns:
        A new, re-validated Settings instance
    """
    if not overrides:
        return settings
    base = settings.model_dump(by_alias=True, mode="json")
    return _validate(_deep_merge(base, overrides), "overrides")


def load_override_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Read a partial JSON configuration document."""
    file_path = Path(file_path)
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to read override file {file_path}: {e}", {"path": str(file_path)})
    if not isinstance(data, dict):
        raise InvalidConfigurationError(f"Override file {file_path} must contain a JSON object")
    return data


def _nest(dotted_key: str, value: Any) -> Dict[str, Any]:
    parts = [p for p in dotted_key.split(".") if p]
    if not parts:
        raise InvalidConfigurationError(f"Empty override key in '{dotted_key}'")
    nested: Dict[str, Any] = {parts[-1]: value}
    for part in reversed(parts[:-1]):
        nested = {part: nested}
    return nested


def parse_set_expressions(expressions: Iterable[str]) -> Dict[str, Any]:
    """
    Turn ``dotted.key=value`` expressions into a nested override mapping.

    Values are parsed as JSON when possible (numbers, booleans, null),
    otherwise kept as strings.
    """
    result: Dict[str, Any] = {}
    for expression in expressions:
        key, sep, raw = expression.partition("=")
        if not sep:
            raise InvalidConfigurationError(f"Override '{expression}' must look like key=value")
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            value = raw
        result = _deep_merge(result, _nest(key.strip(), value))
    return result


def apply_env_overrides(settings: Settings, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Override secrets from AVC_* environment variables when set."""
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for var, dotted_key in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            overrides = _deep_merge(overrides, _nest(dotted_key, value))
            logger.debug(f"Using {var} from environment")
    return apply_overrides(settings, overrides)


def resolve_integration(settings: Settings) -> Integration:
    """
    Decide which integrations are enabled and check their required fields.

    Raises:
        MissingConfigurationError: If an active integration lacks a required field
    """
    integration = Integration.from_flags(settings.edi.active, settings.api.active)

    if integration.edi_enabled:
        for name in ("host", "sender_id", "private_key_path", "download_username"):
            if not getattr(settings.edi, name):
                raise MissingConfigurationError(f"edi.{to_camel(name)}")

    if integration.api_enabled:
        for name in ("client_id", "client_secret", "refresh_token"):
            if not getattr(settings.api.auth, name):
                raise MissingConfigurationError(f"api.auth.{to_camel(name)}")

    return integration


def non_empty_fields(settings: Settings) -> List[Tuple[str, str]]:
    """
    Flatten settings to (dotted key, value) pairs, skipping empty values
    and masking secrets.
    """
    rows: List[Tuple[str, str]] = []

    def walk(prefix: str, data: Mapping[str, Any]) -> None:
        for key, value in data.items():
            dotted = f"{prefix}.{key}" if prefix else key
            if isinstance(value, Mapping):
                walk(dotted, value)
            elif value not in ("", None):
                shown = "********" if key in SECRET_KEYS else str(value)
                rows.append((dotted, shown))

    walk("", settings.model_dump(by_alias=True, mode="json"))
    return rows
