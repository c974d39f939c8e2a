"""
Registry configuration.

A YAML file is mapped onto dataclass parameter objects that validate in
__post_init__. Sections:

    backend: xml                       # backend identifier (required)
    backend_params: {root_dir: ./data}
    identifier_type: peppol            # peppol | simple
    rest_writable_api_disabled: false
    locator: {active, url, smp_id, client_cert, client_key, verify, timeout, compensation_timeout}
    directory: {enabled, auto_update, hostname}
    logging: {level, file, file_level, colors}

The backend identifier is only checked against the backend registry when the
RegistryContext is initialised, so the error can list the known ids.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ..domain import IdentifierPolicy, RegistrySettings
from ..errors import ConfigurationError, ValidationError

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


@dataclass
class BaseParams(ABC):
    """Base class for all configuration sections."""

    def __post_init__(self):
        """Validate parameters after initialization."""
        self._validate_params()
        self._post_init_hook()

    @abstractmethod
    def _validate_params(self) -> None:
        pass

    def _post_init_hook(self) -> None:
        pass

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = value.to_dict() if isinstance(value, BaseParams) else value
        return result

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]):
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown {cls.__name__} keys: {unknown}. Allowed keys: {sorted(known)}"
            )
        return cls(**data)

    def _validate_policy(self, param_name: str, value: Any, allowed_values: List[Any]) -> None:
        if value not in allowed_values:
            raise ConfigurationError(f"Invalid {param_name}={value!r}. Allowed values: {allowed_values}")

    def _validate_positive(self, param_name: str, value: Any) -> None:
        if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
            raise ConfigurationError(f"{param_name} must be a positive number, got {value!r}")


@dataclass
class LocatorParams(BaseParams):
    """Connection to the external locator service (SML)."""

    active: bool = False
    url: Optional[str] = None
    smp_id: Optional[str] = None
    client_cert: Optional[str] = None
    client_key: Optional[str] = None
    verify: Union[bool, str] = True
    timeout: float = 30
    compensation_timeout: float = 30

    def _validate_params(self) -> None:
        self._validate_policy('locator.active', self.active, [True, False])
        self._validate_positive('locator.timeout', self.timeout)
        self._validate_positive('locator.compensation_timeout', self.compensation_timeout)
        if self.active:
            if not self.url:
                raise ConfigurationError("locator.url is required when locator.active is true")
            if not self.smp_id:
                raise ConfigurationError("locator.smp_id is required when locator.active is true")
        if self.client_key and not self.client_cert:
            raise ConfigurationError("locator.client_key requires locator.client_cert")


@dataclass
class DirectoryParams(BaseParams):
    """Integration with the participant directory (business cards)."""

    enabled: bool = False
    auto_update: bool = False
    hostname: Optional[str] = None

    def _validate_params(self) -> None:
        if self.enabled and not self.hostname:
            raise ConfigurationError("directory.hostname is required when directory.enabled is true")


@dataclass
class LoggingParams(BaseParams):
    level: str = 'INFO'
    file: Optional[str] = None
    file_level: str = 'INFO'
    colors: bool = True

    def _validate_params(self) -> None:
        self.level = str(self.level).upper()
        self.file_level = str(self.file_level).upper()
        self._validate_policy('logging.level', self.level, LOG_LEVELS)
        self._validate_policy('logging.file_level', self.file_level, LOG_LEVELS)


@dataclass
class RegistryConfig(BaseParams):
    """
    Complete registry configuration.

    Nested sections may be given as mappings; they are converted to their
    parameter classes on construction.
    """

    backend: str = None
    backend_params: Dict[str, Any] = field(default_factory=dict)
    identifier_type: str = 'peppol'
    rest_writable_api_disabled: bool = False
    locator: LocatorParams = field(default_factory=LocatorParams)
    directory: DirectoryParams = field(default_factory=DirectoryParams)
    logging: LoggingParams = field(default_factory=LoggingParams)

    _SECTIONS = {
        'locator': LocatorParams,
        'directory': DirectoryParams,
        'logging': LoggingParams,
    }

    def _validate_params(self) -> None:
        if not isinstance(self.backend, str) or not self.backend.strip():
            raise ConfigurationError("'backend' is required (e.g. xml, sql, document)")
        if not isinstance(self.backend_params, dict):
            raise ConfigurationError("'backend_params' must be a mapping")
        try:
            IdentifierPolicy.from_name(self.identifier_type)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

        for name, section_class in self._SECTIONS.items():
            value = getattr(self, name)
            if value is None or isinstance(value, dict):
                setattr(self, name, section_class.from_dict(value))
            elif not isinstance(value, section_class):
                raise ConfigurationError(f"'{name}' must be a mapping")

    @property
    def identifier_policy(self) -> IdentifierPolicy:
        return IdentifierPolicy.from_name(self.identifier_type)

    def default_settings(self) -> RegistrySettings:
        """Settings stored on first use of the settings manager."""
        return RegistrySettings(
            rest_writable_api_disabled=bool(self.rest_writable_api_disabled),
            directory_integration_enabled=self.directory.enabled,
            directory_integration_auto_update=self.directory.auto_update,
            directory_hostname=self.directory.hostname,
            write_to_locator=self.locator.active,
            locator_url=self.locator.url,
        )

    def with_overrides(self, **overrides) -> 'RegistryConfig':
        """Copy with top-level keys replaced; mapping values are merged into sections."""
        data = self.to_dict()
        for key, value in overrides.items():
            if key in self._SECTIONS and isinstance(value, dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value
        return RegistryConfig.from_dict(data)


def load_config(config_path: Union[str, Path], **overrides) -> RegistryConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML file
        **overrides: Top-level keys replacing file values (sections are merged)

    Raises:
        ConfigurationError: If the file is missing, not valid YAML or invalid
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping at top level")

    config = RegistryConfig.from_dict(data)
    if overrides:
        config = config.with_overrides(**overrides)
    return config
