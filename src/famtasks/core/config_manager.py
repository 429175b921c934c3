"""Configuration Management for FamTasks

Handles loading, validation, and management of application configuration,
including the family-member and known-place reference rosters the parser
consumes read-only. Supports hierarchical YAML files with environment
variable overrides.
"""

import os
import re
import threading
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .error_handler import ConfigurationError


class FamilyMember(BaseModel):
    """One person on the family roster."""
    model_config = ConfigDict(frozen=True)

    name: str
    name_localized: str = ""
    is_child: bool = False
    needs_supervision: bool = False
    aliases: List[str] = Field(default_factory=list)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Names are matched as whole words and must not be blank"""
        if not v or not v.strip():
            raise ValueError("Family member name must not be empty")
        return v.strip()


class KnownPlace(BaseModel):
    """A configured location with a fixed driving time from home."""
    model_config = ConfigDict(frozen=True)

    name: str
    name_localized: str = ""
    driving_time_from_home: Optional[int] = Field(default=None, ge=0)
    requires_driving: bool = False
    keywords_he: List[str] = Field(default_factory=list)
    keywords_en: List[str] = Field(default_factory=list)


def _default_family() -> List[FamilyMember]:
    return [
        FamilyMember(name="Eyal", name_localized="אייל", aliases=["eyalg"]),
        FamilyMember(name="Ella", name_localized="אלה"),
        FamilyMember(name="Hilly", name_localized="הילי", is_child=True),
        FamilyMember(name="Yael", name_localized="יעל", is_child=True, needs_supervision=True),
        FamilyMember(name="Alon", name_localized="אלון", is_child=True, needs_supervision=True),
    ]


def _default_places() -> List[KnownPlace]:
    return [
        KnownPlace(name="home", name_localized="בית", driving_time_from_home=0,
                   keywords_he=["בית", "ביתה"], keywords_en=["home"]),
        KnownPlace(name="kindergarten", name_localized="גן", driving_time_from_home=15,
                   requires_driving=True, keywords_he=["גן", "גן ילדים"],
                   keywords_en=["kindergarten", "kinder", "gan", "preschool"]),
        KnownPlace(name="school", name_localized="בית ספר", driving_time_from_home=10,
                   requires_driving=True, keywords_he=["בית ספר", "בית הספר", 'ביה"ס'],
                   keywords_en=["school"]),
        KnownPlace(name="work", name_localized="עבודה", driving_time_from_home=20,
                   requires_driving=True, keywords_he=["עבודה", "משרד"],
                   keywords_en=["work", "office"]),
        KnownPlace(name="supermarket", name_localized="סופר", driving_time_from_home=5,
                   keywords_he=["סופר", "סופרמרקט"],
                   keywords_en=["supermarket", "super", "grocery", "store"]),
        KnownPlace(name="mall", name_localized="קניון", driving_time_from_home=15,
                   requires_driving=True, keywords_he=["קניון"],
                   keywords_en=["mall", "shopping center", "shopping mall"]),
        KnownPlace(name="park", name_localized="פארק", driving_time_from_home=10,
                   keywords_he=["פארק", "גינה"], keywords_en=["park", "playground"]),
        KnownPlace(name="doctor", name_localized="רופא", driving_time_from_home=12,
                   requires_driving=True, keywords_he=["רופא", 'קופ"ח', "קופת חולים"],
                   keywords_en=["doctor", "doctors", "physician", "clinic"]),
        KnownPlace(name="dentist", name_localized="רופא שיניים", driving_time_from_home=12,
                   requires_driving=True, keywords_he=["רופא שיניים", "שיניים"],
                   keywords_en=["dentist", "dental"]),
        KnownPlace(name="gym", name_localized="חדר כושר", driving_time_from_home=8,
                   keywords_he=["חדר כושר", "מכון כושר", "כושר"],
                   keywords_en=["gym", "fitness"]),
        KnownPlace(name="pool", name_localized="בריכה", driving_time_from_home=15,
                   requires_driving=True, keywords_he=["בריכה"],
                   keywords_en=["pool", "swimming pool"]),
    ]


class ParserConfig(BaseModel):
    """Configuration for the rule-based parser."""
    hebrew_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    driving_from: str = Field(default="home")


class LLMConfig(BaseModel):
    """Configuration for the optional AI enhancement client."""
    enabled: bool = Field(default=False)
    base_url: str = Field(default="http://localhost:11434")
    preferred_models: List[str] = Field(
        default_factory=lambda: ["qwen2.5:14b", "llama3.1:8b", "mistral:7b"]
    )
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    timeout: int = Field(default=15, ge=1)
    recent_task_limit: int = Field(default=5, ge=0)

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v):
        """Validate base URL scheme"""
        if not re.match(r'^https?://', v):
            raise ValueError("LLM base_url must start with http:// or https://")
        return v.rstrip('/')


class LoggingConfig(BaseModel):
    """Configuration for logging."""
    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_to_console: bool = Field(default=True)
    log_to_file: bool = Field(default=False)
    log_dir: str = Field(default="logs")
    max_file_size_mb: int = Field(default=10, ge=1)
    backup_count: int = Field(default=5, ge=1, le=20)


class AppConfig(BaseModel):
    """Main application configuration."""
    model_config = ConfigDict(validate_assignment=True)

    app_name: str = Field(default="FamTasks")
    environment: str = Field(default="development", pattern="^(development|testing|production)$")

    parser: ParserConfig = Field(default_factory=ParserConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Reference data, consumed read-only by the parser
    family_members: List[FamilyMember] = Field(default_factory=_default_family)
    known_places: List[KnownPlace] = Field(default_factory=_default_places)

    @field_validator('family_members')
    @classmethod
    def validate_unique_members(cls, v):
        """Roster names identify members and must be unique"""
        names = [member.name.lower() for member in v]
        if len(names) != len(set(names)):
            raise ValueError("Family member names must be unique")
        return v

    @field_validator('known_places')
    @classmethod
    def validate_unique_places(cls, v):
        """Place keys must be unique"""
        names = [place.name.lower() for place in v]
        if len(names) != len(set(names)):
            raise ValueError("Known place names must be unique")
        return v


class ConfigManager:
    """Manages application configuration loading and validation."""

    ENV_PREFIX = "FAMTASKS_"

    def __init__(self, config_path: Optional[Path] = None, environment: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional path to configuration directory
            environment: Environment name (development, testing, production)
        """
        self.config_base_path = Path(config_path) if config_path else self._get_default_config_path()
        self.environment = environment or os.getenv('FAMTASKS_ENV', 'development')
        self._config: Optional[AppConfig] = None
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

        # Configuration file paths
        self.config_files = self._get_config_files()

    def _get_default_config_path(self) -> Path:
        """Get the default configuration directory."""
        # Looking for config in order of precedence
        config_locations = [
            Path("config"),
            Path.home() / ".famtasks",
        ]

        for location in config_locations:
            if location.exists() and location.is_dir():
                return location

        return Path("config")

    def _get_config_files(self) -> Dict[str, Path]:
        """Get configuration file paths for hierarchical loading."""
        base_dir = self.config_base_path

        return {
            'default': base_dir / 'default_config.yaml',
            'environment': base_dir / f'{self.environment}.yaml',
            'local': base_dir / 'local.yaml'  # For development overrides
        }

    def load_config(self) -> AppConfig:
        """Load and validate configuration with hierarchical overrides.

        Returns:
            Validated application configuration

        Raises:
            ConfigurationError: If a file cannot be parsed or validation fails
        """
        with self._lock:
            if self._config:
                return self._config

            config_data: Dict[str, Any] = {}

            # Load configurations in order of precedence
            for config_type, config_file in self.config_files.items():
                if config_file.exists():
                    self.logger.info(f"Loading {config_type} config from {config_file}")
                    file_data = self._load_yaml_file(config_file)
                    self._deep_merge(config_data, file_data)

            # Apply environment variable overrides
            env_overrides = self._get_env_overrides()
            if env_overrides:
                self.logger.info(f"Applying environment overrides: {list(env_overrides.keys())}")
                self._deep_merge(config_data, env_overrides)

            config_data.setdefault('environment', self.environment)

            try:
                self._config = AppConfig(**config_data)
            except ValidationError as e:
                self.logger.error(f"Configuration validation failed: {e}")
                raise ConfigurationError(f"Invalid configuration: {e}") from e

            return self._config

    def reload_config(self) -> AppConfig:
        """Drop the cached configuration and load it again."""
        with self._lock:
            self._config = None
        return self.load_config()

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load YAML configuration file.

        Returns:
            Configuration dictionary
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            self.logger.error(f"Failed to parse YAML file {file_path}: {e}")
            raise ConfigurationError(f"Invalid YAML in {file_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Top level of {file_path} must be a mapping")
        return data

    def _get_env_overrides(self) -> Dict[str, Any]:
        """Get configuration overrides from environment variables.

        Environment variables follow pattern: FAMTASKS_<SECTION>_<KEY>
        Example: FAMTASKS_LLM_BASE_URL -> llm.base_url
        """
        overrides: Dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(self.ENV_PREFIX) or key == 'FAMTASKS_ENV':
                continue

            section, _, field_name = key[len(self.ENV_PREFIX):].lower().partition('_')
            if not field_name:
                continue

            overrides.setdefault(section, {})[field_name] = self._convert_env_value(value)

        return overrides

    def _convert_env_value(self, value: str) -> Union[str, int, float, bool, List[str]]:
        """Convert environment variable string to appropriate type."""
        # Boolean conversion
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        # Numeric conversion
        try:
            if '.' in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        # List conversion (comma-separated)
        if ',' in value:
            return [v.strip() for v in value.split(',')]

        return value

    def _deep_merge(self, base_dict: Dict[str, Any], update_dict: Dict[str, Any]):
        """Recursively merge nested dictionaries."""
        for key, value in update_dict.items():
            if isinstance(value, dict) and key in base_dict and isinstance(base_dict[key], dict):
                self._deep_merge(base_dict[key], value)
            else:
                base_dict[key] = value

    def validate_config(self, config_data: Dict[str, Any]) -> List[str]:
        """Validate configuration data without applying it.

        Args:
            config_data: Configuration data to validate

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        try:
            AppConfig(**config_data)
        except ValidationError as e:
            for error in e.errors():
                field_path = '.'.join(str(loc) for loc in error['loc'])
                errors.append(f"{field_path}: {error['msg']}")

        return errors

    def export_config(self, file_path: Path) -> None:
        """Write the active configuration to a YAML file."""
        config = self.load_config()
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(config.model_dump(), f, allow_unicode=True,
                           default_flow_style=False, sort_keys=False)

        self.logger.info(f"Exported configuration to {file_path}")
