"""Configuration management for the tweet store."""

import logging
import os
from pathlib import Path
from typing import Dict, Optional, Any

import yaml
from pydantic import BaseModel, Field, field_validator, ValidationError

from ..core.exceptions import ConfigurationError
from .types import LogLevel, ReadPreferenceMode


class DatabaseConfig(BaseModel):
    """MongoDB connection settings."""
    address: str = Field(default="localhost:27017")
    username: str = ""
    password: str = ""
    database_name: str = Field(default="twitter_data", min_length=1)
    auth_source: Optional[str] = None
    connection_timeout: int = Field(default=60, gt=0, description="Seconds")
    connection_pool_size: int = Field(default=10, gt=0)
    read_preference: ReadPreferenceMode = ReadPreferenceMode.PRIMARY_PREFERRED

    @field_validator('address')
    @classmethod
    def validate_address(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("MongoDB address is required")
        if v.startswith(('mongodb://', 'mongodb+srv://')):
            raise ValueError("Address must be host[:port], credentials are configured separately")
        return v

    @property
    def timeout_ms(self) -> int:
        return self.connection_timeout * 1000


class StoreConfig(BaseModel):
    """Top-level store configuration."""
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    log_level: LogLevel = LogLevel.INFO
    log_file: Optional[str] = None
    structured_logging: bool = True


class ConfigManager:
    """Loads StoreConfig from the environment and YAML files."""

    def __init__(self):
        self.config: Optional[StoreConfig] = None
        self.logger = logging.getLogger(__name__)

    def load_from_env(self, env_file: Optional[str] = None) -> None:
        """Load configuration from environment variables."""
        if env_file and Path(env_file).exists():
            self._load_env_file(env_file)

        self.config = self._create_config_from_env()
        self.logger.info("Configuration loaded from environment variables")

    def load_from_yaml(self, yaml_file: str) -> None:
        """Load configuration from a YAML file, merging over what is loaded."""
        yaml_path = Path(yaml_file)
        if not yaml_path.exists():
            raise FileNotFoundError(f"YAML config file not found: {yaml_file}")

        with open(yaml_path, 'r') as f:
            yaml_data = yaml.safe_load(f) or {}

        if not isinstance(yaml_data, dict):
            raise ConfigurationError("YAML config must be a mapping", config_key=str(yaml_path))

        self.config = self._merge_yaml_config(self.config or StoreConfig(), yaml_data)
        self.logger.info(f"Configuration loaded from YAML file: {yaml_file}")

    def get_config(self) -> StoreConfig:
        """Get the current configuration."""
        if not self.config:
            raise ConfigurationError("No configuration loaded", config_key="config")
        return self.config

    def _load_env_file(self, env_file: str) -> None:
        """Load KEY=VALUE lines into the process environment."""
        with open(env_file, 'r') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    os.environ[key.strip()] = value.strip()

    def _create_config_from_env(self) -> StoreConfig:
        try:
            database = DatabaseConfig(
                address=os.getenv('MONGO_ADDRESS', 'localhost:27017'),
                username=os.getenv('MONGO_USERNAME', ''),
                password=os.getenv('MONGO_PASSWORD', ''),
                database_name=os.getenv('MONGO_DATABASE', 'twitter_data'),
                auth_source=os.getenv('MONGO_AUTH_SOURCE') or None,
                connection_timeout=int(os.getenv('MONGO_TIMEOUT', '60')),
                connection_pool_size=int(os.getenv('MONGO_POOL_SIZE', '10')),
                read_preference=ReadPreferenceMode(os.getenv('MONGO_READ_PREFERENCE', 'primaryPreferred')),
            )

            return StoreConfig(
                database=database,
                log_level=LogLevel(os.getenv('LOG_LEVEL', 'INFO').upper()),
                log_file=os.getenv('LOG_FILE') or None,
                structured_logging=os.getenv('STRUCTURED_LOGGING', 'true').lower() == 'true',
            )
        except (ValidationError, ValueError) as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}", config_key="env") from e

    def _merge_yaml_config(self, base: StoreConfig, yaml_data: Dict[str, Any]) -> StoreConfig:
        data = base.model_dump()

        if 'database' in yaml_data:
            data['database'].update(yaml_data['database'] or {})

        logging_section = yaml_data.get('logging') or {}
        if 'level' in logging_section:
            data['log_level'] = str(logging_section['level']).upper()
        if 'file' in logging_section:
            data['log_file'] = logging_section['file']
        if 'structured' in logging_section:
            data['structured_logging'] = logging_section['structured']

        try:
            return StoreConfig.model_validate(data)
        except ValidationError as e:
            issues = '; '.join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
            raise ConfigurationError(f"Configuration validation failed: {issues}", config_key="yaml") from e


def load_config(env_file: Optional[str] = None, yaml_file: Optional[str] = None) -> StoreConfig:
    """Load configuration from the environment and an optional YAML file."""
    manager = ConfigManager()
    manager.load_from_env(env_file)

    if yaml_file:
        manager.load_from_yaml(yaml_file)

    return manager.get_config()
