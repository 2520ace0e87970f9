"""
Centralized configuration management for the raw table loader.

This module provides the ConfigManager class that serves as the single source of
truth for loader configuration: the database connection, the destination
protocol version and the loading parameters, all read from environment variables.
"""

import os
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .defaults import LoaderDefaults
from ..exceptions import ConfigurationError
from ..models import TableSchemaVersion


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('true', '1', 'yes')


@dataclass
class DatabaseConfig:
    """Database configuration with environment variable support."""
    connection_string: str
    driver: str = LoaderDefaults.DB_DRIVER
    server: str = LoaderDefaults.DB_SERVER
    port: int = LoaderDefaults.DB_PORT
    database: str = LoaderDefaults.DB_DATABASE
    username: str = ""
    connection_timeout: int = LoaderDefaults.CONNECTION_TIMEOUT

    @classmethod
    def from_environment(cls) -> 'DatabaseConfig':
        """Create database configuration from environment variables."""
        connection_timeout = int(os.environ.get('RAW_LOADER_DB_CONNECTION_TIMEOUT', cls.connection_timeout))

        # Primary connection string from environment
        connection_string = os.environ.get('RAW_LOADER_CONNECTION_STRING')
        if connection_string:
            return cls(connection_string=connection_string, connection_timeout=connection_timeout)

        # Build connection string from individual components
        driver = os.environ.get('RAW_LOADER_DB_DRIVER', cls.driver)
        server = os.environ.get('RAW_LOADER_DB_SERVER', cls.server)
        port = int(os.environ.get('RAW_LOADER_DB_PORT', cls.port))
        database = os.environ.get('RAW_LOADER_DB_DATABASE', cls.database)
        username = os.environ.get('RAW_LOADER_DB_USERNAME', '')
        password = os.environ.get('RAW_LOADER_DB_PASSWORD', '')

        connection_string = (
            f"DRIVER={{{driver}}};"
            f"SERVER={server};"
            f"PORT={port};"
            f"DATABASE={database};"
        )
        if username:
            connection_string += f"UID={username};PWD={password};"

        return cls(
            connection_string=connection_string,
            driver=driver,
            server=server,
            port=port,
            database=database,
            username=username,
            connection_timeout=connection_timeout
        )


@dataclass
class LoaderParameters:
    """Loading parameters with environment variable support."""
    use_destinations_v2: bool = LoaderDefaults.USE_DESTINATIONS_V2
    batch_size: int = LoaderDefaults.BATCH_SIZE
    staging_directory: str = LoaderDefaults.STAGING_DIRECTORY

    @classmethod
    def from_environment(cls) -> 'LoaderParameters':
        """Create loading parameters from environment variables."""
        return cls(
            use_destinations_v2=_env_flag('RAW_LOADER_USE_DESTINATIONS_V2', cls.use_destinations_v2),
            batch_size=int(os.environ.get('RAW_LOADER_BATCH_SIZE', cls.batch_size)),
            staging_directory=os.environ.get('RAW_LOADER_STAGING_DIRECTORY', cls.staging_directory)
        )


class ConfigManager:
    """
    Centralized configuration manager serving as single source of truth.

    The destination protocol version is resolved once, when the manager is
    created (or reloaded), so every component built from it agrees on the raw
    table layout.
    """

    def __init__(self):
        """Initialize the configuration manager from environment variables."""
        self.logger = logging.getLogger(__name__)
        self.database_config = DatabaseConfig.from_environment()
        self.loader_params = LoaderParameters.from_environment()

        self.logger.info(f"ConfigManager initialized: database server {self.database_config.server}")
        self.logger.info(f"Raw table version: {self.get_schema_version().value}")

    def get_database_connection_string(self) -> str:
        """
        Get database connection string.

        Returns:
            ODBC connection string configured from environment variables
        """
        return self.database_config.connection_string

    def get_schema_version(self) -> TableSchemaVersion:
        """Get the raw table layout selected by the destinations-v2 flag."""
        return TableSchemaVersion.from_flag(self.loader_params.use_destinations_v2)

    def get_staging_directory(self) -> Path:
        """Directory for staged batch files; the system temp directory when unset."""
        return Path(self.loader_params.staging_directory or tempfile.gettempdir())

    def validate_configuration(self) -> bool:
        """
        Validate all configuration settings.

        Returns:
            True if all configurations are valid

        Raises:
            ConfigurationError: If any configuration is invalid
        """
        errors = []

        if not self.database_config.connection_string:
            errors.append("Database connection string is empty")

        if self.database_config.connection_timeout <= 0:
            errors.append("Connection timeout must be greater than 0")

        if self.loader_params.batch_size <= 0:
            errors.append("Batch size must be greater than 0")

        if self.loader_params.staging_directory and not Path(self.loader_params.staging_directory).is_dir():
            errors.append(f"Staging directory does not exist: {self.loader_params.staging_directory}")

        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

        self.logger.info("Configuration validation passed")
        return True

    def get_configuration_summary(self) -> Dict[str, Any]:
        """
        Get a summary of all configuration settings.

        The password and the raw connection string are never included.

        Returns:
            Dictionary containing configuration summary
        """
        return {
            'database': {
                'driver': self.database_config.driver,
                'server': self.database_config.server,
                'port': self.database_config.port,
                'database': self.database_config.database,
                'username': self.database_config.username,
                'connection_timeout': self.database_config.connection_timeout
            },
            'loader': {
                'schema_version': self.get_schema_version().value,
                'batch_size': self.loader_params.batch_size,
                'staging_directory': str(self.get_staging_directory())
            }
        }

    def reload_configuration(self) -> None:
        """Reload configuration from environment variables."""
        self.database_config = DatabaseConfig.from_environment()
        self.loader_params = LoaderParameters.from_environment()

        self.logger.info("Configuration reloaded from environment variables")


# Global configuration manager instance
_global_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """
    Get the global configuration manager instance.

    Returns:
        Global ConfigManager instance
    """
    global _global_config_manager

    if _global_config_manager is None:
        _global_config_manager = ConfigManager()

    return _global_config_manager


def reset_config_manager() -> None:
    """Reset the global configuration manager instance."""
    global _global_config_manager
    _global_config_manager = None
