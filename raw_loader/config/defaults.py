"""
Centralized configuration defaults for raw table loading.

This module defines operational configuration constants used throughout the
loader. Environment variables (RAW_LOADER_*) and CLI arguments override these
defaults at runtime.

Single Source of Truth: change these values once; all modules use the updated defaults.
"""


class LoaderDefaults:
    """
    Centralized operational configuration for raw table loading.

    All values are defaults that can be overridden, e.g.:
    - RAW_LOADER_BATCH_SIZE=5000
    - raw_loader --log-level DEBUG ddl --schema s1 --table t1
    """

    # Destination protocol
    USE_DESTINATIONS_V2 = False  # Raw table layout: False = V1, True = V2 (typing and deduping)

    # Loading
    BATCH_SIZE = 1000  # Rows per executemany call in parameterized inserts
    STAGING_DIRECTORY = ""  # Directory for staged CSV files ("" = system temp directory)

    # Database connection
    DB_DRIVER = "PostgreSQL Unicode"
    DB_SERVER = "localhost"
    DB_PORT = 5432
    DB_DATABASE = "warehouse"
    CONNECTION_TIMEOUT = 30  # Connection timeout in seconds

    # Logging
    LOG_LEVEL = "WARNING"  # Default logging level (CRITICAL, ERROR, WARNING, INFO, DEBUG)

    @classmethod
    def to_dict(cls) -> dict:
        """
        Export all defaults as a dictionary.

        Returns:
            Dictionary of all LoaderDefaults class attributes.
        """
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if not key.startswith('_') and key.isupper()
        }

    @classmethod
    def log_summary(cls, logger=None):
        """
        Log a summary of all operational defaults.

        Args:
            logger: Optional logger instance. If None, prints to stdout.
        """
        config_dict = cls.to_dict()
        summary = "\n".join([f"  {key}: {value}" for key, value in sorted(config_dict.items())])
        message = f"Loader Configuration Defaults:\n{summary}"

        if logger:
            logger.info(message)
        else:
            print(message)
