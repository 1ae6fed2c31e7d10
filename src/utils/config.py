"""
Configuration management for the PLM BOM engine.

This module handles:
- Database path configuration
- Environment-specific configuration (development vs. production)
- BOM traversal limits
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .constants import (
    APP_NAME,
    APP_VERSION,
    DATABASE_FILENAME,
    DATABASE_VERSION,
    MAX_BOM_DEPTH,
)

logger = logging.getLogger(__name__)

ENV_VAR_ENVIRONMENT = "PLM_ENV"
ENV_VAR_DATABASE_URL = "PLM_DATABASE_URL"
ENV_VAR_MAX_BOM_DEPTH = "PLM_MAX_BOM_DEPTH"


class Config:
    """
    Application configuration manager.

    Handles database location, environment mode and the BOM depth bound.
    Environment variables override the computed defaults.
    """

    def __init__(self, environment: str = "production"):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production' or 'development'
        """
        self.environment = environment
        self._app_name = APP_NAME
        self._app_version = APP_VERSION
        self._database_version = DATABASE_VERSION

        if environment == "development":
            self._base_dir = self._get_project_data_dir()
        else:
            self._base_dir = self._get_user_documents_dir()

        self._database_dir = self._base_dir
        self._database_path = self._database_dir / DATABASE_FILENAME
        self._database_url_override = os.environ.get(ENV_VAR_DATABASE_URL)
        self._max_bom_depth = self._read_max_bom_depth()

    def _get_project_data_dir(self) -> Path:
        """
        Get the project's data directory for development.

        Returns:
            Path to project data/ directory
        """
        project_root = Path(__file__).parent.parent.parent
        return project_root / "data"

    def _get_user_documents_dir(self) -> Path:
        """
        Get the user's Documents directory for production.

        Returns:
            Path to user's Documents folder with app subdirectory
        """
        return Path.home() / "Documents" / "PLM"

    def _read_max_bom_depth(self) -> int:
        raw = os.environ.get(ENV_VAR_MAX_BOM_DEPTH)
        if raw is None:
            return MAX_BOM_DEPTH
        try:
            value = int(raw)
        except ValueError:
            logger.warning(
                f"Ignoring {ENV_VAR_MAX_BOM_DEPTH}={raw!r}: not an integer, "
                f"using {MAX_BOM_DEPTH}"
            )
            return MAX_BOM_DEPTH
        if value < 1:
            logger.warning(
                f"Ignoring {ENV_VAR_MAX_BOM_DEPTH}={value}: must be >= 1, using {MAX_BOM_DEPTH}"
            )
            return MAX_BOM_DEPTH
        return value

    def ensure_directories(self) -> None:
        """Create the database directory if it doesn't exist."""
        self._database_dir.mkdir(parents=True, exist_ok=True)

    @property
    def app_name(self) -> str:
        """Application name."""
        return self._app_name

    @property
    def app_version(self) -> str:
        """Application version."""
        return self._app_version

    @property
    def database_version(self) -> str:
        """Database schema version."""
        return self._database_version

    @property
    def database_path(self) -> Path:
        """Full path to the database file."""
        return self._database_path

    @property
    def database_url(self) -> str:
        """
        SQLAlchemy database URL.

        Returns:
            ``PLM_DATABASE_URL`` when set, otherwise a SQLite URL for database_path
        """
        if self._database_url_override:
            return self._database_url_override
        db_path_str = str(self._database_path).replace("\\", "/")
        return f"sqlite:///{db_path_str}"

    @property
    def database_url_overridden(self) -> bool:
        """True when PLM_DATABASE_URL replaces the computed SQLite location."""
        return bool(self._database_url_override)

    @property
    def max_bom_depth(self) -> int:
        """Deepest BOM level a traversal may reach."""
        return self._max_bom_depth

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def database_exists(self) -> bool:
        """
        Check if database file exists.

        Returns:
            True if database file exists, False otherwise
        """
        return self._database_path.exists()

    def __repr__(self) -> str:
        """String representation of config."""
        return (
            f"Config(environment='{self.environment}', "
            f"database_url='{self.database_url}', max_bom_depth={self._max_bom_depth})"
        )


_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment cannot be changed by passing
    a different environment argument; this prevents switching databases
    mid-session.

    Args:
        environment: Optional environment for initial creation. If None, uses
                    PLM_ENV or defaults to production. Ignored if the
                    singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get(ENV_VAR_ENVIRONMENT, "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton to prevent database switching."
        )

    return _config_instance


def reset_config():
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None


def get_database_url() -> str:
    """Get the database URL."""
    return get_config().database_url
