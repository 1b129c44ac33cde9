"""
Configuration management using Pydantic Settings.

Architecture Decision: Why pydantic-settings?
- Type-safe configuration with validation
- Supports multiple sources (YAML, env vars, defaults)
- Easy to test with different configurations
"""

import os
import logging
from pathlib import Path
from typing import Optional
import yaml

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class EnginePreferences(BaseModel):
    """
    Calendar and timer behaviour of the accounting engine.
    """

    first_weekday: int = Field(
        default=0, ge=0, le=6,
        description="First day of a reporting week (0=Monday ... 6=Sunday)"
    )
    tick_interval_seconds: float = Field(
        default=1.0, gt=0,
        description="How often the running timer notifies listeners"
    )


class Settings(BaseSettings):
    """
    Application settings with multiple sources:
    1. Default values (hardcoded)
    2. YAML config file
    3. Environment variables (highest priority)
    """
    model_config = SettingsConfigDict(
        env_prefix='TIMEAPP_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'
    )

    # Application paths
    app_name: str = "TimeApp"
    config_dir: Optional[Path] = None
    data_dir: Optional[Path] = None

    # Database
    database_url: Optional[str] = None

    preferences: EnginePreferences = EnginePreferences()

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._init_paths()
        self._load_yaml_config()

    def _init_paths(self):
        """Initialize default paths based on OS"""
        if self.config_dir is None:
            if os.name == 'nt':  # Windows
                base = Path(os.getenv('APPDATA'))
            else:  # Linux/Mac
                base = Path.home() / '.config'
            self.config_dir = base / self.app_name.lower()

        if self.data_dir is None:
            if os.name == 'nt':  # Windows
                base = Path(os.getenv('APPDATA'))
            else:  # Linux/Mac
                base = Path.home() / '.local' / 'share'
            self.data_dir = base / self.app_name.lower()

    def _load_yaml_config(self):
        """Load engine preferences from settings.yaml in the config directory"""
        config_file = self.config_dir / "settings.yaml"
        if not config_file.exists():
            return

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)
        if config_data:
            self.preferences = EnginePreferences(**config_data)
            logger.info(f"Loaded preferences from {config_file}")

    def save_preferences(self):
        """Save current preferences to YAML file"""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        config_file = self.config_dir / "settings.yaml"
        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(self.preferences.model_dump(), f, default_flow_style=False)

    def get_db_url(self) -> str:
        """Get database URL, creating default if not set"""
        if self.database_url:
            return self.database_url

        self.data_dir.mkdir(parents=True, exist_ok=True)
        db_path = self.data_dir / 'timeapp.db'
        return f"sqlite+aiosqlite:///{db_path}"
