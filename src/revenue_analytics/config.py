"""
Configuration management for the Revenue Analytics engine.

Loads settings from environment variables with sensible defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)


class Config:
    """Configuration settings loaded from environment."""

    # Relational store
    DATABASE_URL: str = os.getenv('DATABASE_URL', f"sqlite:///{_project_root / 'data' / 'revenue.db'}")
    DATA_DIR: str = os.getenv('DATA_DIR', str(_project_root / 'data'))

    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')

    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate configuration values.

        Returns:
            List of configuration keys that are missing or invalid
        """
        problems = []
        if not cls.DATABASE_URL:
            problems.append('DATABASE_URL')
        return problems


# Singleton config instance
config = Config()
