"""
Secure Finance Manager - Configuration and Constants

PURPOSE: Central configuration management for the application
SCOPE: Application settings, constants, and environment variables
DEPENDENCIES: None (foundational module)
"""

import logging
import os
from dataclasses import dataclass
from typing import List, Tuple


@dataclass
class AppConfig:
    """Application configuration constants."""
    DB_FILE: str = None
    BASE_PATH: str = None
    ENCRYPTION_KEY: str = None
    ENCRYPTION_SALT: str = None
    LOG_LEVEL: str = None
    BCRYPT_ROUNDS: int = None
    KDF_ITERATIONS: int = None
    DEFAULT_COLOURS: List[Tuple[str, str]] = None

    def __post_init__(self):
        if self.DB_FILE is None:
            self.DB_FILE = os.getenv('FINANCE_DB_FILE', 'secure_finance_manager.db')
        if self.BASE_PATH is None:
            self.BASE_PATH = os.getenv('FINANCE_BASE_PATH', '/secure-finance-manager')
        if self.ENCRYPTION_KEY is None:
            self.ENCRYPTION_KEY = os.getenv('FINANCE_ENCRYPTION_KEY', 'change-this-encryption-key')
        if self.ENCRYPTION_SALT is None:
            self.ENCRYPTION_SALT = os.getenv('FINANCE_ENCRYPTION_SALT', 'secure-finance-manager')
        if self.LOG_LEVEL is None:
            self.LOG_LEVEL = os.getenv('FINANCE_LOG_LEVEL', 'INFO')
        if self.BCRYPT_ROUNDS is None:
            self.BCRYPT_ROUNDS = int(os.getenv('FINANCE_BCRYPT_ROUNDS', '12'))
        if self.KDF_ITERATIONS is None:
            self.KDF_ITERATIONS = int(os.getenv('FINANCE_KDF_ITERATIONS', '390000'))
        if self.DEFAULT_COLOURS is None:
            self.DEFAULT_COLOURS = [
                ('red', 'FF0000'), ('orange', 'FF7F00'), ('yellow', 'FFFF00'),
                ('green-yellow', '7FFF00'), ('green', '00FF00'), ('mint green', '00FF7F'),
                ('turquoise', '00FFFF'), ('light blue', '007FFF'), ('blue', '0000FF'),
                ('violet', '7F00FF'), ('pink', 'FF00FF'), ('magenta', 'FF007F')
            ]


# Global configuration instance
config = AppConfig()

# Set up logging
logging.basicConfig(level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)
