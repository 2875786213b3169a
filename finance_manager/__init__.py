"""
Secure Finance Manager Backend Package

PURPOSE: Package initialization for the finance manager backend
SCOPE: Module imports and package configuration
"""

__version__ = "1.0.0"
__author__ = "Secure Finance Manager Team"
__description__ = "Multi-user finance tracker with encrypted records"

# Package imports for easier access
from .config import AppConfig, config
from .database import DatabaseManager
from .identity import UserCache, UNKNOWN_USER_ID
from .managers import (
    ColourManager, UserManager, CategoryManager, SubcategoryManager,
    LabelManager, EntryManager, EntryLabelManager
)
from .validators import validate_named_data, validate_entry_data, validate_user_data

__all__ = [
    "AppConfig",
    "config",
    "DatabaseManager",
    "UserCache",
    "UNKNOWN_USER_ID",
    "ColourManager",
    "UserManager",
    "CategoryManager",
    "SubcategoryManager",
    "LabelManager",
    "EntryManager",
    "EntryLabelManager",
    "validate_named_data",
    "validate_entry_data",
    "validate_user_data"
]
