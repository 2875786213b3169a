"""
Secure Finance Manager - Database Management

PURPOSE: Database schema, versioning, and connection management
SCOPE: SQLite operations, schema versioning, and default data
DEPENDENCIES: aiosqlite, config.py
"""

import sqlite3
import aiosqlite
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from .config import config
from .exceptions import DatabaseError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


@asynccontextmanager
async def connect(db_file: str) -> AsyncIterator[aiosqlite.Connection]:
    """Open a connection with row access by name and enforced foreign keys.

    Constraint violations propagate as sqlite3.IntegrityError so callers can
    map them to input errors; every other SQL failure becomes DatabaseError.
    """
    try:
        async with aiosqlite.connect(db_file) as conn:
            conn.row_factory = aiosqlite.Row
            await conn.execute('PRAGMA foreign_keys = ON')
            yield conn
    except sqlite3.IntegrityError:
        raise
    except sqlite3.Error as e:
        logger.error(f"Database error on {db_file}: {e}")
        raise DatabaseError(str(e)) from e


class DatabaseManager:
    """Handles schema creation and default data."""

    def __init__(self, db_file: str):
        self.db_file = db_file

    async def initialize_database(self) -> None:
        """Initialize SQLite database with proper schema and default colours."""
        async with connect(self.db_file) as conn:
            await self._setup_schema_versioning(conn)
            current_version = await self._get_current_schema_version(conn)
            logger.info(f"Current database schema version: {current_version}")

            if current_version < 1:
                await self._migrate_to_version_1(conn)

            await self._insert_default_colours(conn)
            await conn.commit()

    async def _setup_schema_versioning(self, conn: aiosqlite.Connection) -> None:
        """Set up schema version tracking table."""
        await conn.execute('''
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

    async def _get_current_schema_version(self, conn: aiosqlite.Connection) -> int:
        """Get the current database schema version."""
        cursor = await conn.execute('SELECT MAX(version) FROM schema_version')
        result = await cursor.fetchone()
        return result[0] or 0

    async def _migrate_to_version_1(self, conn: aiosqlite.Connection) -> None:
        """Create the user-owned finance tables."""
        logger.info("Migrating to schema version 1: Creating finance tables")

        await conn.execute('''
            CREATE TABLE IF NOT EXISTS colours (
                pk_colour_id INTEGER PRIMARY KEY AUTOINCREMENT,
                colour_name TEXT NOT NULL,
                colour_code BLOB NOT NULL
            )
        ''')

        await conn.execute('''
            CREATE TABLE IF NOT EXISTS users (
                pk_user_id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT UNIQUE NOT NULL,
                password TEXT NOT NULL,
                email_address TEXT UNIQUE,
                first_name TEXT,
                last_name TEXT
            )
        ''')

        # Name, description, amount, times and attachment hold Fernet tokens
        await conn.execute('''
            CREATE TABLE IF NOT EXISTS categories (
                pk_category_id INTEGER PRIMARY KEY AUTOINCREMENT,
                category_name TEXT NOT NULL,
                category_description TEXT,
                fk_category_colour_id INTEGER NOT NULL,
                fk_user_id INTEGER NOT NULL,
                FOREIGN KEY (fk_user_id) REFERENCES users(pk_user_id) ON DELETE CASCADE,
                FOREIGN KEY (fk_category_colour_id) REFERENCES colours(pk_colour_id)
            )
        ''')

        await conn.execute('''
            CREATE TABLE IF NOT EXISTS subcategories (
                pk_subcategory_id INTEGER PRIMARY KEY AUTOINCREMENT,
                fk_category_id INTEGER NOT NULL,
                subcategory_name TEXT NOT NULL,
                subcategory_description TEXT,
                fk_subcategory_colour_id INTEGER NOT NULL,
                fk_user_id INTEGER NOT NULL,
                FOREIGN KEY (fk_user_id) REFERENCES users(pk_user_id) ON DELETE CASCADE,
                FOREIGN KEY (fk_category_id) REFERENCES categories(pk_category_id) ON DELETE CASCADE,
                FOREIGN KEY (fk_subcategory_colour_id) REFERENCES colours(pk_colour_id)
            )
        ''')

        await conn.execute('''
            CREATE TABLE IF NOT EXISTS labels (
                pk_label_id INTEGER PRIMARY KEY AUTOINCREMENT,
                label_name TEXT NOT NULL,
                label_description TEXT,
                fk_label_colour_id INTEGER NOT NULL,
                fk_user_id INTEGER NOT NULL,
                FOREIGN KEY (fk_user_id) REFERENCES users(pk_user_id) ON DELETE CASCADE,
                FOREIGN KEY (fk_label_colour_id) REFERENCES colours(pk_colour_id)
            )
        ''')

        await conn.execute('''
            CREATE TABLE IF NOT EXISTS entries (
                pk_entry_id INTEGER PRIMARY KEY AUTOINCREMENT,
                entry_name TEXT,
                entry_description TEXT,
                entry_amount TEXT NOT NULL,
                entry_creation_time TEXT NOT NULL,
                entry_time_of_transaction TEXT NOT NULL,
                entry_attachment TEXT,
                fk_subcategory_id INTEGER NOT NULL,
                fk_user_id INTEGER NOT NULL,
                FOREIGN KEY (fk_user_id) REFERENCES users(pk_user_id) ON DELETE CASCADE,
                FOREIGN KEY (fk_subcategory_id) REFERENCES subcategories(pk_subcategory_id) ON DELETE CASCADE
            )
        ''')

        await conn.execute('''
            CREATE TABLE IF NOT EXISTS entry_labels (
                pk_entry_label_id INTEGER PRIMARY KEY AUTOINCREMENT,
                fk_entry_id INTEGER NOT NULL,
                fk_label_id INTEGER NOT NULL,
                fk_user_id INTEGER NOT NULL,
                FOREIGN KEY (fk_user_id) REFERENCES users(pk_user_id) ON DELETE CASCADE,
                FOREIGN KEY (fk_entry_id) REFERENCES entries(pk_entry_id) ON DELETE CASCADE,
                FOREIGN KEY (fk_label_id) REFERENCES labels(pk_label_id) ON DELETE CASCADE
            )
        ''')

        await conn.execute('''
            CREATE UNIQUE INDEX IF NOT EXISTS entry_labels_unique_idx
            ON entry_labels (fk_entry_id, fk_label_id, fk_user_id)
        ''')

        await conn.execute('INSERT INTO schema_version (version) VALUES (?)', (SCHEMA_VERSION,))
        logger.info("Schema migration to version 1 completed")

    async def _insert_default_colours(self, conn: aiosqlite.Connection) -> None:
        """Insert the default colour palette if the table is empty."""
        cursor = await conn.execute('SELECT COUNT(*) FROM colours')
        count = (await cursor.fetchone())[0]
        if count:
            return

        for colour_name, colour_code in config.DEFAULT_COLOURS:
            await conn.execute(
                'INSERT INTO colours (colour_name, colour_code) VALUES (?, ?)',
                (colour_name, bytes.fromhex(colour_code))
            )
        logger.info(f"Inserted {len(config.DEFAULT_COLOURS)} default colours")
