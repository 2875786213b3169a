"""
Secure Finance Manager - Data Managers

PURPOSE: Data access layer for users, colours, categories, subcategories, labels and entries
SCOPE: Tenant-scoped CRUD operations, PATCH merging, and field encryption
DEPENDENCIES: aiosqlite, crypto.py, identity.py
"""

import sqlite3
import aiosqlite
import logging
from datetime import datetime
from typing import List, Dict, Any, Optional, Iterable

from .crypto import FieldCipher
from .database import connect
from .exceptions import DuplicateRecordError
from .identity import UserCache, UNKNOWN_USER_ID
from .security import hash_password_async

logger = logging.getLogger(__name__)


def merge_patch(current: Dict[str, Any], changes: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Apply every non-null value in changes over current, for the given fields."""
    merged = dict(current)
    for field in fields:
        value = changes.get(field)
        if value is not None:
            merged[field] = value
    return merged


class ColourManager:
    """Handles read access to the global colour palette."""

    def __init__(self, db_file: str):
        self.db_file = db_file

    async def get_all_colours(self) -> List[Dict[str, Any]]:
        """Get all colours ordered by ID."""
        async with connect(self.db_file) as conn:
            cursor = await conn.execute(
                'SELECT pk_colour_id, colour_name, colour_code FROM colours ORDER BY pk_colour_id'
            )
            return [self._row_to_colour(row) for row in await cursor.fetchall()]

    async def get_colour(self, colour_id: int) -> Optional[Dict[str, Any]]:
        """Get a single colour by ID."""
        async with connect(self.db_file) as conn:
            cursor = await conn.execute(
                'SELECT pk_colour_id, colour_name, colour_code FROM colours WHERE pk_colour_id = ?',
                (colour_id,)
            )
            row = await cursor.fetchone()
            return self._row_to_colour(row) if row else None

    async def colour_exists(self, colour_id: int) -> bool:
        return await self.get_colour(colour_id) is not None

    def _row_to_colour(self, row: aiosqlite.Row) -> Dict[str, Any]:
        return {
            'id': row['pk_colour_id'],
            'name': row['colour_name'],
            'code': bytes(row['colour_code']).hex().upper()
        }


class UserManager:
    """Handles user accounts and keeps the identity cache in step with them."""

    def __init__(self, db_file: str, user_cache: UserCache, bcrypt_rounds: int = 12):
        self.db_file = db_file
        self.user_cache = user_cache
        self.bcrypt_rounds = bcrypt_rounds

    async def get_all_users(self) -> List[Dict[str, Any]]:
        """Get every user without password hashes."""
        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                SELECT pk_user_id, username, email_address, first_name, last_name
                FROM users ORDER BY pk_user_id
            ''')
            return [self._row_to_user(row) for row in await cursor.fetchall()]

    async def load_identity_cache(self) -> None:
        """Populate the identity cache from the users table."""
        users = await self.get_all_users()
        self.user_cache.load((user['username'], user['id']) for user in users)

    async def get_user(self, username: str) -> Optional[Dict[str, Any]]:
        """Get the public profile of a user by username."""
        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                SELECT pk_user_id, username, email_address, first_name, last_name
                FROM users WHERE username = ?
            ''', (username,))
            row = await cursor.fetchone()
            return self._row_to_user(row) if row else None

    async def get_credentials(self, username: str) -> Optional[Dict[str, Any]]:
        """Get the ID and password hash used to authenticate a user."""
        async with connect(self.db_file) as conn:
            cursor = await conn.execute(
                'SELECT pk_user_id, username, password FROM users WHERE username = ?',
                (username,)
            )
            row = await cursor.fetchone()
            if not row:
                return None
            return {'id': row['pk_user_id'], 'username': row['username'], 'password': row['password']}

    async def add_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a user with a hashed password and register it in the identity cache."""
        password_hash = await hash_password_async(user_data['password'], self.bcrypt_rounds)

        async with connect(self.db_file) as conn:
            try:
                cursor = await conn.execute('''
                    INSERT INTO users (username, password, email_address, first_name, last_name)
                    VALUES (?, ?, ?, ?, ?)
                ''', (
                    user_data['username'],
                    password_hash,
                    user_data.get('email'),
                    user_data.get('first_name'),
                    user_data.get('last_name')
                ))
                await conn.commit()
            except sqlite3.IntegrityError as e:
                raise DuplicateRecordError("username or email already exists") from e

            user_id = cursor.lastrowid

        self.user_cache.add_user(user_data['username'], user_id)
        logger.info(f"User created: user_id={user_id}")
        return {
            'id': user_id,
            'username': user_data['username'],
            'email': user_data.get('email'),
            'first_name': user_data.get('first_name'),
            'last_name': user_data.get('last_name')
        }

    async def update_user(self, username: str, user_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update the authenticated user; null fields keep their current value."""
        user_id = self.user_cache.get_user_id(username)
        current = await self.get_user(username)
        if current is None or current['id'] != user_id:
            return None

        updated = merge_patch(current, user_data, ('username', 'email', 'first_name', 'last_name'))
        password_hash = None
        if user_data.get('password') is not None:
            password_hash = await hash_password_async(user_data['password'], self.bcrypt_rounds)

        async with connect(self.db_file) as conn:
            try:
                cursor = await conn.execute('''
                    UPDATE users SET username = ?, email_address = ?, first_name = ?, last_name = ?
                    WHERE pk_user_id = ?
                ''', (
                    updated['username'], updated['email'], updated['first_name'],
                    updated['last_name'], user_id
                ))
                if password_hash is not None:
                    await conn.execute(
                        'UPDATE users SET password = ? WHERE pk_user_id = ?',
                        (password_hash, user_id)
                    )
                await conn.commit()
            except sqlite3.IntegrityError as e:
                raise DuplicateRecordError("username or email already exists") from e

            if cursor.rowcount == 0:
                return None

        if updated['username'] != username:
            self.user_cache.rename_user(username, updated['username'])
            logger.info(f"User renamed: user_id={user_id}")
        return updated

    async def delete_user(self, username: str) -> bool:
        """Delete the authenticated user; owned rows go with it by cascade."""
        user_id = self.user_cache.get_user_id(username)
        async with connect(self.db_file) as conn:
            cursor = await conn.execute('DELETE FROM users WHERE pk_user_id = ?', (user_id,))
            await conn.commit()
            deleted = cursor.rowcount > 0

        if deleted:
            self.user_cache.remove_user(username)
            logger.info(f"User deleted: user_id={user_id}")
        return deleted

    def _row_to_user(self, row: aiosqlite.Row) -> Dict[str, Any]:
        return {
            'id': row['pk_user_id'],
            'username': row['username'],
            'email': row['email_address'],
            'first_name': row['first_name'],
            'last_name': row['last_name']
        }


class OwnedRecordManager:
    """Shared plumbing for managers of rows owned by a single user."""

    def __init__(self, db_file: str, cipher: FieldCipher, user_cache: UserCache):
        self.db_file = db_file
        self.cipher = cipher
        self.user_cache = user_cache

    def _user_id(self, username: str) -> int:
        return self.user_cache.get_user_id(username)

    async def _is_owned(self, conn: aiosqlite.Connection, table: str, key_column: str,
                        key: int, user_id: int) -> bool:
        """Check that the row keyed by key in table belongs to user_id."""
        cursor = await conn.execute(
            f'SELECT 1 FROM {table} WHERE {key_column} = ? AND fk_user_id = ?',
            (key, user_id)
        )
        return await cursor.fetchone() is not None

    def _sum_amounts(self, rows: List[aiosqlite.Row]) -> float:
        return round(sum(float(self.cipher.decrypt(row['entry_amount'])) for row in rows), 2)

    def _row_to_entry(self, row: aiosqlite.Row) -> Dict[str, Any]:
        decrypt = self.cipher.decrypt
        return {
            'id': row['pk_entry_id'],
            'subcategory_id': row['fk_subcategory_id'],
            'name': decrypt(row['entry_name']),
            'description': decrypt(row['entry_description']),
            'amount': float(decrypt(row['entry_amount'])),
            'creation_time': decrypt(row['entry_creation_time']),
            'time_of_transaction': decrypt(row['entry_time_of_transaction']),
            'attachment': decrypt(row['entry_attachment']),
            'user_id': row['fk_user_id']
        }

    def _row_to_label(self, row: aiosqlite.Row) -> Dict[str, Any]:
        return {
            'id': row['pk_label_id'],
            'name': self.cipher.decrypt(row['label_name']),
            'description': self.cipher.decrypt(row['label_description']),
            'colour_id': row['fk_label_colour_id'],
            'user_id': row['fk_user_id']
        }


class CategoryManager(OwnedRecordManager):
    """Handles category CRUD operations for the authenticated user."""

    async def get_all_categories(self, username: str) -> List[Dict[str, Any]]:
        """Get all categories of the user."""
        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                SELECT pk_category_id, category_name, category_description, fk_category_colour_id, fk_user_id
                FROM categories WHERE fk_user_id = ? ORDER BY pk_category_id
            ''', (self._user_id(username),))
            return [self._row_to_category(row) for row in await cursor.fetchall()]

    async def get_category(self, username: str, category_id: int) -> Optional[Dict[str, Any]]:
        """Get a single category of the user."""
        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                SELECT pk_category_id, category_name, category_description, fk_category_colour_id, fk_user_id
                FROM categories WHERE fk_user_id = ? AND pk_category_id = ?
            ''', (self._user_id(username), category_id))
            row = await cursor.fetchone()
            return self._row_to_category(row) if row else None

    async def add_category(self, username: str, category_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Create a category owned by the user."""
        user_id = self._user_id(username)
        if user_id == UNKNOWN_USER_ID:
            return None

        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                INSERT INTO categories (category_name, category_description, fk_category_colour_id, fk_user_id)
                VALUES (?, ?, ?, ?)
            ''', (
                self.cipher.encrypt(category_data['name']),
                self.cipher.encrypt(category_data.get('description')),
                category_data['colour_id'],
                user_id
            ))
            await conn.commit()
            category_id = cursor.lastrowid

        logger.info(f"Category created: category_id={category_id}, user_id={user_id}")
        return {
            'id': category_id,
            'name': category_data['name'],
            'description': category_data.get('description'),
            'colour_id': category_data['colour_id'],
            'user_id': user_id
        }

    async def update_category(self, username: str, category_id: int,
                              category_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update a category; null fields and a colour of 0 keep the old value."""
        current = await self.get_category(username, category_id)
        if current is None:
            return None

        changes = dict(category_data, colour_id=category_data.get('colour_id') or None)
        updated = merge_patch(current, changes, ('name', 'description', 'colour_id'))

        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                UPDATE categories
                SET category_name = ?, category_description = ?, fk_category_colour_id = ?
                WHERE pk_category_id = ? AND fk_user_id = ?
            ''', (
                self.cipher.encrypt(updated['name']),
                self.cipher.encrypt(updated['description']),
                updated['colour_id'],
                category_id,
                current['user_id']
            ))
            await conn.commit()
            return updated if cursor.rowcount > 0 else None

    async def delete_category(self, username: str, category_id: int) -> bool:
        """Delete a category with its subcategories and entries."""
        async with connect(self.db_file) as conn:
            cursor = await conn.execute(
                'DELETE FROM categories WHERE pk_category_id = ? AND fk_user_id = ?',
                (category_id, self._user_id(username))
            )
            await conn.commit()
            return cursor.rowcount > 0

    async def get_category_sum(self, username: str, category_id: int) -> Optional[float]:
        """Sum the amounts of all entries below a category."""
        user_id = self._user_id(username)
        async with connect(self.db_file) as conn:
            if not await self._is_owned(conn, 'categories', 'pk_category_id', category_id, user_id):
                return None
            cursor = await conn.execute('''
                SELECT e.entry_amount
                FROM entries e
                JOIN subcategories s ON e.fk_subcategory_id = s.pk_subcategory_id
                WHERE s.fk_category_id = ? AND e.fk_user_id = ?
            ''', (category_id, user_id))
            return self._sum_amounts(await cursor.fetchall())

    def _row_to_category(self, row: aiosqlite.Row) -> Dict[str, Any]:
        return {
            'id': row['pk_category_id'],
            'name': self.cipher.decrypt(row['category_name']),
            'description': self.cipher.decrypt(row['category_description']),
            'colour_id': row['fk_category_colour_id'],
            'user_id': row['fk_user_id']
        }


class SubcategoryManager(OwnedRecordManager):
    """Handles subcategory CRUD operations within the user's categories."""

    async def get_all_subcategories(self, username: str, category_id: int) -> Optional[List[Dict[str, Any]]]:
        """Get all subcategories of a category, or None if the category is not the user's."""
        user_id = self._user_id(username)
        async with connect(self.db_file) as conn:
            if not await self._is_owned(conn, 'categories', 'pk_category_id', category_id, user_id):
                return None
            cursor = await conn.execute('''
                SELECT pk_subcategory_id, fk_category_id, subcategory_name, subcategory_description,
                       fk_subcategory_colour_id, fk_user_id
                FROM subcategories WHERE fk_user_id = ? AND fk_category_id = ?
                ORDER BY pk_subcategory_id
            ''', (user_id, category_id))
            return [self._row_to_subcategory(row) for row in await cursor.fetchall()]

    async def get_subcategory(self, username: str, category_id: int,
                              subcategory_id: int) -> Optional[Dict[str, Any]]:
        """Get a single subcategory of a category."""
        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                SELECT pk_subcategory_id, fk_category_id, subcategory_name, subcategory_description,
                       fk_subcategory_colour_id, fk_user_id
                FROM subcategories
                WHERE pk_subcategory_id = ? AND fk_user_id = ? AND fk_category_id = ?
            ''', (subcategory_id, self._user_id(username), category_id))
            row = await cursor.fetchone()
            return self._row_to_subcategory(row) if row else None

    async def add_subcategory(self, username: str, category_id: int,
                              subcategory_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Create a subcategory inside one of the user's categories."""
        user_id = self._user_id(username)
        async with connect(self.db_file) as conn:
            if not await self._is_owned(conn, 'categories', 'pk_category_id', category_id, user_id):
                return None
            cursor = await conn.execute('''
                INSERT INTO subcategories
                (fk_category_id, subcategory_name, subcategory_description, fk_subcategory_colour_id, fk_user_id)
                VALUES (?, ?, ?, ?, ?)
            ''', (
                category_id,
                self.cipher.encrypt(subcategory_data['name']),
                self.cipher.encrypt(subcategory_data.get('description')),
                subcategory_data['colour_id'],
                user_id
            ))
            await conn.commit()
            subcategory_id = cursor.lastrowid

        logger.info(f"Subcategory created: subcategory_id={subcategory_id}, category_id={category_id}")
        return {
            'id': subcategory_id,
            'category_id': category_id,
            'name': subcategory_data['name'],
            'description': subcategory_data.get('description'),
            'colour_id': subcategory_data['colour_id'],
            'user_id': user_id
        }

    async def update_subcategory(self, username: str, category_id: int, subcategory_id: int,
                                 subcategory_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update a subcategory, optionally moving it to another of the user's categories."""
        current = await self.get_subcategory(username, category_id, subcategory_id)
        if current is None:
            return None

        changes = dict(subcategory_data, colour_id=subcategory_data.get('colour_id') or None)
        updated = merge_patch(current, changes, ('category_id', 'name', 'description', 'colour_id'))
        user_id = current['user_id']

        async with connect(self.db_file) as conn:
            if updated['category_id'] != category_id and not await self._is_owned(
                    conn, 'categories', 'pk_category_id', updated['category_id'], user_id):
                return None

            cursor = await conn.execute('''
                UPDATE subcategories
                SET fk_category_id = ?, subcategory_name = ?, subcategory_description = ?,
                    fk_subcategory_colour_id = ?
                WHERE pk_subcategory_id = ? AND fk_user_id = ? AND fk_category_id = ?
            ''', (
                updated['category_id'],
                self.cipher.encrypt(updated['name']),
                self.cipher.encrypt(updated['description']),
                updated['colour_id'],
                subcategory_id,
                user_id,
                category_id
            ))
            await conn.commit()
            return updated if cursor.rowcount > 0 else None

    async def delete_subcategory(self, username: str, category_id: int, subcategory_id: int) -> bool:
        """Delete a subcategory with its entries."""
        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                DELETE FROM subcategories
                WHERE pk_subcategory_id = ? AND fk_user_id = ? AND fk_category_id = ?
            ''', (subcategory_id, self._user_id(username), category_id))
            await conn.commit()
            return cursor.rowcount > 0

    def _row_to_subcategory(self, row: aiosqlite.Row) -> Dict[str, Any]:
        return {
            'id': row['pk_subcategory_id'],
            'category_id': row['fk_category_id'],
            'name': self.cipher.decrypt(row['subcategory_name']),
            'description': self.cipher.decrypt(row['subcategory_description']),
            'colour_id': row['fk_subcategory_colour_id'],
            'user_id': row['fk_user_id']
        }


class LabelManager(OwnedRecordManager):
    """Handles label CRUD operations for the authenticated user."""

    async def get_all_labels(self, username: str) -> List[Dict[str, Any]]:
        """Get all labels of the user."""
        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                SELECT pk_label_id, label_name, label_description, fk_label_colour_id, fk_user_id
                FROM labels WHERE fk_user_id = ? ORDER BY pk_label_id
            ''', (self._user_id(username),))
            return [self._row_to_label(row) for row in await cursor.fetchall()]

    async def get_label(self, username: str, label_id: int) -> Optional[Dict[str, Any]]:
        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                SELECT pk_label_id, label_name, label_description, fk_label_colour_id, fk_user_id
                FROM labels WHERE fk_user_id = ? AND pk_label_id = ?
            ''', (self._user_id(username), label_id))
            row = await cursor.fetchone()
            return self._row_to_label(row) if row else None

    async def add_label(self, username: str, label_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Create a label owned by the user."""
        user_id = self._user_id(username)
        if user_id == UNKNOWN_USER_ID:
            return None

        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                INSERT INTO labels (label_name, label_description, fk_label_colour_id, fk_user_id)
                VALUES (?, ?, ?, ?)
            ''', (
                self.cipher.encrypt(label_data['name']),
                self.cipher.encrypt(label_data.get('description')),
                label_data['colour_id'],
                user_id
            ))
            await conn.commit()
            label_id = cursor.lastrowid

        logger.info(f"Label created: label_id={label_id}, user_id={user_id}")
        return {
            'id': label_id,
            'name': label_data['name'],
            'description': label_data.get('description'),
            'colour_id': label_data['colour_id'],
            'user_id': user_id
        }

    async def update_label(self, username: str, label_id: int,
                           label_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update a label; null fields and a colour of 0 keep the old value."""
        current = await self.get_label(username, label_id)
        if current is None:
            return None

        changes = dict(label_data, colour_id=label_data.get('colour_id') or None)
        updated = merge_patch(current, changes, ('name', 'description', 'colour_id'))

        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                UPDATE labels SET label_name = ?, label_description = ?, fk_label_colour_id = ?
                WHERE pk_label_id = ? AND fk_user_id = ?
            ''', (
                self.cipher.encrypt(updated['name']),
                self.cipher.encrypt(updated['description']),
                updated['colour_id'],
                label_id,
                current['user_id']
            ))
            await conn.commit()
            return updated if cursor.rowcount > 0 else None

    async def delete_label(self, username: str, label_id: int) -> bool:
        async with connect(self.db_file) as conn:
            cursor = await conn.execute(
                'DELETE FROM labels WHERE pk_label_id = ? AND fk_user_id = ?',
                (label_id, self._user_id(username))
            )
            await conn.commit()
            return cursor.rowcount > 0

    async def get_label_sum(self, username: str, label_id: int) -> Optional[float]:
        """Sum the amounts of all entries carrying a label."""
        user_id = self._user_id(username)
        async with connect(self.db_file) as conn:
            if not await self._is_owned(conn, 'labels', 'pk_label_id', label_id, user_id):
                return None
            cursor = await conn.execute('''
                SELECT e.entry_amount
                FROM entries e
                JOIN entry_labels el ON el.fk_entry_id = e.pk_entry_id
                WHERE el.fk_label_id = ? AND el.fk_user_id = ? AND e.fk_user_id = ?
            ''', (label_id, user_id, user_id))
            return self._sum_amounts(await cursor.fetchall())


class EntryManager(OwnedRecordManager):
    """Handles entry (transaction) CRUD operations within the user's subcategories."""

    async def get_all_entries(self, username: str, subcategory_id: int) -> Optional[List[Dict[str, Any]]]:
        """Get all entries of a subcategory, or None if the subcategory is not the user's."""
        user_id = self._user_id(username)
        async with connect(self.db_file) as conn:
            if not await self._is_owned(conn, 'subcategories', 'pk_subcategory_id', subcategory_id, user_id):
                return None
            cursor = await conn.execute('''
                SELECT pk_entry_id, fk_subcategory_id, entry_name, entry_description, entry_amount,
                       entry_creation_time, entry_time_of_transaction, entry_attachment, fk_user_id
                FROM entries WHERE fk_user_id = ? AND fk_subcategory_id = ?
                ORDER BY pk_entry_id
            ''', (user_id, subcategory_id))
            return [self._row_to_entry(row) for row in await cursor.fetchall()]

    async def get_entry(self, username: str, subcategory_id: int, entry_id: int) -> Optional[Dict[str, Any]]:
        """Get a single entry of a subcategory."""
        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                SELECT pk_entry_id, fk_subcategory_id, entry_name, entry_description, entry_amount,
                       entry_creation_time, entry_time_of_transaction, entry_attachment, fk_user_id
                FROM entries WHERE pk_entry_id = ? AND fk_user_id = ? AND fk_subcategory_id = ?
            ''', (entry_id, self._user_id(username), subcategory_id))
            row = await cursor.fetchone()
            return self._row_to_entry(row) if row else None

    async def add_entry(self, username: str, subcategory_id: int,
                        entry_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Create an entry inside one of the user's subcategories."""
        user_id = self._user_id(username)
        creation_time = self._get_current_timestamp()
        encrypt = self.cipher.encrypt

        async with connect(self.db_file) as conn:
            if not await self._is_owned(conn, 'subcategories', 'pk_subcategory_id', subcategory_id, user_id):
                return None
            cursor = await conn.execute('''
                INSERT INTO entries (fk_subcategory_id, entry_name, entry_description, entry_amount,
                                     entry_creation_time, entry_time_of_transaction, entry_attachment,
                                     fk_user_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                subcategory_id,
                encrypt(entry_data.get('name')),
                encrypt(entry_data.get('description')),
                encrypt(str(float(entry_data['amount']))),
                encrypt(creation_time),
                encrypt(entry_data['time_of_transaction']),
                encrypt(entry_data.get('attachment')),
                user_id
            ))
            await conn.commit()
            entry_id = cursor.lastrowid

        logger.info(f"Entry created: entry_id={entry_id}, subcategory_id={subcategory_id}")
        return {
            'id': entry_id,
            'subcategory_id': subcategory_id,
            'name': entry_data.get('name'),
            'description': entry_data.get('description'),
            'amount': float(entry_data['amount']),
            'creation_time': creation_time,
            'time_of_transaction': entry_data['time_of_transaction'],
            'attachment': entry_data.get('attachment'),
            'user_id': user_id
        }

    async def update_entry(self, username: str, subcategory_id: int, entry_id: int,
                           entry_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update an entry, optionally moving it to another of the user's subcategories.

        The creation time is set once on insert and never changes.
        """
        current = await self.get_entry(username, subcategory_id, entry_id)
        if current is None:
            return None

        updated = merge_patch(current, entry_data, (
            'subcategory_id', 'name', 'description', 'amount', 'time_of_transaction', 'attachment'
        ))
        updated['amount'] = float(updated['amount'])
        user_id = current['user_id']
        encrypt = self.cipher.encrypt

        async with connect(self.db_file) as conn:
            if updated['subcategory_id'] != subcategory_id and not await self._is_owned(
                    conn, 'subcategories', 'pk_subcategory_id', updated['subcategory_id'], user_id):
                return None

            cursor = await conn.execute('''
                UPDATE entries
                SET fk_subcategory_id = ?, entry_name = ?, entry_description = ?, entry_amount = ?,
                    entry_time_of_transaction = ?, entry_attachment = ?
                WHERE pk_entry_id = ? AND fk_user_id = ? AND fk_subcategory_id = ?
            ''', (
                updated['subcategory_id'],
                encrypt(updated['name']),
                encrypt(updated['description']),
                encrypt(str(updated['amount'])),
                encrypt(updated['time_of_transaction']),
                encrypt(updated['attachment']),
                entry_id,
                user_id,
                subcategory_id
            ))
            await conn.commit()
            return updated if cursor.rowcount > 0 else None

    async def delete_entry(self, username: str, subcategory_id: int, entry_id: int) -> bool:
        async with connect(self.db_file) as conn:
            cursor = await conn.execute('''
                DELETE FROM entries WHERE pk_entry_id = ? AND fk_user_id = ? AND fk_subcategory_id = ?
            ''', (entry_id, self._user_id(username), subcategory_id))
            await conn.commit()
            return cursor.rowcount > 0

    def _get_current_timestamp(self) -> str:
        """Get current timestamp as ISO string."""
        return datetime.now().isoformat(timespec='seconds')


class EntryLabelManager(OwnedRecordManager):
    """Handles the many-to-many links between entries and labels."""

    async def get_labels_for_entry(self, username: str, entry_id: int) -> Optional[List[Dict[str, Any]]]:
        """Get the labels attached to an entry, or None if the entry is not the user's."""
        user_id = self._user_id(username)
        async with connect(self.db_file) as conn:
            if not await self._is_owned(conn, 'entries', 'pk_entry_id', entry_id, user_id):
                return None
            cursor = await conn.execute('''
                SELECT l.pk_label_id, l.label_name, l.label_description, l.fk_label_colour_id, l.fk_user_id
                FROM labels l
                JOIN entry_labels el ON l.pk_label_id = el.fk_label_id
                WHERE el.fk_entry_id = ? AND el.fk_user_id = ? AND l.fk_user_id = ?
                ORDER BY l.pk_label_id
            ''', (entry_id, user_id, user_id))
            return [self._row_to_label(row) for row in await cursor.fetchall()]

    async def get_entries_for_label(self, username: str, label_id: int) -> Optional[List[Dict[str, Any]]]:
        """Get the entries carrying a label, or None if the label is not the user's."""
        user_id = self._user_id(username)
        async with connect(self.db_file) as conn:
            if not await self._is_owned(conn, 'labels', 'pk_label_id', label_id, user_id):
                return None
            cursor = await conn.execute('''
                SELECT e.pk_entry_id, e.fk_subcategory_id, e.entry_name, e.entry_description, e.entry_amount,
                       e.entry_creation_time, e.entry_time_of_transaction, e.entry_attachment, e.fk_user_id
                FROM entries e
                JOIN entry_labels el ON e.pk_entry_id = el.fk_entry_id
                WHERE el.fk_label_id = ? AND el.fk_user_id = ? AND e.fk_user_id = ?
                ORDER BY e.pk_entry_id
            ''', (label_id, user_id, user_id))
            return [self._row_to_entry(row) for row in await cursor.fetchall()]

    async def add_label_to_entry(self, username: str, entry_id: int, label_id: int) -> Optional[Dict[str, Any]]:
        """Attach a label to an entry when both belong to the user."""
        user_id = self._user_id(username)
        async with connect(self.db_file) as conn:
            if not (await self._is_owned(conn, 'entries', 'pk_entry_id', entry_id, user_id)
                    and await self._is_owned(conn, 'labels', 'pk_label_id', label_id, user_id)):
                return None
            try:
                cursor = await conn.execute(
                    'INSERT INTO entry_labels (fk_entry_id, fk_label_id, fk_user_id) VALUES (?, ?, ?)',
                    (entry_id, label_id, user_id)
                )
                await conn.commit()
            except sqlite3.IntegrityError as e:
                raise DuplicateRecordError(f"label {label_id} is already attached to entry {entry_id}") from e

            return {'id': cursor.lastrowid, 'entry_id': entry_id, 'label_id': label_id, 'user_id': user_id}

    async def remove_label_from_entry(self, username: str, entry_id: int, label_id: int) -> bool:
        async with connect(self.db_file) as conn:
            cursor = await conn.execute(
                'DELETE FROM entry_labels WHERE fk_entry_id = ? AND fk_label_id = ? AND fk_user_id = ?',
                (entry_id, label_id, self._user_id(username))
            )
            await conn.commit()
            return cursor.rowcount > 0
