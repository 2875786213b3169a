"""
Secure Finance Manager - Authentication

PURPOSE: Password hashing and HTTP Basic authentication
SCOPE: Credential checks for every user-owned endpoint
DEPENDENCIES: bcrypt, FastAPI
"""

import asyncio
import logging

import bcrypt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

logger = logging.getLogger(__name__)

basic_auth = HTTPBasic()


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a plaintext password with bcrypt."""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds)).decode('utf-8')


def verify_password(password: str, hashed: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


async def hash_password_async(password: str, rounds: int = 12) -> str:
    """Hash in the default thread pool so the event loop keeps serving requests."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: hash_password(password, rounds))


async def verify_password_async(password: str, hashed: str) -> bool:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: verify_password(password, hashed))


async def get_current_username(
    request: Request,
    credentials: HTTPBasicCredentials = Depends(basic_auth)
) -> str:
    """Resolve Basic credentials to the authenticated username.

    A successful login also refreshes the identity cache entry for the user.
    """
    user_manager = request.app.state.user_manager
    stored = await user_manager.get_credentials(credentials.username)

    if not stored or not await verify_password_async(credentials.password, stored['password']):
        logger.warning(f"Failed authentication attempt for username={credentials.username!r}")
        raise HTTPException(
            status_code=401,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Basic"}
        )

    request.app.state.user_cache.add_user(stored['username'], stored['id'])
    return stored['username']
