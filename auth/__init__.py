"""Authentication module using password credentials and signed tokens.

This module provides:
1. Password hashing and verification
2. JWT issue and verification
3. Registration, login and password changes
4. FastAPI dependencies for protecting routes
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

import asyncpg
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt
from passlib.context import CryptContext

from common import AuthenticationError, AuthorizationError, ConflictError
from users import db as users_db

# Configure logging
logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class InvalidCredentialsError(AuthenticationError):
    """Raised when email or password is wrong."""
    pass


class InvalidTokenError(AuthenticationError):
    """Raised when a token is malformed, expired or names an unknown user."""
    pass


class AccountBannedError(AuthorizationError):
    """Raised when a banned user tries to sign in or use a token."""
    pass


class EmailTakenError(ConflictError):
    """Raised when registering with an email that is already in use."""
    pass


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


class AuthManager:
    """Manages credentials and session tokens."""

    def __init__(
        self,
        pool,
        secret: str,
        algorithm: str = "HS256",
        expiry_days: int = 30
    ):
        """Initialize auth manager.

        Args:
            pool: Database pool
            secret: Token signing secret
            algorithm: JWT signing algorithm
            expiry_days: Token lifetime in days
        """
        self.pool = pool
        self.secret = secret
        self.algorithm = algorithm
        self.expiry_days = expiry_days

    def issue_token(self, user_id: UUID) -> Dict[str, Any]:
        """Create a signed token for a user.

        Returns:
            Dict containing:
                - token: Bearer token
                - expires_at: Expiration timestamp
        """
        expires_at = datetime.now(timezone.utc) + timedelta(days=self.expiry_days)
        token = jwt.encode(
            {
                'sub': str(user_id),
                'exp': int(expires_at.timestamp())
            },
            self.secret,
            algorithm=self.algorithm
        )
        return {
            'token': token,
            'expires_at': expires_at.isoformat()
        }

    def verify_token(self, token: str) -> UUID:
        """Decode a token and return the user id it was issued for.

        Raises:
            InvalidTokenError: If the token is expired or invalid
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
            return UUID(payload['sub'])
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token has expired")
        except jwt.JWTError as e:
            raise InvalidTokenError(f"Invalid token: {str(e)}")
        except (KeyError, ValueError, TypeError):
            raise InvalidTokenError("Invalid token subject")

    async def register(
        self,
        email: str,
        password: str,
        name: str,
        location: Optional[str] = None,
        skills_offered: Optional[List[str]] = None,
        skills_wanted: Optional[List[str]] = None,
        availability: str = 'flexible',
        is_public: bool = True
    ) -> Dict[str, Any]:
        """Create an account and sign it in.

        Returns:
            Dict with the new user, its token and the token expiry

        Raises:
            EmailTakenError: If the email is already registered
        """
        email = email.strip().lower()
        password_hash = hash_password(password)

        async with self.pool.acquire() as conn:
            if await users_db.get_user_by_email(conn, email):
                raise EmailTakenError("User already exists with this email")
            try:
                user = await users_db.insert_user(
                    conn,
                    email=email,
                    password_hash=password_hash,
                    name=name,
                    location=location,
                    skills_offered=skills_offered or [],
                    skills_wanted=skills_wanted or [],
                    availability=getattr(availability, 'value', availability),
                    is_public=is_public
                )
            except asyncpg.UniqueViolationError:
                raise EmailTakenError("User already exists with this email")

        logger.info(f"Registered user {user['id']}")
        return {'user': user, **self.issue_token(user['id'])}

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Check credentials and issue a token.

        Raises:
            InvalidCredentialsError: If email or password is wrong
            AccountBannedError: If the account is banned
        """
        async with self.pool.acquire() as conn:
            user = await users_db.get_user_by_email(conn, email.strip().lower())

        if not user or not verify_password(password, user['password_hash']):
            raise InvalidCredentialsError("Invalid credentials")
        if user['is_banned']:
            raise AccountBannedError("Account has been banned")

        logger.info(f"User {user['id']} logged in")
        return {'user': user, **self.issue_token(user['id'])}

    async def authenticate(self, token: str) -> Dict[str, Any]:
        """Resolve a token to an active user.

        Raises:
            InvalidTokenError: If the token is invalid or the user is gone
            AccountBannedError: If the user has been banned since the token was issued
        """
        user_id = self.verify_token(token)
        async with self.pool.acquire() as conn:
            user = await users_db.get_user(conn, user_id)
        if not user:
            raise InvalidTokenError("User not found")
        if user['is_banned']:
            raise AccountBannedError("Account has been banned")
        return user

    async def change_password(self, user_id: UUID, current_password: str, new_password: str) -> None:
        async with self.pool.acquire() as conn:
            user = await users_db.get_user(conn, user_id)
            if not user or not verify_password(current_password, user['password_hash']):
                raise InvalidCredentialsError("Current password is incorrect")
            await users_db.update_user(conn, user_id, {'password_hash': hash_password(new_password)})
        logger.info(f"Password changed for user {user_id}")


# FastAPI security scheme
auth_scheme = HTTPBearer(
    auto_error=False,  # Missing tokens are reported by get_current_user
    description="JWT Bearer token required"
)


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme)
) -> Optional[Dict[str, Any]]:
    """FastAPI dependency returning the authenticated user, or None without a token."""
    if credentials is None:
        return None
    return await request.app.state.auth.authenticate(credentials.credentials)


async def get_current_user(
    user: Optional[Dict[str, Any]] = Depends(get_optional_user)
) -> Dict[str, Any]:
    """FastAPI dependency for getting the authenticated user.

    Raises:
        AuthenticationError: If no token was sent
    """
    if user is None:
        raise AuthenticationError("Not authorized, no token")
    return user


async def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    """FastAPI dependency that only lets admins through."""
    if not user['is_admin']:
        raise AuthorizationError("Admin access required")
    return user


# Export public interface
__all__ = [
    'AuthManager',
    'hash_password',
    'verify_password',
    'get_current_user',
    'get_optional_user',
    'require_admin',
    'InvalidCredentialsError',
    'InvalidTokenError',
    'AccountBannedError',
    'EmailTakenError',
]
