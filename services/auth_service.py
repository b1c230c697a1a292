"""
Authentication service: login, refresh-token rotation, registration.

The service holds no per-request state. Expected failures are raised as
utils.exceptions.AuthError subclasses and turned into 4xx responses by
api.errors; anything else (missing seed data, database down) propagates.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from argon2 import PasswordHasher
from sqlalchemy.exc import IntegrityError

from models.refresh_token import RefreshToken
from models.user import User
from utils.exceptions import (
    AuthenticationRequiredError,
    InvalidCredentialsError,
    InvalidPasswordError,
    InvalidRefreshTokenError,
    MissingDefaultRoleError,
    PasswordMismatchError,
    TokenError,
    UsernameTakenError,
)
from utils.security import (
    AuthenticatedPrincipal,
    JwtSettings,
    UserIdentity,
    decode_subject,
    generate_jti,
    hash_password,
    issue_access_token,
    issue_refresh_token,
    needs_rehash,
    ph,
    verify_password,
)

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "ROLE_USER"
PASSWORD_LENGTH = (6, 128)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class UserSummary:
    """Public projection of a user; never carries the password hash."""
    id: int
    username: str
    email: Optional[str]


@dataclass(frozen=True)
class CurrentUser:
    id: int
    username: str
    roles: Tuple[str, ...]


class AuthService:
    def __init__(
        self,
        store,
        settings: JwtSettings,
        hasher: PasswordHasher = ph,
        default_role: str = DEFAULT_ROLE,
        password_length: Tuple[int, int] = PASSWORD_LENGTH,
    ):
        self.store = store
        self.settings = settings
        self.hasher = hasher
        self.default_role = default_role
        self.password_length = password_length
        # verified against for unknown usernames
        self._dummy_hash = hash_password(generate_jti(), hasher)

    @staticmethod
    def identity_of(user: User) -> UserIdentity:
        return UserIdentity(id=user.id, username=user.username, roles=tuple(user.role_names))

    def _issue_pair(self, user: User) -> TokenPair:
        identity = self.identity_of(user)
        return TokenPair(
            access_token=issue_access_token(identity, self.settings),
            refresh_token=issue_refresh_token(identity, self.settings),
        )

    def login(self, username: str, password: str) -> TokenPair:
        """Verify credentials, issue a token pair and persist the refresh token."""
        user = self.store.find_user_by_username(username)
        stored_hash = user.password_hash if user is not None else self._dummy_hash
        if not verify_password(password, stored_hash, self.hasher) or user is None:
            logger.info("Failed login for username=%s", username)
            raise InvalidCredentialsError()

        if needs_rehash(user.password_hash, self.hasher):
            user.password_hash = hash_password(password, self.hasher)
            self.store.new(user)

        pair = self._issue_pair(user)
        self.store.save_refresh_token(RefreshToken(token=pair.refresh_token, user_id=user.id))
        logger.info("User %s logged in", user.username)
        return pair

    def refresh(self, refresh_token: str) -> TokenPair:
        """
        Rotate-on-use: the presented refresh token is consumed and replaced.
        Consume and insert are committed together; any failure rolls both back.
        """
        try:
            if not refresh_token or not self.store.consume_refresh_token(refresh_token):
                raise InvalidRefreshTokenError()

            try:
                username = decode_subject(refresh_token, self.settings.refresh_secret, self.settings.algorithm)
            except TokenError as exc:
                logger.info("Stored refresh token failed verification: %s", exc)
                raise InvalidRefreshTokenError() from exc

            user = self.store.find_user_by_username(username)
            if user is None:
                raise InvalidRefreshTokenError()

            pair = self._issue_pair(user)
            self.store.save_refresh_token(RefreshToken(token=pair.refresh_token, user_id=user.id))
        except Exception:
            self.store.rollback()
            raise
        logger.info("Rotated refresh token for %s", user.username)
        return pair

    def register(
        self,
        username: str,
        password: str,
        confirm_password: str,
        email: Optional[str] = None,
    ) -> UserSummary:
        # checked before storage is touched
        if password != confirm_password:
            raise PasswordMismatchError()

        min_len, max_len = self.password_length
        if not min_len <= len(password) <= max_len:
            raise InvalidPasswordError(f"Password must be between {min_len} and {max_len} characters")

        if self.store.find_user_by_username(username) is not None:
            raise UsernameTakenError()

        role = self.store.find_role_by_name(self.default_role)
        if role is None:
            raise MissingDefaultRoleError(f"Default role {self.default_role!r} is missing from seed data")

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password, self.hasher),
            roles=[role],
        )
        try:
            self.store.save_user(user)
        except IntegrityError as exc:
            # lost a race with a concurrent registration
            raise UsernameTakenError() from exc
        logger.info("Registered user %s", user.username)
        return UserSummary(id=user.id, username=user.username, email=user.email)

    def revoke(self, refresh_token: str, user_id: Optional[int]) -> bool:
        """Delete the caller's refresh-token record (logout)."""
        removed = self.store.delete_refresh_token_by_token(refresh_token, user_id=user_id)
        return removed > 0

    def current_user(self, principal: AuthenticatedPrincipal) -> CurrentUser:
        user = None
        if principal.user_id is not None:
            user = self.store.get(User, principal.user_id)
        if user is None:
            user = self.store.find_user_by_username(principal.username)
        if user is None:
            raise AuthenticationRequiredError("User no longer exists")
        return CurrentUser(id=user.id, username=user.username, roles=tuple(user.role_names))

    def list_users(self, page: int, limit: int) -> Tuple[List[User], int]:
        return self.store.list_users(page, limit)
