"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT (separate secrets for access and refresh tokens)
- JTI generation for token identifiers
- value types shared by the service and the request filter
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from utils.exceptions import ExpiredTokenError, InvalidSignatureError

ALGORITHM = "HS256"

ph = PasswordHasher()


@dataclass(frozen=True)
class JwtSettings:
    """Externalized token settings (see api.config)."""
    auth_header: str
    bearer_prefix: str
    access_secret: str
    access_lifetime_ms: int
    refresh_secret: str
    refresh_lifetime_ms: int
    algorithm: str = ALGORITHM

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "JwtSettings":
        return cls(
            auth_header=config["AUTH_HEADER"],
            bearer_prefix=config["BEARER_PREFIX"],
            access_secret=config["ACCESS_SECRET"],
            access_lifetime_ms=int(config["ACCESS_LIFETIME_MS"]),
            refresh_secret=config["REFRESH_SECRET"],
            refresh_lifetime_ms=int(config["REFRESH_LIFETIME_MS"]),
            algorithm=config.get("JWT_ALGORITHM", ALGORITHM),
        )


@dataclass(frozen=True)
class UserIdentity:
    """What the codec needs to know about a user."""
    id: int
    username: str
    roles: Tuple[str, ...]


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """Request-scoped identity built from a validated access token."""
    user_id: Optional[int]
    username: str
    authorities: Tuple[str, ...]

    def has_any_role(self, roles: Sequence[str]) -> bool:
        return bool(set(self.authorities) & set(roles))


def build_password_hasher(time_cost: int, memory_cost: int) -> PasswordHasher:
    return PasswordHasher(time_cost=time_cost, memory_cost=memory_cost)


def hash_password(password: str, hasher: PasswordHasher = ph) -> str:
    """Hash a plaintext password using Argon2
    """
    return hasher.hash(password)


def verify_password(password: str, password_hash: str, hasher: PasswordHasher = ph) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def needs_rehash(password_hash: str, hasher: PasswordHasher = ph) -> bool:
    return hasher.check_needs_rehash(password_hash)


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def issue_token(
    subject: str,
    roles: Sequence[str],
    secret: str,
    lifetime_ms: int,
    user_id: Optional[int] = None,
    algorithm: str = ALGORITHM,
) -> str:
    """
    Build a signed token carrying the subject and the ordered role names.
    exp = iat + lifetime_ms. Every token gets its own jti so two tokens issued
    for the same user within the same second are still different strings.
    """
    issued_at = _now()
    payload: Dict[str, Any] = {
        "sub": str(subject),
        "roles": list(roles),
        "iat": issued_at,
        "exp": issued_at + timedelta(milliseconds=lifetime_ms),
        "jti": generate_jti(),
    }
    if user_id is not None:
        payload["uid"] = user_id
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_claims(token: str, secret: str, algorithm: str = ALGORITHM) -> Dict[str, Any]:
    """
    Verify signature and expiry, return the claims.
    Raises ExpiredTokenError or InvalidSignatureError.
    """
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise ExpiredTokenError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidSignatureError(f"Invalid token: {exc}") from exc


def decode_subject(token: str, secret: str, algorithm: str = ALGORITHM) -> str:
    return decode_claims(token, secret, algorithm)["sub"]


def decode_roles(token: str, secret: str, algorithm: str = ALGORITHM) -> List[str]:
    roles = decode_claims(token, secret, algorithm).get("roles", [])
    if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
        raise InvalidSignatureError("Invalid token: malformed roles claim")
    return roles


def decode_user_id(token: str, secret: str, algorithm: str = ALGORITHM) -> Optional[int]:
    uid = decode_claims(token, secret, algorithm).get("uid")
    if uid is not None and not isinstance(uid, int):
        raise InvalidSignatureError("Invalid token: malformed uid claim")
    return uid


def issue_access_token(identity: UserIdentity, settings: JwtSettings) -> str:
    return issue_token(
        identity.username,
        identity.roles,
        settings.access_secret,
        settings.access_lifetime_ms,
        user_id=identity.id,
        algorithm=settings.algorithm,
    )


def issue_refresh_token(identity: UserIdentity, settings: JwtSettings) -> str:
    return issue_token(
        identity.username,
        identity.roles,
        settings.refresh_secret,
        settings.refresh_lifetime_ms,
        user_id=identity.id,
        algorithm=settings.algorithm,
    )
