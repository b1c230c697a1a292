"""
Request authentication:
- jwt_request_filter(): runs once per request (before_request, see api.create_app)
  and attaches an AuthenticatedPrincipal to g.principal when the bearer token is valid
- public_endpoint: marks views the routing layer exempts from the filter
- jwt_required() / roles_required(): reject unauthenticated / unauthorized calls and
  hand the principal to the view as an explicit `principal` argument
"""
from __future__ import annotations

import logging
from functools import wraps

from flask import current_app, g, request

from utils.exceptions import (
    AuthenticationRequiredError,
    ExpiredTokenError,
    InsufficientRoleError,
    InvalidSignatureError,
    TokenError,
)
from utils.security import (
    AuthenticatedPrincipal,
    JwtSettings,
    decode_roles,
    decode_subject,
    decode_user_id,
)

logger = logging.getLogger(__name__)

EXPIRED = "expired"
INVALID = "invalid"


def public_endpoint(fn):
    fn.is_public = True
    return fn


def is_public(view) -> bool:
    return bool(getattr(view, "is_public", False))


def jwt_request_filter(settings: JwtSettings | None = None) -> None:
    """
    Never fails the request: a missing, expired or forged token just leaves
    g.principal unset, and jwt_required() answers 401 where it matters.
    """
    settings = settings or current_app.extensions["jwt_settings"]
    header = request.headers.get(settings.auth_header)
    if not header or not header.startswith(settings.bearer_prefix):
        return None

    token = header[len(settings.bearer_prefix):]
    try:
        username = decode_subject(token, settings.access_secret, settings.algorithm)
    except ExpiredTokenError:
        logger.info("Access token expired (%s %s)", request.method, request.path)
        g.auth_failure = EXPIRED
        return None
    except InvalidSignatureError as exc:
        logger.warning("Rejected access token (%s %s): %s", request.method, request.path, exc)
        g.auth_failure = INVALID
        return None

    if username and g.get("principal") is None:
        try:
            roles = decode_roles(token, settings.access_secret, settings.algorithm)
            user_id = decode_user_id(token, settings.access_secret, settings.algorithm)
        except TokenError as exc:
            logger.warning("Rejected access token claims: %s", exc)
            g.auth_failure = INVALID
            return None
        g.principal = AuthenticatedPrincipal(
            user_id=user_id,
            username=username,
            authorities=tuple(roles),
        )
    return None


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            principal = g.get("principal")
            if principal is None:
                if g.get("auth_failure") == EXPIRED:
                    raise AuthenticationRequiredError("Access token expired", code="TOKEN_EXPIRED")
                raise AuthenticationRequiredError()
            return fn(*args, principal=principal, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: list[str]):
    """
    Allow access if the principal has ANY of the required roles.
    Deny (403) only if there is NO overlap between its authorities and required_roles.
    """
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, principal: AuthenticatedPrincipal, **kwargs):
            if not principal.has_any_role(required_roles):
                raise InsufficientRoleError()
            return fn(*args, principal=principal, **kwargs)

        return wrapper

    return decorator
