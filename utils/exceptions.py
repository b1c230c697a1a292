"""
Error taxonomy for the authentication layer.

- AuthError subclasses are expected business failures; api.errors maps them to
  a {code, message, status} response.
- TokenError subclasses come out of the token codec and are treated as
  "unauthenticated" by callers.
- MissingDefaultRoleError is an operational failure (seed data missing) and is
  left to the catch-all 500 handler.
"""
from __future__ import annotations


class AuthError(Exception):
    code = "AUTH_ERROR"
    message = "Authentication error"
    status = 400

    def __init__(self, message: str | None = None, code: str | None = None):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class InvalidCredentialsError(AuthError):
    code = "INVALID_CREDENTIALS"
    message = "Invalid username or password"
    status = 401


class PasswordMismatchError(AuthError):
    code = "PASSWORD_MISMATCH"
    message = "Passwords do not match"
    status = 400


class UsernameTakenError(AuthError):
    code = "USERNAME_TAKEN"
    message = "A user with this username already exists"
    status = 400


class InvalidRefreshTokenError(AuthError):
    code = "INVALID_REFRESH_TOKEN"
    message = "Refresh token is not valid"
    status = 401


class AuthenticationRequiredError(AuthError):
    code = "UNAUTHORIZED"
    message = "Authentication required"
    status = 401


class InvalidPasswordError(AuthError):
    code = "INVALID_PASSWORD"
    message = "Password does not meet the length requirements"
    status = 400


class InsufficientRoleError(AuthError):
    code = "FORBIDDEN"
    message = "Insufficient role"
    status = 403


class TokenError(Exception):
    """Raised when a JWT cannot be trusted."""


class ExpiredTokenError(TokenError):
    pass


class InvalidSignatureError(TokenError):
    pass


class MissingDefaultRoleError(RuntimeError):
    """The default role is absent from seed data."""
