"""
Authentication blueprint:
- POST /authorization/login
- POST /authorization/refresh-tokens
- POST /authorization/registration
- POST /authorization/logout

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens and longer-lived refresh tokens (HS256 JWTs, separate secrets)
- Stores refresh tokens in DB (RefreshToken model) so they can be rotated and revoked
"""
from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint, request, jsonify

from models.schemas.auth import LoginSchema, RefreshTokenSchema, RegistrationSchema, TokenPairSchema
from models.schemas.user import UserOutSchema
from services import get_auth_service
from utils.decorators import jwt_required, public_endpoint
from utils.security import AuthenticatedPrincipal

bp = Blueprint("auth", __name__, url_prefix="/authorization")

login_schema = LoginSchema()
refresh_token_schema = RefreshTokenSchema()
registration_schema = RegistrationSchema()
token_pair_schema = TokenPairSchema()
user_out_schema = UserOutSchema()


@bp.post("/login")
@public_endpoint
def login():
    """
    Login: return accessToken and refreshToken
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [username, password]
           properties:
             username: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid credentials
      422:
        description: Validation error
    """
    payload = login_schema.load(request.get_json(silent=True) or {})
    pair = get_auth_service().login(payload["username"], payload["password"])
    return jsonify(token_pair_schema.dump(pair)), 200


@bp.post("/refresh-tokens")
@public_endpoint
def refresh_tokens():
    """
    Use refresh token to obtain new access and refresh tokens (rotation)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [refreshToken]
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: OK (returns a new token pair; the old refresh token is spent)
      401:
        description: Refresh token unknown, already used, expired or forged
    """
    payload = refresh_token_schema.load(request.get_json(silent=True) or {})
    pair = get_auth_service().refresh(payload["refresh_token"])
    return jsonify(token_pair_schema.dump(pair)), 200


@bp.post("/registration")
@public_endpoint
def registration():
    """
    register a new user with the default role.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [username, password, confirmPassword]
          properties:
            username: { type: string }
            email: { type: string }
            password: { type: string }
            confirmPassword: { type: string }
    responses:
      200:
        description: Created (id, username, email)
      400:
        description: Passwords do not match, password length out of range, or username taken
      422:
        description: Validation error
    """
    data = registration_schema.load(request.get_json(silent=True) or {})
    summary = get_auth_service().register(
        username=data["username"],
        password=data["password"],
        confirm_password=data["confirm_password"],
        email=data.get("email"),
    )
    return jsonify(user_out_schema.dump(asdict(summary))), 200


@bp.post("/logout")
@jwt_required()
def logout(principal: AuthenticatedPrincipal):
    """
    logout: revokes the caller's refresh token
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [refreshToken]
           properties:
             refreshToken: { type: string }
    responses:
      204:
        description: ""
      401:
        description: Unauthorized
    """
    payload = refresh_token_schema.load(request.get_json(silent=True) or {})
    get_auth_service().revoke(payload["refresh_token"], principal.user_id)
    return ("", 204)
