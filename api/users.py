from __future__ import annotations

from dataclasses import asdict
from typing import Tuple

from flask import Blueprint, request, jsonify, abort

from models.schemas.user import CurrentUserOutSchema, UserListOutSchema
from services import get_auth_service
from utils.decorators import jwt_required, roles_required
from utils.security import AuthenticatedPrincipal

MAX_LIMIT = 100

bp = Blueprint("users", __name__)

current_user_out_schema = CurrentUserOutSchema()
user_list_out_schema = UserListOutSchema(many=True)


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


@bp.get("/users/me")
@jwt_required()
def me(principal: AuthenticatedPrincipal):
    """
    Get current user info.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK (id, username, roles)
      401:
        description: Unauthorized or access token expired
    """
    current = get_auth_service().current_user(principal)
    return jsonify(current_user_out_schema.dump(asdict(current))), 200


@bp.get("/users")
@roles_required(["ROLE_ADMIN"])
def list_users(principal: AuthenticatedPrincipal):
    """
    List all Users - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: query
        name: page
        type: integer
      - in: query
        name: limit
        type: integer
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      403: { description: Insufficient role }
    """
    page, limit = parse_pagination()
    rows, total = get_auth_service().list_users(page, limit)
    return jsonify(
        {
            "data": user_list_out_schema.dump(rows),
            "meta": {"page": page, "limit": limit, "total": total}
        }
    ), 200
