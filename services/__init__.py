from flask import current_app

from services.auth_service import AuthService


def get_auth_service() -> AuthService:
    """AuthService bound to the current app (built in api.create_app)"""
    return current_app.extensions["auth_service"]
