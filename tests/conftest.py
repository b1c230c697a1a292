import os

# Point the storage at in-memory SQLite before the app modules are imported
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"

import pytest  # noqa: E402

from api import create_app  # noqa: E402
from models import storage  # noqa: E402


@pytest.fixture
def app():
    app = create_app("test")
    yield app
    storage.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def service(app):
    return app.extensions["auth_service"]


@pytest.fixture
def settings(app):
    return app.extensions["jwt_settings"]


@pytest.fixture
def register_user(service):
    """Register a user through the service; optionally grant extra roles."""
    def _register(username="alice", password="secret1", email=None, extra_roles=()):
        summary = service.register(username, password, password, email=email)
        if extra_roles:
            user = storage.find_user_by_username(username)
            for name in extra_roles:
                user.roles.append(storage.find_role_by_name(name))
            storage.save_user(user)
        return summary

    return _register


@pytest.fixture
def bearer(settings):
    def _bearer(token: str) -> dict:
        return {settings.auth_header: f"{settings.bearer_prefix}{token}"}

    return _bearer
