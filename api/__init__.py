import logging

from flask import Flask, request
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config, validate_config
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from services.auth_service import AuthService
from utils.decorators import is_public, jwt_request_filter, public_endpoint
from utils.security import JwtSettings, build_password_hasher

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Auth API",
        "version": "1.0.0",
        "description": "JWT authentication: login, refresh-token rotation, registration.",
    },
    "basePath": "/",
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def create_app(config_name: str | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app,
    prepares the database and wires the auth service and request filter.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    validate_config(app.config)

    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(app.config["LOG_LEVEL"])

    CORS(
        app,
        resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}},
        methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=[app.config["AUTH_HEADER"], "Content-Type"],
        supports_credentials=True,
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    # Tables and well-known roles
    storage.reload(app.config["DATABASE_URL"])
    storage.seed_roles(app.config["SEED_ROLES"])

    jwt_settings = JwtSettings.from_mapping(app.config)
    app.extensions["jwt_settings"] = jwt_settings
    app.extensions["auth_service"] = AuthService(
        storage,
        jwt_settings,
        hasher=build_password_hasher(
            app.config["PASSWORD_HASH_TIME_COST"],
            app.config["PASSWORD_HASH_MEMORY_COST"],
        ),
        default_role=app.config["DEFAULT_ROLE"],
        password_length=(app.config["PASSWORD_MIN_LENGTH"], app.config["PASSWORD_MAX_LENGTH"]),
    )

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)

    # Routing layer: public views (and unmatched routes) never reach the JWT filter
    @app.before_request
    def authenticate():
        view = app.view_functions.get(request.endpoint)
        if view is None or is_public(view):
            return None
        return jwt_request_filter(jwt_settings)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    @public_endpoint
    def root():
        return {
            "message": "Welcome to Auth API",
            "docs": "/apidocs/",
            "health": "/health",
        }, 200

    return app
