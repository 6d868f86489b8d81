# backend/storelend/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate
from .logging_config import configure_logging


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Notification/audit gateways and the side effect dispatcher
    from .services.borrow_workflow import init_workflow
    init_workflow(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.borrows import borrows_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(borrows_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
