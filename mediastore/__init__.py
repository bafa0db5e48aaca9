"""Flask application factory module.

Provides create_app() factory function following Flask best practices.
Creates and configures the application with database, storage and logging.
"""
import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


# Initialize SQLAlchemy with custom base
db = SQLAlchemy(model_class=Base)


def configure_logging(level: str = 'INFO'):
    """Configure root logging for the application and quiet SQLAlchemy."""
    logging.basicConfig(
        level=level,
        format='[%(asctime)s] %(levelname)s:%(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    # Reduce SQLAlchemy noise
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)


def ensure_directories(app):
    """Create storage directories if they don't exist.

    Args:
        app: Flask application instance with config loaded
    """
    public_root = app.config['PUBLIC_STORAGE_DIR']
    (public_root / app.config['MEDIA_DIR']).mkdir(parents=True, exist_ok=True)
    app.config['UPLOAD_TMP_FOLDER'].mkdir(parents=True, exist_ok=True)

    # Also ensure instance directory exists
    instance_path = app.config.get('INSTANCE_DIR')
    if instance_path:
        instance_path.mkdir(parents=True, exist_ok=True)


def create_app(config_name='development', config_overrides=None):
    """Application factory function.

    Args:
        config_name: Configuration environment ('development', 'testing' or 'production')
        config_overrides: Optional mapping applied on top of the config class

    Returns:
        Configured Flask application instance
    """
    # Create Flask application
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    from config import config as config_dict, INSTANCE_DIR
    app.config.from_object(config_dict[config_name])
    app.config['INSTANCE_DIR'] = INSTANCE_DIR
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app.config['LOG_LEVEL'])

    # Validate hashing configuration
    config_dict[config_name].validate_hash_algorithm(app.config['HASH_ALGORITHM'])

    # Initialize database
    db.init_app(app)

    # Ensure storage directories exist and setup database
    with app.app_context():
        ensure_directories(app)

        # Import models to register them with SQLAlchemy
        from mediastore import models  # noqa: F401 - registers models

        # Enable SQLite WAL mode for better concurrency
        if 'sqlite' in app.config.get('SQLALCHEMY_DATABASE_URI', ''):
            with db.engine.connect() as conn:
                conn.execute(text('PRAGMA journal_mode=WAL'))
                conn.execute(text('PRAGMA busy_timeout=5000'))
                conn.commit()

        # Create all tables
        db.create_all()

    return app
