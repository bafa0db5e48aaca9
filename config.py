"""Application configuration module.

Provides configuration classes for different environments with pathlib-based
paths. Storage, probe binaries and hashing are overridable from the environment.
"""
import hashlib
import os
from pathlib import Path


# Base directories using pathlib
BASE_DIR = Path(__file__).parent.absolute()
INSTANCE_DIR = BASE_DIR / 'instance'
STORAGE_DIR = BASE_DIR / 'storage'

# Digests weaker than SHA-1 are not acceptable as a content identity
WEAK_HASH_ALGORITHMS = {'md5', 'md4', 'md5-sha1'}


class Config:
    """Base configuration with common settings."""

    # Flask secret key
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database configuration
    SQLALCHEMY_DATABASE_URI = f"sqlite:///{INSTANCE_DIR / 'mediastore.db'}"
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {
            'check_same_thread': False,
            'timeout': 5.0
        }
    }
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Storage directories (using pathlib.Path)
    PUBLIC_STORAGE_DIR = (
        Path(os.environ['PUBLIC_STORAGE_DIR']) if os.environ.get('PUBLIC_STORAGE_DIR')
        else STORAGE_DIR / 'app' / 'public'
    )
    MEDIA_DIR = 'media'  # Relative to PUBLIC_STORAGE_DIR
    UPLOAD_TMP_FOLDER = STORAGE_DIR / 'uploads'

    # Probe binaries - system defaults, override via environment
    FFMPEG_PATH = os.environ.get('FFMPEG_PATH', 'ffmpeg')
    FFPROBE_PATH = os.environ.get('FFPROBE_PATH', 'ffprobe')
    PROBE_TIMEOUT = int(os.environ.get('PROBE_TIMEOUT', 30))  # Seconds per subprocess call

    # Ingestion
    PREVIEW_OFFSET_SECONDS = 2.0  # Video frame used as preview
    CONVERT_TO_JPEG = False       # Normalize stored images to JPEG
    JPEG_QUALITY = 90
    HASH_ALGORITHM = os.environ.get('HASH_ALGORITHM', 'sha256')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    @classmethod
    def validate_hash_algorithm(cls, algorithm=None):
        """Validate the hash algorithm is available and at least as strong as SHA-1."""
        algorithm = algorithm or cls.HASH_ALGORITHM
        name = algorithm.lower()
        if name in WEAK_HASH_ALGORITHMS:
            raise ValueError(f"HASH_ALGORITHM '{algorithm}' is weaker than SHA-1")
        try:
            digest = hashlib.new(name)
        except ValueError as e:
            raise ValueError(f"Invalid HASH_ALGORITHM '{algorithm}': {e}")
        # Variable-length digests (shake_*) have no fixed hexdigest
        if digest.digest_size == 0:
            raise ValueError(f"HASH_ALGORITHM '{algorithm}' has no fixed digest size")
        return True


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_ECHO = True
    LOG_LEVEL = 'DEBUG'


class TestingConfig(Config):
    """Test configuration. Paths are normally overridden per test."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    LOG_LEVEL = 'DEBUG'


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False


# Configuration dictionary for easy lookup
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
