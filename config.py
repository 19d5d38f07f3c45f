"""
Configuration settings for the Interest Map API
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Base configuration."""

    # Flask settings
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', 5000))

    # API settings
    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1MB max request size

    # CORS settings
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

    # Text generation settings. The model is called through the REST
    # `generateContent` endpoint; the fallback model is tried once when the
    # primary one fails.
    GEMINI_API_KEY = os.getenv('GEMINI_API_KEY')
    GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.5-flash-lite')
    GEMINI_FALLBACK_MODEL = os.getenv('GEMINI_FALLBACK_MODEL', 'gemini-pro')
    GEMINI_API_BASE = os.getenv(
        'GEMINI_API_BASE', 'https://generativelanguage.googleapis.com/v1beta'
    )
    GENERATION_TIMEOUT = int(os.getenv('GENERATION_TIMEOUT', 30))

    # Selection store. When STORE_PATH is unset selections live in memory
    # for the lifetime of the process.
    STORE_PATH = os.getenv('STORE_PATH')

    # Graph settings
    VIEWER_LABEL = os.getenv('VIEWER_LABEL', 'You')
    SEED_BASE_HIERARCHY = os.getenv('SEED_BASE_HIERARCHY', 'False').lower() == 'true'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(env='default'):
    """Get configuration based on environment."""
    return config.get(env, config['default'])
