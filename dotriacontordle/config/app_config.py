"""
Configuration Management Module

Centralized configuration management following the 12-factor app methodology.
All configuration is loaded from environment variables with sensible defaults.
"""

import os
from dotenv import load_dotenv

# Load environment variables from config.env
load_dotenv(os.getenv('DOTENV_PATH', 'config.env'))


class Config:
    """Base configuration class with all settings."""

    # Flask Settings
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    TESTING = False

    # Server Settings
    HOST = os.getenv('HOST', '127.0.0.1')
    PORT = int(os.getenv('PORT', 5000))

    # Daily Puzzle Settings
    DAILY_RESET_TIMEZONE = os.getenv('DAILY_RESET_TIMEZONE', 'America/New_York')
    DAILY_RESET_HOUR = int(os.getenv('DAILY_RESET_HOUR', 8))
    DAILY_EPOCH_DATE = os.getenv('DAILY_EPOCH_DATE', '2025-01-01')

    # Storage Settings
    STORAGE_BACKEND = os.getenv('STORAGE_BACKEND', 'memory')
    STORAGE_FILE = os.getenv('STORAGE_FILE', 'data/storage.json')
    MONGO_URI = os.getenv('MONGO_URI')
    MONGO_DB = os.getenv('MONGO_DB', 'dotriacontordle')

    # Session Settings
    SAVE_DEBOUNCE_MS = int(os.getenv('SAVE_DEBOUNCE_MS', 250))
    FLUSH_INTERVAL_SECONDS = float(os.getenv('FLUSH_INTERVAL_SECONDS', 0.1))
    ERROR_DISPLAY_MS = int(os.getenv('ERROR_DISPLAY_MS', 2000))
    SESSION_IDLE_SECONDS = float(os.getenv('SESSION_IDLE_SECONDS', 1800))

    # Word Validation Settings
    ONLINE_VALIDATION = os.getenv('ONLINE_VALIDATION', 'False').lower() == 'true'
    DATAMUSE_API = os.getenv('DATAMUSE_API', 'https://api.datamuse.com/words')
    VALIDATION_TIMEOUT_SECONDS = float(os.getenv('VALIDATION_TIMEOUT_SECONDS', 5))

    # Logging Settings
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_DIR = os.getenv('LOG_DIR', 'logs')


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True
    STORAGE_BACKEND = 'memory'
    ONLINE_VALIDATION = False
    SAVE_DEBOUNCE_MS = 0


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
