"""
Configuration Package

Contains all configuration-related files and settings.

This package separates two types of configuration:
- app_config.py: Flask application configuration (environment-based)
- game_settings.py: Game rules, profile limits and dictionaries (business logic)
"""

from .app_config import Config, DevelopmentConfig, ProductionConfig, TestingConfig, config
from .game_settings import (
    DEFAULT_BOARD_COUNT, DEFAULT_MAX_GUESSES, DEFAULT_WORD_LENGTH,
    MAX_BOARD_COUNT, MAX_WORD_LENGTH, MIN_BOARD_COUNT, MIN_GUESS_COUNT, MIN_WORD_LENGTH,
    has_dictionary_for_length, load_dictionary, validate_word_list_integrity, get_word_statistics
)

__all__ = [
    # App configuration
    'Config', 'DevelopmentConfig', 'ProductionConfig', 'TestingConfig', 'config',
    # Game rules
    'DEFAULT_BOARD_COUNT', 'DEFAULT_MAX_GUESSES', 'DEFAULT_WORD_LENGTH',
    'MAX_BOARD_COUNT', 'MAX_WORD_LENGTH', 'MIN_BOARD_COUNT', 'MIN_GUESS_COUNT', 'MIN_WORD_LENGTH',
    'has_dictionary_for_length', 'load_dictionary', 'validate_word_list_integrity', 'get_word_statistics'
]
