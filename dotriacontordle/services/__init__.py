"""
Services Package

Contains all business logic and service classes.
"""

from .game_service import (
    GameService, GameSession, SubmitOutcome, SubmitResult, apply_action,
    get_game_service, initialize_game_service
)
from .puzzle_service import DailySchedule, PuzzleSelector
from .storage_service import GameStorage, create_store
from .word_service import WordService, WordValidationError

__all__ = [
    'GameService', 'GameSession', 'SubmitOutcome', 'SubmitResult', 'apply_action',
    'get_game_service', 'initialize_game_service',
    'DailySchedule', 'PuzzleSelector',
    'GameStorage', 'create_store',
    'WordService', 'WordValidationError'
]
