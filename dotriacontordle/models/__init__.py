"""
Data Models Package

Contains all data models and schemas used throughout the application.
"""

from .game import (
    DEFAULT_GAME_CONFIG, BoardState, EvaluationResult, GameConfig, GameMode,
    GameSettings, GameState, GameStats, GameStatus, TileState
)
from .actions import (
    AddLetter, GameAction, LoadState, NewGame, RemoveLetter, SetExpandedBoard, SubmitGuess, ToggleTimer
)

__all__ = [
    'DEFAULT_GAME_CONFIG', 'BoardState', 'EvaluationResult', 'GameConfig', 'GameMode',
    'GameSettings', 'GameState', 'GameStats', 'GameStatus', 'TileState',
    'AddLetter', 'GameAction', 'LoadState', 'NewGame', 'RemoveLetter', 'SetExpandedBoard',
    'SubmitGuess', 'ToggleTimer',
]
