"""
Game Data Models

Contains all game-related data structures and enums.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..config.game_settings import (
    DEFAULT_BOARD_COUNT, DEFAULT_MAX_GUESSES, DEFAULT_WORD_LENGTH,
    create_profile_id, normalize_profile
)


class TileState(Enum):
    """Tile evaluation status. TBD means typed but not yet scored."""
    EMPTY = "empty"
    TBD = "tbd"
    CORRECT = "correct"
    PRESENT = "present"
    ABSENT = "absent"


class GameStatus(Enum):
    PLAYING = "playing"
    WON = "won"
    LOST = "lost"


class GameMode(Enum):
    DAILY = "daily"
    FREE = "free"


@dataclass(frozen=True)
class GameConfig:
    """Puzzle profile: word length x board count x guess limit."""
    word_length: int = DEFAULT_WORD_LENGTH
    board_count: int = DEFAULT_BOARD_COUNT
    max_guesses: int = DEFAULT_MAX_GUESSES

    @property
    def profile_id(self) -> str:
        return create_profile_id(self.word_length, self.board_count, self.max_guesses)

    @classmethod
    def normalize(cls, value: Any = None) -> 'GameConfig':
        """
        Build a valid config from a GameConfig, a dict (camelCase or snake_case
        keys) or None. Out-of-range values are clamped, malformed ones defaulted.
        """
        if isinstance(value, GameConfig):
            raw = {
                'word_length': value.word_length,
                'board_count': value.board_count,
                'max_guesses': value.max_guesses,
            }
        elif isinstance(value, dict):
            raw = {
                'word_length': value.get('wordLength', value.get('word_length')),
                'board_count': value.get('boardCount', value.get('board_count')),
                'max_guesses': value.get('maxGuesses', value.get('max_guesses')),
            }
        else:
            raw = {}
        return cls(**normalize_profile(**raw))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'wordLength': self.word_length,
            'boardCount': self.board_count,
            'maxGuesses': self.max_guesses,
            'profileId': self.profile_id,
        }


DEFAULT_GAME_CONFIG = GameConfig()


@dataclass(frozen=True)
class BoardState:
    """One target word. Once solved a board is never unsolved."""
    answer: str
    solved: bool = False
    solved_at_guess: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'answer': self.answer,
            'solved': self.solved,
            'solvedAtGuess': self.solved_at_guess,
        }


@dataclass(frozen=True)
class EvaluationResult:
    """Per-position scoring of one guess against one answer."""
    states: List[TileState]
    is_correct: bool


@dataclass
class GameState:
    """
    Full client game state.

    Timestamps are milliseconds since the Unix epoch. The reducer never
    mutates an instance in place; every transition returns a new object.
    """
    config: GameConfig
    boards: List[BoardState]
    guesses: List[str] = field(default_factory=list)
    current_guess: str = ''
    game_status: GameStatus = GameStatus.PLAYING
    keyboard_state: Dict[str, TileState] = field(default_factory=dict)
    expanded_board: Optional[int] = None
    game_mode: GameMode = GameMode.DAILY
    daily_number: int = 1
    started_at: Optional[int] = None
    ended_at: Optional[int] = None
    timer_running: bool = False
    timer_base_elapsed_ms: int = 0
    timer_resumed_at: Optional[int] = None
    timer_toggled_at: Optional[int] = None
    game_id: str = ''

    @property
    def is_over(self) -> bool:
        return self.game_status is not GameStatus.PLAYING

    @property
    def solved_count(self) -> int:
        return sum(1 for board in self.boards if board.solved)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the camelCase snapshot format shared with stored saves."""
        return {
            'config': self.config.to_dict(),
            'boards': [board.to_dict() for board in self.boards],
            'guesses': list(self.guesses),
            'currentGuess': self.current_guess,
            'gameStatus': self.game_status.value,
            'keyboardState': {letter: state.value for letter, state in self.keyboard_state.items()},
            'expandedBoard': self.expanded_board,
            'gameMode': self.game_mode.value,
            'dailyNumber': self.daily_number,
            'startedAt': self.started_at,
            'endedAt': self.ended_at,
            'timerRunning': self.timer_running,
            'timerBaseElapsedMs': self.timer_base_elapsed_ms,
            'timerResumedAt': self.timer_resumed_at,
            'timerToggledAt': self.timer_toggled_at,
            'gameId': self.game_id,
        }


@dataclass
class GameStats:
    """Aggregate statistics for one profile."""
    games_played: int = 0
    games_won: int = 0
    current_streak: int = 0
    max_streak: int = 0
    guess_distribution: List[int] = field(default_factory=list)  # index = guesses used - 1
    last_played_daily: Optional[int] = None
    last_completed_daily: Optional[int] = None

    @classmethod
    def empty(cls, max_guesses: int) -> 'GameStats':
        return cls(guess_distribution=[0] * max_guesses)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'gamesPlayed': self.games_played,
            'gamesWon': self.games_won,
            'currentStreak': self.current_streak,
            'maxStreak': self.max_streak,
            'guessDistribution': list(self.guess_distribution),
            'lastPlayedDaily': self.last_played_daily,
            'lastCompletedDaily': self.last_completed_daily,
        }


@dataclass
class GameSettings:
    """Player preferences read at new-game time."""
    glow_mode: bool = False
    feedback_enabled: bool = True
    preferred_word_length: int = DEFAULT_WORD_LENGTH
    preferred_board_count: int = DEFAULT_BOARD_COUNT
    preferred_max_guesses: int = DEFAULT_MAX_GUESSES

    def preferred_config(self) -> GameConfig:
        return GameConfig.normalize({
            'word_length': self.preferred_word_length,
            'board_count': self.preferred_board_count,
            'max_guesses': self.preferred_max_guesses,
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            'glowMode': self.glow_mode,
            'feedbackEnabled': self.feedback_enabled,
            'preferredWordLength': self.preferred_word_length,
            'preferredBoardCount': self.preferred_board_count,
            'preferredMaxGuesses': self.preferred_max_guesses,
        }
