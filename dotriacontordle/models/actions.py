"""
Game Actions

Every state transition enters the reducer as one of these values. Actions that
depend on wall-clock time carry their own ``now`` so the reducer stays pure.
"""

from dataclasses import dataclass
from typing import Optional, Union

from .game import GameConfig, GameMode, GameState


@dataclass(frozen=True)
class AddLetter:
    letter: str
    now: int


@dataclass(frozen=True)
class RemoveLetter:
    pass


@dataclass(frozen=True)
class SubmitGuess:
    guess: str
    now: int


@dataclass(frozen=True)
class ToggleTimer:
    now: int


@dataclass(frozen=True)
class SetExpandedBoard:
    board_index: Optional[int]


@dataclass(frozen=True)
class NewGame:
    mode: GameMode
    now: int
    daily_number: Optional[int] = None
    config: Optional[GameConfig] = None


@dataclass(frozen=True)
class LoadState:
    state: GameState


GameAction = Union[AddLetter, RemoveLetter, SubmitGuess, ToggleTimer, SetExpandedBoard, NewGame, LoadState]
