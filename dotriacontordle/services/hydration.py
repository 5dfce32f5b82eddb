"""
Snapshot Hydration

Turns stored JSON into model objects. Parsing and hydrating are separate steps:
``parse_snapshot`` only decodes text, while the ``hydrate_*`` functions fill in
whatever older snapshots are missing (timer fields, game id, config) using the
snapshot's ``savedAt`` timestamp.
"""

import json
import math
from typing import Any, Dict, List, Optional

from ..models.game import (
    BoardState, GameConfig, GameMode, GameSettings, GameState, GameStats, GameStatus, TileState
)
from .evaluation_service import replay_keyboard_state

_TILE_VALUES = {state.value: state for state in TileState}


def parse_snapshot(text: str) -> Dict[str, Any]:
    """
    Decode one stored value.

    Raises:
        ValueError: If the text is not a JSON object
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Stored snapshot must be a JSON object")
    return data


def _is_number(value: Any) -> bool:
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


def _as_int(value: Any) -> Optional[int]:
    return int(value) if _is_number(value) else None


def _hydrate_boards(raw: Any) -> List[BoardState]:
    boards = []
    if not isinstance(raw, list):
        return boards
    for item in raw:
        if not isinstance(item, dict) or not isinstance(item.get('answer'), str):
            continue
        solved_at = _as_int(item.get('solvedAtGuess'))
        solved = bool(item.get('solved'))
        boards.append(BoardState(
            answer=item['answer'].upper(),
            solved=solved,
            solved_at_guess=solved_at if solved else None,
        ))
    return boards


def _hydrate_keyboard(raw: Any) -> Dict[str, TileState]:
    if not isinstance(raw, dict):
        return {}
    return {
        str(letter).upper(): _TILE_VALUES[value]
        for letter, value in raw.items()
        if value in _TILE_VALUES
    }


def hydrate_game_state(mode: GameMode, raw: Dict[str, Any], fallback_config: GameConfig,
                       now: int) -> Optional[GameState]:
    """
    Build a GameState from a possibly partial snapshot.

    Missing timer fields are inferred rather than zeroed: a game with progress
    but no ``startedAt`` is taken to have started at ``savedAt``; a finished
    game with no ``endedAt`` ended at ``savedAt``; the elapsed base spans from
    the inferred start to the inferred end (or to ``now`` while still playing)
    so an old save does not appear to reset the clock.

    Args:
        mode: Mode the snapshot was stored under
        raw: Decoded snapshot
        fallback_config: Profile used when the snapshot has none
        now: Current time in milliseconds

    Returns:
        GameState, or None when no board's answer fits the profile's word length
    """
    saved_at = _as_int(raw.get('savedAt'))
    config = GameConfig.normalize(raw.get('config') if isinstance(raw.get('config'), dict)
                                  else fallback_config)

    guesses = [g.upper() for g in raw.get('guesses', []) if isinstance(g, str)] \
        if isinstance(raw.get('guesses'), list) else []
    current_guess = raw.get('currentGuess') if isinstance(raw.get('currentGuess'), str) else ''
    current_guess = current_guess.upper()[:config.word_length]

    status_value = raw.get('gameStatus')
    game_status = GameStatus(status_value) if status_value in ('won', 'lost') else GameStatus.PLAYING
    playing = game_status is GameStatus.PLAYING
    has_progress = bool(guesses) or bool(current_guess)
    stamp = saved_at if saved_at is not None else now

    started_at = _as_int(raw.get('startedAt'))
    if started_at is None and has_progress:
        started_at = stamp

    ended_at = _as_int(raw.get('endedAt'))
    if ended_at is None and not playing:
        ended_at = stamp

    base_elapsed = _as_int(raw.get('timerBaseElapsedMs'))
    if base_elapsed is None:
        if started_at is None:
            base_elapsed = 0
        elif not playing:
            base_elapsed = max(0, (ended_at if ended_at is not None else stamp) - started_at)
        else:
            base_elapsed = max(0, now - started_at)

    if isinstance(raw.get('timerRunning'), bool):
        timer_running = raw['timerRunning']
    else:
        timer_running = playing and started_at is not None

    resumed_at = _as_int(raw.get('timerResumedAt'))
    if resumed_at is None and timer_running:
        resumed_at = now

    daily_number = _as_int(raw.get('dailyNumber'))
    if daily_number is None:
        daily_number = 1

    game_id = raw.get('gameId')
    if not isinstance(game_id, str) or not game_id:
        game_id = f"{mode.value}-{config.profile_id}-{daily_number}-{stamp}"

    boards = [board for board in _hydrate_boards(raw.get('boards'))
              if len(board.answer) == config.word_length]
    if not boards:
        return None

    if isinstance(raw.get('keyboardState'), dict):
        keyboard = _hydrate_keyboard(raw['keyboardState'])
    elif all(len(word) == config.word_length for word in guesses + [b.answer for b in boards]):
        keyboard = replay_keyboard_state(guesses, [b.answer for b in boards],
                                         [b.solved_at_guess for b in boards])
    else:
        keyboard = {}

    expanded = _as_int(raw.get('expandedBoard'))
    if expanded is not None and not 0 <= expanded < len(boards):
        expanded = None

    return GameState(
        config=config,
        boards=boards,
        guesses=guesses,
        current_guess=current_guess,
        game_status=game_status,
        keyboard_state=keyboard,
        expanded_board=expanded,
        game_mode=mode,
        daily_number=daily_number,
        started_at=started_at,
        ended_at=ended_at,
        timer_running=timer_running,
        timer_base_elapsed_ms=base_elapsed,
        timer_resumed_at=resumed_at if timer_running else None,
        timer_toggled_at=_as_int(raw.get('timerToggledAt')),
        game_id=game_id,
    )


def normalize_guess_distribution(distribution: Any, max_guesses: int) -> List[int]:
    """Resize to exactly ``max_guesses`` entries, zero-padding and zeroing junk."""
    base = list(distribution[:max_guesses]) if isinstance(distribution, list) else []
    base.extend([0] * (max_guesses - len(base)))
    return [int(n) if _is_number(n) else 0 for n in base]


def _count(value: Any) -> int:
    if _is_number(value):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return 0
    return 0


def hydrate_stats(raw: Dict[str, Any], max_guesses: int) -> GameStats:
    return GameStats(
        games_played=_count(raw.get('gamesPlayed')),
        games_won=_count(raw.get('gamesWon')),
        current_streak=_count(raw.get('currentStreak')),
        max_streak=_count(raw.get('maxStreak')),
        guess_distribution=normalize_guess_distribution(raw.get('guessDistribution'), max_guesses),
        last_played_daily=_as_int(raw.get('lastPlayedDaily')),
        last_completed_daily=_as_int(raw.get('lastCompletedDaily')),
    )


def hydrate_settings(raw: Dict[str, Any]) -> GameSettings:
    """Merge stored values over defaults and clamp the preferred profile."""
    defaults = GameSettings()
    preferred = GameConfig.normalize({
        'word_length': raw.get('preferredWordLength', defaults.preferred_word_length),
        'board_count': raw.get('preferredBoardCount', defaults.preferred_board_count),
        'max_guesses': raw.get('preferredMaxGuesses', defaults.preferred_max_guesses),
    })
    return GameSettings(
        glow_mode=bool(raw.get('glowMode', defaults.glow_mode)),
        feedback_enabled=bool(raw.get('feedbackEnabled', defaults.feedback_enabled)),
        preferred_word_length=preferred.word_length,
        preferred_board_count=preferred.board_count,
        preferred_max_guesses=preferred.max_guesses,
    )
