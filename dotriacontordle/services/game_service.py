"""
Game Service

Contains the multi-board game state machine.

``apply_action`` is a pure reducer: given a state and an action it returns the
next state (or the same object when the action is a no-op). ``GameSession``
wraps it for one player: it validates guesses through the word service, keeps
the transient error message, persists snapshots and statistics, and notifies
subscribers of every change. ``GameService`` keeps one session per player.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..models.actions import (
    AddLetter, GameAction, LoadState, NewGame, RemoveLetter, SetExpandedBoard, SubmitGuess, ToggleTimer
)
from ..models.game import (
    DEFAULT_GAME_CONFIG, BoardState, GameConfig, GameMode, GameState, GameStats, GameStatus, TileState
)
from ..utils.helpers import now_ms
from .evaluation_service import evaluate_guess, update_keyboard_state
from .puzzle_service import PuzzleSelector
from .storage_service import GameStorage, PrefixedStore, create_initial_boards
from .word_service import WordValidationError

logger = logging.getLogger(__name__)


class PuzzleSetupError(ValueError):
    """No answers could be drawn for the requested profile."""


class SubmitOutcome(Enum):
    ACCEPTED = "accepted"
    IGNORED = "ignored"
    NOT_ENOUGH_LETTERS = "not_enough_letters"
    ALREADY_GUESSED = "already_guessed"
    NOT_A_WORD = "not_a_word"
    VALIDATION_ERROR = "validation_error"


SUBMIT_MESSAGES: Dict[SubmitOutcome, str] = {
    SubmitOutcome.NOT_ENOUGH_LETTERS: 'Not enough letters',
    SubmitOutcome.ALREADY_GUESSED: 'Already guessed',
    SubmitOutcome.NOT_A_WORD: 'Not a word',
    SubmitOutcome.VALIDATION_ERROR: 'Error validating word',
}


@dataclass(frozen=True)
class SubmitResult:
    outcome: SubmitOutcome
    guess: str = ''
    message: str = ''
    solved_boards: List[int] = field(default_factory=list)
    game_status: Optional[GameStatus] = None

    @property
    def accepted(self) -> bool:
        return self.outcome is SubmitOutcome.ACCEPTED


# ---------------------------------------------------------------------------
# Pure state machine
# ---------------------------------------------------------------------------

def ms_to_datetime(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def new_game_id(mode: GameMode, daily_number: int, now: int) -> str:
    return f"{mode.value}-{daily_number}-{now}-{uuid.uuid4().hex[:8]}"


def create_initial_state(selector: PuzzleSelector, mode: GameMode, now: int,
                         daily_number: Optional[int] = None, config=None) -> GameState:
    """
    Derive a fresh game from the puzzle selector.

    Raises:
        PuzzleSetupError: If the word pool for the profile is empty
    """
    config = GameConfig.normalize(config)
    today = selector.daily_number(ms_to_datetime(now))
    if mode is GameMode.DAILY:
        number = daily_number if daily_number is not None else today
        answers = selector.daily_answers(number, config)
    else:
        number = today
        answers = selector.random_answers(config.board_count, config.word_length)

    if not answers:
        raise PuzzleSetupError(f"No {config.word_length}-letter words available")

    return GameState(
        config=config,
        boards=create_initial_boards(answers),
        game_mode=mode,
        daily_number=number,
        game_id=new_game_id(mode, number, now),
    )


def submission_error(state: GameState, guess: str) -> Optional[SubmitOutcome]:
    """Synchronous reasons to reject a guess before any lookup, or None."""
    if state.is_over:
        return SubmitOutcome.IGNORED
    if len(guess) != state.config.word_length:
        return SubmitOutcome.NOT_ENOUGH_LETTERS
    if guess.upper() in state.guesses:
        return SubmitOutcome.ALREADY_GUESSED
    return None


def _add_letter(state: GameState, action: AddLetter) -> GameState:
    letter = action.letter.upper()
    if state.is_over or len(state.current_guess) >= state.config.word_length:
        return state
    if len(letter) != 1 or not ('A' <= letter <= 'Z'):
        return state

    if state.started_at is None:
        return replace(state, current_guess=state.current_guess + letter,
                       started_at=action.now, timer_running=True, timer_resumed_at=action.now)
    return replace(state, current_guess=state.current_guess + letter)


def _remove_letter(state: GameState) -> GameState:
    if state.is_over or not state.current_guess:
        return state
    return replace(state, current_guess=state.current_guess[:-1])


def _submit_guess(state: GameState, action: SubmitGuess) -> GameState:
    guess = action.guess.upper()
    if submission_error(state, guess) is not None:
        return state

    now = action.now
    word_length = state.config.word_length
    guess_index = len(state.guesses)
    guesses = state.guesses + [guess]

    boards: List[BoardState] = []
    keyboard = state.keyboard_state
    for board in state.boards:
        if board.solved:
            boards.append(board)
            continue
        evaluation = evaluate_guess(guess, board.answer, word_length)
        keyboard = update_keyboard_state(keyboard, guess, evaluation.states)
        if evaluation.is_correct:
            board = replace(board, solved=True, solved_at_guess=guess_index)
        boards.append(board)

    if all(board.solved for board in boards):
        status = GameStatus.WON
    elif len(guesses) >= state.config.max_guesses:
        status = GameStatus.LOST
    else:
        status = GameStatus.PLAYING

    started_at = state.started_at
    timer_running = state.timer_running
    timer_resumed_at = state.timer_resumed_at
    base_elapsed = state.timer_base_elapsed_ms
    ended_at = None

    if started_at is None:
        started_at = now
        timer_running = True
        timer_resumed_at = now

    if status is not GameStatus.PLAYING:
        if state.timer_running and state.timer_resumed_at is not None:
            base_elapsed += now - state.timer_resumed_at
        ended_at = state.ended_at if state.ended_at is not None else now
        timer_running = False
        timer_resumed_at = None

    return replace(
        state,
        boards=boards,
        guesses=guesses,
        # Letters typed while the guess was being validated survive
        current_guess='' if state.current_guess == guess else state.current_guess,
        keyboard_state=keyboard,
        game_status=status,
        started_at=started_at,
        ended_at=ended_at,
        timer_running=timer_running,
        timer_base_elapsed_ms=base_elapsed,
        timer_resumed_at=timer_resumed_at,
    )


def _toggle_timer(state: GameState, action: ToggleTimer) -> GameState:
    if state.is_over:
        return state

    now = action.now
    if state.started_at is None:
        return replace(state, started_at=now, ended_at=None, timer_running=True,
                       timer_base_elapsed_ms=0, timer_resumed_at=now, timer_toggled_at=now)

    if state.timer_running:
        added = now - state.timer_resumed_at if state.timer_resumed_at is not None else 0
        return replace(state, timer_running=False, timer_base_elapsed_ms=state.timer_base_elapsed_ms + added,
                       timer_resumed_at=None, timer_toggled_at=now)

    return replace(state, timer_running=True, timer_resumed_at=now, timer_toggled_at=now)


def _set_expanded_board(state: GameState, action: SetExpandedBoard) -> GameState:
    index = action.board_index
    if index is not None and not (0 <= index < len(state.boards)):
        return state
    if index == state.expanded_board:
        return state
    return replace(state, expanded_board=index)


def apply_action(state: GameState, action: GameAction,
                 selector: Optional[PuzzleSelector] = None) -> GameState:
    """
    Reduce one action. Terminal games ignore everything except NewGame and
    LoadState. ``selector`` is only consulted for NewGame.
    """
    if isinstance(action, AddLetter):
        return _add_letter(state, action)
    if isinstance(action, RemoveLetter):
        return _remove_letter(state)
    if isinstance(action, SubmitGuess):
        return _submit_guess(state, action)
    if isinstance(action, ToggleTimer):
        return _toggle_timer(state, action)
    if isinstance(action, SetExpandedBoard):
        return _set_expanded_board(state, action)
    if isinstance(action, NewGame):
        if selector is None:
            raise ValueError("NewGame requires a puzzle selector")
        return create_initial_state(selector, action.mode, action.now, action.daily_number,
                                    action.config if action.config is not None else state.config)
    if isinstance(action, LoadState):
        return action.state
    raise TypeError(f"Unknown action: {action!r}")


@lru_cache(maxsize=8192)
def _row_states(guess: str, answer: str) -> Tuple[TileState, ...]:
    return tuple(evaluate_guess(guess, answer).states)


def get_evaluation_for_board(state: GameState, board_index: int, guess_index: int) -> List[TileState]:
    """
    Tile row for one historical guess on one board. Boards stop listening once
    solved: guesses after ``solved_at_guess`` come back all EMPTY.
    """
    empty = [TileState.EMPTY] * state.config.word_length
    if not (0 <= board_index < len(state.boards)) or not (0 <= guess_index < len(state.guesses)):
        return empty

    board = state.boards[board_index]
    if board.solved and board.solved_at_guess is not None and guess_index > board.solved_at_guess:
        return empty
    return list(_row_states(state.guesses[guess_index], board.answer))


def elapsed_ms(state: GameState, now: int) -> int:
    if state.timer_running and state.timer_resumed_at is not None:
        return state.timer_base_elapsed_ms + max(0, now - state.timer_resumed_at)
    return state.timer_base_elapsed_ms


# ---------------------------------------------------------------------------
# Persistence policy
# ---------------------------------------------------------------------------

class DebouncedSaver:
    """
    Dirty flag plus deadline. ``mark_dirty`` restarts the window; ``flush_due``
    saves once the window has passed; ``flush`` saves immediately. The save
    callback reads the latest state at flush time.
    """

    def __init__(self, save: Callable[[], None], interval_ms: int, clock: Callable[[], int] = now_ms):
        self._save = save
        self.interval_ms = interval_ms
        self.clock = clock
        self._deadline: Optional[int] = None

    @property
    def pending(self) -> bool:
        return self._deadline is not None

    def mark_dirty(self) -> None:
        if self.interval_ms <= 0:
            self.flush(force=True)
            return
        self._deadline = self.clock() + self.interval_ms

    def flush_due(self, now: Optional[int] = None) -> bool:
        if self._deadline is None:
            return False
        if (now if now is not None else self.clock()) < self._deadline:
            return False
        return self.flush()

    def flush(self, force: bool = False) -> bool:
        if self._deadline is None and not force:
            return False
        self._deadline = None
        self._save()
        return True

    def cancel(self) -> None:
        self._deadline = None


# ---------------------------------------------------------------------------
# Session adapter
# ---------------------------------------------------------------------------

class GameSession:
    """
    One player's game: the reducer plus validation, persistence and
    publish/subscribe around it.

    Args:
        selector: Puzzle selector (and, through it, the word pools)
        word_service: Guess validation
        storage: Profile-keyed persistence for this player
        clock: Millisecond clock
        save_debounce_ms: Coalescing window for letter-by-letter saves
        error_display_ms: Lifetime of transient error messages
        validation_timeout: Seconds to wait for a word lookup
    """

    def __init__(self, selector: PuzzleSelector, word_service, storage: GameStorage,
                 clock: Callable[[], int] = now_ms, save_debounce_ms: int = 250,
                 error_display_ms: int = 2000, validation_timeout: float = 10.0):
        self.selector = selector
        self.word_service = word_service
        self.storage = storage
        self.clock = clock
        self.error_display_ms = error_display_ms
        self.validation_timeout = validation_timeout

        self._lock = threading.RLock()
        self._validating = False
        self._subscribers: List[Callable[[GameState], None]] = []
        self._error: Optional[Tuple[str, int]] = None
        self._saver = DebouncedSaver(self._save_latest, save_debounce_ms, clock)

        self.state: Optional[GameState] = None
        self.stats: Optional[GameStats] = None
        self.last_active = clock()

    def touch(self) -> None:
        self.last_active = self.clock()

    # -- subscriptions -----------------------------------------------------

    @property
    def has_subscribers(self) -> bool:
        return bool(self._subscribers)


    def subscribe(self, callback: Callable[[GameState], None]) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)
        return unsubscribe

    def _notify(self, state: GameState) -> None:
        for callback in list(self._subscribers):
            try:
                callback(state)
            except Exception:
                logger.exception("Game state subscriber failed")

    # -- errors ------------------------------------------------------------

    @property
    def error(self) -> Optional[str]:
        with self._lock:
            if self._error is None:
                return None
            message, expires_at = self._error
            if self.clock() >= expires_at:
                self._error = None
                return None
            return message

    def _set_error(self, message: str) -> None:
        self._error = (message, self.clock() + self.error_display_ms)

    def _clear_error(self) -> None:
        self._error = None

    def today(self) -> int:
        """Daily number at the session clock's current time."""
        return self.selector.daily_number(ms_to_datetime(self.clock()))

    @property
    def is_validating(self) -> bool:
        return self._validating

    # -- persistence -------------------------------------------------------

    def _save_latest(self) -> None:
        state = self.state
        if state is not None:
            self.storage.save_game_state(state, state.game_mode)

    def flush_due(self, now: Optional[int] = None) -> bool:
        with self._lock:
            return self._saver.flush_due(now)

    def flush(self) -> bool:
        with self._lock:
            return self._saver.flush()

    @property
    def save_pending(self) -> bool:
        return self._saver.pending

    def _commit(self, new_state: GameState, durable: bool) -> bool:
        """Install a new state. Returns False when the action was a no-op."""
        previous = self.state
        if new_state is previous:
            return False
        self.state = new_state

        if durable:
            self._saver.cancel()
            self._save_latest()
        else:
            self._saver.mark_dirty()

        if (previous is not None and previous.game_id == new_state.game_id
                and not previous.is_over and new_state.is_over):
            self._record_result(new_state)
        return True

    def _record_result(self, state: GameState) -> None:
        daily = state.daily_number if state.game_mode is GameMode.DAILY else None
        self.stats = self.storage.update_stats_after_game(
            state.game_status is GameStatus.WON, len(state.guesses), state.config, daily)

    def _dispatch(self, action: GameAction, durable: bool = True) -> bool:
        with self._lock:
            changed = self._commit(apply_action(self.state, action, self.selector), durable)
            state = self.state
        if changed:
            self._notify(state)
        return changed

    # -- lifecycle ---------------------------------------------------------

    def bootstrap(self) -> GameState:
        """
        Session start: resume an in-progress free game if free play was last,
        otherwise today's daily (saved or new) with the preferred profile.
        A preferred profile with no answers falls back to the default one.

        Raises:
            PuzzleSetupError: Not even the default profile has answers
        """
        preferred = self.storage.load_settings().preferred_config()
        daily_number = self.today()

        state = None
        if self.storage.get_last_played_mode() is GameMode.FREE:
            saved_free = self.storage.load_game_state(GameMode.FREE, None, preferred)
            if saved_free is not None and not saved_free.is_over:
                state = saved_free
        if state is None:
            state = self.storage.load_game_state(GameMode.DAILY, daily_number, preferred)
        if state is None:
            try:
                state = create_initial_state(self.selector, GameMode.DAILY, self.clock(), daily_number, preferred)
            except PuzzleSetupError as e:
                if preferred.profile_id == DEFAULT_GAME_CONFIG.profile_id:
                    raise
                logger.warning("Preferred profile %s unusable (%s), using %s",
                               preferred.profile_id, e, DEFAULT_GAME_CONFIG.profile_id)
                state = create_initial_state(self.selector, GameMode.DAILY, self.clock(),
                                             daily_number, DEFAULT_GAME_CONFIG)

        with self._lock:
            self.state = state
            self.stats = self.storage.load_stats(state.config)
            self._save_latest()
        self._notify(state)
        return state

    def load_state(self, state: GameState) -> None:
        with self._lock:
            self._clear_error()
            self._commit(apply_action(self.state, LoadState(state)), durable=True)
            self.stats = self.storage.load_stats(state.config)
        self._notify(state)

    def new_game(self, mode: GameMode, daily_number: Optional[int] = None, config=None) -> bool:
        """Discard the current game. Returns False when no answers could be drawn."""
        with self._lock:
            self._clear_error()
            action = NewGame(mode=mode, now=self.clock(), daily_number=daily_number,
                             config=GameConfig.normalize(config) if config is not None else None)
            try:
                new_state = apply_action(self.state, action, self.selector)
            except PuzzleSetupError as e:
                logger.error("Cannot start %s game: %s", mode.value, e)
                self._set_error(str(e))
                return False
            self._commit(new_state, durable=True)
            self.stats = self.storage.load_stats(new_state.config)
        self._notify(new_state)
        return True

    def switch_mode(self, mode: GameMode, daily_number: Optional[int] = None,
                    config=None, resume: bool = True) -> bool:
        """
        Move to another mode, daily puzzle or profile. An in-progress saved game
        for the target is resumed when ``resume`` is true; otherwise a new game
        starts. Returns False when nothing changed.
        """
        current = self.state
        next_config = GameConfig.normalize(config if config is not None else current.config)
        target_daily = (daily_number if daily_number is not None else self.today()) \
            if mode is GameMode.DAILY else None

        switching_mode = current.game_mode is not mode
        switching_daily = (mode is GameMode.DAILY and current.game_mode is GameMode.DAILY
                           and current.daily_number != target_daily)
        switching_config = current.config.profile_id != next_config.profile_id
        if not (switching_mode or switching_daily or switching_config):
            return False

        # Persist the game being left before looking up the target
        self.flush()
        saved = self.storage.load_game_state(mode, target_daily, next_config)
        in_progress = (saved is not None and not saved.is_over
                       and (bool(saved.guesses) or bool(saved.current_guess)))
        if in_progress and resume:
            self.load_state(saved)
            return True
        return self.new_game(mode, target_daily, next_config)

    # -- player input ------------------------------------------------------

    def add_letter(self, letter: str) -> bool:
        with self._lock:
            self._clear_error()
        return self._dispatch(AddLetter(letter=letter, now=self.clock()), durable=False)

    def remove_letter(self) -> bool:
        with self._lock:
            self._clear_error()
        return self._dispatch(RemoveLetter(), durable=False)

    def toggle_timer(self) -> bool:
        return self._dispatch(ToggleTimer(now=self.clock()))

    def set_expanded_board(self, board_index: Optional[int]) -> bool:
        with self._lock:
            self._clear_error()
        return self._dispatch(SetExpandedBoard(board_index=board_index))

    def _reject(self, outcome: SubmitOutcome, guess: str) -> SubmitResult:
        message = SUBMIT_MESSAGES.get(outcome, '')
        if message:
            with self._lock:
                self._set_error(message)
        return SubmitResult(outcome=outcome, guess=guess, message=message)

    def submit_guess(self) -> SubmitResult:
        """
        Validate and submit the current guess.

        Re-entry while a lookup is pending is a silent IGNORED. The validated
        guess is applied to the latest state, not the one captured before the
        lookup; if that state has moved past the guess the result is IGNORED.
        An accepted guess is saved durably before this method returns.
        """
        with self._lock:
            if self._validating:
                return SubmitResult(outcome=SubmitOutcome.IGNORED)
            snapshot = self.state
            guess = snapshot.current_guess
            problem = submission_error(snapshot, guess)
            if problem is SubmitOutcome.IGNORED:
                return SubmitResult(outcome=problem, guess=guess)
            if problem is not None:
                return self._reject(problem, guess)
            self._validating = True

        try:
            valid = self.word_service.validate(guess, snapshot.config.word_length).result(
                timeout=self.validation_timeout)
        except (WordValidationError, FutureTimeoutError) as e:
            logger.warning("Word validation error for %s: %s", guess, e)
            return self._reject(SubmitOutcome.VALIDATION_ERROR, guess)
        finally:
            with self._lock:
                self._validating = False

        if not valid:
            return self._reject(SubmitOutcome.NOT_A_WORD, guess)

        with self._lock:
            latest = self.state
            if latest.game_id != snapshot.game_id or submission_error(latest, guess) is not None:
                return SubmitResult(outcome=SubmitOutcome.IGNORED, guess=guess)

            self._clear_error()
            new_state = apply_action(latest, SubmitGuess(guess=guess, now=self.clock()))
            self._commit(new_state, durable=True)
            guess_index = len(new_state.guesses) - 1
            solved = [i for i, board in enumerate(new_state.boards)
                      if board.solved and board.solved_at_guess == guess_index]

        self._notify(new_state)
        return SubmitResult(outcome=SubmitOutcome.ACCEPTED, guess=guess,
                            solved_boards=solved, game_status=new_state.game_status)

    # -- views -------------------------------------------------------------

    def get_evaluation_for_board(self, board_index: int, guess_index: int) -> List[TileState]:
        return get_evaluation_for_board(self.state, board_index, guess_index)

    def elapsed_ms(self) -> int:
        return elapsed_ms(self.state, self.clock())

    def public_state(self) -> Dict[str, Any]:
        """Client view of the state: unsolved answers stay hidden until the game ends."""
        with self._lock:
            state = self.state
            data = state.to_dict()
            if not state.is_over:
                for board in data['boards']:
                    if not board['solved']:
                        board['answer'] = None
            data['solvedCount'] = state.solved_count
            data['elapsedMs'] = elapsed_ms(state, self.clock())
            data['error'] = self.error
            data['isValidating'] = self._validating
        return data


class GameService:
    """
    Core game service managing one session per player.

    Each player's storage is a prefixed view of the shared key-value store,
    the server-side counterpart of a browser's local storage. Sessions idle
    for longer than ``session_idle_ms`` with no live subscribers are flushed
    and evicted by ``evict_idle``; the player's saved game is resumed on the
    next request.
    """

    def __init__(self, word_service, selector: PuzzleSelector, store,
                 clock: Callable[[], int] = now_ms, save_debounce_ms: int = 250,
                 error_display_ms: int = 2000, validation_timeout: float = 10.0,
                 session_idle_ms: int = 30 * 60 * 1000):
        self.word_service = word_service
        self.selector = selector
        self.store = store
        self.clock = clock
        self.save_debounce_ms = save_debounce_ms
        self.error_display_ms = error_display_ms
        self.validation_timeout = validation_timeout
        self.session_idle_ms = session_idle_ms
        self.sessions: Dict[str, GameSession] = {}
        self._lock = threading.Lock()

    def get_session(self, player_id: str) -> GameSession:
        """
        Return the player's session, bootstrapping it on first use.

        A session is only published once bootstrapped, so concurrent first
        requests never see a session without a state.

        Raises:
            PuzzleSetupError: No game could be set up for the player
        """
        with self._lock:
            session = self.sessions.get(player_id)
            if session is None:
                storage = GameStorage(PrefixedStore(self.store, player_id), clock=self.clock)
                session = GameSession(self.selector, self.word_service, storage, clock=self.clock,
                                      save_debounce_ms=self.save_debounce_ms,
                                      error_display_ms=self.error_display_ms,
                                      validation_timeout=self.validation_timeout)
                session.bootstrap()
                self.sessions[player_id] = session
            session.touch()
            return session

    def flush_all(self, now: Optional[int] = None) -> int:
        """Flush every session whose debounce window has passed."""
        flushed = 0
        for session in list(self.sessions.values()):
            try:
                if session.flush_due(now):
                    flushed += 1
            except Exception:
                logger.exception("Failed to flush game session")
        return flushed

    def evict_idle(self, now: Optional[int] = None) -> List[str]:
        """Flush and drop idle sessions nobody is subscribed to. Returns the evicted player ids."""
        now = self.clock() if now is None else now
        with self._lock:
            idle = [player_id for player_id, session in self.sessions.items()
                    if now - session.last_active >= self.session_idle_ms
                    and not session.has_subscribers and not session.is_validating]
            evicted = [(player_id, self.sessions.pop(player_id)) for player_id in idle]

        for player_id, session in evicted:
            try:
                session.flush()
            except Exception:
                logger.exception("Failed to flush evicted session for %s", player_id)
        return [player_id for player_id, _session in evicted]

    def shutdown(self) -> None:
        """Write every pending save and stop background lookups."""
        for session in list(self.sessions.values()):
            session.flush()
        self.word_service.shutdown()


# Global service instance
_game_service: Optional[GameService] = None


def get_game_service() -> Optional[GameService]:
    """Get the global game service instance."""
    return _game_service


def initialize_game_service(word_service, selector: PuzzleSelector, store, **kwargs) -> GameService:
    """Initialize the global game service instance."""
    global _game_service
    _game_service = GameService(word_service, selector, store, **kwargs)
    return _game_service
