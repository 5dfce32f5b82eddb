"""
Game Controller

Handles all game-related HTTP endpoints. Every game endpoint acts on the
session of the player named by the ``X-Player-Id`` header.
"""

from flask import Blueprint, jsonify, request

from ..models.game import GameConfig, GameMode, GameSettings, GameStatus
from ..services.game_service import SubmitOutcome, get_game_service, ms_to_datetime
from ..utils.decorators import require_player
from ..utils.game_logger import game_logger

game_bp = Blueprint('game', __name__)

_REJECTION_STATUS = {
    SubmitOutcome.IGNORED: 409,
    SubmitOutcome.NOT_ENOUGH_LETTERS: 400,
    SubmitOutcome.ALREADY_GUESSED: 400,
    SubmitOutcome.NOT_A_WORD: 400,
    SubmitOutcome.VALIDATION_ERROR: 503,
}


def _error(action: str, message: str, status: int, game_id=None):
    error_response = {
        'success': False,
        'error': message
    }
    game_logger.log_server_response(request, action, False, error_response, game_id)
    return jsonify(error_response), status


def _ok(action: str, response_data: dict, game_id=None, **kwargs):
    response_data = {'success': True, **response_data}
    game_logger.log_server_response(request, action, True, response_data, game_id, **kwargs)
    return jsonify(response_data)


def _failure(action: str, error: Exception, game_id=None):
    game_logger.log_error(request, error, action, game_id)
    return _error(action, str(error), 500, game_id)


def _parse_mode(value):
    try:
        return GameMode(value)
    except ValueError:
        return None


def _parse_daily_number(value):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError('dailyNumber must be a positive integer')
    return value


@game_bp.route('/new_game', methods=['POST'])
@require_player
def new_game(session):
    """Start a new daily or free game, optionally with another profile."""
    try:
        data = request.get_json(silent=True) or {}
        mode = _parse_mode(data.get('mode', GameMode.DAILY.value))
        if mode is None:
            return _error('new_game', 'Invalid game mode. Must be "daily" or "free"', 400)
        try:
            daily_number = _parse_daily_number(data.get('dailyNumber'))
        except ValueError as e:
            return _error('new_game', str(e), 400)

        config = GameConfig.normalize(data['config']) if isinstance(data.get('config'), dict) else None
        game_logger.log_user_action(request, 'new_game', session.state.game_id,
                                    mode=mode.value, daily_number=daily_number,
                                    profile_id=config.profile_id if config else None)

        if not session.new_game(mode, daily_number, config):
            return _error('new_game', session.error or 'Could not start a new game', 422, session.state.game_id)

        state = session.public_state()
        return _ok('new_game', {'state': state}, state['gameId'], profile_id=state['config']['profileId'])

    except Exception as e:
        return _failure('new_game', e)


@game_bp.route('/switch_mode', methods=['POST'])
@require_player
def switch_mode(session):
    """Move to another mode, daily puzzle or profile, resuming saved progress."""
    try:
        data = request.get_json(silent=True) or {}
        mode = _parse_mode(data.get('mode'))
        if mode is None:
            return _error('switch_mode', 'Invalid game mode. Must be "daily" or "free"', 400)
        try:
            daily_number = _parse_daily_number(data.get('dailyNumber'))
        except ValueError as e:
            return _error('switch_mode', str(e), 400)

        config = data['config'] if isinstance(data.get('config'), dict) else None
        resume = bool(data.get('resume', True))
        game_logger.log_user_action(request, 'switch_mode', session.state.game_id,
                                    mode=mode.value, daily_number=daily_number, resume=resume)

        changed = session.switch_mode(mode, daily_number, config, resume=resume)
        state = session.public_state()
        return _ok('switch_mode', {'changed': changed, 'state': state}, state['gameId'])

    except Exception as e:
        return _failure('switch_mode', e)


@game_bp.route('/game/state', methods=['GET'])
@require_player
def get_state(session):
    """Get the current game state."""
    try:
        state = session.public_state()
        return _ok('get_state', {'state': state}, state['gameId'],
                   guesses=len(state['guesses']), game_status=state['gameStatus'])
    except Exception as e:
        return _failure('get_state', e)


@game_bp.route('/game/letter', methods=['POST'])
@require_player
def add_letter(session):
    """Type one letter into the current guess."""
    try:
        data = request.get_json(silent=True) or {}
        letter = data.get('letter')
        if not isinstance(letter, str) or len(letter) != 1 or not letter.isalpha():
            return _error('add_letter', 'A single letter is required', 400, session.state.game_id)

        changed = session.add_letter(letter)
        state = session.public_state()
        return _ok('add_letter', {'changed': changed, 'state': state}, state['gameId'])

    except Exception as e:
        return _failure('add_letter', e)


@game_bp.route('/game/backspace', methods=['POST'])
@require_player
def remove_letter(session):
    """Delete the last letter of the current guess."""
    try:
        changed = session.remove_letter()
        state = session.public_state()
        return _ok('remove_letter', {'changed': changed, 'state': state}, state['gameId'])
    except Exception as e:
        return _failure('remove_letter', e)


@game_bp.route('/game/guess', methods=['POST'])
@require_player
def submit_guess(session):
    """Validate the current guess and apply it to every unsolved board."""
    game_id = session.state.game_id
    try:
        game_logger.log_user_action(request, 'submit_guess', game_id,
                                    guess_length=len(session.state.current_guess))

        result = session.submit_guess()
        player_id = getattr(request, 'player_id', None)

        if not result.accepted:
            if result.outcome is SubmitOutcome.VALIDATION_ERROR:
                game_logger.log_game_event(game_id, 'validation_error', player_id)
            elif result.outcome is not SubmitOutcome.IGNORED:
                game_logger.log_game_event(game_id, 'guess_rejected', player_id,
                                           outcome=result.outcome.value)
            return _error('submit_guess', result.message or 'Guess ignored',
                          _REJECTION_STATUS[result.outcome], game_id)

        state = session.public_state()
        for board_index in result.solved_boards:
            game_logger.log_game_event(game_id, 'board_solved', player_id,
                                       board_index=board_index, guess_number=len(state['guesses']))
        if result.game_status is GameStatus.WON:
            game_logger.log_game_event(game_id, 'game_won', player_id,
                                       guesses_used=len(state['guesses']), elapsed_ms=state['elapsedMs'])
        elif result.game_status is GameStatus.LOST:
            game_logger.log_game_event(game_id, 'game_lost', player_id,
                                       solved_count=state['solvedCount'], board_count=len(state['boards']))

        return _ok('submit_guess', {
            'guess': result.guess,
            'solvedBoards': result.solved_boards,
            'state': state,
            'stats': session.stats.to_dict() if state['gameStatus'] != 'playing' else None,
        }, game_id, solved_now=len(result.solved_boards))

    except Exception as e:
        return _failure('submit_guess', e, game_id)


@game_bp.route('/game/timer', methods=['POST'])
@require_player
def toggle_timer(session):
    """Pause or resume the game timer (starting it if needed)."""
    try:
        changed = session.toggle_timer()
        state = session.public_state()
        return _ok('toggle_timer', {'changed': changed, 'state': state}, state['gameId'],
                   timer_running=state['timerRunning'])
    except Exception as e:
        return _failure('toggle_timer', e)


@game_bp.route('/game/expand', methods=['POST'])
@require_player
def set_expanded_board(session):
    """Focus one board, or clear the focus with a null index."""
    try:
        data = request.get_json(silent=True) or {}
        board_index = data.get('boardIndex')
        if board_index is not None and (isinstance(board_index, bool) or not isinstance(board_index, int)):
            return _error('expand_board', 'boardIndex must be an integer or null', 400, session.state.game_id)

        changed = session.set_expanded_board(board_index)
        state = session.public_state()
        return _ok('expand_board', {'changed': changed, 'state': state}, state['gameId'])

    except Exception as e:
        return _failure('expand_board', e)


@game_bp.route('/game/board/<int:board_index>/evaluations', methods=['GET'])
@require_player
def get_board_evaluations(session, board_index):
    """Tile rows of one board for every guess made so far."""
    try:
        state = session.state
        if board_index >= len(state.boards):
            return _error('board_evaluations', 'Board not found', 404, state.game_id)

        rows = [
            [tile.value for tile in session.get_evaluation_for_board(board_index, guess_index)]
            for guess_index in range(len(state.guesses))
        ]
        board = state.boards[board_index]
        return _ok('board_evaluations', {
            'boardIndex': board_index,
            'solved': board.solved,
            'solvedAtGuess': board.solved_at_guess,
            'answer': board.answer if board.solved or state.is_over else None,
            'evaluations': rows,
        }, state.game_id)

    except Exception as e:
        return _failure('board_evaluations', e)


@game_bp.route('/stats', methods=['GET'])
@require_player
def get_stats(session):
    """Statistics for the current profile, or for the profile in the query string."""
    try:
        if any(key in request.args for key in ('wordLength', 'boardCount', 'maxGuesses')):
            config = GameConfig.normalize({
                'wordLength': request.args.get('wordLength', type=int),
                'boardCount': request.args.get('boardCount', type=int),
                'maxGuesses': request.args.get('maxGuesses', type=int),
            })
            stats = session.storage.load_stats(config)
        else:
            config = session.state.config
            stats = session.stats
        return _ok('get_stats', {'profileId': config.profile_id, 'stats': stats.to_dict()})
    except Exception as e:
        return _failure('get_stats', e)


@game_bp.route('/settings', methods=['GET', 'PUT'])
@require_player
def settings(session):
    """Read or replace the player's settings."""
    try:
        if request.method == 'GET':
            return _ok('get_settings', {'settings': session.storage.load_settings().to_dict()})

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return _error('save_settings', 'Settings object is required', 400)

        current = session.storage.load_settings().to_dict()
        merged = GameSettings(
            glow_mode=bool(data.get('glowMode', current['glowMode'])),
            feedback_enabled=bool(data.get('feedbackEnabled', current['feedbackEnabled'])),
            preferred_word_length=data.get('preferredWordLength', current['preferredWordLength']),
            preferred_board_count=data.get('preferredBoardCount', current['preferredBoardCount']),
            preferred_max_guesses=data.get('preferredMaxGuesses', current['preferredMaxGuesses']),
        )
        saved = session.storage.save_settings(merged)
        game_logger.log_user_action(request, 'save_settings', None, settings=saved.to_dict())
        return _ok('save_settings', {'settings': saved.to_dict()})

    except Exception as e:
        return _failure('save_settings', e)


@game_bp.route('/daily', methods=['GET'])
def daily_info():
    """Today's daily number and the countdown to the next one."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _error('daily_info', 'Game service unavailable', 500)

        now = ms_to_datetime(game_service.clock())
        schedule = game_service.selector.schedule
        return _ok('daily_info', {
            'dailyNumber': schedule.daily_number(now),
            'nextReset': schedule.next_reset(now).isoformat(),
            'timeUntilNext': schedule.format_time_until_next_daily(now),
        })
    except Exception as e:
        return _failure('daily_info', e)


@game_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    game_service = get_game_service()
    return jsonify({
        'status': 'healthy' if game_service else 'degraded',
        'sessions': len(game_service.sessions) if game_service else 0,
        'words': game_service.word_service.get_stats() if game_service else None,
        'logs': game_logger.get_log_stats(),
    })
