"""
Player Decorators

Resolve the calling player's game session for HTTP and WebSocket handlers.
"""

from functools import wraps

from flask import jsonify, request
from flask_socketio import emit

from .helpers import PLAYER_HEADER, get_player_id, is_valid_player_id


def require_player(f):
    """
    Require a valid ``X-Player-Id`` header and pass the player's session to
    the view as ``session``.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from ..services.game_service import PuzzleSetupError, get_game_service

        game_service = get_game_service()
        if not game_service:
            return jsonify({
                'success': False,
                'error': 'Game service unavailable'
            }), 500

        player_id = get_player_id(request)
        if not player_id:
            return jsonify({
                'success': False,
                'error': f'{PLAYER_HEADER} header required'
            }), 401

        request.player_id = player_id
        try:
            kwargs['session'] = game_service.get_session(player_id)
        except PuzzleSetupError as e:
            return jsonify({
                'success': False,
                'error': str(e)
            }), 422
        return f(*args, **kwargs)

    return decorated_function


def websocket_player_required(f):
    """WebSocket variant: the player id travels in the event payload."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from ..services.game_service import PuzzleSetupError, get_game_service

        game_service = get_game_service()
        data = args[0] if args and isinstance(args[0], dict) else {}
        player_id = data.get('player_id')
        if not game_service or not is_valid_player_id(player_id):
            emit('error', {'error': 'Player id required'})
            return

        kwargs['player_id'] = player_id
        try:
            kwargs['session'] = game_service.get_session(player_id)
        except PuzzleSetupError as e:
            emit('error', {'error': str(e)})
            return
        return f(*args, **kwargs)

    return decorated_function
