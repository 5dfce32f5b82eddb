"""
WebSocket Event Handlers

Pushes game state to connected clients and accepts keyboard input.
"""

import logging

from flask import request
from flask_socketio import emit, join_room, leave_room

from ..config.game_settings import KEYBOARD_ROWS
from ..services.game_service import SubmitOutcome
from ..utils.decorators import websocket_player_required
from ..utils.game_logger import game_logger

logger = logging.getLogger(__name__)

# socket id -> player id
connected_players = {}

# player id -> [joined socket count, session, unsubscribe callback]
player_subscriptions = {}

KEYS = {key for row in KEYBOARD_ROWS for key in row}


def player_room(player_id: str) -> str:
    return f"player_{player_id}"


def register_websocket_handlers(socketio):
    """Register all WebSocket event handlers."""

    def broadcast_game_state_update(player_id, session):
        socketio.emit('game_state_update', session.public_state(), room=player_room(player_id))

    def acquire_subscription(player_id, session):
        # One subscriber per player; the room fans each update out to every socket
        entry = player_subscriptions.get(player_id)
        if entry is not None and entry[1] is not session:
            entry[2]()
            entry = None
        if entry is None:
            unsubscribe = session.subscribe(lambda _state: broadcast_game_state_update(player_id, session))
            entry = player_subscriptions[player_id] = [0, session, unsubscribe]
        entry[0] += 1

    def release_subscription(player_id):
        entry = player_subscriptions.get(player_id)
        if entry is None:
            return
        entry[0] -= 1
        if entry[0] <= 0:
            entry[2]()
            del player_subscriptions[player_id]

    @socketio.on('disconnect')
    def handle_disconnect():
        player_id = connected_players.pop(request.sid, None)
        if player_id is None:
            return
        release_subscription(player_id)
        leave_room(player_room(player_id))

    @socketio.on('join_game')
    @websocket_player_required
    def handle_join_game(data, player_id=None, session=None):
        """Join the player's room; every later state change is pushed to it."""
        previous = connected_players.pop(request.sid, None)
        if previous is not None:
            release_subscription(previous)
            leave_room(player_room(previous))

        join_room(player_room(player_id))
        acquire_subscription(player_id, session)
        connected_players[request.sid] = player_id

        emit('game_state_update', session.public_state())
        game_logger.log_game_event(session.state.game_id, 'player_joined', player_id)

    @socketio.on('key')
    @websocket_player_required
    def handle_key(data, player_id=None, session=None):
        """Keyboard input: a letter, BACKSPACE or ENTER."""
        key = str(data.get('key', '')).upper()
        try:
            if key == 'ENTER':
                result = session.submit_guess()
                if not result.accepted and result.outcome is not SubmitOutcome.IGNORED:
                    emit('guess_rejected', {'outcome': result.outcome.value, 'message': result.message})
            elif key == 'BACKSPACE':
                session.remove_letter()
            elif key in KEYS:
                session.add_letter(key)
            else:
                emit('error', {'error': f'Unsupported key: {key}'})
        except Exception as e:
            logger.exception("Failed to handle key %s for %s", key, player_id)
            emit('error', {'error': str(e)})
