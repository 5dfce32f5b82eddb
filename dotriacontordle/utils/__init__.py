"""
Utilities Package

Contains utility functions, decorators, and helper modules.
"""

from .decorators import require_player, websocket_player_required
from .helpers import get_player_id, get_user_identity, now_ms
from .game_logger import game_logger

__all__ = ['require_player', 'websocket_player_required', 'get_player_id', 'get_user_identity',
           'now_ms', 'game_logger']
