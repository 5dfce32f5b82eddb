"""
Helper Functions

Contains utility functions used throughout the application.
"""

import re
import time
from typing import Dict, Optional

PLAYER_HEADER = 'X-Player-Id'
_PLAYER_ID = re.compile(r'^[A-Za-z0-9_-]{1,64}$')


def now_ms() -> int:
    """Wall-clock time in milliseconds since the Unix epoch."""
    return int(time.time() * 1000)


def is_valid_player_id(value) -> bool:
    return isinstance(value, str) and bool(_PLAYER_ID.match(value))


def get_player_id(request_obj) -> Optional[str]:
    """Player id from the request header, or None when missing or malformed."""
    player_id = (request_obj.headers.get(PLAYER_HEADER) or '').strip()
    return player_id if is_valid_player_id(player_id) else None


def get_user_identity(request_obj) -> Dict[str, Optional[str]]:
    """Extract user identity information from a request."""
    return {
        'user_ip': getattr(request_obj, 'remote_addr', None) or 'unknown',
        'player_id': get_player_id(request_obj) if hasattr(request_obj, 'headers') else None,
    }
