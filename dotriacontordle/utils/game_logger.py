"""
Game Logger Module

Structured logging for player actions, server responses and game events.
Every entry is one JSON object so the daily log files can be grepped or
loaded line by line.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .helpers import get_user_identity


class GameLogger:
    """
    Centralized logging for the game server.

    Handlers are attached by ``configure``; until then entries go wherever the
    root logger sends them, which keeps library use and tests free of log files.
    """

    def __init__(self, name: str = 'dotriacontordle'):
        self.logger = logging.getLogger(name)
        self.log_dir: Optional[Path] = None

    def configure(self, log_dir: str = 'logs', level: str = 'INFO') -> None:
        """Attach a dated file handler and a console handler for warnings."""
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

        # Prevent duplicate handlers
        if self.logger.handlers:
            self.logger.handlers.clear()

        file_handler = logging.FileHandler(self._log_file(), encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

    def _log_file(self) -> Path:
        return self.log_dir / f"game_log_{datetime.now().strftime('%Y-%m-%d')}.log"

    def _create_log_entry(self, event_type: str, action: str,
                          user_info: Dict[str, Any], details: Dict[str, Any]) -> str:
        log_entry = {
            'timestamp': datetime.now().isoformat(),
            'event_type': event_type,
            'action': action,
            'user': user_info,
            'details': details
        }
        return json.dumps(log_entry, ensure_ascii=False, default=str)

    def log_user_action(self, request, action: str, game_id: Optional[str] = None, **kwargs):
        """
        Log a player action.

        Args:
            request: Flask request object
            action: Action name, e.g. 'add_letter', 'submit_guess'
            game_id: Game identifier if applicable
            **kwargs: Additional details to log
        """
        details = {
            'game_id': game_id,
            'endpoint': request.endpoint,
            'method': request.method,
            **kwargs
        }
        self.logger.info(self._create_log_entry('USER_ACTION', action, get_user_identity(request), details))

    def log_server_response(self, request, action: str, success: bool,
                            response_data: Dict[str, Any], game_id: Optional[str] = None, **kwargs):
        """Log a response; the payload is summarized so unsolved answers never reach the log."""
        details = {
            'game_id': game_id,
            'success': success,
            'response_size': len(str(response_data)),
            'response_data': self._sanitize_response_data(response_data),
            **kwargs
        }
        event_type = 'SERVER_RESPONSE_SUCCESS' if success else 'SERVER_RESPONSE_ERROR'
        message = self._create_log_entry(event_type, action, get_user_identity(request), details)
        if success:
            self.logger.info(message)
        else:
            self.logger.error(message)

    def log_game_event(self, game_id: str, event: str, player_id: Optional[str] = None, **kwargs):
        """
        Log a game event such as 'board_solved', 'game_won' or 'state_migrated'.

        Args:
            game_id: Game identifier
            event: Event name
            player_id: Player the event belongs to
            **kwargs: Additional game details
        """
        details = {'game_id': game_id, **kwargs}
        self.logger.info(self._create_log_entry('GAME_EVENT', event, {'player_id': player_id}, details))

    def log_error(self, request, error: Exception, action: str, game_id: Optional[str] = None):
        details = {
            'game_id': game_id,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'action': action
        }
        self.logger.error(self._create_log_entry('ERROR', action, get_user_identity(request), details))

    def _sanitize_response_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(data, dict):
            return {'data_type': type(data).__name__}

        sanitized = data.copy()
        state = sanitized.get('state')
        if isinstance(state, dict):
            config = state.get('config') or {}
            sanitized['state'] = {
                'game_id': state.get('gameId'),
                'game_mode': state.get('gameMode'),
                'daily_number': state.get('dailyNumber'),
                'profile_id': config.get('profileId'),
                'game_status': state.get('gameStatus'),
                'guesses_count': len(state.get('guesses', [])),
                'solved_count': state.get('solvedCount'),
            }
        return sanitized

    def get_log_stats(self) -> Dict[str, Any]:
        """Counts of today's entries by type (useful for monitoring)."""
        if self.log_dir is None:
            return {'error': 'File logging is not configured'}
        try:
            log_file = self._log_file()
            if not log_file.exists():
                return {'error': 'No log file found for today'}

            stats = {
                'log_file': str(log_file),
                'file_size_mb': round(log_file.stat().st_size / (1024 * 1024), 2),
                'total_entries': 0,
                'user_actions': 0,
                'server_responses': 0,
                'game_events': 0,
                'errors': 0
            }
            with open(log_file, 'r', encoding='utf-8') as f:
                for line in f:
                    if not line.strip():
                        continue
                    stats['total_entries'] += 1
                    if 'USER_ACTION' in line:
                        stats['user_actions'] += 1
                    elif 'SERVER_RESPONSE' in line:
                        stats['server_responses'] += 1
                    elif 'GAME_EVENT' in line:
                        stats['game_events'] += 1
                    elif 'ERROR' in line:
                        stats['errors'] += 1
            return stats

        except OSError as e:
            return {'error': f'Failed to get stats: {e}'}


# Global logger instance
game_logger = GameLogger()
