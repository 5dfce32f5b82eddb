"""
Dotriacontordle Game Server Application Package

Multi-board word puzzle server: one guess is played against up to 128 boards
at once, with deterministic daily puzzles and per-player saved progress.
"""

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from .config import Config


def create_app(config_class=Config, word_service=None, store=None, clock=None):
    """
    Application factory pattern for creating Flask app instances.

    Args:
        config_class: Configuration class to use
        word_service: Optional prebuilt WordService (tests pass a small dictionary)
        store: Optional key-value store; defaults to the configured backend
        clock: Optional millisecond clock

    Returns:
        (Flask application, SocketIO instance)
    """
    from .services.game_service import initialize_game_service
    from .services.puzzle_service import DailySchedule, PuzzleSelector
    from .services.storage_service import create_store
    from .services.word_service import WordService
    from .utils.helpers import now_ms

    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    CORS(app)
    socketio = SocketIO(app, cors_allowed_origins="*", logger=False, engineio_logger=False)

    # Initialize services
    word_service = word_service or WordService.from_config(config_class)
    selector = PuzzleSelector(word_service, DailySchedule.from_config(config_class))
    game_service = initialize_game_service(
        word_service, selector,
        store if store is not None else create_store(config_class),
        clock=clock or now_ms,
        save_debounce_ms=config_class.SAVE_DEBOUNCE_MS,
        error_display_ms=config_class.ERROR_DISPLAY_MS,
        validation_timeout=config_class.VALIDATION_TIMEOUT_SECONDS * 2,
        session_idle_ms=int(config_class.SESSION_IDLE_SECONDS * 1000),
    )

    # Register blueprints
    from .controllers.game_controller import game_bp
    app.register_blueprint(game_bp, url_prefix='/api')

    # Register WebSocket handlers
    from .websocket.handlers import register_websocket_handlers
    register_websocket_handlers(socketio)

    # Store instances for use in other modules
    app.socketio = socketio
    app.game_service = game_service

    return app, socketio
