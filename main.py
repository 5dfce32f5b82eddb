"""
Dotriacontordle Game Server - Main Entry Point

Initializes logging and services and starts the Flask-SocketIO application.
"""

import os
import threading
import time

from dotriacontordle import create_app
from dotriacontordle.config import config
from dotriacontordle.services.game_service import get_game_service
from dotriacontordle.utils.game_logger import game_logger


def flush_worker(interval_seconds: float):
    """
    Background worker that writes debounced saves once their window passes
    and evicts idle player sessions. Runs every ``interval_seconds``.
    """
    while True:
        try:
            game_service = get_game_service()
            if game_service:
                game_service.flush_all()
                evicted = game_service.evict_idle()
                if evicted:
                    game_logger.logger.info(f"Session cleanup: Evicted {len(evicted)} idle sessions")
        except Exception as e:
            game_logger.logger.error(f"Error in flush worker: {e}")

        time.sleep(interval_seconds)


def main():
    """Main function to initialize services and start the server."""
    config_class = config[os.getenv('APP_ENV', 'default')]
    try:
        game_logger.configure(config_class.LOG_DIR, config_class.LOG_LEVEL)

        print("Creating Flask application...")
        app, socketio = create_app(config_class)
        print("✓ Flask application created successfully")

        flush_thread = threading.Thread(target=flush_worker, args=(config_class.FLUSH_INTERVAL_SECONDS,),
                                        daemon=True)
        flush_thread.start()
        print(f"✓ Save flush worker started - checking every {config_class.FLUSH_INTERVAL_SECONDS}s")

        game_logger.logger.info("Dotriacontordle Server Starting")

        print(f"\nStarting Dotriacontordle Server on {config_class.HOST}:{config_class.PORT}")
        print(f"Debug mode: {config_class.DEBUG}")
        print(f"Storage backend: {config_class.STORAGE_BACKEND}")
        print("=" * 50)

        socketio.run(app, host=config_class.HOST, port=config_class.PORT, debug=config_class.DEBUG)

    except KeyboardInterrupt:
        print("\nServer shutting down...")
        game_service = get_game_service()
        if game_service:
            game_service.shutdown()
        game_logger.logger.info("Dotriacontordle Server shutting down (KeyboardInterrupt)")
    except Exception as e:
        print(f"Error starting server: {e}")
        game_logger.logger.error(f"Error starting server: {e}")
        raise


if __name__ == '__main__':
    main()
