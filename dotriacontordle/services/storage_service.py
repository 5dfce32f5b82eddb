"""
Storage Service

Profile-keyed persistence of in-progress games, aggregate statistics and
settings on top of a synchronous string key-value store.

Keys are namespaced by profile id (and by daily number for daily games), so a
saved 6x32x37 game never collides with a 5x8x13 one. Older key formats are
still read: a hit on a legacy key is rewritten under the current key and the
legacy key is deleted. Persistence is best effort; every read or write failure
is logged and degrades to defaults instead of reaching the caller.
"""

import json
import logging
import os
import threading
from typing import Callable, Dict, List, Optional

from pymongo.mongo_client import MongoClient
from pymongo.server_api import ServerApi

from ..models.game import (
    DEFAULT_GAME_CONFIG, BoardState, GameConfig, GameMode, GameSettings, GameState, GameStats
)
from ..utils.helpers import now_ms
from .hydration import (
    hydrate_game_state, hydrate_settings, hydrate_stats, normalize_guess_distribution, parse_snapshot
)

logger = logging.getLogger(__name__)

DAILY_STATE_PREFIX = 'dotriacontordle_daily_state_v2'
DAILY_STATE_LEGACY_PREFIX = 'dotriacontordle_daily_state'
DAILY_STATE_LEGACY = 'dotriacontordle_daily_state'
FREE_STATE_PREFIX = 'dotriacontordle_free_state_v2'
FREE_STATE_LEGACY = 'dotriacontordle_free_state'
LAST_MODE = 'dotriacontordle_last_mode'
STATS_PREFIX = 'dotriacontordle_stats_v2'
STATS_LEGACY = 'dotriacontordle_stats'
SETTINGS = 'dotriacontordle_settings'

_PROBE_KEY = '__storage_test__'


def daily_state_key(daily_number: int, config: GameConfig) -> str:
    return f"{DAILY_STATE_PREFIX}_{config.profile_id}_{daily_number}"


def free_state_key(config: GameConfig) -> str:
    return f"{FREE_STATE_PREFIX}_{config.profile_id}"


def stats_key(config: GameConfig) -> str:
    return f"{STATS_PREFIX}_{config.profile_id}"


def legacy_daily_key(daily_number: int) -> str:
    return f"{DAILY_STATE_LEGACY_PREFIX}_{daily_number}"


# ---------------------------------------------------------------------------
# Key-value stores
# ---------------------------------------------------------------------------

class KeyValueStore:
    """Synchronous string key-value store with a feature-detection probe."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def is_available(self) -> bool:
        try:
            self.set(_PROBE_KEY, _PROBE_KEY)
            self.remove(_PROBE_KEY)
            return True
        except Exception as e:
            logger.warning("Storage probe failed for %s: %s", type(self).__name__, e)
            return False


class MemoryStore(KeyValueStore):
    """In-process dict. Used in tests and as the fallback when storage is down."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self.data)


class JsonFileStore(KeyValueStore):
    """All keys in one JSON object on disk, rewritten on every change."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        self._data: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._data is None:
            if os.path.exists(self.path):
                with open(self.path, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
                self._data = {str(k): str(v) for k, v in loaded.items()} if isinstance(loaded, dict) else {}
            else:
                self._data = {}
        return self._data

    def _write(self) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(self._data, f)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._load()[key] = value
            self._write()

    def remove(self, key: str) -> None:
        with self._lock:
            if self._load().pop(key, None) is not None:
                self._write()


class MongoStore(KeyValueStore):
    """One document per key: ``{_id: key, value: str}``."""

    def __init__(self, mongo_uri: str, db_name: str = 'dotriacontordle',
                 collection_name: str = 'kv_store', client: Optional[MongoClient] = None):
        self.client = client or MongoClient(mongo_uri, server_api=ServerApi('1'),
                                            serverSelectionTimeoutMS=3000)
        self.collection = self.client[db_name][collection_name]

    def get(self, key: str) -> Optional[str]:
        document = self.collection.find_one({'_id': key})
        return document.get('value') if document else None

    def set(self, key: str, value: str) -> None:
        self.collection.replace_one({'_id': key}, {'_id': key, 'value': value}, upsert=True)

    def remove(self, key: str) -> None:
        self.collection.delete_one({'_id': key})

    def is_available(self) -> bool:
        try:
            self.client.admin.command('ping')
        except Exception as e:
            logger.warning("MongoDB unavailable: %s", e)
            return False
        return super().is_available()


class PrefixedStore(KeyValueStore):
    """View of another store with every key namespaced as ``{prefix}:{key}``."""

    def __init__(self, inner: KeyValueStore, prefix: str):
        self.inner = inner
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str) -> Optional[str]:
        return self.inner.get(self._key(key))

    def set(self, key: str, value: str) -> None:
        self.inner.set(self._key(key), value)

    def remove(self, key: str) -> None:
        self.inner.remove(self._key(key))


def create_store(config_class) -> KeyValueStore:
    """
    Build the store named by ``STORAGE_BACKEND``. An unavailable store is
    replaced by a MemoryStore so gameplay continues without persistence.
    """
    backend = (config_class.STORAGE_BACKEND or 'memory').lower()
    store: KeyValueStore
    try:
        if backend == 'file':
            store = JsonFileStore(config_class.STORAGE_FILE)
        elif backend == 'mongo':
            if not config_class.MONGO_URI:
                raise ValueError("MONGO_URI is required for the mongo storage backend")
            store = MongoStore(config_class.MONGO_URI, config_class.MONGO_DB)
        else:
            store = MemoryStore()
    except Exception as e:
        logger.error("Failed to create %s storage: %s", backend, e)
        return MemoryStore()

    if not store.is_available():
        logger.warning("Storage backend '%s' unavailable, continuing in memory only", backend)
        return MemoryStore()
    return store


# ---------------------------------------------------------------------------
# Game persistence
# ---------------------------------------------------------------------------

def create_initial_boards(answers: List[str]) -> List[BoardState]:
    return [BoardState(answer=answer.upper()) for answer in answers]


class GameStorage:
    """
    Save/load of game snapshots, statistics and settings.

    Args:
        store: Key-value backend
        clock: Millisecond clock, injectable for tests
    """

    def __init__(self, store: Optional[KeyValueStore] = None, clock: Callable[[], int] = now_ms):
        self.store = store if store is not None else MemoryStore()
        self.clock = clock

    @staticmethod
    def _is_default_profile(config: GameConfig) -> bool:
        return config.profile_id == DEFAULT_GAME_CONFIG.profile_id

    # -- game state --------------------------------------------------------

    def save_game_state(self, state: GameState, mode: GameMode) -> None:
        config = GameConfig.normalize(state.config)
        key = daily_state_key(state.daily_number, config) if mode is GameMode.DAILY else free_state_key(config)
        payload = state.to_dict()
        payload['config'] = config.to_dict()
        payload['savedAt'] = self.clock()
        serialized = json.dumps(payload)

        try:
            self.store.set(key, serialized)
            if self._is_default_profile(config):
                # Mirror for clients that only know the unversioned keys
                legacy = legacy_daily_key(state.daily_number) if mode is GameMode.DAILY else FREE_STATE_LEGACY
                self.store.set(legacy, serialized)
            self.store.set(LAST_MODE, mode.value)
        except Exception as e:
            logger.error("Failed to save game state: %s", e)

    def get_last_played_mode(self) -> GameMode:
        try:
            return GameMode.FREE if self.store.get(LAST_MODE) == GameMode.FREE.value else GameMode.DAILY
        except Exception as e:
            logger.error("Failed to read last played mode: %s", e)
            return GameMode.DAILY

    def _find_snapshot(self, mode: GameMode, daily_number: Optional[int], config: GameConfig):
        """Walk the key chain from newest to oldest format; returns (key, text)."""
        if mode is GameMode.DAILY:
            candidates = [daily_state_key(daily_number, config)]
            if self._is_default_profile(config):
                candidates += [legacy_daily_key(daily_number), DAILY_STATE_LEGACY]
        else:
            candidates = [free_state_key(config)]
            if self._is_default_profile(config):
                candidates.append(FREE_STATE_LEGACY)

        for key in candidates:
            text = self.store.get(key)
            if text:
                return key, text
        return None, None

    def load_game_state(self, mode: GameMode, daily_number: Optional[int] = None,
                        config=None) -> Optional[GameState]:
        """
        Load and hydrate a saved game, migrating legacy keys forward.

        Returns:
            GameState, or None when nothing usable is stored
        """
        config = GameConfig.normalize(config if config is not None else DEFAULT_GAME_CONFIG)
        if mode is GameMode.DAILY and daily_number is None:
            return None

        try:
            source_key, text = self._find_snapshot(mode, daily_number, config)
            if source_key is None:
                return None

            now = self.clock()
            hydrated = hydrate_game_state(mode, parse_snapshot(text), config, now)
            if hydrated is None:
                logger.warning("Discarding saved game at %s: no usable boards", source_key)
                return None

            if mode is GameMode.DAILY and hydrated.daily_number != daily_number:
                if source_key == DAILY_STATE_LEGACY:
                    self.store.remove(source_key)
                return None

            if self._is_legacy_key(source_key):
                target = (daily_state_key(hydrated.daily_number, hydrated.config)
                          if mode is GameMode.DAILY else free_state_key(hydrated.config))
                payload = hydrated.to_dict()
                payload['savedAt'] = now
                self.store.set(target, json.dumps(payload))
                self.store.remove(source_key)
                logger.info("Migrated saved game from %s to %s", source_key, target)

            return hydrated
        except Exception as e:
            logger.error("Failed to load game state: %s", e)
            return None

    @staticmethod
    def _is_legacy_key(key: str) -> bool:
        if key in (DAILY_STATE_LEGACY, FREE_STATE_LEGACY):
            return True
        return key.startswith(f"{DAILY_STATE_LEGACY_PREFIX}_") and not key.startswith(f"{DAILY_STATE_PREFIX}_")

    # -- statistics --------------------------------------------------------

    def load_stats(self, config=None) -> GameStats:
        config = GameConfig.normalize(config if config is not None else DEFAULT_GAME_CONFIG)
        try:
            keyed = self.store.get(stats_key(config))
            text = keyed
            if not text and self._is_default_profile(config):
                text = self.store.get(STATS_LEGACY)
            if not text:
                return GameStats.empty(config.max_guesses)

            stats = hydrate_stats(parse_snapshot(text), config.max_guesses)

            if not keyed:
                self.store.set(stats_key(config), json.dumps(stats.to_dict()))
                self.store.remove(STATS_LEGACY)
                logger.info("Migrated stats to %s", stats_key(config))

            return stats
        except Exception as e:
            logger.error("Failed to load stats: %s", e)
            return GameStats.empty(config.max_guesses)

    def save_stats(self, stats: GameStats, config=None) -> None:
        config = GameConfig.normalize(config if config is not None else DEFAULT_GAME_CONFIG)
        payload = stats.to_dict()
        payload['guessDistribution'] = normalize_guess_distribution(stats.guess_distribution, config.max_guesses)
        try:
            self.store.set(stats_key(config), json.dumps(payload))
        except Exception as e:
            logger.error("Failed to save stats: %s", e)

    def update_stats_after_game(self, won: bool, guesses_used: int, config=None,
                                daily_number: Optional[int] = None) -> GameStats:
        """
        Record one finished game.

        A daily puzzle is counted once: when ``last_played_daily`` already equals
        ``daily_number`` the stored stats are returned unchanged.
        """
        config = GameConfig.normalize(config if config is not None else DEFAULT_GAME_CONFIG)
        stats = self.load_stats(config)
        if daily_number is not None and stats.last_played_daily == daily_number:
            return stats

        stats.games_played += 1
        if won:
            stats.games_won += 1
            stats.current_streak += 1
            stats.max_streak = max(stats.max_streak, stats.current_streak)
            if 0 < guesses_used <= config.max_guesses:
                stats.guess_distribution[guesses_used - 1] += 1
        else:
            stats.current_streak = 0

        if daily_number is not None:
            stats.last_played_daily = daily_number
            if won:
                stats.last_completed_daily = daily_number

        self.save_stats(stats, config)
        return stats

    # -- settings ----------------------------------------------------------

    def load_settings(self) -> GameSettings:
        try:
            text = self.store.get(SETTINGS)
            if not text:
                return GameSettings()
            return hydrate_settings(parse_snapshot(text))
        except Exception as e:
            logger.error("Failed to load settings: %s", e)
            return GameSettings()

    def save_settings(self, settings: GameSettings) -> GameSettings:
        normalized = hydrate_settings(settings.to_dict())
        try:
            self.store.set(SETTINGS, json.dumps(normalized.to_dict()))
        except Exception as e:
            logger.error("Failed to save settings: %s", e)
        return normalized
