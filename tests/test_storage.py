import json

from dotriacontordle.models.game import (
    GameConfig, GameMode, GameSettings, GameState, GameStats, GameStatus, TileState
)
from dotriacontordle.services.hydration import hydrate_game_state, normalize_guess_distribution
from dotriacontordle.services.storage_service import (
    DAILY_STATE_LEGACY, FREE_STATE_LEGACY, LAST_MODE, STATS_LEGACY,
    GameStorage, JsonFileStore, KeyValueStore, MemoryStore, PrefixedStore,
    create_initial_boards, daily_state_key, free_state_key, legacy_daily_key, stats_key
)

from .conftest import START_DAILY, START_MS

DEFAULT = GameConfig()
SMALL = GameConfig(5, 4, 9)


def _state(config=DEFAULT, mode=GameMode.DAILY, daily_number=60, **kwargs):
    answers = ['CASTLE', 'ACTION'] if config.word_length == 6 else ['CRANE', 'SLATE']
    return GameState(config=config, boards=create_initial_boards(answers), game_mode=mode,
                     daily_number=daily_number, game_id='g-1', **kwargs)


def test_profile_keys():
    assert daily_state_key(60, DEFAULT) == 'dotriacontordle_daily_state_v2_6x32x37_60'
    assert free_state_key(SMALL) == 'dotriacontordle_free_state_v2_5x4x9'
    assert stats_key(SMALL) == 'dotriacontordle_stats_v2_5x4x9'
    assert legacy_daily_key(60) == 'dotriacontordle_daily_state_60'


def test_round_trip_records_saved_at_and_last_mode(storage, store):
    state = _state(SMALL, guesses=['CRANE'], started_at=START_MS - 5000, timer_running=True,
                   timer_resumed_at=START_MS - 5000)
    storage.save_game_state(state, GameMode.DAILY)

    raw = json.loads(store.get(daily_state_key(60, SMALL)))
    assert raw['savedAt'] == START_MS
    assert raw['config']['profileId'] == '5x4x9'
    assert store.get(LAST_MODE) == 'daily'

    loaded = storage.load_game_state(GameMode.DAILY, 60, SMALL)
    assert loaded.guesses == ['CRANE']
    assert loaded.boards == state.boards
    assert loaded.started_at == START_MS - 5000


def test_profiles_do_not_collide(storage):
    storage.save_game_state(_state(SMALL, guesses=['CRANE']), GameMode.DAILY)
    assert storage.load_game_state(GameMode.DAILY, 60, DEFAULT) is None


def test_default_profile_is_mirrored_to_legacy_keys(storage, store):
    storage.save_game_state(_state(mode=GameMode.FREE), GameMode.FREE)
    assert store.get(FREE_STATE_LEGACY) == store.get(free_state_key(DEFAULT))
    assert storage.get_last_played_mode() is GameMode.FREE


def test_daily_number_mismatch_is_rejected(storage, store):
    store.set(daily_state_key(61, DEFAULT), json.dumps(_state(daily_number=60).to_dict()))
    assert storage.load_game_state(GameMode.DAILY, 61, DEFAULT) is None


def test_unkeyed_legacy_daily_is_deleted_when_stale(storage, store):
    store.set(DAILY_STATE_LEGACY, json.dumps(_state(daily_number=59).to_dict()))
    assert storage.load_game_state(GameMode.DAILY, 60, DEFAULT) is None
    assert store.get(DAILY_STATE_LEGACY) is None


def test_legacy_daily_key_migrates_forward(storage, store):
    payload = _state(daily_number=60, guesses=['CASTLE']).to_dict()
    del payload['config']
    store.set(legacy_daily_key(60), json.dumps(payload))

    loaded = storage.load_game_state(GameMode.DAILY, 60, DEFAULT)
    assert loaded.guesses == ['CASTLE']
    assert store.get(legacy_daily_key(60)) is None
    assert json.loads(store.get(daily_state_key(60, DEFAULT)))['guesses'] == ['CASTLE']


def test_legacy_keys_only_apply_to_default_profile(storage, store):
    store.set(FREE_STATE_LEGACY, json.dumps(_state(mode=GameMode.FREE).to_dict()))
    assert storage.load_game_state(GameMode.FREE, None, SMALL) is None
    assert store.get(FREE_STATE_LEGACY) is not None


def test_corrupt_snapshot_degrades_to_none(storage, store):
    store.set(free_state_key(DEFAULT), '{not json')
    assert storage.load_game_state(GameMode.FREE, None, DEFAULT) is None


def test_write_failures_are_swallowed(clock):
    class BrokenStore(KeyValueStore):
        def get(self, key):
            raise OSError('disk gone')

        def set(self, key, value):
            raise OSError('disk gone')

        def remove(self, key):
            raise OSError('disk gone')

    storage = GameStorage(BrokenStore(), clock=clock)
    storage.save_game_state(_state(), GameMode.DAILY)
    assert storage.load_game_state(GameMode.DAILY, 60, DEFAULT) is None
    assert storage.load_stats(DEFAULT).games_played == 0
    assert storage.get_last_played_mode() is GameMode.DAILY
    assert not BrokenStore().is_available()


def test_stats_are_idempotent_per_daily(storage):
    first = storage.update_stats_after_game(True, 30, DEFAULT, daily_number=60)
    second = storage.update_stats_after_game(True, 30, DEFAULT, daily_number=60)

    assert first.games_played == second.games_played == 1
    assert second.games_won == 1
    assert second.guess_distribution[29] == 1
    assert second.last_completed_daily == 60


def test_stats_streaks(storage):
    storage.update_stats_after_game(True, 3, SMALL)
    storage.update_stats_after_game(True, 4, SMALL)
    stats = storage.update_stats_after_game(False, 9, SMALL)
    assert (stats.games_played, stats.games_won) == (3, 2)
    assert (stats.current_streak, stats.max_streak) == (0, 2)
    assert stats.guess_distribution == [0, 0, 1, 1, 0, 0, 0, 0, 0]


def test_legacy_stats_migrate(storage, store):
    store.set(STATS_LEGACY, json.dumps({'gamesPlayed': 4, 'gamesWon': '3', 'guessDistribution': [1, 2]}))
    stats = storage.load_stats(DEFAULT)
    assert (stats.games_played, stats.games_won) == (4, 3)
    assert len(stats.guess_distribution) == 37
    assert stats.guess_distribution[:3] == [1, 2, 0]
    assert store.get(STATS_LEGACY) is None
    assert store.get(stats_key(DEFAULT)) is not None


def test_guess_distribution_resizes():
    assert normalize_guess_distribution([1, 2, 3, 4], 2) == [1, 2]
    assert normalize_guess_distribution([1, 'x', None], 4) == [1, 0, 0, 0]
    assert normalize_guess_distribution('junk', 3) == [0, 0, 0]


def test_settings_are_normalized(storage):
    saved = storage.save_settings(GameSettings(glow_mode=True, preferred_word_length=42,
                                               preferred_board_count=0, preferred_max_guesses=5.6))
    assert saved.preferred_config() == GameConfig(10, 1, 6)
    assert storage.load_settings() == saved
    assert storage.load_settings().glow_mode is True


def test_prefixed_store_namespaces_keys():
    inner = MemoryStore()
    PrefixedStore(inner, 'alice').set('k', 'v')
    assert inner.get('alice:k') == 'v'
    assert PrefixedStore(inner, 'bob').get('k') is None


def test_json_file_store_persists(tmp_path):
    path = tmp_path / 'nested' / 'storage.json'
    JsonFileStore(str(path)).set('a', '1')
    reopened = JsonFileStore(str(path))
    assert reopened.get('a') == '1'
    assert reopened.is_available()
    reopened.remove('a')
    assert JsonFileStore(str(path)).get('a') is None


class TestHydration:
    def test_missing_timer_fields_are_inferred_from_saved_at(self):
        saved_at = START_MS - 60_000
        raw = {'boards': [{'answer': 'castle', 'solved': False}], 'guesses': ['action'],
               'gameStatus': 'playing', 'savedAt': saved_at, 'dailyNumber': 60}
        state = hydrate_game_state(GameMode.DAILY, raw, DEFAULT, START_MS)

        assert state.started_at == saved_at
        assert state.timer_base_elapsed_ms == 60_000
        assert state.timer_running is True
        assert state.timer_resumed_at == START_MS
        assert state.guesses == ['ACTION']
        assert state.boards[0].answer == 'CASTLE'
        assert state.game_id == f'daily-6x32x37-60-{saved_at}'

    def test_finished_game_gets_end_time(self):
        raw = {'boards': [{'answer': 'CASTLE', 'solved': True, 'solvedAtGuess': 0}],
               'guesses': ['CASTLE'], 'gameStatus': 'won', 'startedAt': 1000, 'savedAt': 9000}
        state = hydrate_game_state(GameMode.FREE, raw, DEFAULT, START_MS)

        assert state.game_status is GameStatus.WON
        assert state.ended_at == 9000
        assert state.timer_base_elapsed_ms == 8000
        assert state.timer_running is False
        assert state.timer_resumed_at is None

    def test_untouched_game_has_no_timer(self):
        raw = {'boards': [{'answer': 'CRANE'}], 'savedAt': 5}
        state = hydrate_game_state(GameMode.DAILY, raw, SMALL, START_MS)
        assert state.started_at is None
        assert state.timer_running is False
        assert state.timer_base_elapsed_ms == 0
        assert state.config == SMALL

    def test_missing_keyboard_is_rebuilt_from_history(self):
        raw = {'boards': [{'answer': 'CASTLE', 'solved': True, 'solvedAtGuess': 0}, {'answer': 'DRAGON'}],
               'guesses': ['CASTLE', 'ZIPPER']}
        keyboard = hydrate_game_state(GameMode.FREE, raw, DEFAULT, START_MS).keyboard_state
        assert keyboard['C'] is TileState.CORRECT
        assert keyboard['R'] is TileState.PRESENT
        assert keyboard['Z'] is TileState.ABSENT

    def test_current_guess_is_clipped(self):
        raw = {'config': {'wordLength': 5, 'boardCount': 4, 'maxGuesses': 9},
               'boards': [{'answer': 'CRANE'}], 'currentGuess': 'abcdefg'}
        assert hydrate_game_state(GameMode.FREE, raw, DEFAULT, START_MS).current_guess == 'ABCDE'

    def test_boards_with_wrong_length_answers_are_dropped(self):
        raw = {'boards': [{'answer': 'CASTLE'}, {'answer': 'CRANE'}, {'answer': 'DRAGON'}],
               'expandedBoard': 2}
        state = hydrate_game_state(GameMode.FREE, raw, DEFAULT, START_MS)
        assert [board.answer for board in state.boards] == ['CASTLE', 'DRAGON']
        assert state.expanded_board is None

    def test_snapshot_without_usable_boards_is_rejected(self):
        raw = {'config': {'wordLength': 6, 'boardCount': 2, 'maxGuesses': 7},
               'boards': [{'answer': 'CRANE'}, {'answer': 'SLATE'}]}
        assert hydrate_game_state(GameMode.FREE, raw, DEFAULT, START_MS) is None
        assert hydrate_game_state(GameMode.FREE, {'boards': []}, DEFAULT, START_MS) is None


def test_mismatched_saved_game_starts_fresh(session, store):
    key = daily_state_key(START_DAILY, DEFAULT)
    payload = json.loads(store.get(key))
    payload['guesses'] = ['CASTLE']
    payload['boards'] = [{'answer': 'CRANE', 'solved': False}]
    store.set(key, json.dumps(payload))

    assert session.storage.load_game_state(GameMode.DAILY, START_DAILY, DEFAULT) is None
    assert session.switch_mode(GameMode.FREE)
    assert session.switch_mode(GameMode.DAILY)
    assert session.state.guesses == []
    assert all(len(board.answer) == 6 for board in session.state.boards)


def test_empty_stats_shape():
    assert GameStats.empty(3).guess_distribution == [0, 0, 0]
