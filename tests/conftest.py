from datetime import datetime, timezone

import pytest

from dotriacontordle import create_app
from dotriacontordle.config import TestingConfig
from dotriacontordle.services.game_service import GameSession
from dotriacontordle.services.puzzle_service import DailySchedule, PuzzleSelector
from dotriacontordle.services.storage_service import GameStorage, MemoryStore
from dotriacontordle.services.word_service import WordService

# Exactly 32 words, so the default 6x32x37 profile uses every one as an answer
SIX_LETTER_WORDS = [
    'ACTION', 'ANIMAL', 'ASSESS', 'CASTLE', 'DRAGON', 'ABROAD', 'BASKET', 'BRIDGE',
    'CANDLE', 'DINNER', 'EASILY', 'FABRIC', 'GARDEN', 'HAMMER', 'ISLAND', 'JUNGLE',
    'KITTEN', 'LADDER', 'MARKET', 'NATURE', 'ORANGE', 'PEPPER', 'QUIVER', 'RABBIT',
    'SADDLE', 'TABLET', 'UNIQUE', 'VELVET', 'WINTER', 'YELLOW', 'ZIPPER', 'PLANET',
]

FIVE_LETTER_WORDS = ['CRANE', 'SLATE', 'TRACE', 'BRICK', 'PLANT', 'GHOST', 'MOUSE', 'HOUSE']

# 2025-03-01 10:00 in New York, after that day's reset: daily #60
START = datetime(2025, 3, 1, 15, 0, tzinfo=timezone.utc)
START_MS = int(START.timestamp() * 1000)
START_DAILY = 60


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = START_MS):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


def type_word(session, word):
    for letter in word:
        session.add_letter(letter)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def word_service():
    service = WordService(dictionaries={6: SIX_LETTER_WORDS, 5: FIVE_LETTER_WORDS})
    yield service
    service.shutdown()


@pytest.fixture
def selector(word_service):
    return PuzzleSelector(word_service, DailySchedule())


@pytest.fixture
def storage(store, clock):
    return GameStorage(store, clock=clock)


@pytest.fixture
def session(selector, word_service, storage, clock):
    session = GameSession(selector, word_service, storage, clock=clock,
                          save_debounce_ms=250, error_display_ms=2000, validation_timeout=1.0)
    session.bootstrap()
    return session


@pytest.fixture
def app(word_service, store, clock):
    app, _socketio = create_app(TestingConfig, word_service=word_service, store=store, clock=clock)
    return app


@pytest.fixture
def client(app):
    return app.test_client()
