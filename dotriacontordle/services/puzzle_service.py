"""
Puzzle Service

Deterministic puzzle selection. Every player derives the same daily answer set
from the same daily number: a Mulberry32 generator seeded with
``daily_number * 12345 + 67890`` drives a Fisher-Yates shuffle of the whole
length-bucketed word pool, and the first ``board_count`` words are the answers.

Daily numbers advance at a fixed local hour in a reference timezone. The
boundary is found through the local calendar date of that timezone, so days
that are 23 or 25 hours long across daylight-saving changes still count as one.
"""

import random
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, List, MutableSequence, Optional, Tuple
from zoneinfo import ZoneInfo

from ..config.game_settings import DAILY_SEED_MULTIPLIER, DAILY_SEED_OFFSET
from ..models.game import GameConfig

_UINT32 = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    """32-bit integer multiply, low word only."""
    return (a * b) & _UINT32


def mulberry32(seed: int) -> Callable[[], float]:
    """
    Seeded 32-bit generator producing floats in [0, 1).

    Pure integer arithmetic on unsigned 32-bit words, so the sequence for a seed
    is identical on every platform.
    """
    state = seed & _UINT32

    def next_float() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & _UINT32
        t = state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _UINT32
        return ((t ^ (t >> 14)) & _UINT32) / 4294967296

    return next_float


def shuffle_in_place(items: MutableSequence, rand: Callable[[], float]) -> None:
    """Fisher-Yates from the end, j = floor(rand() * (i + 1))."""
    for i in range(len(items) - 1, 0, -1):
        j = int(rand() * (i + 1))
        items[i], items[j] = items[j], items[i]


def daily_seed(daily_number: int) -> int:
    return daily_number * DAILY_SEED_MULTIPLIER + DAILY_SEED_OFFSET


def answers_from_pool(pool: List[str], count: int, seed: int) -> List[str]:
    """Shuffle a copy of the pool with a seeded generator and take ``count`` words."""
    shuffled = list(pool)
    shuffle_in_place(shuffled, mulberry32(seed))
    return shuffled[:max(0, count)]


def random_answers_from_pool(pool: List[str], count: int) -> List[str]:
    """Free-play selection: same shuffle, seeded from OS entropy."""
    shuffled = list(pool)
    shuffle_in_place(shuffled, random.SystemRandom().random)
    return shuffled[:max(0, count)]


class DailySchedule:
    """
    Daily puzzle numbering.

    Args:
        tz_name: IANA timezone whose wall clock defines the reset
        reset_hour: Local hour at which a new daily puzzle starts
        epoch_date: Local calendar date of puzzle #1
    """

    def __init__(self, tz_name: str = 'America/New_York', reset_hour: int = 8,
                 epoch_date: date = date(2025, 1, 1)):
        self.tz = ZoneInfo(tz_name)
        self.reset_hour = reset_hour
        self.epoch_date = epoch_date

    @classmethod
    def from_config(cls, config_class) -> 'DailySchedule':
        return cls(
            tz_name=config_class.DAILY_RESET_TIMEZONE,
            reset_hour=config_class.DAILY_RESET_HOUR,
            epoch_date=date.fromisoformat(config_class.DAILY_EPOCH_DATE),
        )

    def _reset_on(self, local_date: date) -> datetime:
        """The reset instant (aware, UTC) on a given local calendar date."""
        local = datetime.combine(local_date, time(self.reset_hour), tzinfo=self.tz)
        return local.astimezone(timezone.utc)

    @staticmethod
    def _as_utc(now: Optional[datetime]) -> datetime:
        if now is None:
            return datetime.now(timezone.utc)
        if now.tzinfo is None:
            return now.replace(tzinfo=timezone.utc)
        return now.astimezone(timezone.utc)

    def cycle_date(self, now: Optional[datetime] = None) -> date:
        """Local calendar date on which the current daily cycle started."""
        now_utc = self._as_utc(now)
        local_date = now_utc.astimezone(self.tz).date()
        if self._reset_on(local_date) > now_utc:
            local_date -= timedelta(days=1)
        return local_date

    def current_cycle_start(self, now: Optional[datetime] = None) -> datetime:
        return self._reset_on(self.cycle_date(now))

    def next_reset(self, now: Optional[datetime] = None) -> datetime:
        return self._reset_on(self.cycle_date(now) + timedelta(days=1))

    def daily_number(self, now: Optional[datetime] = None) -> int:
        """Daily puzzle number, 1 on the epoch date and never below 1."""
        return max(1, (self.cycle_date(now) - self.epoch_date).days + 1)

    def time_until_next_daily(self, now: Optional[datetime] = None) -> Tuple[int, int, int]:
        """(hours, minutes, seconds) until the next reset."""
        now_utc = self._as_utc(now)
        remaining = int((self.next_reset(now_utc) - now_utc).total_seconds())
        hours, rest = divmod(max(0, remaining), 3600)
        minutes, seconds = divmod(rest, 60)
        return hours, minutes, seconds

    def format_time_until_next_daily(self, now: Optional[datetime] = None) -> str:
        hours, minutes, seconds = self.time_until_next_daily(now)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class PuzzleSelector:
    """
    Chooses answer sets for new games from the word service's answer pools.

    Args:
        word_service: Source of length-bucketed answer pools
        schedule: Daily numbering rules
    """

    def __init__(self, word_service, schedule: Optional[DailySchedule] = None):
        self.word_service = word_service
        self.schedule = schedule or DailySchedule()

    def daily_number(self, now: Optional[datetime] = None) -> int:
        return self.schedule.daily_number(now)

    def daily_answers(self, daily_number: int, config: GameConfig) -> List[str]:
        """Same (daily_number, word_length) always yields the same ordered answers."""
        pool = self.word_service.answer_pool(config.word_length)
        return answers_from_pool(pool, config.board_count, daily_seed(daily_number))

    def random_answers(self, count: int, word_length: int) -> List[str]:
        pool = self.word_service.answer_pool(word_length)
        return random_answers_from_pool(pool, count)
