"""
Word Service

Holds the loaded dictionaries per word length and answers word-validity
questions. One instance is constructed explicitly and passed to the code that
needs it, so tests and alternative configurations can run side by side.
"""

import logging
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Set, Tuple

import requests

from ..config.game_settings import has_dictionary_for_length, load_dictionary

logger = logging.getLogger(__name__)

_LETTERS = re.compile(r'^[A-Z]+$')


class WordValidationError(RuntimeError):
    """The lookup itself failed; the word is neither accepted nor rejected."""


class WordService:
    """
    Dictionary access and word validation.

    Args:
        dictionaries: Optional fixed mapping of length -> words. When omitted,
            the bundled dictionaries are loaded lazily per length.
        online_validation: Consult the Datamuse API for words missing from
            the local dictionary
        api_url: Datamuse ``/words`` endpoint
        timeout: HTTP timeout in seconds
        executor: Runs lookups off the caller's thread
    """

    def __init__(self,
                 dictionaries: Optional[Dict[int, List[str]]] = None,
                 online_validation: bool = False,
                 api_url: str = 'https://api.datamuse.com/words',
                 timeout: float = 5.0,
                 executor: Optional[ThreadPoolExecutor] = None,
                 http_get: Optional[Callable] = None):
        self._fixed = dictionaries is not None
        self._answers: Dict[int, List[str]] = {}
        self._valid: Dict[int, Set[str]] = {}
        if dictionaries is not None:
            for length, words in dictionaries.items():
                self._store(length, words)

        self.online_validation = online_validation
        self.api_url = api_url
        self.timeout = timeout
        self._http_get = http_get or requests.get
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix='word-lookup')

        self._lock = threading.Lock()
        self._in_flight: Dict[Tuple[str, int], Future] = {}
        self._confirmed_online: Set[str] = set()

    @classmethod
    def from_config(cls, config_class) -> 'WordService':
        return cls(
            online_validation=config_class.ONLINE_VALIDATION,
            api_url=config_class.DATAMUSE_API,
            timeout=config_class.VALIDATION_TIMEOUT_SECONDS,
        )

    def _store(self, length: int, words: List[str]) -> None:
        seen: Set[str] = set()
        unique = []
        for word in words:
            upper = word.upper()
            if len(upper) == length and upper not in seen:
                seen.add(upper)
                unique.append(upper)
        self._answers[length] = unique
        self._valid[length] = seen

    def _ensure_loaded(self, length: int) -> None:
        if length in self._answers:
            return
        if self._fixed:
            self._answers[length] = []
            self._valid[length] = set()
            return
        words = load_dictionary(length)
        self._store(length, words)
        logger.info("Loaded %d words of length %d", len(words), length)

    def has_dictionary(self, length: int) -> bool:
        if self._fixed:
            return bool(self._answers.get(length))
        return has_dictionary_for_length(length)

    def load_dictionary(self, length: int) -> List[str]:
        self._ensure_loaded(length)
        return list(self._answers[length])

    def answer_pool(self, length: int) -> List[str]:
        """Candidate answers for one length; empty when there is no dictionary."""
        self._ensure_loaded(length)
        return self._answers[length]

    def is_valid_word_sync(self, word: str, length: int) -> bool:
        """Local dictionary membership (plus words already confirmed online)."""
        upper = (word or '').strip().upper()
        if len(upper) != length or not _LETTERS.match(upper):
            return False
        self._ensure_loaded(length)
        return upper in self._valid[length] or upper in self._confirmed_online

    def validate(self, word: str, length: int) -> Future:
        """
        Check whether a word is an accepted guess.

        Concurrent calls for the same word share one pending lookup. The future
        resolves to a bool, or raises WordValidationError when the online
        lookup fails so callers can fail closed.
        """
        upper = (word or '').strip().upper()

        if len(upper) != length or not _LETTERS.match(upper):
            return _resolved(False)
        if self.is_valid_word_sync(upper, length):
            return _resolved(True)
        if not self.online_validation:
            return _resolved(False)

        key = (upper, length)
        with self._lock:
            pending = self._in_flight.get(key)
            if pending is not None:
                return pending
            future = self._executor.submit(self._lookup_online, upper)
            self._in_flight[key] = future

        future.add_done_callback(lambda _f: self._forget(key))
        return future

    def _forget(self, key: Tuple[str, int]) -> None:
        with self._lock:
            self._in_flight.pop(key, None)

    def pending_lookups(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def _lookup_online(self, upper: str) -> bool:
        try:
            response = self._http_get(self.api_url, params={'sp': upper.lower(), 'max': 1},
                                      timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Online lookup failed for %s: %s", upper, e)
            raise WordValidationError(f"Could not validate {upper}") from e

        if not isinstance(data, list):
            raise WordValidationError(f"Unexpected lookup response for {upper}")

        is_valid = any(isinstance(item, dict) and str(item.get('word', '')).upper() == upper
                       for item in data)
        if is_valid:
            with self._lock:
                self._confirmed_online.add(upper)
        return is_valid

    def get_stats(self) -> Dict[str, object]:
        return {
            'loaded_lengths': sorted(self._answers),
            'answer_pool_sizes': {length: len(words) for length, words in self._answers.items()},
            'confirmed_online': len(self._confirmed_online),
            'online_validation': self.online_validation,
        }

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)


def _resolved(value: bool) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future
