import threading
from unittest.mock import MagicMock

import pytest
import requests

from dotriacontordle.services.word_service import WordService, WordValidationError

from .conftest import SIX_LETTER_WORDS


def _response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def test_local_dictionary_lookup(word_service):
    assert word_service.is_valid_word_sync('castle', 6)
    assert not word_service.is_valid_word_sync('CASTLES', 6)
    assert not word_service.is_valid_word_sync('QWERTY', 6)
    assert word_service.validate('Castle', 6).result() is True
    assert word_service.validate('QWERTY', 6).result() is False


def test_missing_length_is_empty(word_service):
    assert word_service.answer_pool(7) == []
    assert not word_service.has_dictionary(7)
    assert word_service.has_dictionary(6)


def test_malformed_words_rejected_without_lookup():
    http_get = MagicMock()
    service = WordService(dictionaries={6: SIX_LETTER_WORDS}, online_validation=True, http_get=http_get)
    try:
        assert service.validate('CAST1E', 6).result() is False
        assert service.validate('CAT', 6).result() is False
        http_get.assert_not_called()
    finally:
        service.shutdown()


def test_online_lookup_confirms_and_caches():
    http_get = MagicMock(return_value=_response([{'word': 'zephyr', 'score': 100}]))
    service = WordService(dictionaries={6: SIX_LETTER_WORDS}, online_validation=True, http_get=http_get)
    try:
        assert service.validate('ZEPHYR', 6).result(timeout=5) is True
        assert service.is_valid_word_sync('ZEPHYR', 6)
        assert service.validate('ZEPHYR', 6).result(timeout=5) is True
        http_get.assert_called_once()
        _args, kwargs = http_get.call_args
        assert kwargs['params'] == {'sp': 'zephyr', 'max': 1}
    finally:
        service.shutdown()


def test_online_lookup_rejects_near_matches():
    http_get = MagicMock(return_value=_response([{'word': 'zephyrs'}]))
    service = WordService(dictionaries={6: SIX_LETTER_WORDS}, online_validation=True, http_get=http_get)
    try:
        assert service.validate('ZEPHYR', 6).result(timeout=5) is False
    finally:
        service.shutdown()


@pytest.mark.parametrize('failure', [
    requests.ConnectionError('offline'),
    requests.Timeout('slow'),
    ValueError('bad json'),
])
def test_online_failure_fails_closed(failure):
    http_get = MagicMock(side_effect=failure)
    service = WordService(dictionaries={6: SIX_LETTER_WORDS}, online_validation=True, http_get=http_get)
    try:
        with pytest.raises(WordValidationError):
            service.validate('ZEPHYR', 6).result(timeout=5)
        assert not service.is_valid_word_sync('ZEPHYR', 6)
    finally:
        service.shutdown()


def test_concurrent_lookups_for_same_word_share_one_request():
    release = threading.Event()

    def slow_get(url, params=None, timeout=None):
        release.wait(5)
        return _response([{'word': params['sp']}])

    http_get = MagicMock(side_effect=slow_get)
    service = WordService(dictionaries={6: SIX_LETTER_WORDS}, online_validation=True, http_get=http_get)
    try:
        first = service.validate('ZEPHYR', 6)
        second = service.validate('zephyr', 6)
        assert first is second
        assert service.pending_lookups() == 1

        release.set()
        assert first.result(timeout=5) is True
        assert http_get.call_count == 1
    finally:
        release.set()
        service.shutdown()


def test_offline_mode_never_calls_network():
    http_get = MagicMock()
    service = WordService(dictionaries={6: SIX_LETTER_WORDS}, online_validation=False, http_get=http_get)
    try:
        assert service.validate('ZEPHYR', 6).result() is False
        http_get.assert_not_called()
    finally:
        service.shutdown()


def test_bundled_dictionaries_load():
    service = WordService()
    try:
        pool = service.answer_pool(6)
        assert 'CASTLE' in pool and 'ACTION' in pool
        assert all(len(word) == 6 and word.isupper() for word in pool)
        assert len(pool) == len(set(pool))
        assert service.has_dictionary(4) and service.has_dictionary(10)
        assert not service.has_dictionary(11)
    finally:
        service.shutdown()
