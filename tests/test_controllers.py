import pytest

from dotriacontordle import create_app
from dotriacontordle.config import TestingConfig
from dotriacontordle.services.storage_service import MemoryStore
from dotriacontordle.services.word_service import WordService

from .conftest import FIVE_LETTER_WORDS, START_DAILY, FakeClock

HEADERS = {'X-Player-Id': 'player-1'}


def type_word(client, word, headers=HEADERS):
    for letter in word:
        assert client.post('/api/game/letter', json={'letter': letter}, headers=headers).status_code == 200


def test_player_header_is_required(client):
    response = client.get('/api/game/state')
    assert response.status_code == 401
    assert response.get_json()['success'] is False

    response = client.get('/api/game/state', headers={'X-Player-Id': 'bad id!'})
    assert response.status_code == 401


def test_state_hides_unsolved_answers(client):
    response = client.get('/api/game/state', headers=HEADERS)
    data = response.get_json()

    assert response.status_code == 200
    state = data['state']
    assert state['dailyNumber'] == START_DAILY
    assert state['gameMode'] == 'daily'
    assert state['config']['profileId'] == '6x32x37'
    assert all(board['answer'] is None for board in state['boards'])


def test_guess_flow(client):
    type_word(client, 'ACTION')
    response = client.post('/api/game/guess', headers=HEADERS)
    data = response.get_json()

    assert response.status_code == 200
    assert data['guess'] == 'ACTION'
    assert len(data['solvedBoards']) == 1
    board = data['state']['boards'][data['solvedBoards'][0]]
    assert board['answer'] == 'ACTION'
    assert data['state']['currentGuess'] == ''
    assert data['state']['keyboardState']['A'] == 'correct'


@pytest.mark.parametrize('word,error', [
    ('CAST', 'Not enough letters'),
    ('QWERTY', 'Not a word'),
])
def test_rejected_guesses(client, word, error):
    type_word(client, word)
    response = client.post('/api/game/guess', headers=HEADERS)
    assert response.status_code == 400
    assert response.get_json()['error'] == error

    state = client.get('/api/game/state', headers=HEADERS).get_json()['state']
    assert state['guesses'] == []
    assert state['error'] == error


def test_letter_must_be_single_letter(client):
    for payload in ({'letter': '12'}, {'letter': '1'}, {}):
        assert client.post('/api/game/letter', json=payload, headers=HEADERS).status_code == 400


def test_backspace(client):
    type_word(client, 'CA')
    data = client.post('/api/game/backspace', headers=HEADERS).get_json()
    assert data['state']['currentGuess'] == 'C'


def test_new_game_modes(client):
    response = client.post('/api/new_game', json={'mode': 'weekly'}, headers=HEADERS)
    assert response.status_code == 400

    response = client.post('/api/new_game', json={'mode': 'free', 'config': {'wordLength': 5, 'boardCount': 4}},
                           headers=HEADERS)
    state = response.get_json()['state']
    assert response.status_code == 200
    assert state['gameMode'] == 'free'
    assert state['config']['profileId'] == '5x4x37'
    assert len(state['boards']) == 4


def test_new_game_without_dictionary(client):
    response = client.post('/api/new_game', json={'mode': 'free', 'config': {'wordLength': 9}}, headers=HEADERS)
    assert response.status_code == 422


def test_past_daily(client):
    response = client.post('/api/new_game', json={'mode': 'daily', 'dailyNumber': 3}, headers=HEADERS)
    assert response.get_json()['state']['dailyNumber'] == 3

    response = client.post('/api/new_game', json={'mode': 'daily', 'dailyNumber': 0}, headers=HEADERS)
    assert response.status_code == 400


def test_switch_mode_round_trip(client):
    type_word(client, 'CAS')
    data = client.post('/api/switch_mode', json={'mode': 'free'}, headers=HEADERS).get_json()
    assert data['changed'] is True
    assert data['state']['gameMode'] == 'free'

    data = client.post('/api/switch_mode', json={'mode': 'daily'}, headers=HEADERS).get_json()
    assert data['state']['currentGuess'] == 'CAS'

    data = client.post('/api/switch_mode', json={'mode': 'daily'}, headers=HEADERS).get_json()
    assert data['changed'] is False


def test_expand_board(client):
    data = client.post('/api/game/expand', json={'boardIndex': 3}, headers=HEADERS).get_json()
    assert data['state']['expandedBoard'] == 3

    data = client.post('/api/game/expand', json={'boardIndex': None}, headers=HEADERS).get_json()
    assert data['state']['expandedBoard'] is None

    assert client.post('/api/game/expand', json={'boardIndex': 'x'}, headers=HEADERS).status_code == 400


def test_timer_toggle(client):
    data = client.post('/api/game/timer', headers=HEADERS).get_json()
    assert data['state']['timerRunning'] is True
    data = client.post('/api/game/timer', headers=HEADERS).get_json()
    assert data['state']['timerRunning'] is False


def test_board_evaluations(client):
    type_word(client, 'CASTLE')
    client.post('/api/game/guess', headers=HEADERS)

    data = client.get('/api/game/board/0/evaluations', headers=HEADERS).get_json()
    assert len(data['evaluations']) == 1
    assert len(data['evaluations'][0]) == 6
    if not data['solved']:
        assert data['answer'] is None

    assert client.get('/api/game/board/99/evaluations', headers=HEADERS).status_code == 404


def test_stats(client):
    data = client.get('/api/stats', headers=HEADERS).get_json()
    assert data['profileId'] == '6x32x37'
    assert data['stats']['gamesPlayed'] == 0
    assert len(data['stats']['guessDistribution']) == 37

    data = client.get('/api/stats?wordLength=5&boardCount=4&maxGuesses=9', headers=HEADERS).get_json()
    assert data['profileId'] == '5x4x9'
    assert len(data['stats']['guessDistribution']) == 9


def test_settings_round_trip(client):
    response = client.put('/api/settings', json={'glowMode': True, 'preferredWordLength': 99}, headers=HEADERS)
    settings = response.get_json()['settings']
    assert settings['glowMode'] is True
    assert settings['preferredWordLength'] == 10

    data = client.get('/api/settings', headers=HEADERS).get_json()
    assert data['settings'] == settings

    assert client.put('/api/settings', json=[1, 2], headers=HEADERS).status_code == 400


def test_players_are_isolated(client):
    type_word(client, 'CAS')
    other = client.get('/api/game/state', headers={'X-Player-Id': 'player-2'}).get_json()
    assert other['state']['currentGuess'] == ''


def test_daily_info(client):
    data = client.get('/api/daily').get_json()
    assert data['dailyNumber'] == START_DAILY
    assert data['timeUntilNext'] == '22:00:00'


def test_health(client):
    data = client.get('/api/health').get_json()
    assert data['status'] == 'healthy'


def test_player_without_any_playable_profile_gets_422():
    words = WordService(dictionaries={5: FIVE_LETTER_WORDS})
    app, _socketio = create_app(TestingConfig, word_service=words, store=MemoryStore(), clock=FakeClock())
    client = app.test_client()
    try:
        for _ in range(2):
            response = client.get('/api/game/state', headers=HEADERS)
            assert response.status_code == 422
            assert response.get_json()['success'] is False
        assert app.game_service.sessions == {}
    finally:
        words.shutdown()
