from dotriacontordle.websocket.handlers import player_subscriptions


def _events(client, name):
    return [event['args'][0] for event in client.get_received() if event['name'] == name]


def test_join_and_key_events_push_state(app):
    client = app.socketio.test_client(app)
    client.emit('join_game', {'player_id': 'ws-player'})
    joined = _events(client, 'game_state_update')
    assert joined and joined[-1]['currentGuess'] == ''

    client.emit('key', {'player_id': 'ws-player', 'key': 'c'})
    client.emit('key', {'player_id': 'ws-player', 'key': 'A'})
    client.emit('key', {'player_id': 'ws-player', 'key': 'BACKSPACE'})
    updates = _events(client, 'game_state_update')
    assert [u['currentGuess'] for u in updates] == ['C', 'CA', 'C']

    client.emit('key', {'player_id': 'ws-player', 'key': 'ENTER'})
    rejected = _events(client, 'guess_rejected')
    assert rejected == [{'outcome': 'not_enough_letters', 'message': 'Not enough letters'}]

    client.disconnect()


def test_missing_player_id_is_an_error(app):
    client = app.socketio.test_client(app)
    client.emit('join_game', {})
    errors = _events(client, 'error')
    assert errors == [{'error': 'Player id required'}]


def test_unsupported_key(app):
    client = app.socketio.test_client(app)
    client.emit('key', {'player_id': 'ws-player', 'key': '7'})
    assert _events(client, 'error') == [{'error': 'Unsupported key: 7'}]


def test_each_socket_gets_one_update_per_change(app):
    first = app.socketio.test_client(app)
    second = app.socketio.test_client(app)
    first.emit('join_game', {'player_id': 'ws-twin'})
    second.emit('join_game', {'player_id': 'ws-twin'})
    first.get_received()
    second.get_received()

    first.emit('key', {'player_id': 'ws-twin', 'key': 'Q'})
    assert [u['currentGuess'] for u in _events(first, 'game_state_update')] == ['Q']
    assert [u['currentGuess'] for u in _events(second, 'game_state_update')] == ['Q']

    first.disconnect()
    second.emit('key', {'player_id': 'ws-twin', 'key': 'U'})
    assert [u['currentGuess'] for u in _events(second, 'game_state_update')] == ['QU']
    assert player_subscriptions['ws-twin'][0] == 1

    second.disconnect()
    assert 'ws-twin' not in player_subscriptions
    assert not app.game_service.get_session('ws-twin').has_subscribers
