import time

from conftest import NAMESPACE, events, names


def test_socket_connect_assigns_slot(connect):
    p1 = connect()
    assert p1.is_connected(NAMESPACE)
    received = p1.get_received(NAMESPACE)
    assert [pkt['name'] for pkt in received] == ['slot_assigned', 'waiting']
    assigned = received[0]['args'][0]
    assert assigned['slot'] == 1
    assert assigned['mark'] == 'X'

    p2 = connect()
    (assigned_2,) = events(p2, 'slot_assigned')
    assert assigned_2 == {'session_id': assigned['session_id'], 'slot': 2, 'mark': 'O'}


def test_names_are_acknowledged_and_game_starts(pair):
    p1, p2 = pair
    p2.emit('submit_name', {'name': 'Bob'}, namespace=NAMESPACE)
    assert events(p2, 'name_ack') == [{'assigned_slot': 2, 'opponent_name': None}]
    assert events(p1, 'name_ack') == [{'assigned_slot': 1, 'opponent_name': 'Bob'}]

    p1.emit('submit_name', {'name': 'Alice'}, namespace=NAMESPACE)
    received_1 = p1.get_received(NAMESPACE)
    received_2 = p2.get_received(NAMESPACE)
    assert [pkt['name'] for pkt in received_1] == ['name_ack', 'game_start', 'turn']
    assert [pkt['name'] for pkt in received_2] == ['name_ack', 'game_start']
    assert received_1[0]['args'][0] == {'assigned_slot': 1, 'opponent_name': 'Bob'}
    assert received_2[1]['args'][0]['names'] == {'1': 'Alice', '2': 'Bob'}


def test_duplicate_name_is_silently_ignored(pair):
    p1, p2 = pair
    p1.emit('submit_name', {'name': 'Alice'}, namespace=NAMESPACE)
    p1.get_received(NAMESPACE)
    p2.get_received(NAMESPACE)
    p1.emit('submit_name', {'name': 'Mallory'}, namespace=NAMESPACE)
    assert p1.get_received(NAMESPACE) == []
    assert p2.get_received(NAMESPACE) == []


def test_diagonal_win_scenario(named_pair):
    p1, p2 = named_pair
    p1.emit('move', {'row': 0, 'col': 0}, namespace=NAMESPACE)
    assert events(p1, 'move_broadcast') == [{'row': 0, 'col': 0, 'mark': 'X', 'slot': 1}]
    assert names(p2) == ['move_broadcast', 'turn']
    p2.emit('move', {'row': 0, 'col': 1}, namespace=NAMESPACE)
    p1.emit('move', {'row': 1, 'col': 1}, namespace=NAMESPACE)
    p2.emit('move', {'row': 0, 'col': 2}, namespace=NAMESPACE)
    p1.get_received(NAMESPACE)
    p2.get_received(NAMESPACE)

    p1.emit('move', {'row': 2, 'col': 2}, namespace=NAMESPACE)
    for participant in (p1, p2):
        (win,) = events(participant, 'win')
        assert win['winner_name'] == 'Alice'
        assert win['winner_slot'] == 1
        assert (win['p1_wins'], win['p2_wins'], win['draws']) == (1, 0, 0)


def test_draw_and_restart_keep_scoreboard(named_pair, client):
    p1, p2 = named_pair
    sequence = [(0, 0), (0, 1), (0, 2), (1, 1), (1, 0), (1, 2), (2, 1), (2, 0), (2, 2)]
    for i, (row, col) in enumerate(sequence):
        (p1 if i % 2 == 0 else p2).emit('move', {'row': row, 'col': col}, namespace=NAMESPACE)
    assert events(p1, 'draw') == [{'p1_wins': 0, 'p2_wins': 0, 'draws': 1}]
    assert events(p2, 'draw') == [{'p1_wins': 0, 'p2_wins': 0, 'draws': 1}]

    # either participant may ask for the next game
    p2.emit('restart', namespace=NAMESPACE)
    assert names(p1) == ['restart', 'turn']
    assert events(p2, 'restart') == [{'p1_wins': 0, 'p2_wins': 0, 'draws': 1}]

    (snapshot,) = client.get('/api/sessions').get_json()
    assert snapshot['board'] == [[None] * 3] * 3
    assert snapshot['turn'] == 1
    assert snapshot['scoreboard'] == {'p1_wins': 0, 'p2_wins': 0, 'draws': 1}


def test_out_of_turn_and_occupied_moves_are_rejected(named_pair, client):
    p1, p2 = named_pair
    p2.emit('move', {'row': 0, 'col': 0}, namespace=NAMESPACE)
    assert events(p2, 'move_rejected') == [{'reason': 'not_your_turn', 'row': 0, 'col': 0}]
    assert p1.get_received(NAMESPACE) == []

    p1.emit('move', {'row': 1, 'col': 1}, namespace=NAMESPACE)
    p1.get_received(NAMESPACE)
    p2.get_received(NAMESPACE)
    p2.emit('move', {'row': 1, 'col': 1}, namespace=NAMESPACE)
    assert events(p2, 'move_rejected') == [{'reason': 'occupied', 'row': 1, 'col': 1}]
    assert p1.get_received(NAMESPACE) == []

    (snapshot,) = client.get('/api/sessions').get_json()
    assert snapshot['board'][1][1] == 'X'
    assert snapshot['turn'] == 2


def test_move_before_names_is_rejected(pair):
    p1, _ = pair
    p1.emit('move', {'row': 0, 'col': 0}, namespace=NAMESPACE)
    assert events(p1, 'move_rejected') == [{'reason': 'not_in_progress', 'row': 0, 'col': 0}]


def test_malformed_frames_get_an_error(named_pair):
    p1, p2 = named_pair
    p1.emit('move', {'row': 'middle'}, namespace=NAMESPACE)
    (error,) = events(p1, 'error')
    assert error['reason'] == 'malformed'
    p1.emit('teleport', {'row': 0}, namespace=NAMESPACE)
    (error,) = events(p1, 'error')
    assert error['reason'] == 'unknown_kind'
    assert p2.get_received(NAMESPACE) == []
    # the session carries on
    p1.emit('move', {'row': 0, 'col': 0}, namespace=NAMESPACE)
    assert names(p2) == ['move_broadcast', 'turn']


def test_disconnect_in_progress_notifies_survivor_once(named_pair, client):
    p1, p2 = named_pair
    p1.emit('move', {'row': 0, 'col': 0}, namespace=NAMESPACE)
    p1.get_received(NAMESPACE)
    session_id = client.get('/api/sessions').get_json()[0]['session_id']

    p2.disconnect(namespace=NAMESPACE)
    deadline = time.time() + 3.0
    received = []
    while time.time() < deadline and not received:
        received = events(p1, 'opponent_left')
        if not received:
            time.sleep(0.1)
    assert len(received) == 1
    assert client.get(f'/api/sessions/{session_id}').status_code == 404

    # no command is processed after termination
    p1.emit('move', {'row': 1, 'col': 1}, namespace=NAMESPACE)
    assert [e['reason'] for e in events(p1, 'error')] == ['terminated']
    assert events(p1, 'opponent_left') == []


def test_exit_notifies_opponent(named_pair):
    p1, p2 = named_pair
    p1.emit('exit', namespace=NAMESPACE)
    assert names(p2) == ['opponent_left']
    assert p1.get_received(NAMESPACE) == []


def test_unknown_kind_after_termination_gets_terminated_error(named_pair):
    p1, p2 = named_pair
    p2.emit('exit', namespace=NAMESPACE)
    assert names(p1) == ['opponent_left']
    p1.emit('teleport', {}, namespace=NAMESPACE)
    assert [e['reason'] for e in events(p1, 'error')] == ['terminated']


def test_exit_before_opponent_arrives_gives_up_the_slot(connect, client):
    p1 = connect()
    p1.get_received(NAMESPACE)
    p1.emit('exit', namespace=NAMESPACE)
    assert client.get('/health').get_json()['waiting'] is False

    p2 = connect()
    assert names(p2) == ['slot_assigned', 'waiting']
    p1.emit('submit_name', {'name': 'Alice'}, namespace=NAMESPACE)
    assert [e['reason'] for e in events(p1, 'error')] == ['terminated']
    assert p2.get_received(NAMESPACE) == []


def test_new_connection_after_termination_starts_fresh(named_pair, connect, client):
    p1, p2 = named_pair
    p2.emit('exit', namespace=NAMESPACE)
    p3 = connect()
    (assigned,) = events(p3, 'slot_assigned')
    assert assigned['slot'] == 1
    assert client.get('/health').get_json()['waiting'] is True
