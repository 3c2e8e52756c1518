from flask import Blueprint, current_app, jsonify

sessions = Blueprint('sessions', __name__)


def _acceptor():
    return current_app.extensions['session_acceptor']


@sessions.route('', methods=['GET'])
def list_sessions():
    """
    Returns a snapshot of every live session.
    """
    return jsonify(_acceptor().snapshots())


@sessions.route('/<string:session_id>', methods=['GET'])
def get_session_state(session_id):
    """
    Returns the board, turn, names and scoreboard of one session.
    """
    session = _acceptor().get_session(session_id.upper())
    if session is None:
        return jsonify({'error': 'Session not found'}), 404
    return jsonify(session.snapshot())
