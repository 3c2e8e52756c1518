from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the tic-tac-toe session server!'})

@main.route('/health')
def health():
    acceptor = current_app.extensions['session_acceptor']
    return jsonify({
        'status': 'ok',
        'sessions': len(acceptor.snapshots()),
        'waiting': acceptor.waiting,
    })
