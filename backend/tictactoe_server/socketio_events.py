from flask import current_app, request
from flask_socketio import emit

from tictactoe_server import socketio
from tictactoe_server.protocol import CLIENT_KINDS, ErrorMessage, encode


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _acceptor():
    return current_app.extensions['session_acceptor']


def handle_connect(auth=None):
    sid = _get_sid()
    current_app.logger.info(f"[connect] sid={sid}")
    _acceptor().accept(sid)


def handle_disconnect(reason=None):
    sid = _get_sid()
    current_app.logger.info(f"[disconnect] sid={sid} reason={reason}")
    _acceptor().release(sid)


def _feed(kind, data):
    sid = _get_sid()
    reader = _acceptor().reader_for(sid)
    if reader is None or not reader.feed(kind, data):
        current_app.logger.info(f"[ignored] sid={sid} kind={kind} session closed")
        event, payload = encode(ErrorMessage('terminated', 'session is no longer active'))
        emit(event, payload)


def _make_command_handler(kind):
    def handle_command(data=None):
        _feed(kind.value, data)

    handle_command.__name__ = f'handle_{kind.value}'
    return handle_command


def handle_unknown(event, data=None):
    # Frames of unknown kinds still go through the reader so the sender is told
    _feed(event, data)


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on the game namespace.

    One handler per client message kind; each only hands the raw frame to
    the connection's reader, which does the decoding.
    """
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    for kind in CLIENT_KINDS:
        socketio.on_event(kind.value, _make_command_handler(kind), namespace=namespace)
    socketio.on_event('*', handle_unknown, namespace=namespace)
