from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS', [])
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Readers run as background tasks; in tests everything stays on the
    # calling thread for determinism unless explicitly enabled
    threaded = not flask_app.config.get('TESTING') or flask_app.config.get('THREADED_READERS_IN_TESTS')

    def _emit(event, payload, to):
        socketio.emit(event, payload, to=to, namespace=namespace)

    def _disconnect(sid):
        socketio.server.disconnect(sid, namespace=namespace)

    from tictactoe_server.acceptor import ConnectionAcceptor
    flask_app.extensions['session_acceptor'] = ConnectionAcceptor(
        _emit,
        spawn=socketio.start_background_task if threaded else None,
        disconnect=_disconnect,
        policy=flask_app.config.get('DISCONNECT_POLICY', 'terminate'),
        outbox_maxsize=int(flask_app.config.get('OUTBOX_MAXSIZE', 64)),
        name_max_length=int(flask_app.config.get('NAME_MAX_LENGTH', 32)),
    )

    # Import and register blueprints here
    from tictactoe_server.routes import main
    flask_app.register_blueprint(main)

    from tictactoe_server.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    # Register Socket.IO event handlers
    # Importing here ensures the handlers bind to the initialized socketio instance
    from tictactoe_server.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace)

    @click.command('serve')
    @click.option('--host', default=None, help='Bind address (defaults to HOST).')
    @click.option('--port', default=None, type=int, help='Listening port (defaults to PORT).')
    def serve_command(host, port):
        """Runs the session server until interrupted."""
        host = host or flask_app.config['HOST']
        port = port or flask_app.config['PORT']
        flask_app.logger.info(f"[server-start] host={host} port={port} namespace={namespace}")
        socketio.run(flask_app, host=host, port=port, allow_unsafe_werkzeug=True)

    flask_app.cli.add_command(serve_command)

    return flask_app
