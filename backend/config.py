import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Listening address; one port per server instance
    HOST = os.environ.get('TTT_HOST', '0.0.0.0')
    PORT = int(os.environ.get('TTT_PORT', '12345'))
    SOCKETIO_NAMESPACE = os.environ.get('TTT_NAMESPACE', '/ws')
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'TTT_CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
        ).split(',') if o.strip()
    ]
    # What happens when slot 1 leaves before an opponent arrives:
    # 'terminate' drops the pending pair, 'refill' keeps it for the next connection
    DISCONNECT_POLICY = os.environ.get('TTT_DISCONNECT_POLICY', 'terminate')
    # Per-connection outbound queue bound; a full queue marks the connection dead
    OUTBOX_MAXSIZE = int(os.environ.get('TTT_OUTBOX_MAXSIZE', '64'))
    NAME_MAX_LENGTH = int(os.environ.get('TTT_NAME_MAX_LENGTH', '32'))
    LOG_LEVEL = os.environ.get('TTT_LOG_LEVEL', 'INFO')
