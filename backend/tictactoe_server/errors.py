"""Error taxonomy shared by the codec, the readers and the session."""


class ProtocolError(ValueError):
    """A message that cannot be decoded into a command."""

    reason = 'malformed'

    def __init__(self, detail: str, reason: str = None):
        super().__init__(detail)
        self.detail = detail
        if reason is not None:
            self.reason = reason


class SequencingError(ProtocolError):
    """A well-formed command that is not valid for the session's current status."""

    reason = 'out_of_sequence'


class TransportError(ConnectionError):
    """Sending to a connection failed or its outbound queue overflowed."""
