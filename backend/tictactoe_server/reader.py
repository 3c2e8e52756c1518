import logging
import queue
import threading
from typing import Any, Callable, Optional

from . import protocol
from .errors import ProtocolError, TransportError
from .models import Slot

logger = logging.getLogger(__name__)

_STOP = object()

# How often an idle writer re-checks whether its reader was closed
_WRITER_POLL_SEC = 0.5


class SessionReader:
    """One participant connection: ordered inbound decoding and serialized sends.

    Socket.IO hands inbound frames to ``feed``; they are queued and decoded
    one at a time, in arrival order, by ``read_loop`` and forwarded to the
    session through ``on_command``. The reader never answers a frame itself.

    ``send`` only enqueues onto a bounded outbox drained by ``write_loop``,
    so a slow or broken socket cannot stall the other participant. A full
    outbox or a failed emit marks the reader dead.

    With ``spawn`` unset (testing) both directions run inline on the
    calling thread.

    An ``exit`` frame that arrives before the reader is attached is not
    buffered: it goes straight to ``on_leave`` so the acceptor can give up
    the pending slot.
    """

    def __init__(self, sid: str, slot: Slot, emit: Callable[..., Any],
                 spawn: Optional[Callable[..., Any]] = None,
                 disconnect: Optional[Callable[[str], Any]] = None,
                 outbox_maxsize: int = 64,
                 name_max_length: int = protocol.DEFAULT_NAME_MAX_LENGTH,
                 session_id: str = '',
                 on_leave: Optional[Callable[['SessionReader'], Any]] = None):
        self.sid = sid
        self.slot = slot
        self.session_id = session_id
        self.alive = True
        self.close_reason: Optional[str] = None
        self._emit = emit
        self._spawn = spawn
        self._disconnect = disconnect
        self._on_leave = on_leave
        self._name_max_length = name_max_length
        self._inbox: queue.Queue = queue.Queue()
        self._outbox: queue.Queue = queue.Queue(maxsize=outbox_maxsize)
        self._on_command = None
        self._on_close = None
        self._lock = threading.Lock()
        self._inline_lock = threading.RLock()

    @property
    def threaded(self) -> bool:
        return self._spawn is not None

    @property
    def attached(self) -> bool:
        return self._on_command is not None

    def attach(self, on_command: Callable, on_close: Callable) -> None:
        """Bind to a paired session and start processing buffered frames."""
        self._on_command = on_command
        self._on_close = on_close
        if self.threaded:
            self._spawn(self.read_loop)
            self._spawn(self.write_loop)
        else:
            self._drain_inline()

    def feed(self, kind: str, payload: Any = None) -> bool:
        """Queue one inbound frame; returns False once the reader is closed."""
        if not self.alive:
            return False
        if kind == protocol.MessageKind.EXIT.value and not self.attached:
            logger.info(f"[exit-unpaired] session={self.session_id} slot={int(self.slot)} sid={self.sid}")
            if self._on_leave is not None:
                self._on_leave(self)
            else:
                self.close('exit')
            return True
        self._inbox.put((kind, payload))
        if not self.threaded and self.attached:
            self._drain_inline()
        return True

    def read_loop(self) -> None:
        while True:
            frame = self._inbox.get()
            if frame is _STOP:
                break
            try:
                self._process(frame)
            except Exception:
                logger.exception(f"[reader-error] session={self.session_id} slot={int(self.slot)}")
                self.close('internal error')
            if not self.alive:
                break
        logger.debug(f"[reader-stopped] session={self.session_id} slot={int(self.slot)}")

    def write_loop(self) -> None:
        while True:
            try:
                message = self._outbox.get(timeout=_WRITER_POLL_SEC)
            except queue.Empty:
                if not self.alive:
                    break
                continue
            if message is _STOP:
                break
            try:
                self._write(message)
            except TransportError as exc:
                self._fail(exc)
                break

    def send(self, message: protocol.Message) -> bool:
        """Hand one message to this connection; False if it is dead."""
        if not self.alive:
            return False
        if not self.threaded:
            try:
                self._write(message)
            except TransportError as exc:
                self._fail(exc)
                return False
            return True
        try:
            self._outbox.put_nowait(message)
        except queue.Full:
            self._fail(TransportError(f'outbox full ({self._outbox.maxsize} messages)'))
            return False
        return True

    def close(self, reason: str) -> bool:
        """Stop both loops and run the termination callback, exactly once."""
        with self._lock:
            if not self.alive:
                return False
            self.alive = False
            self.close_reason = reason
        self._inbox.put(_STOP)
        try:
            self._outbox.put_nowait(_STOP)
        except queue.Full:
            # writer exits on its own once the backlog drains
            pass
        logger.info(f"[reader-closed] session={self.session_id} slot={int(self.slot)} sid={self.sid} reason={reason}")
        if self._on_close is not None:
            self._on_close(self, reason)
        return True

    def _drain_inline(self) -> None:
        with self._inline_lock:
            while self.alive:
                try:
                    frame = self._inbox.get_nowait()
                except queue.Empty:
                    return
                if frame is _STOP:
                    return
                self._process(frame)

    def _process(self, frame) -> None:
        kind, payload = frame
        try:
            command = protocol.decode(kind, payload, name_max_length=self._name_max_length)
        except ProtocolError as exc:
            logger.info(
                f"[malformed] session={self.session_id} slot={int(self.slot)} kind={kind} detail={exc.detail}"
            )
            command = protocol.Malformed(exc)
        if isinstance(command, protocol.Exit):
            self.close('exit')
            return
        self._on_command(self, command)

    def _write(self, message: protocol.Message) -> None:
        event, payload = protocol.encode(message)
        try:
            self._emit(event, payload, to=self.sid)
        except Exception as exc:
            raise TransportError(f'emit {event} failed: {exc}') from exc

    def _fail(self, exc: TransportError) -> None:
        logger.warning(f"[send-failed] session={self.session_id} slot={int(self.slot)} sid={self.sid} error={exc}")
        if self.close('transport error') and self._disconnect is not None:
            self._disconnect(self.sid)
