import logging
import random
import string
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from . import protocol
from .models import Slot
from .reader import SessionReader
from .session import Session

logger = logging.getLogger(__name__)

POLICY_TERMINATE = 'terminate'
POLICY_REFILL = 'refill'
POLICIES = (POLICY_TERMINATE, POLICY_REFILL)


@dataclass
class _PendingPair:
    session_id: str
    reader: Optional[SessionReader] = None


class ConnectionAcceptor:
    """First-come-first-served pairing of connections into sessions.

    The first unpaired connection takes slot 1 of a pending pair and the
    next one takes slot 2, which creates the Session. Any number of
    sessions can run side by side; each owns its own GameSession.

    If slot 1 leaves before an opponent arrives, ``policy`` decides:
    ``terminate`` drops the pending pair and the next connection starts a
    new one, ``refill`` keeps the pair and seats the next connection in the
    vacated slot.
    """

    def __init__(self, emit: Callable[..., Any], spawn: Optional[Callable[..., Any]] = None,
                 disconnect: Optional[Callable[[str], Any]] = None,
                 policy: str = POLICY_TERMINATE, outbox_maxsize: int = 64,
                 name_max_length: int = protocol.DEFAULT_NAME_MAX_LENGTH):
        if policy not in POLICIES:
            raise ValueError(f'unknown disconnect policy {policy!r}; expected one of {POLICIES}')
        self.policy = policy
        self.sessions: Dict[str, Session] = {}
        self._emit = emit
        self._spawn = spawn
        self._disconnect = disconnect
        self._outbox_maxsize = outbox_maxsize
        self._name_max_length = name_max_length
        self._pending: Optional[_PendingPair] = None
        self._readers: Dict[str, SessionReader] = {}
        self._lock = threading.Lock()

    def _generate_session_id(self, length=6) -> str:
        while True:
            code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
            if code not in self.sessions and (self._pending is None or self._pending.session_id != code):
                return code

    def accept(self, sid: str) -> SessionReader:
        """Seat a new connection; pairs a session when it fills slot 2."""
        paired = None
        with self._lock:
            if sid in self._readers:
                raise ValueError(f'connection {sid} already accepted')
            if self._pending is None:
                self._pending = _PendingPair(self._generate_session_id())
            pending = self._pending
            slot = Slot.ONE if pending.reader is None else Slot.TWO
            reader = SessionReader(
                sid, slot, self._emit,
                spawn=self._spawn,
                disconnect=self._disconnect,
                outbox_maxsize=self._outbox_maxsize,
                name_max_length=self._name_max_length,
                session_id=pending.session_id,
                on_leave=self._leave,
            )
            self._readers[sid] = reader
            if slot is Slot.ONE:
                pending.reader = reader
            else:
                paired = Session(
                    pending.session_id,
                    {Slot.ONE: pending.reader, Slot.TWO: reader},
                    on_terminated=self._forget,
                )
                self.sessions[paired.session_id] = paired
                self._pending = None

        logger.info(f"[slot-assigned] session={reader.session_id} slot={int(slot)} sid={sid}")
        reader.send(protocol.SlotAssigned(reader.session_id, slot))
        if paired is None:
            reader.send(protocol.Waiting(reader.session_id))
        else:
            paired.start()
        return reader

    def release(self, sid: str, reason: str = 'transport closed') -> None:
        """Forget a connection whose transport went away."""
        with self._lock:
            reader = self._readers.pop(sid, None)
            if reader is None:
                return
            if self._pending is not None and self._pending.reader is reader:
                if self.policy == POLICY_REFILL:
                    self._pending.reader = None
                    logger.info(f"[slot-vacated] session={reader.session_id} slot=1 waiting for replacement")
                else:
                    self._pending = None
                    logger.info(f"[pending-dropped] session={reader.session_id} slot=1 left before pairing")
        # Outside the acceptor lock: closing may take the session lock
        reader.close(reason)

    def _leave(self, reader: SessionReader) -> None:
        # exit sent before pairing; the transport stays up but the slot is given up
        self.release(reader.sid, reason='exit')

    def reader_for(self, sid: str) -> Optional[SessionReader]:
        with self._lock:
            return self._readers.get(sid)

    @property
    def waiting(self) -> bool:
        with self._lock:
            return self._pending is not None and self._pending.reader is not None

    def snapshots(self) -> List[dict]:
        with self._lock:
            sessions = list(self.sessions.values())
        return [s.snapshot() for s in sessions]

    def get_session(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self.sessions.get(session_id)

    def _forget(self, session: Session) -> None:
        with self._lock:
            self.sessions.pop(session.session_id, None)
        logger.info(f"[session-removed] session={session.session_id}")
