import logging
import threading
import time
from typing import Callable, Dict, Optional

from . import protocol
from .dispatcher import Dispatcher, route_error
from .errors import SequencingError
from .models import Slot
from .reader import SessionReader
from .services.game import GameSession

logger = logging.getLogger(__name__)


class Session:
    """One paired instance: two readers sharing one GameSession."""

    def __init__(self, session_id: str, readers: Dict[Slot, SessionReader],
                 on_terminated: Optional[Callable[['Session'], None]] = None):
        self.session_id = session_id
        self.game = GameSession(session_id)
        self.readers = readers
        self.dispatcher = Dispatcher(readers, session_id)
        self.created_at = time.time()
        self._on_terminated = on_terminated
        self._ended = False
        self._end_lock = threading.Lock()

    def start(self) -> None:
        self.game.seat(Slot.ONE)
        self.game.seat(Slot.TWO)
        logger.info(
            f"[session-paired] session={self.session_id} "
            f"p1={self.readers[Slot.ONE].sid} p2={self.readers[Slot.TWO].sid}"
        )
        for slot in (Slot.ONE, Slot.TWO):
            self.readers[slot].attach(self.handle_command, self.handle_close)
        # A transport may have dropped between pairing and attach
        for reader in list(self.readers.values()):
            if not reader.alive:
                self.handle_close(reader, reader.close_reason or 'closed before start')
                break

    def handle_command(self, reader: SessionReader, command: protocol.Command) -> None:
        slot = reader.slot
        if isinstance(command, protocol.Malformed):
            self.dispatcher.deliver(route_error(slot, command.error))
            return

        # Outbound messages are queued while the lock is held so both
        # participants observe mutations in the order they were applied.
        with self.game.lock:
            try:
                if isinstance(command, protocol.SubmitName):
                    result = self.game.submit_name(slot, command.name)
                elif isinstance(command, protocol.Move):
                    result = self.game.attempt_move(slot, command.row, command.col)
                elif isinstance(command, protocol.Restart):
                    result = self.game.restart(slot)
                else:
                    raise TypeError(f'unhandled command {command!r}')
            except SequencingError as exc:
                logger.info(
                    f"[rejected] session={self.session_id} slot={int(slot)} "
                    f"command={type(command).__name__} reason={exc.reason} status={self.game.status.value}"
                )
                self.dispatcher.deliver(route_error(slot, exc))
                return
            logger.info(
                f"[{type(command).__name__.lower()}] session={self.session_id} slot={int(slot)} "
                f"result={type(result).__name__} status={self.game.status.value}"
            )
            self.dispatcher.dispatch(result)

    def handle_close(self, reader: SessionReader, reason: str) -> None:
        with self.game.lock:
            result = self.game.player_exited(reader.slot)
            if result is not None:
                logger.info(
                    f"[session-terminated] session={self.session_id} left={int(result.slot)} "
                    f"reason={reason} scoreboard={result.scoreboard.to_dict()}"
                )
                self.dispatcher.dispatch(result)
        # No command from either slot is processed once terminated
        self.readers[reader.slot.other].close('session terminated')
        self._finish()

    def _finish(self) -> None:
        with self._end_lock:
            if self._ended or any(r.alive for r in self.readers.values()):
                return
            self._ended = True
        if self._on_terminated is not None:
            self._on_terminated(self)

    def snapshot(self):
        payload = self.game.snapshot()
        payload['live'] = {str(int(s)): r.alive for s, r in self.readers.items()}
        payload['created_at'] = self.created_at
        return payload
