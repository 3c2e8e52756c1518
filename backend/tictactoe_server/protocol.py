"""Wire messages exchanged between each participant and the server.

Every message travels as one Socket.IO event: the event name is the
lower-case message kind and its single argument is a JSON object.

Inbound:
- submit_name: { name: str }
- move: { row: int, col: int }
- restart: {}
- exit: {}

Outbound:
- slot_assigned: { session_id, slot, mark }
- waiting: { session_id }
- name_ack: { assigned_slot, opponent_name }
- game_start: { names: {"1": str, "2": str}, p1_wins, p2_wins, draws }
- turn: { slot, mark }
- move_broadcast: { row, col, mark, slot }
- move_rejected: { reason, row, col }
- win: { winner_name, winner_slot, line, p1_wins, p2_wins, draws }
- draw: { p1_wins, p2_wins, draws }
- restart: { p1_wins, p2_wins, draws }
- opponent_left: { reason }
- error: { reason, detail }

There is no free-text status message. Prompts such as a welcome line or
"your opponent has moved, now is your turn" are carried by the typed
events instead: a client derives them from name_ack, move_broadcast and
turn.

Inbound frames are decoded once, here, into a closed set of command
types; nothing past this module routes on strings.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

from .errors import ProtocolError
from .models import Mark, Scoreboard, Slot


class MessageKind(str, Enum):
    SUBMIT_NAME = 'submit_name'
    NAME_ACK = 'name_ack'
    MOVE = 'move'
    MOVE_BROADCAST = 'move_broadcast'
    MOVE_REJECTED = 'move_rejected'
    TURN = 'turn'
    WIN = 'win'
    DRAW = 'draw'
    RESTART = 'restart'
    EXIT = 'exit'
    OPPONENT_LEFT = 'opponent_left'
    SLOT_ASSIGNED = 'slot_assigned'
    WAITING = 'waiting'
    GAME_START = 'game_start'
    ERROR = 'error'


CLIENT_KINDS = (
    MessageKind.SUBMIT_NAME,
    MessageKind.MOVE,
    MessageKind.RESTART,
    MessageKind.EXIT,
)

DEFAULT_NAME_MAX_LENGTH = 32


# ---- Commands (client -> server) ----

@dataclass(frozen=True)
class SubmitName:
    name: str


@dataclass(frozen=True)
class Move:
    row: int
    col: int


@dataclass(frozen=True)
class Restart:
    pass


@dataclass(frozen=True)
class Exit:
    pass


@dataclass(frozen=True)
class Malformed:
    """Stands in for a frame that failed to decode, so the sender can be told."""

    error: ProtocolError


Command = Union[SubmitName, Move, Restart, Exit, Malformed]


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload.get(key)
    # bool is an int subclass; true/false are not coordinates
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError(f'{key} must be an integer')
    return value


def decode(kind: str, payload: Any = None, name_max_length: int = DEFAULT_NAME_MAX_LENGTH) -> Command:
    """Turn an inbound event name and its argument into a command."""
    try:
        kind = MessageKind(kind)
    except ValueError:
        raise ProtocolError(f'unknown message kind: {kind!r}', reason='unknown_kind') from None
    if kind not in CLIENT_KINDS:
        raise ProtocolError(f'{kind.value} is not accepted from clients', reason='unknown_kind')

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ProtocolError('payload must be an object')

    if kind is MessageKind.SUBMIT_NAME:
        name = payload.get('name')
        if not isinstance(name, str) or not name.strip():
            raise ProtocolError('name is required')
        name = name.strip()
        if len(name) > name_max_length:
            raise ProtocolError(f'name longer than {name_max_length} characters')
        return SubmitName(name)
    if kind is MessageKind.MOVE:
        return Move(_require_int(payload, 'row'), _require_int(payload, 'col'))
    if kind is MessageKind.RESTART:
        return Restart()
    return Exit()


# ---- Messages (server -> client) ----

@dataclass(frozen=True)
class SlotAssigned:
    kind: ClassVar[MessageKind] = MessageKind.SLOT_ASSIGNED
    session_id: str
    slot: Slot

    def to_payload(self):
        return {'session_id': self.session_id, 'slot': int(self.slot), 'mark': self.slot.mark.value}


@dataclass(frozen=True)
class Waiting:
    kind: ClassVar[MessageKind] = MessageKind.WAITING
    session_id: str

    def to_payload(self):
        return {'session_id': self.session_id}


@dataclass(frozen=True)
class NameAck:
    kind: ClassVar[MessageKind] = MessageKind.NAME_ACK
    assigned_slot: Slot
    opponent_name: Optional[str]

    def to_payload(self):
        return {'assigned_slot': int(self.assigned_slot), 'opponent_name': self.opponent_name}


@dataclass(frozen=True)
class GameStart:
    kind: ClassVar[MessageKind] = MessageKind.GAME_START
    names: Dict[Slot, Optional[str]]
    scoreboard: Scoreboard

    def to_payload(self):
        payload = {'names': {str(int(s)): n for s, n in self.names.items()}}
        payload.update(self.scoreboard.to_dict())
        return payload


@dataclass(frozen=True)
class Turn:
    kind: ClassVar[MessageKind] = MessageKind.TURN
    slot: Slot

    def to_payload(self):
        return {'slot': int(self.slot), 'mark': self.slot.mark.value}


@dataclass(frozen=True)
class MoveBroadcast:
    kind: ClassVar[MessageKind] = MessageKind.MOVE_BROADCAST
    row: int
    col: int
    mark: Mark
    slot: Slot

    def to_payload(self):
        return {'row': self.row, 'col': self.col, 'mark': self.mark.value, 'slot': int(self.slot)}


@dataclass(frozen=True)
class MoveRejected:
    kind: ClassVar[MessageKind] = MessageKind.MOVE_REJECTED
    reason: str
    row: Optional[int] = None
    col: Optional[int] = None

    def to_payload(self):
        return {'reason': self.reason, 'row': self.row, 'col': self.col}


@dataclass(frozen=True)
class WinMessage:
    kind: ClassVar[MessageKind] = MessageKind.WIN
    winner_name: Optional[str]
    winner_slot: Slot
    scoreboard: Scoreboard
    line: Tuple[Tuple[int, int], ...] = field(default_factory=tuple)

    def to_payload(self):
        payload = {
            'winner_name': self.winner_name,
            'winner_slot': int(self.winner_slot),
            'line': [list(cell) for cell in self.line],
        }
        payload.update(self.scoreboard.to_dict())
        return payload


@dataclass(frozen=True)
class DrawMessage:
    kind: ClassVar[MessageKind] = MessageKind.DRAW
    scoreboard: Scoreboard

    def to_payload(self):
        return self.scoreboard.to_dict()


@dataclass(frozen=True)
class RestartConfirmed:
    kind: ClassVar[MessageKind] = MessageKind.RESTART
    scoreboard: Scoreboard

    def to_payload(self):
        return self.scoreboard.to_dict()


@dataclass(frozen=True)
class OpponentLeft:
    kind: ClassVar[MessageKind] = MessageKind.OPPONENT_LEFT
    reason: str = 'Game ends. Your opponent left.'

    def to_payload(self):
        return {'reason': self.reason}


@dataclass(frozen=True)
class ErrorMessage:
    kind: ClassVar[MessageKind] = MessageKind.ERROR
    reason: str
    detail: str = ''

    def to_payload(self):
        return {'reason': self.reason, 'detail': self.detail}


Message = Union[
    SlotAssigned, Waiting, NameAck, GameStart, Turn, MoveBroadcast, MoveRejected,
    WinMessage, DrawMessage, RestartConfirmed, OpponentLeft, ErrorMessage,
]


def encode(message: Message) -> Tuple[str, Dict[str, Any]]:
    """Return the (event name, payload) pair for an outbound message."""
    return message.kind.value, message.to_payload()

