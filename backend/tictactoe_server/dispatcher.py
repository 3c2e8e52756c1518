import logging
from typing import Dict, List, Mapping, Tuple

from . import protocol
from .errors import ProtocolError
from .models import Slot
from .services.game import (
    Continue,
    Draw,
    Exited,
    NameAccepted,
    NameIgnored,
    Rejected,
    Restarted,
    Win,
)

logger = logging.getLogger(__name__)

Delivery = Tuple[Slot, protocol.Message]

BOTH = (Slot.ONE, Slot.TWO)


def _broadcast(message) -> List[Delivery]:
    return [(slot, message) for slot in BOTH]


def route(result) -> List[Delivery]:
    """Map one session result to the messages each slot must receive.

    Name acknowledgements are unicast to each slot (the submitter learns
    its slot and whatever opponent name is known; the other slot learns
    its new opponent's name). Everything that changes the board or ends
    the game is broadcast.
    """
    if isinstance(result, NameAccepted):
        deliveries = [
            (result.slot, protocol.NameAck(result.slot, result.opponent_name)),
            (result.slot.other, protocol.NameAck(result.slot.other, result.name)),
        ]
        if result.started:
            deliveries += _broadcast(protocol.GameStart(result.names, result.scoreboard))
            deliveries.append((Slot.ONE, protocol.Turn(Slot.ONE)))
        return deliveries
    if isinstance(result, NameIgnored):
        return []
    if isinstance(result, Continue):
        return _broadcast(protocol.MoveBroadcast(result.row, result.col, result.mark, result.slot)) + [
            (result.next_turn, protocol.Turn(result.next_turn)),
        ]
    if isinstance(result, Win):
        return (
            _broadcast(protocol.MoveBroadcast(result.row, result.col, result.mark, result.slot))
            + _broadcast(protocol.WinMessage(result.winner_name, result.slot, result.scoreboard, result.line))
        )
    if isinstance(result, Draw):
        return (
            _broadcast(protocol.MoveBroadcast(result.row, result.col, result.mark, result.slot))
            + _broadcast(protocol.DrawMessage(result.scoreboard))
        )
    if isinstance(result, Rejected):
        return [(result.slot, protocol.MoveRejected(result.reason, result.row, result.col))]
    if isinstance(result, Restarted):
        return _broadcast(protocol.RestartConfirmed(result.scoreboard)) + [
            (result.turn, protocol.Turn(result.turn)),
        ]
    if isinstance(result, Exited):
        return [(result.survivor, protocol.OpponentLeft())]
    raise TypeError(f'no route for result {result!r}')


def route_error(slot: Slot, error: ProtocolError) -> List[Delivery]:
    return [(slot, protocol.ErrorMessage(error.reason, error.detail))]


class Dispatcher:
    """Delivers routed messages through the owning readers.

    Delivery to each slot is independent: a dead reader drops its share and
    the disconnect flow takes it from there.
    """

    def __init__(self, readers: Mapping[Slot, object], session_id: str = ''):
        self.readers = readers
        self.session_id = session_id

    def deliver(self, deliveries: List[Delivery]) -> Dict[Slot, int]:
        sent = {slot: 0 for slot in BOTH}
        for slot, message in deliveries:
            reader = self.readers.get(slot)
            if reader is None or not reader.send(message):
                logger.info(
                    f"[deliver-skip] session={self.session_id} slot={int(slot)} kind={message.kind.value}"
                )
                continue
            sent[slot] += 1
        return sent

    def dispatch(self, result) -> Dict[Slot, int]:
        return self.deliver(route(result))
