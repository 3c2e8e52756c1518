import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from tictactoe_server.errors import SequencingError
from tictactoe_server.models import Mark, Scoreboard, Slot, Status
from .scoring import BOARD_SIZE, completed_line, is_full

logger = logging.getLogger(__name__)

# Rejection reasons surfaced to clients in move_rejected
NOT_IN_PROGRESS = 'not_in_progress'
NOT_YOUR_TURN = 'not_your_turn'
OUT_OF_RANGE = 'out_of_range'
OCCUPIED = 'occupied'


class Board:
    """3x3 grid; a cell goes from empty to a mark once and only a reset clears it."""

    def __init__(self):
        self.cells: List[List[Optional[Mark]]] = [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]

    @staticmethod
    def in_range(row: int, col: int) -> bool:
        return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE

    def get(self, row: int, col: int) -> Optional[Mark]:
        return self.cells[row][col]

    def place(self, row: int, col: int, mark: Mark) -> None:
        if self.cells[row][col] is not None:
            raise ValueError(f'cell ({row}, {col}) is already occupied')
        self.cells[row][col] = mark

    def is_full(self) -> bool:
        return is_full(self.cells)

    def is_empty(self) -> bool:
        return all(cell is None for row in self.cells for cell in row)

    def count(self, mark: Mark) -> int:
        return sum(1 for row in self.cells for cell in row if cell is mark)

    def clear(self) -> None:
        self.cells = [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]

    def to_list(self):
        return [[cell.value if cell else None for cell in row] for row in self.cells]


# ---- Results of session operations ----

@dataclass(frozen=True)
class NameAccepted:
    slot: Slot
    name: str
    opponent_name: Optional[str]
    # True when this name completed the pair and the first game began
    started: bool = False
    names: Dict[Slot, Optional[str]] = field(default_factory=dict)
    scoreboard: Scoreboard = field(default_factory=Scoreboard)


@dataclass(frozen=True)
class NameIgnored:
    slot: Slot


@dataclass(frozen=True)
class Continue:
    slot: Slot
    row: int
    col: int
    mark: Mark
    next_turn: Slot


@dataclass(frozen=True)
class Win:
    slot: Slot
    row: int
    col: int
    mark: Mark
    winner_name: Optional[str]
    line: Tuple[Tuple[int, int], ...]
    scoreboard: Scoreboard


@dataclass(frozen=True)
class Draw:
    slot: Slot
    row: int
    col: int
    mark: Mark
    scoreboard: Scoreboard


@dataclass(frozen=True)
class Rejected:
    slot: Slot
    reason: str
    row: Optional[int] = None
    col: Optional[int] = None


@dataclass(frozen=True)
class Restarted:
    requested_by: Optional[Slot]
    turn: Slot
    scoreboard: Scoreboard


@dataclass(frozen=True)
class Exited:
    slot: Slot
    survivor: Slot
    scoreboard: Scoreboard


class GameSession:
    """State machine shared by the two connections of one session.

    Every mutating operation runs under ``lock`` so at most one mutation is
    in flight; a second move racing the first is evaluated against the state
    the first one left behind. ``lock`` is re-entrant so callers may hold it
    across an operation and the queuing of its outbound messages.
    """

    def __init__(self, session_id: str = ''):
        self.session_id = session_id
        self.lock = threading.RLock()
        self.board = Board()
        self.turn_owner = Slot.ONE
        self.status = Status.AWAITING_SLOTS
        self.scoreboard = Scoreboard()
        self.names: Dict[Slot, Optional[str]] = {Slot.ONE: None, Slot.TWO: None}
        self.seated = set()

    def seat(self, slot: Slot) -> None:
        with self.lock:
            if self.status is not Status.AWAITING_SLOTS:
                raise SequencingError(f'cannot seat slot {int(slot)} while {self.status.value}')
            self.seated.add(slot)
            if self.seated == {Slot.ONE, Slot.TWO}:
                self.status = Status.AWAITING_NAMES

    def submit_name(self, slot: Slot, name: str):
        with self.lock:
            if self.status is Status.TERMINATED:
                raise SequencingError('session terminated', reason='terminated')
            if self.names[slot] is not None:
                logger.info(f"[name-duplicate] session={self.session_id} slot={int(slot)} ignored")
                return NameIgnored(slot)
            self.names[slot] = name
            started = (
                self.status is Status.AWAITING_NAMES
                and all(n is not None for n in self.names.values())
            )
            if started:
                self.status = Status.IN_PROGRESS
                self.turn_owner = Slot.ONE
            return NameAccepted(
                slot=slot,
                name=name,
                opponent_name=self.names[slot.other],
                started=started,
                names=dict(self.names),
                scoreboard=self.scoreboard,
            )

    def attempt_move(self, slot: Slot, row: int, col: int):
        with self.lock:
            if self.status is not Status.IN_PROGRESS:
                return Rejected(slot, NOT_IN_PROGRESS, row, col)
            if slot is not self.turn_owner:
                return Rejected(slot, NOT_YOUR_TURN, row, col)
            if not Board.in_range(row, col):
                return Rejected(slot, OUT_OF_RANGE, row, col)
            if self.board.get(row, col) is not None:
                return Rejected(slot, OCCUPIED, row, col)

            mark = slot.mark
            self.board.place(row, col, mark)

            line = completed_line(self.board.cells, row, col, mark)
            if line:
                self.status = Status.FINISHED
                self.scoreboard = self.scoreboard.with_win(slot)
                return Win(slot, row, col, mark, self.names[slot], tuple(line), self.scoreboard)
            if self.board.is_full():
                self.status = Status.FINISHED
                self.scoreboard = self.scoreboard.with_draw()
                return Draw(slot, row, col, mark, self.scoreboard)
            self.turn_owner = slot.other
            return Continue(slot, row, col, mark, self.turn_owner)

    def restart(self, requested_by: Optional[Slot] = None) -> Restarted:
        with self.lock:
            if self.status is not Status.FINISHED:
                reason = 'terminated' if self.status is Status.TERMINATED else None
                raise SequencingError(f'cannot restart while {self.status.value}', reason=reason)
            self.board.clear()
            self.turn_owner = Slot.ONE
            self.status = Status.IN_PROGRESS
            return Restarted(requested_by, self.turn_owner, self.scoreboard)

    def player_exited(self, slot: Slot) -> Optional[Exited]:
        """Terminate the session; returns None if it already was."""
        with self.lock:
            if self.status is Status.TERMINATED:
                return None
            self.status = Status.TERMINATED
            return Exited(slot, slot.other, self.scoreboard)

    @property
    def terminated(self) -> bool:
        return self.status is Status.TERMINATED

    def snapshot(self):
        # Lock-free diagnostic read; never used to gate a mutation
        return {
            'session_id': self.session_id,
            'status': self.status.value,
            'board': self.board.to_list(),
            'turn': int(self.turn_owner) if self.status is Status.IN_PROGRESS else None,
            'names': {str(int(s)): n for s, n in self.names.items()},
            'scoreboard': self.scoreboard.to_dict(),
        }
