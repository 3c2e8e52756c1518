from dataclasses import dataclass, replace
from enum import Enum, IntEnum


class Mark(str, Enum):
    X = 'X'
    O = 'O'


class Slot(IntEnum):
    """Seat of a participant; fixed by connection-arrival order."""

    ONE = 1
    TWO = 2

    @property
    def other(self) -> 'Slot':
        return Slot.TWO if self is Slot.ONE else Slot.ONE

    @property
    def mark(self) -> Mark:
        # Slot 1 always plays X and moves first
        return Mark.X if self is Slot.ONE else Mark.O


class Status(str, Enum):
    AWAITING_SLOTS = 'awaiting_slots'
    AWAITING_NAMES = 'awaiting_names'
    IN_PROGRESS = 'in_progress'
    FINISHED = 'finished'
    TERMINATED = 'terminated'


@dataclass(frozen=True)
class Scoreboard:
    p1_wins: int = 0
    p2_wins: int = 0
    draws: int = 0

    def with_win(self, slot: Slot) -> 'Scoreboard':
        if slot is Slot.ONE:
            return replace(self, p1_wins=self.p1_wins + 1)
        return replace(self, p2_wins=self.p2_wins + 1)

    def with_draw(self) -> 'Scoreboard':
        return replace(self, draws=self.draws + 1)

    def to_dict(self):
        return {
            'p1_wins': self.p1_wins,
            'p2_wins': self.p2_wins,
            'draws': self.draws,
        }
