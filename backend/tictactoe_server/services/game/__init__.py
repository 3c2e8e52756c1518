"""Game domain services: board state, outcome detection and the session state machine.

This package contains pure domain logic that is driven by the socket
handlers through the session layer, keeping transport concerns separated
from core game mechanics.
"""

from .state import (  # noqa: F401
    Board,
    Continue,
    Draw,
    Exited,
    GameSession,
    NameAccepted,
    NameIgnored,
    Rejected,
    Restarted,
    Win,
)
