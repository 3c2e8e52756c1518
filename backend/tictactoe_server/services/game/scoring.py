from typing import Iterator, List, Optional, Sequence, Tuple

from tictactoe_server.models import Mark

BOARD_SIZE = 3

Cell = Tuple[int, int]
Line = Tuple[Cell, ...]

_ROWS = tuple(tuple((r, c) for c in range(BOARD_SIZE)) for r in range(BOARD_SIZE))
_COLUMNS = tuple(tuple((r, c) for r in range(BOARD_SIZE)) for c in range(BOARD_SIZE))
_DIAGONALS = (
    tuple((i, i) for i in range(BOARD_SIZE)),
    tuple((i, BOARD_SIZE - 1 - i) for i in range(BOARD_SIZE)),
)

WINNING_LINES: Tuple[Line, ...] = _ROWS + _COLUMNS + _DIAGONALS


def lines_through(row: int, col: int) -> Iterator[Line]:
    """Yield the winning lines that contain the given cell."""
    for line in WINNING_LINES:
        if (row, col) in line:
            yield line


def completed_line(cells: Sequence[Sequence[Optional[Mark]]], row: int, col: int,
                   mark: Mark) -> Optional[List[Cell]]:
    """Return the line finished by the mark just placed at (row, col), if any.

    Only lines through the placed cell are inspected: any line the move
    completes must contain it.
    """
    for line in lines_through(row, col):
        if all(cells[r][c] is mark for r, c in line):
            return list(line)
    return None


def is_full(cells: Sequence[Sequence[Optional[Mark]]]) -> bool:
    return all(cell is not None for row in cells for cell in row)
