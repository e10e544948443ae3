from enum import Enum

BOARD_CELLS = 9
EMPTY = ''

# rows, then columns, then diagonals; order decides which line is highlighted
WIN_PATTERNS = (
    (0, 1, 2), (3, 4, 5), (6, 7, 8),
    (0, 3, 6), (1, 4, 7), (2, 5, 8),
    (0, 4, 8), (2, 4, 6),
)

CENTER = 4


class InvariantError(RuntimeError):
    """
    internal board state broke an invariant (wrong size, unknown cell)
    """


class Mark(str, Enum):
    """
    player symbol, compares equal to its wire string
    """
    X = 'X'
    O = 'O'

    def opposite(self):
        return Mark.O if self is Mark.X else Mark.X

    def __str__(self):
        return self.value


def new_board():
    # fresh 9 cell board
    return [EMPTY] * BOARD_CELLS


def validate_board(board):
    """
    fail fast on a board that is not 9 cells of '', 'X' or 'O'
    """
    if len(board) != BOARD_CELLS:
        raise InvariantError(f"board must have {BOARD_CELLS} cells, got {len(board)}")
    for i, cell in enumerate(board):
        if cell not in (EMPTY, Mark.X, Mark.O):
            raise InvariantError(f"cell {i} holds unknown value {cell!r}")


def check_win(board, mark):
    """
    first triple (rows, cols, diags) fully owned by mark, or None
    """
    validate_board(board)
    for pattern in WIN_PATTERNS:
        if all(board[i] == mark for i in pattern):
            return pattern
    return None


def check_tie(board):
    """
    true when no cell is empty and neither mark holds a line
    """
    validate_board(board)
    if EMPTY in board:
        return False
    return check_win(board, Mark.X) is None and check_win(board, Mark.O) is None


def empty_indices(board):
    # ascending empty cells
    validate_board(board)
    return [i for i, cell in enumerate(board) if cell == EMPTY]


def winning_move(board, mark):
    """
    empty cell completing a line for mark (two marks + one blank)
    scans WIN_PATTERNS in order and returns the first hit, else None
    """
    validate_board(board)
    for pattern in WIN_PATTERNS:
        values = [board[i] for i in pattern]
        if values.count(mark) == 2 and values.count(EMPTY) == 1:
            return pattern[values.index(EMPTY)]
    return None
