import logging
import random

from .rules import CENTER, EMPTY, empty_indices, winning_move

logger = logging.getLogger(__name__)

NO_MOVE = -1


def select_move(board, own_mark, opponent_mark, rng=random):
    """
    pick the computer's cell: win, else block, else center, else random
    returns NO_MOVE on a full board
    """
    free = empty_indices(board)
    if not free:
        return NO_MOVE

    move = winning_move(board, own_mark)
    if move is not None:
        logger.debug("%s takes the win at %d", own_mark, move)
        return move

    move = winning_move(board, opponent_mark)
    if move is not None:
        logger.debug("%s blocks %s at %d", own_mark, opponent_mark, move)
        return move

    if board[CENTER] == EMPTY:
        return CENTER

    return rng.choice(free)
