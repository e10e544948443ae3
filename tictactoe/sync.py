"""
Remote sync adapter for online games.

Mirrors local moves into the shared session record and turns incoming
records into ``remote_state`` signals for the game logic. Win and tie are
never read from the record; each peer recomputes them with the same rules.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum

from PySide6.QtCore import QObject, Signal, Slot

from .rules import BOARD_CELLS, EMPTY, Mark, new_board

logger = logging.getLogger(__name__)

TEXT_WAITING = "waiting for opponent"
TEXT_MY_TURN = "your turn"
TEXT_THEIR_TURN = "opponent's turn"
TEXT_ENDED = "game ended"
TEXT_CONNECTING = "connecting..."


class RemoteStatus(str, Enum):
    WAITING = 'waiting'
    PLAYING = 'playing'
    ENDED = 'ended'


@dataclass
class OnlineSession:
    session_id: str
    is_host: bool
    local_player_id: str
    remote_status: RemoteStatus = RemoteStatus.WAITING
    opponent_joined: bool = False

    @property
    def local_mark(self):
        # host always plays X
        return Mark.X if self.is_host else Mark.O


def parse_record(record):
    """
    validate a remote record, returns (board, current_mark, status) or None
    """
    if not isinstance(record, dict):
        return None
    board = record.get('board')
    if not isinstance(board, list) or len(board) != BOARD_CELLS:
        return None
    if any(cell not in (EMPTY, 'X', 'O') for cell in board):
        return None
    try:
        current = Mark(record.get('currentMark'))
        status = RemoteStatus(record.get('status'))
    except ValueError:
        return None
    return list(board), current, status


class RemoteSync(QObject):
    """
    owns the OnlineSession, talks to a RemoteStore
    """
    remote_state = Signal(object, object, object)   # board, current mark, status
    connection_changed = Signal(str)

    def __init__(self, store, player_id="", parent=None):
        super().__init__(parent)
        self.store = store
        self.player_id = player_id or uuid.uuid4().hex[:8]
        self.session = None
        self.connection_status = ""
        store.record_changed.connect(self.on_remote_update)
        store.subscription_failed.connect(self._on_subscription_failed)

    def is_my_turn(self, current_mark):
        return self.session is not None and self.session.local_mark == current_mark

    def create_session(self):
        """
        host a new session as X, returns the session id
        """
        self.leave()
        session_id = self.store.new_session_id()
        self.session = OnlineSession(session_id, True, self.player_id)
        self._set_connection(TEXT_WAITING)
        logger.info("hosting session %s as %s", session_id, self.player_id)
        self.store.set_record(session_id, {
            'playerX': self.player_id,
            'playerO': '',
            'board': new_board(),
            'currentMark': Mark.X.value,
            'status': RemoteStatus.WAITING.value,
        })
        self.store.subscribe(session_id)
        return session_id

    def join_session(self, session_id):
        """
        join an existing session as O
        """
        self.leave()
        self.session = OnlineSession(session_id, False, self.player_id,
                                     remote_status=RemoteStatus.PLAYING,
                                     opponent_joined=True)
        self._set_connection(TEXT_CONNECTING)
        logger.info("joining session %s as %s", session_id, self.player_id)
        self.store.update(session_id, {
            'playerO': self.player_id,
            'status': RemoteStatus.PLAYING.value,
        })
        self.store.subscribe(session_id)

    def leave(self):
        # drop the session, stop listening
        if self.session is None:
            return
        logger.info("leaving session %s", self.session.session_id)
        self.store.unsubscribe(self.session.session_id)
        self.session = None
        self._set_connection("")

    def push_move(self, board, next_mark):
        # board and turn go out as one write
        if self.session is None:
            return
        self.store.update(self.session.session_id, {
            'board': list(board),
            'currentMark': Mark(next_mark).value,
        })

    def push_reset(self):
        if self.session is None:
            return
        status = RemoteStatus.PLAYING if self.session.opponent_joined else RemoteStatus.WAITING
        self.store.update(self.session.session_id, {
            'board': new_board(),
            'currentMark': Mark.X.value,
            'status': status.value,
        })

    def mark_ended(self):
        if self.session is None:
            return
        self.store.update(self.session.session_id, {'status': RemoteStatus.ENDED.value})

    @Slot(str, object)
    def on_remote_update(self, session_id, record):
        """
        apply a full remote record; malformed payloads are dropped
        """
        if self.session is None or session_id != self.session.session_id:
            return
        parsed = parse_record(record)
        if parsed is None:
            logger.warning("dropping malformed record for %s: %r", session_id, record)
            return
        board, current, status = parsed

        self.session.remote_status = status
        if status is not RemoteStatus.WAITING or record.get('playerO'):
            self.session.opponent_joined = True

        if status is RemoteStatus.WAITING:
            text = TEXT_WAITING
        elif status is RemoteStatus.PLAYING:
            text = TEXT_MY_TURN if self.is_my_turn(current) else TEXT_THEIR_TURN
        else:
            text = TEXT_ENDED

        # state first so listeners see the board that matches the text
        self.remote_state.emit(board, current, status)
        self._set_connection(text)

    @Slot(str, str)
    def _on_subscription_failed(self, session_id, reason):
        if self.session is None or session_id != self.session.session_id:
            return
        logger.warning("session %s connection failed: %s", session_id, reason)
        self._set_connection(f"connection failed: {reason}")

    def _set_connection(self, text):
        if text == self.connection_status:
            return
        self.connection_status = text
        self.connection_changed.emit(text)
