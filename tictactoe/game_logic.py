import logging
import random
from dataclasses import dataclass
from enum import Enum

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from .config import GameConfig
from .opponent import NO_MOVE, select_move
from .remote_store import MemoryStore
from .rules import BOARD_CELLS, EMPTY, Mark, check_tie, check_win, new_board, validate_board
from .sync import RemoteStatus, RemoteSync

logger = logging.getLogger(__name__)

TEXT_GAME_OVER = "Game over"


class GameMode(Enum):
    PVP = 'pvp'
    PVE = 'pve'
    ONLINE = 'online'


@dataclass(frozen=True)
class GameSnapshot:
    """
    read-only copy of everything the ui renders
    """
    board: tuple
    current_mark: Mark
    mode: GameMode
    status_text: str
    is_over: bool
    winning_triple: tuple
    score_x: int
    score_o: int
    history: tuple
    is_computer_turn: bool
    connection_status: str
    session_id: str
    online_mark: Mark


class MoveScheduler(QObject):
    """
    single-shot delayed callback, at most one in flight
    a generation counter drops callbacks that were cancelled after queuing
    """
    def __init__(self, delay_ms, parent=None):
        super().__init__(parent)
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(delay_ms)
        self._timer.timeout.connect(self._fire)
        self._generation = 0
        self._pending = None  # (generation, callback)

    @property
    def is_pending(self):
        return self._pending is not None

    def schedule(self, callback):
        self.cancel()
        self._pending = (self._generation, callback)
        self._timer.start()

    def cancel(self):
        self._generation += 1
        self._timer.stop()
        self._pending = None

    @Slot()
    def _fire(self):
        if self._pending is None:
            return
        generation, callback = self._pending
        self._pending = None
        if generation != self._generation:
            return  # stale timer
        callback()


class GameLogic(QObject):
    """
    tic-tac-toe state machine for local, computer and online play
    """
    state_changed = Signal(object)  # GameSnapshot

    def __init__(self, store=None, config=None, scheduler=None, rng=None, parent=None):
        """
        init board, scores and the online adapter
        """
        super().__init__(parent)
        self.config = config or GameConfig()
        self.computer_mark = Mark(self.config.computer_mark)
        self.scheduler = scheduler or MoveScheduler(self.config.thinking_delay_ms, parent=self)
        self.rng = rng or random.Random()
        self.sync = RemoteSync(store if store is not None else MemoryStore(),
                               self.config.player_id, parent=self)
        self.sync.remote_state.connect(self._on_remote_state)
        self.sync.connection_changed.connect(self._on_connection_changed)

        self.mode = GameMode.PVP
        self.score_x = 0; self.score_o = 0    # per-run tally
        self.history = []                     # "Player X won" / "Game Tied"
        self.connection_status = ""
        self._clear_board()

    # -------------------------------------------------------------------------
    # READING
    # -------------------------------------------------------------------------

    @property
    def is_computer_turn(self):
        return (self.mode is GameMode.PVE and not self.is_over
                and self.current_mark is self.computer_mark)

    def snapshot(self):
        session = self.sync.session
        return GameSnapshot(
            board=tuple(self.board),
            current_mark=self.current_mark,
            mode=self.mode,
            status_text=self.status_text,
            is_over=self.is_over,
            winning_triple=self.winning_triple,
            score_x=self.score_x,
            score_o=self.score_o,
            history=tuple(self.history),
            is_computer_turn=self.is_computer_turn,
            connection_status=self.connection_status,
            session_id=session.session_id if session else "",
            online_mark=session.local_mark if session else None,
        )

    # -------------------------------------------------------------------------
    # COMMANDS
    # -------------------------------------------------------------------------

    def set_mode(self, mode):
        """
        switch mode, always starts a fresh game
        """
        mode = GameMode(mode)
        self.scheduler.cancel()
        if mode is not GameMode.ONLINE:
            self.sync.leave()
        self.mode = mode
        self.reset()

    def reset(self):
        """
        clear board, X to move; online pushes the cleared board
        """
        self.scheduler.cancel()
        self._clear_board()
        if self.mode is GameMode.ONLINE:
            self.sync.push_reset()
        if self.is_computer_turn:
            self._schedule_computer()
        self._emit()

    def attempt_move(self, index):
        """
        the one move entry point for humans
        returns False when the move is rejected (taken cell, game over, not your turn)
        """
        if not self._can_play(index):
            logger.debug("rejected move %r", index)
            return False

        if self.mode is GameMode.ONLINE:
            if not self.sync.is_my_turn(self.current_mark):
                logger.debug("rejected move %d, not our turn", index)
                return False
            self._play_online(index)
            return True

        if self.is_computer_turn:
            logger.debug("rejected move %d, computer is thinking", index)
            return False
        self._play_local(index)
        return True

    def create_online_game(self):
        # host a session, returns its code
        self._enter_online()
        session_id = self.sync.create_session()
        self._emit()
        return session_id

    def join_online_game(self, session_id):
        session_id = (session_id or "").strip()
        if not session_id:
            return False
        self._enter_online()
        self.sync.join_session(session_id)
        self._emit()
        return True

    # -------------------------------------------------------------------------
    # INTERNALS
    # -------------------------------------------------------------------------

    def _clear_board(self):
        self.board = new_board()
        self.current_mark = Mark.X
        self.is_over = False
        self.winning_triple = None
        self.status_text = self._turn_text()

    def _turn_text(self):
        return f"Player {self.current_mark}'s turn"

    def _enter_online(self):
        self.scheduler.cancel()
        self.sync.leave()
        self.mode = GameMode.ONLINE
        self._clear_board()

    def _can_play(self, index):
        if self.is_over:
            return False
        if not isinstance(index, int) or not 0 <= index < BOARD_CELLS:
            return False
        return self.board[index] == EMPTY

    def _play_local(self, index):
        mark = self.current_mark
        self.board[index] = mark
        if not self._evaluate((mark,)):
            self.current_mark = mark.opposite()
            self.status_text = self._turn_text()
            if self.is_computer_turn:
                self._schedule_computer()
        self._emit()

    def _play_online(self, index):
        mark = self.current_mark
        self.board[index] = mark
        # flip locally too so a second click before the echo is rejected
        self.current_mark = mark.opposite()
        self.status_text = self._turn_text()
        self.sync.push_move(self.board, self.current_mark)
        # the echo may already have concluded the game
        if not self.is_over and self._evaluate((mark,)):
            self.sync.mark_ended()
        self._emit()

    def _evaluate(self, marks):
        """
        record a win for the first mark holding a line, else a tie
        returns True when the game is over
        """
        for mark in marks:
            triple = check_win(self.board, mark)
            if triple is not None:
                self._record_win(mark, triple)
                return True
        if check_tie(self.board):
            self._record_tie()
            return True
        return False

    def _record_win(self, mark, triple):
        self.is_over = True
        self.winning_triple = triple
        if mark is Mark.X:
            self.score_x += 1
        else:
            self.score_o += 1
        self.history.append(f"Player {mark} won")
        self.status_text = f"Player {mark} wins!"
        logger.info("player %s won with %s", mark, triple)

    def _record_tie(self):
        self.is_over = True
        self.history.append("Game Tied")
        self.status_text = "It's a tie!"
        logger.info("game tied")

    def _schedule_computer(self):
        self.scheduler.schedule(self._computer_move)

    def _computer_move(self):
        # timer fired; state may have moved on
        if not self.is_computer_turn:
            return
        move = select_move(self.board, self.computer_mark, self.computer_mark.opposite(), self.rng)
        if move == NO_MOVE or not self._can_play(move):
            return
        self._play_local(move)

    @Slot(object, object, object)
    def _on_remote_state(self, board, current, status):
        """
        replace board, turn and status from the shared record in one step
        """
        if self.mode is not GameMode.ONLINE:
            return
        validate_board(board)
        self.board = list(board)
        self.current_mark = Mark(current)

        if status is RemoteStatus.ENDED:
            # a result already shown stays on screen
            if not self.is_over:
                self.is_over = True
                self.status_text = TEXT_GAME_OVER
        elif all(cell == EMPTY for cell in self.board):
            # peer started a new round
            self.is_over = False
            self.winning_triple = None
            self.status_text = self._turn_text()
        elif not self.is_over:
            self.status_text = self._turn_text()
            if self._evaluate((self.current_mark.opposite(), self.current_mark)):
                self.sync.mark_ended()
        self._emit()

    @Slot(str)
    def _on_connection_changed(self, text):
        self.connection_status = text
        self._emit()

    def _emit(self):
        self.state_changed.emit(self.snapshot())
