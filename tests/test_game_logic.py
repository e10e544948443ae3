"""
Game state machine tests: local play, computer opponent, scheduling, reset.
"""

import pytest
from PySide6.QtCore import QEventLoop, QTimer

from tictactoe.config import GameConfig
from tictactoe.game_logic import GameLogic, GameMode, MoveScheduler
from tictactoe.rules import EMPTY, Mark


def play(game, *moves):
    for index in moves:
        assert game.attempt_move(index), f"move {index} rejected"


def spin(ms):
    """run the qt event loop for a while"""
    loop = QEventLoop()
    QTimer.singleShot(ms, loop.quit)
    loop.exec()


# ════════════════════════════════════════════════════════════════════════════
#  LOCAL PLAYER VS PLAYER
# ════════════════════════════════════════════════════════════════════════════

class TestLocalPlay:
    def test_initial_state(self, game):
        snap = game.snapshot()
        assert snap.board == (EMPTY,) * 9
        assert snap.current_mark is Mark.X
        assert snap.mode is GameMode.PVP
        assert snap.is_over is False
        assert snap.winning_triple is None
        assert snap.status_text == "Player X's turn"

    def test_move_flips_turn(self, game):
        play(game, 4)
        assert game.board[4] == Mark.X
        assert game.current_mark is Mark.O
        assert game.status_text == "Player O's turn"

    def test_x_wins_middle_column(self, game):
        play(game, 4, 0, 1, 3, 7)
        snap = game.snapshot()
        assert snap.winning_triple == (1, 4, 7)
        assert snap.is_over is True
        assert snap.score_x == 1
        assert snap.score_o == 0
        assert snap.history == ("Player X won",)
        assert snap.status_text == "Player X wins!"

    def test_o_win_counts_for_o(self, game):
        play(game, 0, 3, 1, 4, 8, 5)
        assert game.winning_triple == (3, 4, 5)
        assert game.score_o == 1
        assert game.history == ["Player O won"]

    def test_tie(self, game):
        play(game, 0, 1, 2, 4, 3, 5, 7, 6, 8)
        snap = game.snapshot()
        assert snap.is_over is True
        assert snap.winning_triple is None
        assert snap.history == ("Game Tied",)
        assert snap.status_text == "It's a tie!"
        assert snap.score_x == snap.score_o == 0

    def test_winning_last_move_is_not_a_tie(self, game):
        # X completes the diagonal with the ninth move
        play(game, 0, 1, 2, 5, 3, 6, 4, 7, 8)
        assert game.history == ["Player X won"]
        assert game.winning_triple == (0, 4, 8)


class TestRejectedMoves:
    def test_occupied_cell_is_noop(self, game):
        play(game, 4)
        before = game.snapshot()
        assert game.attempt_move(4) is False
        assert game.snapshot() == before

    def test_same_cell_twice_identical_state(self, game):
        game.attempt_move(2)
        first = game.snapshot()
        game.attempt_move(2)
        assert game.snapshot() == first

    def test_moves_after_game_over_ignored(self, game):
        play(game, 4, 0, 1, 3, 7)
        before = game.snapshot()
        assert game.attempt_move(8) is False
        assert game.snapshot() == before

    @pytest.mark.parametrize("index", [-1, 9, 42, "3", None])
    def test_bad_index_ignored(self, game, index):
        before = game.snapshot()
        assert game.attempt_move(index) is False
        assert game.snapshot() == before

    def test_rejected_move_emits_nothing(self, game):
        seen = []
        play(game, 0)
        game.state_changed.connect(seen.append)
        game.attempt_move(0)
        assert seen == []

    def test_accepted_move_emits_snapshot(self, game):
        seen = []
        game.state_changed.connect(seen.append)
        play(game, 0)
        assert len(seen) == 1
        assert seen[0].board[0] == Mark.X


class TestReset:
    def test_reset_after_win(self, game):
        play(game, 4, 0, 1, 3, 7)
        game.reset()
        snap = game.snapshot()
        assert snap.board == (EMPTY,) * 9
        assert snap.current_mark is Mark.X
        assert snap.is_over is False
        assert snap.winning_triple is None
        # tally and history survive a new game
        assert snap.score_x == 1
        assert snap.history == ("Player X won",)

    def test_reset_mid_game(self, game):
        play(game, 0, 1, 2)
        game.reset()
        assert game.board == [EMPTY] * 9
        assert game.current_mark is Mark.X

    def test_set_mode_resets(self, game):
        play(game, 0, 1)
        game.set_mode(GameMode.PVE)
        assert game.mode is GameMode.PVE
        assert game.board == [EMPTY] * 9
        assert game.current_mark is Mark.X

    def test_reopens_after_game_over(self, game):
        play(game, 4, 0, 1, 3, 7)
        game.set_mode(GameMode.PVP)
        assert game.attempt_move(0) is True


# ════════════════════════════════════════════════════════════════════════════
#  PLAYER VS COMPUTER
# ════════════════════════════════════════════════════════════════════════════

class TestComputerOpponent:
    def test_computer_scheduled_after_human(self, game, scheduler):
        game.set_mode(GameMode.PVE)
        play(game, 0)
        assert scheduler.is_pending
        assert game.is_computer_turn
        assert game.snapshot().is_computer_turn is True

    def test_human_blocked_while_thinking(self, game, scheduler):
        game.set_mode(GameMode.PVE)
        play(game, 0)
        before = game.snapshot()
        assert game.attempt_move(1) is False
        assert game.snapshot() == before

    def test_computer_takes_center(self, game, scheduler):
        game.set_mode(GameMode.PVE)
        play(game, 0)
        scheduler.run_pending()
        assert game.board[4] == Mark.O
        assert game.current_mark is Mark.X
        assert not scheduler.is_pending

    def test_computer_blocks(self, game, scheduler):
        game.set_mode(GameMode.PVE)
        play(game, 0)
        scheduler.run_pending()     # O center
        play(game, 1)
        scheduler.run_pending()
        assert game.board[2] == Mark.O

    def test_computer_win_recorded(self, game, scheduler):
        game.set_mode(GameMode.PVE)
        # O completes 2-4-6, which also blocks the top row
        game.board[:] = ['X', 'X', '', '', 'O', '', 'O', '', 'X']
        game.current_mark = Mark.O
        game._schedule_computer()
        scheduler.run_pending()
        assert game.board[2] == Mark.O
        assert game.winning_triple == (2, 4, 6)
        assert game.score_o == 1
        assert game.history[-1] == "Player O won"

    def test_reset_cancels_pending_move(self, game, scheduler):
        game.set_mode(GameMode.PVE)
        play(game, 0)
        stale = scheduler.callback
        game.reset()
        assert not scheduler.is_pending
        # a timer that slipped through must not touch the new board
        stale()
        assert game.board == [EMPTY] * 9
        assert game.current_mark is Mark.X

    def test_mode_change_cancels_pending_move(self, game, scheduler):
        game.set_mode(GameMode.PVE)
        play(game, 0)
        stale = scheduler.callback
        game.set_mode(GameMode.PVP)
        assert not scheduler.is_pending
        stale()
        assert game.board == [EMPTY] * 9

    def test_only_one_pending_move(self, game, scheduler):
        game.set_mode(GameMode.PVE)
        play(game, 0)
        assert scheduler.scheduled == 1
        game.attempt_move(1)        # rejected, nothing new scheduled
        assert scheduler.scheduled == 1

    def test_computer_playing_x_opens(self, scheduler):
        game = GameLogic(config=GameConfig(computer_mark=Mark.X), scheduler=scheduler)
        game.set_mode(GameMode.PVE)
        assert scheduler.is_pending
        assert game.attempt_move(0) is False
        scheduler.run_pending()
        assert game.board[4] == Mark.X
        assert game.current_mark is Mark.O

    def test_no_computer_in_pvp(self, game, scheduler):
        play(game, 0)
        assert not scheduler.is_pending
        assert game.attempt_move(1) is True


# ════════════════════════════════════════════════════════════════════════════
#  QTIMER SCHEDULER
# ════════════════════════════════════════════════════════════════════════════

class TestMoveScheduler:
    def test_fires_once_after_delay(self):
        calls = []
        sched = MoveScheduler(10)
        sched.schedule(lambda: calls.append(1))
        assert sched.is_pending
        assert calls == []
        spin(150)
        assert calls == [1]
        assert not sched.is_pending

    def test_reschedule_replaces(self):
        calls = []
        sched = MoveScheduler(10)
        sched.schedule(lambda: calls.append("first"))
        sched.schedule(lambda: calls.append("second"))
        spin(150)
        assert calls == ["second"]

    def test_cancel(self):
        calls = []
        sched = MoveScheduler(10)
        sched.schedule(lambda: calls.append(1))
        sched.cancel()
        spin(100)
        assert calls == []

    def test_real_timer_drives_computer(self):
        game = GameLogic(config=GameConfig(thinking_delay_ms=10))
        game.set_mode(GameMode.PVE)
        play(game, 0)
        assert game.is_computer_turn
        spin(200)
        assert game.board[4] == Mark.O
        assert game.current_mark is Mark.X
