import logging

from ..config import GameConfig
from ..game_logic import GameLogic, GameMode
from ..network import NetworkStore
from ..ui.board_widget import BoardWidget

from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QPushButton, QLabel, QMenuBar, QMenu, QLineEdit,
    QGroupBox, QListWidget, QSizePolicy
)
from PySide6.QtGui import QAction, QFont
from PySide6.QtCore import Qt, Slot

logger = logging.getLogger(__name__)

MODE_LABELS = (
    (GameMode.PVP, "Player vs Player"),
    (GameMode.PVE, "Player vs Computer"),
    (GameMode.ONLINE, "Online"),
)


class TicTacToeWindow(QMainWindow):
    """
    main window: renders snapshots, forwards clicks to the game logic
    """
    def __init__(self, config=None):
        """
        init game logic, ui widgets, signals
        """
        super().__init__()
        self.config = config or GameConfig.from_env()
        self.store = NetworkStore(self.config.store_host, self.config.store_port)
        self.game_logic = GameLogic(store=self.store, config=self.config, parent=self)
        self.board_widget = BoardWidget(parent=self)
        self.mode_buttons = {}

        self._setup_ui()
        self.game_logic.state_changed.connect(self._render)
        self._render(self.game_logic.snapshot())

    def _setup_ui(self):
        '''window look + layout'''
        self.setWindowTitle("Tic-Tac-Toe")
        self.setStyleSheet("""
            QMainWindow { background-color: #222; }
            QGroupBox { color: #ccc; }
        """)
        self.central_widget = QWidget()
        self.setCentralWidget(self.central_widget)
        self.main_layout = QVBoxLayout(self.central_widget)

        self._create_menu_bar()            # top menu
        self._create_mode_bar()            # pvp / pve / online
        self._create_online_controls()     # create/join ui
        self.main_layout.addWidget(self.online_group)
        self.main_layout.addWidget(self.board_widget, 1)
        self.board_widget.cell_clicked.connect(self._on_cell_clicked)

        self._create_bottom_controls()     # status + scores + history
        self.main_layout.addWidget(self.controls_bottom_widget)

    def _create_menu_bar(self):
        '''game menu actions'''
        menu_bar = QMenuBar()
        game_menu = QMenu("Game", self)
        new_action = QAction("New Game", self)
        new_action.triggered.connect(self.game_logic.reset)
        quit_action = QAction("Quit", self)
        quit_action.triggered.connect(self.close)
        game_menu.addAction(new_action)
        game_menu.addSeparator(); game_menu.addAction(quit_action)
        menu_bar.addMenu(game_menu)
        self.setMenuBar(menu_bar)

    def _create_mode_bar(self):
        # one checkable button per mode
        hl = QHBoxLayout()
        for mode, label in MODE_LABELS:
            btn = QPushButton(label)
            btn.setCheckable(True)
            btn.clicked.connect(lambda _checked=False, m=mode: self.game_logic.set_mode(m))
            self.mode_buttons[mode] = btn
            hl.addWidget(btn)
        self.main_layout.addLayout(hl)

    def _create_online_controls(self):
        '''online setup group'''
        self.online_group = QGroupBox("Online Game")
        layout = QVBoxLayout()
        self.connection_label = QLabel("")
        layout.addWidget(self.connection_label)
        self.create_button = QPushButton("Create Game")
        self.create_button.clicked.connect(self._create_online_game)
        layout.addWidget(self.create_button)
        join_layout = QHBoxLayout()
        self.code_input = QLineEdit()
        self.code_input.setPlaceholderText("Enter Game Code")
        self.join_button = QPushButton("Join Game")
        self.join_button.clicked.connect(self._join_online_game)
        join_layout.addWidget(self.code_input); join_layout.addWidget(self.join_button)
        layout.addLayout(join_layout)
        self.session_label = QLabel("")
        self.session_label.setTextInteractionFlags(Qt.TextSelectableByMouse)
        layout.addWidget(self.session_label)
        self.online_group.setLayout(layout)

    def _create_bottom_controls(self):
        # status line, thinking flag, scores, history, reset
        self.controls_bottom_widget = QWidget()
        vl = QVBoxLayout(self.controls_bottom_widget)
        self.controls_bottom_widget.setStyleSheet("background: transparent;")

        hl = QHBoxLayout()
        self.message_label = QLabel("")
        f = QFont(); f.setPointSize(12); self.message_label.setFont(f)
        self.message_label.setAlignment(Qt.AlignLeft | Qt.AlignVCenter)
        self.message_label.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Preferred)
        self.message_label.setWordWrap(True)
        self.thinking_label = QLabel("computer is thinking...")
        self.reset_button = QPushButton("New Game")
        self.reset_button.clicked.connect(self.game_logic.reset)
        for w in (self.message_label, self.thinking_label, self.reset_button):
            hl.addWidget(w)
        vl.addLayout(hl)

        self.score_label = QLabel("")
        vl.addWidget(self.score_label)
        vl.addWidget(QLabel("Game History"))
        self.history_list = QListWidget()
        self.history_list.setMaximumHeight(100)
        vl.addWidget(self.history_list)

    @Slot()
    def _create_online_game(self):
        self.game_logic.create_online_game()

    @Slot()
    def _join_online_game(self):
        code = self.code_input.text().strip()
        if not code:
            self.connection_label.setText("enter a game code")
            return
        self.game_logic.join_online_game(code)

    @Slot(int)
    def _on_cell_clicked(self, index):
        # rejected moves are a no-op
        self.game_logic.attempt_move(index)

    @Slot(object)
    def _render(self, snap):
        """
        push one snapshot into every widget
        """
        self.board_widget.set_snapshot(snap)
        self.board_widget.set_accept_clicks(not snap.is_over and not snap.is_computer_turn)
        for mode, btn in self.mode_buttons.items():
            btn.setChecked(mode is snap.mode)

        style = "color: #eee;"
        if snap.is_over:
            style = "color: lime; font-weight: bold;"
        self.message_label.setStyleSheet(style)
        self.message_label.setText(snap.status_text)
        self.thinking_label.setVisible(snap.is_computer_turn)

        online = snap.mode is GameMode.ONLINE
        self.online_group.setVisible(online)
        self.connection_label.setText(snap.connection_status)
        if snap.session_id:
            self.session_label.setText(f"Game Code: {snap.session_id} (you are {snap.online_mark})")
        else:
            self.session_label.setText("")

        self.score_label.setText(f"X Wins: {snap.score_x}    O Wins: {snap.score_o}")
        if self.history_list.count() != len(snap.history):
            self.history_list.clear()
            self.history_list.addItems(list(snap.history))

    def closeEvent(self, event):
        # ensure cleanup on close
        self.game_logic.sync.leave()
        self.store.close()
        event.accept()
