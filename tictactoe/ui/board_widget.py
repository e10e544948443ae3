from PySide6.QtWidgets import QWidget, QSizePolicy
from PySide6.QtCore import QSize, Signal, QPointF, QRectF
from PySide6.QtGui import QPainter, QColor, QPen

from ..rules import BOARD_CELLS, Mark

SIZE = 3  # cells per side


class BoardWidget(QWidget):
    """
    custom widget to draw and click on the tic-tac-toe board
    """
    cell_clicked = Signal(int)  # emits cell index 0-8

    def __init__(self, parent=None):
        super().__init__(parent)
        self.snapshot = None            # last GameSnapshot drawn
        self.setSizePolicy(QSizePolicy.Ignored, QSizePolicy.Ignored)
        self.setMinimumSize(QSize(150, 150))
        self._accept_clicks = True      # toggle click handling

    def set_snapshot(self, snapshot):
        # redraw from a fresh snapshot
        self.snapshot = snapshot
        self.update()

    def set_accept_clicks(self, accept):
        # enable/disable user input
        self._accept_clicks = accept

    def heightForWidth(self, width):
        # keep square shape
        return width

    def hasHeightForWidth(self):
        return True

    def _geometry(self):
        w, h = self.width(), self.height()
        side = min(w, h)
        return (w-side)/2, (h-side)/2, side

    def paintEvent(self, event):
        """
        draw grid, X/O marks, and highlight the winning triple
        """
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing, True)
        offset_x, offset_y, side = self._geometry()
        cell_size = side / SIZE
        painter.fillRect(self.rect(), QColor("#333"))
        if self.snapshot is None:
            return
        # winning cells first so grid and marks sit on top
        for index in self.snapshot.winning_triple or ():
            r, c = divmod(index, SIZE)
            painter.fillRect(QRectF(offset_x + c*cell_size, offset_y + r*cell_size,
                                    cell_size, cell_size), QColor("#3d5a3d"))
        # grid lines
        painter.setPen(QPen(QColor("#555"), 2))
        for i in range(1, SIZE):
            x = offset_x + i*cell_size
            painter.drawLine(int(x), int(offset_y), int(x), int(offset_y+side))
            y = offset_y + i*cell_size
            painter.drawLine(int(offset_x), int(y), int(offset_x+side), int(y))
        # draw marks
        for index in range(BOARD_CELLS):
            sym = self.snapshot.board[index]
            if not sym: continue
            r, c = divmod(index, SIZE)
            cx = offset_x + c*cell_size + cell_size/2
            cy = offset_y + r*cell_size + cell_size/2
            rad = cell_size/2 * 0.7
            if sym == Mark.X:
                painter.setPen(QPen(QColor("#8acaff"), 4))
                # two crossing lines
                painter.drawLine(QPointF(cx-rad, cy-rad), QPointF(cx+rad, cy+rad))
                painter.drawLine(QPointF(cx+rad, cy-rad), QPointF(cx-rad, cy+rad))
            else:
                painter.setPen(QPen(QColor("#ff8a8a"), 4))
                painter.drawEllipse(QPointF(cx, cy), rad, rad)

    def mouseReleaseEvent(self, event):
        """
        handle clicks: map coords to a cell index and emit
        """
        if not self._accept_clicks or self.snapshot is None or self.snapshot.is_over:
            return
        ox, oy, side = self._geometry()
        x, y = event.position().x(), event.position().y()
        # only inside grid
        if not (ox <= x < ox+side and oy <= y < oy+side):
            return
        cell = side / SIZE
        if cell <= 0: return
        col = int((x-ox)//cell); row = int((y-oy)//cell)
        # clamp to valid range
        row = max(0, min(row, SIZE-1)); col = max(0, min(col, SIZE-1))
        self.cell_clicked.emit(row*SIZE + col)  # notify main window
