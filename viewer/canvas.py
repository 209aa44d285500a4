"""Pendulum canvas: QPainter rendering of the double pendulum."""

from PyQt6.QtCore import Qt, QPointF
from PyQt6.QtGui import QPainter, QPen, QBrush, QColor
from PyQt6.QtWidgets import QWidget

from simulation import PendulumState, positions
from viewer.geometry import bob_radius, to_pixel


class PendulumCanvas(QWidget):
    """Custom widget that draws the double pendulum using QPainter."""

    BACKGROUND = QColor(0, 0, 0)
    ARM_COLOR = QColor(255, 255, 255)
    BOB_COLOR = QColor(255, 165, 0)
    ARM_WIDTH = 4.0

    def __init__(self, parent=None):
        super().__init__(parent)
        self.state = PendulumState()
        self.setMinimumSize(400, 400)

    def set_state(self, state):
        self.state = state
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), self.BACKGROUND)

        w, h = self.width(), self.height()
        params = self.state.params
        p1, p2 = positions(self.state)

        pivot_px = QPointF(*to_pixel(0.0, 0.0, w, h, params))
        bob1_px = QPointF(*to_pixel(p1.x, p1.y, w, h, params))
        bob2_px = QPointF(*to_pixel(p2.x, p2.y, w, h, params))

        # Arms
        arm_pen = QPen(self.ARM_COLOR)
        arm_pen.setWidthF(self.ARM_WIDTH)
        painter.setPen(arm_pen)
        painter.drawLine(pivot_px, bob1_px)
        painter.drawLine(bob1_px, bob2_px)

        # Bobs
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(self.BOB_COLOR))
        r1 = bob_radius(params.m1)
        r2 = bob_radius(params.m2)
        painter.drawEllipse(bob1_px, r1, r1)
        painter.drawEllipse(bob2_px, r2, r2)

        painter.end()
