"""Pendulum view: steps one pendulum on a timer and repaints the canvas.

Each frame advances the simulation by exactly one Euler step of
VIEWER_DT; frame pacing belongs to the QTimer, not to the physics.
"""

import logging
import math
import sys

from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtWidgets import QApplication, QLabel, QVBoxLayout, QWidget

from simulation import VIEWER_DT, PendulumParams, PendulumState, advance, total_energy
from viewer.canvas import PendulumCanvas

logger = logging.getLogger(__name__)

# Starting configuration
INITIAL_A1 = -math.pi / 2
INITIAL_A2 = -math.pi / 4


class PendulumView(QWidget):
    """Canvas plus status line. Space pauses, R resets."""

    FPS = 60

    def __init__(self, params=None, dt=VIEWER_DT, parent=None):
        super().__init__(parent)
        self.params = params if params is not None else PendulumParams()
        self.dt = dt

        self.canvas = PendulumCanvas()
        self.status_label = QLabel()

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.canvas, stretch=1)
        layout.addWidget(self.status_label)

        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

        self.timer = QTimer()
        self.timer.setInterval(int(1000 / self.FPS))
        self.timer.timeout.connect(self._on_timer)

        self.timer.start()
        self._reset()

    def _reset(self):
        self.state = PendulumState.new(INITIAL_A1, INITIAL_A2, self.params)
        self.steps = 0
        self.initial_energy = total_energy(self.state)
        self.canvas.set_state(self.state)
        self._update_status()
        logger.debug("Viewer reset to a1=%.3f a2=%.3f", INITIAL_A1, INITIAL_A2)

    def _toggle_play(self):
        if self.timer.isActive():
            self.timer.stop()
        else:
            self.timer.start()
        self._update_status()

    def _on_timer(self):
        advance(self.state, self.dt)
        self.steps += 1
        self.canvas.set_state(self.state)
        self._update_status()

    def _update_status(self):
        drift = total_energy(self.state) - self.initial_energy
        paused = "" if self.timer.isActive() else "  [paused]"
        self.status_label.setText(
            f"t = {self.steps * self.dt:.2f}   energy drift = {drift:+.3f}{paused}"
        )

    def keyPressEvent(self, event):
        if event.key() == Qt.Key.Key_Space:
            self._toggle_play()
        elif event.key() == Qt.Key.Key_R:
            self._reset()
        else:
            super().keyPressEvent(event)


def run():
    """Start the interactive viewer (``pendulum-viewer``)."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    app = QApplication(sys.argv)
    window = PendulumView()
    window.setWindowTitle("Double Pendulum")
    window.resize(800, 800)
    window.show()

    sys.exit(app.exec())
