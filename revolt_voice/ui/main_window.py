"""Main window for the Revolt voice assistant."""

from __future__ import annotations

from typing import Callable

from PySide6.QtCore import Qt, Signal, Slot
from PySide6.QtGui import QColor, QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QGraphicsDropShadowEffect,
    QGridLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from ..config.settings import AppSettings
from ..runtime.assembly import VoiceRuntime, build_runtime
from ..state.app_state import AppState
from .visualizer import AudioVisualizer


class VoiceMainWindow(QMainWindow):
    """Single toggle control, a status readout and the ring visualizer."""

    _dispatch_requested = Signal(object)

    def __init__(self, settings: AppSettings | None = None) -> None:
        super().__init__()
        self.setWindowTitle("Talk to Revolt")
        self.setMinimumSize(720, 540)
        self.settings = settings or AppSettings()

        self._dispatch_requested.connect(self._run_dispatched, Qt.ConnectionType.QueuedConnection)
        self.runtime: VoiceRuntime = build_runtime(self.settings, self._dispatch)
        self.controller = self.runtime.controller
        self.controller.add_listener(self._on_state_changed)

        self._visualizer = AudioVisualizer(self.settings.visual, self)
        self._visualizer.set_input_node(self.runtime.input_tap)
        self._visualizer.set_output_node(self.runtime.output_tap)

        self._title_label = QLabel("Talk to Revolt")
        self._title_label.setObjectName("titleLabel")
        self._title_label.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self._mic_button = QPushButton("Start talking")
        self._mic_button.setObjectName("micButton")
        self._mic_button.setCursor(Qt.CursorShape.PointingHandCursor)
        self._mic_button.clicked.connect(self._on_mic_clicked)

        self._status_label = QLabel()
        self._status_label.setObjectName("statusLabel")
        self._status_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._status_label.setWordWrap(True)

        self._shortcut_toggle = QShortcut(QKeySequence("Ctrl+Space"), self)
        self._shortcut_toggle.setContext(Qt.ShortcutContext.ApplicationShortcut)
        self._shortcut_toggle.activated.connect(self._on_toggle_shortcut)

        self._build_layout()
        self._apply_theme()
        self._on_state_changed(self.controller.state)

    # ------------------------------------------------------------------ #
    # UI construction
    # ------------------------------------------------------------------ #
    def _build_layout(self) -> None:
        container = QWidget()
        grid = QGridLayout(container)
        grid.setContentsMargins(0, 0, 0, 0)
        grid.addWidget(self._visualizer, 0, 0)

        overlay = QWidget()
        overlay.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground)
        layout = QVBoxLayout(overlay)
        layout.setContentsMargins(24, 40, 24, 20)
        layout.setSpacing(24)
        layout.addWidget(self._title_label)
        layout.addStretch(1)
        layout.addWidget(self._mic_button, 0, Qt.AlignmentFlag.AlignHCenter)
        layout.addStretch(1)
        layout.addWidget(self._status_label)
        grid.addWidget(overlay, 0, 0)

        self.setCentralWidget(container)

    def _apply_theme(self) -> None:
        self.setStyleSheet(
            """
            QWidget {
                color: #e0e0e0;
                font-family: 'Inter', 'Segoe UI', sans-serif;
            }
            QMainWindow {
                background-color: #121212;
            }
            QLabel#titleLabel {
                font-size: 44px;
                font-weight: 600;
            }
            QLabel#statusLabel {
                font-size: 16px;
                color: #b0b0b0;
                min-height: 2.2em;
            }
            QLabel#statusLabel[error="true"] {
                font-size: 14px;
                color: #f44336;
            }
            QPushButton#micButton {
                min-width: 160px;
                min-height: 72px;
                border: none;
                border-radius: 36px;
                font-size: 15px;
                font-weight: 600;
                color: white;
                background-color: #2979ff;
            }
            QPushButton#micButton:hover:!disabled {
                background-color: #448aff;
            }
            QPushButton#micButton[recording="true"] {
                background-color: #ff4081;
            }
            QPushButton#micButton:disabled {
                background-color: #555555;
                color: rgba(255, 255, 255, 0.6);
            }
            """
        )
        shadow = QGraphicsDropShadowEffect(self)
        shadow.setBlurRadius(24)
        shadow.setYOffset(4)
        shadow.setXOffset(0)
        shadow.setColor(QColor(41, 121, 255, 100))
        self._mic_button.setGraphicsEffect(shadow)

    # ------------------------------------------------------------------ #
    # Controller wiring
    # ------------------------------------------------------------------ #
    def _dispatch(self, callback: Callable[[], None]) -> None:
        """Queue ``callback`` onto the GUI thread (safe from any thread)."""
        self._dispatch_requested.emit(callback)

    @Slot(object)
    def _run_dispatched(self, callback: Callable[[], None]) -> None:
        callback()

    def _on_state_changed(self, state: AppState) -> None:
        self._mic_button.setEnabled(state.toggle_enabled)
        if state.listening:
            label = "Stop"
        elif state.speaking:
            label = "Interrupt"
        elif state.thinking:
            label = "Thinking..."
        else:
            label = "Start talking"
        self._mic_button.setText(label)
        self._set_property(self._mic_button, "recording", state.listening)

        self._status_label.setText(state.status.text)
        self._set_property(self._status_label, "error", state.status.is_error)

    @staticmethod
    def _set_property(widget: QWidget, name: str, value: bool) -> None:
        if widget.property(name) == value:
            return
        widget.setProperty(name, value)
        widget.style().unpolish(widget)
        widget.style().polish(widget)

    def _on_mic_clicked(self) -> None:
        self.controller.toggle()

    def _on_toggle_shortcut(self) -> None:
        if self._mic_button.isEnabled():
            self.controller.toggle()

    # ------------------------------------------------------------------ #
    # Qt event overrides
    # ------------------------------------------------------------------ #
    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._visualizer.stop()
        self.runtime.shutdown()
        super().closeEvent(event)
