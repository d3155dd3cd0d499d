"""Qt widget running the ring visualizer at the display refresh rate."""

from __future__ import annotations

from typing import Optional

from PySide6.QtCore import QPointF, Qt, QTimer
from PySide6.QtGui import QColor, QImage, QLinearGradient, QPainter, QPen
from PySide6.QtWidgets import QWidget

from ..audio.tap import AudioTap
from ..config.settings import VisualSettings
from .scene import RingScene, Viewport


class QImageSurface:
    """Offscreen raster surface implementing the scene's drawing calls."""

    def __init__(self) -> None:
        self.image: Optional[QImage] = None
        self._painter: Optional[QPainter] = None

    def resize(self, width: int, height: int, device_pixel_ratio: float) -> None:
        if self.image is None or self.image.width() != width or self.image.height() != height:
            self.image = QImage(max(1, width), max(1, height), QImage.Format.Format_ARGB32_Premultiplied)
        self.image.setDevicePixelRatio(device_pixel_ratio)
        self._painter = QPainter(self.image)
        self._painter.setRenderHint(QPainter.RenderHint.Antialiasing)

    def clear(self) -> None:
        assert self.image is not None
        self.image.fill(Qt.GlobalColor.transparent)

    def fill_vertical_gradient(self, width: float, height: float, top: str, bottom: str) -> None:
        assert self._painter is not None
        gradient = QLinearGradient(0, 0, 0, height)
        gradient.setColorAt(0, QColor(top))
        gradient.setColorAt(1, QColor(bottom))
        self._painter.fillRect(0, 0, int(width) + 1, int(height) + 1, gradient)

    def stroke_circle(self, cx: float, cy: float, radius: float, color: str, line_width: float) -> None:
        assert self._painter is not None
        self._painter.setPen(QPen(QColor(color), line_width))
        self._painter.setBrush(Qt.BrushStyle.NoBrush)
        self._painter.drawEllipse(QPointF(cx, cy), radius, radius)

    def present(self) -> None:
        if self._painter is not None:
            self._painter.end()
            self._painter = None


class AudioVisualizer(QWidget):
    """Two amplitude-driven rings keyed to microphone and playback audio.

    The frame loop only runs while the widget is shown; it never touches the
    conversation state.
    """

    def __init__(self, settings: Optional[VisualSettings] = None, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.scene = RingScene(settings)
        self._surface = QImageSurface()
        self._timer = QTimer(self)
        self._timer.setTimerType(Qt.TimerType.PreciseTimer)
        self._timer.timeout.connect(self._on_frame)
        self.setAttribute(Qt.WidgetAttribute.WA_OpaquePaintEvent)

    def set_input_node(self, node: AudioTap) -> None:
        self.scene.attach_input(node)

    def set_output_node(self, node: AudioTap) -> None:
        self.scene.attach_output(node)

    def start(self) -> None:
        if not self._timer.isActive():
            self._timer.start(self._frame_interval_ms())

    def stop(self) -> None:
        self._timer.stop()

    # ------------------------------------------------------------------ #
    # Qt event overrides
    # ------------------------------------------------------------------ #
    def showEvent(self, event) -> None:  # type: ignore[override]
        super().showEvent(event)
        self.start()

    def hideEvent(self, event) -> None:  # type: ignore[override]
        self.stop()
        super().hideEvent(event)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.stop()
        super().closeEvent(event)

    def paintEvent(self, event) -> None:  # type: ignore[override]
        painter = QPainter(self)
        image = self._surface.image
        if image is None:
            painter.fillRect(self.rect(), QColor(self.scene.settings.gradient_top))
        else:
            painter.drawImage(QPointF(0, 0), image)
        painter.end()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _on_frame(self) -> None:
        viewport = Viewport(self.width(), self.height(), self.devicePixelRatioF())
        if self.scene.render(self._surface, viewport):
            self.update()

    def _frame_interval_ms(self) -> int:
        screen = self.screen()
        rate = screen.refreshRate() if screen is not None else 0.0
        if rate <= 0:
            rate = self.scene.settings.fallback_refresh_hz
        return max(1, round(1000 / rate))
