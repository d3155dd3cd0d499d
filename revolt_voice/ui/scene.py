"""Frame logic of the two-ring audio visualizer, independent of Qt."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from ..audio.analyser import FrequencyAnalyser
from ..audio.tap import AudioTap
from ..config.settings import VisualSettings


@dataclass(frozen=True, slots=True)
class Viewport:
    """Logical size of the drawing area and its device pixel density."""

    width: float
    height: float
    device_pixel_ratio: float = 1.0


class Analyser(Protocol):
    data: Sequence[int]

    def update(self) -> None: ...


class DrawingSurface(Protocol):
    """Minimal 2D canvas the scene paints on (logical coordinates)."""

    def resize(self, width: int, height: int, device_pixel_ratio: float) -> None: ...

    def clear(self) -> None: ...

    def fill_vertical_gradient(self, width: float, height: float, top: str, bottom: str) -> None: ...

    def stroke_circle(self, cx: float, cy: float, radius: float, color: str, line_width: float) -> None: ...

    def present(self) -> None: ...


class RingScene:
    """Sample both analysers and paint one ring per signal path."""

    def __init__(self, settings: Optional[VisualSettings] = None) -> None:
        self.settings = settings or VisualSettings()
        self.input_analyser: Optional[Analyser] = None
        self.output_analyser: Optional[Analyser] = None

    def attach_input(self, node: AudioTap) -> FrequencyAnalyser:
        analyser = self._make_analyser(node)
        self.input_analyser = analyser
        return analyser

    def attach_output(self, node: AudioTap) -> FrequencyAnalyser:
        analyser = self._make_analyser(node)
        self.output_analyser = analyser
        return analyser

    @property
    def ready(self) -> bool:
        return self.input_analyser is not None and self.output_analyser is not None

    def ring_radius(self, analyser: Analyser) -> float:
        """Radius driven by the first frequency bin (overall low-frequency energy)."""
        settings = self.settings
        magnitude = float(analyser.data[0]) if len(analyser.data) else 0.0
        return settings.base_radius + (magnitude / settings.max_magnitude) * settings.gain_radius

    def render(self, surface: DrawingSurface, viewport: Viewport) -> bool:
        """Paint one frame; returns False (and draws nothing) until both paths exist."""
        input_analyser = self.input_analyser
        output_analyser = self.output_analyser
        if input_analyser is None or output_analyser is None:
            return False

        input_analyser.update()
        output_analyser.update()

        settings = self.settings
        dpr = viewport.device_pixel_ratio or 1.0
        surface.resize(round(viewport.width * dpr), round(viewport.height * dpr), dpr)
        surface.clear()
        surface.fill_vertical_gradient(
            viewport.width, viewport.height, settings.gradient_top, settings.gradient_bottom
        )

        cx = viewport.width / 2
        cy = viewport.height / 2
        surface.stroke_circle(cx, cy, self.ring_radius(input_analyser), settings.input_color, settings.line_width)
        surface.stroke_circle(cx, cy, self.ring_radius(output_analyser), settings.output_color, settings.line_width)
        surface.present()
        return True

    def _make_analyser(self, node: AudioTap) -> FrequencyAnalyser:
        settings = self.settings
        return FrequencyAnalyser(
            node,
            fft_size=settings.fft_size,
            smoothing=settings.smoothing,
            min_decibels=settings.min_decibels,
            max_decibels=settings.max_decibels,
        )
