from __future__ import annotations

import logging
from typing import Literal, Optional

from workplan_engine.core.config.layout_config import ViewportConfig

logger = logging.getLogger(__name__)

ViewMode = Literal["fit", "manual"]


def fit_scale(
    available_width: float,
    available_height: float,
    diagram_width: float,
    diagram_height: float,
) -> float:
    """Uniform scale that fits the diagram into the available area.

    Never upscales past 1.0. Degenerate sizes are clamped to one unit so the
    result stays positive.
    """
    scale_x = max(available_width, 1) / max(diagram_width, 1)
    scale_y = max(available_height, 1) / max(diagram_height, 1)
    return min(scale_x, scale_y, 1.0)


class ViewportFitController:
    """Zoom state for one rendering surface.

    In "fit" mode the zoom follows container and diagram size changes. Any
    manual zoom action switches to "manual" and freezes the zoom until
    `fit()` is requested again.
    """

    def __init__(
        self,
        container_width: float = 1200,
        container_height: float = 600,
        config: Optional[ViewportConfig] = None,
    ) -> None:
        self.config = config or ViewportConfig()
        self.mode: ViewMode = "fit"
        self.zoom = 1.0
        self.container_width = container_width
        self.container_height = container_height
        self.diagram_width = 0.0
        self.diagram_height = 0.0

    def set_diagram(self, width: float, height: float) -> float:
        self.diagram_width = width
        self.diagram_height = height
        return self._refit()

    def resize(self, width: float, height: float) -> float:
        # Collapsed containers (hidden tab, print preview) report zero; keep the last zoom.
        if width <= 0 or height <= 0:
            logger.debug("ignoring non-positive container size %sx%s", width, height)
            return self.zoom
        self.container_width = width
        self.container_height = height
        return self._refit()

    def fit(self) -> float:
        self.mode = "fit"
        return self._refit()

    def zoom_in(self) -> float:
        self.mode = "manual"
        self.zoom = min(round(self.zoom + self.config.zoom_step, 4), self.config.max_zoom)
        return self.zoom

    def zoom_out(self) -> float:
        self.mode = "manual"
        self.zoom = max(round(self.zoom - self.config.zoom_step, 4), self.config.min_zoom)
        return self.zoom

    def reset(self) -> float:
        self.mode = "manual"
        self.zoom = 1.0
        return self.zoom

    def _refit(self) -> float:
        if self.mode != "fit":
            return self.zoom
        if self.container_width <= 0 or self.container_height <= 0:
            return self.zoom
        pad = self.config.fit_padding
        self.zoom = fit_scale(
            self.container_width - pad,
            self.container_height - pad,
            self.diagram_width,
            self.diagram_height,
        )
        return self.zoom
